# tests/conftest.py
"""
Pytest fixtures for ledger tests.

- company / second_company: two tenants
- actor / clerk_actor / viewer_actor / other_actor: ActorContext per role
- chart: seeded PUC chart for ``company`` ({code: Account})
- january: OPEN period covering January 2026
- post: helper that posts a balanced entry and returns it
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from accounts.authz import actor_for
from accounts.models import Company
from accounts.permissions import add_member
from accounting.commands import create_journal_entry
from accounting.models import AccountingPeriod
from accounting.setup import seed_chart_of_accounts


User = get_user_model()


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def company(db):
    return Company.objects.create(name="Test Company", slug="test-company", nit="900123456")


@pytest.fixture
def second_company(db):
    """A second tenant for isolation tests."""
    return Company.objects.create(name="Second Company", slug="second-company", nit="900654321")


def _member(company, email, role):
    user = User.objects.create_user(email=email, password="testpass123", name=email.split("@")[0])
    add_member(company, user, role)
    user.refresh_from_db()
    return user


@pytest.fixture
def owner_user(company):
    return _member(company, "owner@test.com", "OWNER")


@pytest.fixture
def clerk_user(company):
    return _member(company, "clerk@test.com", "USER")


@pytest.fixture
def viewer_user(company):
    return _member(company, "viewer@test.com", "VIEWER")


@pytest.fixture
def other_user(second_company):
    return _member(second_company, "other@test.com", "OWNER")


@pytest.fixture
def actor(owner_user, company):
    return actor_for(owner_user, company)


@pytest.fixture
def clerk_actor(clerk_user, company):
    return actor_for(clerk_user, company)


@pytest.fixture
def viewer_actor(viewer_user, company):
    return actor_for(viewer_user, company)


@pytest.fixture
def other_actor(other_user, second_company):
    return actor_for(other_user, second_company)


# =============================================================================
# Ledger Fixtures
# =============================================================================

@pytest.fixture
def chart(company):
    return seed_chart_of_accounts(company)


@pytest.fixture
def january(company):
    return AccountingPeriod.objects.create(
        company=company,
        name="Enero 2026",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 31),
    )


@pytest.fixture
def february(company):
    return AccountingPeriod.objects.create(
        company=company,
        name="Febrero 2026",
        start_date=date(2026, 2, 1),
        end_date=date(2026, 2, 28),
    )


@pytest.fixture
def line():
    """line(account, debit=..., credit=...) -> journal line dict"""

    def _line(account, debit=0, credit=0, description=""):
        return {
            "account_id": account.pk,
            "debit": Decimal(str(debit)),
            "credit": Decimal(str(credit)),
            "description": description,
        }

    return _line


@pytest.fixture
def post(actor):
    """post(lines, on=date(2026, 1, 15), description=..., **kwargs) -> JournalEntry"""

    def _post(lines, on=date(2026, 1, 15), description="Asiento de prueba", using=None, **kwargs):
        result = create_journal_entry(
            using or actor,
            date=on,
            description=description,
            lines=lines,
            **kwargs,
        )
        assert result.success, result.error
        return result.data

    return _post


@pytest.fixture
def api_client(owner_user):
    client = APIClient()
    client.force_authenticate(user=owner_user)
    return client
