# tests/test_api.py
"""
HTTP tests for the accounting and reports endpoints.

Tests cover:
- JWT authentication and tenant resolution from the active company
- Error body shape {"detail", "code"} and status mapping (400 / 403 / 404)
- Journal entry list pagination and post / void / reverse actions
- Report payloads with decimal strings
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APIClient

from accounting.models import JournalEntry
from accounts.models import CompanyMembership
from accounts.permissions import revoke_permission
from reports.types import TrialBalance, to_payload


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def sale(chart, january, post, line):
    return post([line(chart["110505"], debit=100000), line(chart["413505"], credit=100000)], description="Venta")


# =============================================================================
# Authentication
# =============================================================================

@pytest.mark.django_db
class TestAuthentication:

    def test_anonymous_rejected(self):
        response = APIClient().get(reverse("accounting:account-list-create"))
        assert response.status_code == 401

    def test_jwt_flow(self, owner_user, chart):
        client = APIClient()
        token = client.post(
            reverse("token-obtain"),
            {"email": "owner@test.com", "password": "testpass123"},
            format="json",
        )
        assert token.status_code == 200

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['access']}")
        response = client.get(reverse("accounting:account-list-create"), {"search": "Caja"})

        assert response.status_code == 200
        assert [row["code"] for row in response.data] == ["1105", "110505"]

    def test_user_without_company_forbidden(self, db):
        loner = get_user_model().objects.create_user(email="loner@test.com", password="x", name="loner")
        response = _client_for(loner).get(reverse("accounting:account-list-create"))
        assert response.status_code == 403


# =============================================================================
# Accounts
# =============================================================================

@pytest.mark.django_db
class TestAccountEndpoints:

    def test_create_account(self, api_client, chart):
        response = api_client.post(
            reverse("accounting:account-list-create"),
            {"code": "5140", "name": "Gastos Legales", "account_type": "EXPENSE", "parent_id": chart["51"].pk},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["level"] == 3
        assert response.data["nature"] == "DEBIT"
        assert response.data["parent_code"] == "51"

    def test_duplicate_code_is_400(self, api_client, chart):
        response = api_client.post(
            reverse("accounting:account-list-create"),
            {"code": "110505", "name": "Otra Caja", "account_type": "ASSET", "parent_id": chart["1105"].pk},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["code"] == "duplicate_account_code"
        assert "detail" in response.data

    def test_viewer_cannot_create(self, viewer_user, chart):
        response = _client_for(viewer_user).post(
            reverse("accounting:account-list-create"),
            {"code": "5140", "name": "Gastos Legales", "account_type": "EXPENSE", "parent_id": chart["51"].pk},
            format="json",
        )
        assert response.status_code == 403

    def test_code_cannot_be_patched(self, api_client, chart):
        response = api_client.patch(
            reverse("accounting:account-detail", args=[chart["5105"].pk]),
            {"code": "5199"},
            format="json",
        )
        assert response.status_code == 400

    def test_tree(self, api_client, chart):
        response = api_client.get(reverse("accounting:account-tree"))

        assert response.status_code == 200
        assert [node["code"] for node in response.data] == ["1", "2", "3", "4", "5", "6"]

    def test_setup_twice(self, api_client):
        first = api_client.post(reverse("accounting:account-setup"))
        second = api_client.post(reverse("accounting:account-setup"))

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.data["code"] == "chart_already_exists"


# =============================================================================
# Journal entries
# =============================================================================

@pytest.mark.django_db
class TestJournalEndpoints:

    def test_create_entry(self, api_client, chart, january):
        response = api_client.post(
            reverse("accounting:journal-entry-list-create"),
            {
                "date": "2026-01-15",
                "description": "Venta contado",
                "lines": [
                    {"account_id": chart["110505"].pk, "debit": "119000.00"},
                    {"account_id": chart["413505"].pk, "credit": "100000.00"},
                    {"account_id": chart["240805"].pk, "credit": "19000.00"},
                ],
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["entry_number"] == "CE-00001"
        assert response.data["status"] == "POSTED"
        assert response.data["total_debit"] == "119000.00"
        assert len(response.data["lines"]) == 3

    def test_unbalanced_entry_is_400(self, api_client, chart, january):
        response = api_client.post(
            reverse("accounting:journal-entry-list-create"),
            {
                "date": "2026-01-15",
                "description": "Descuadre",
                "lines": [
                    {"account_id": chart["110505"].pk, "debit": "100.00"},
                    {"account_id": chart["413505"].pk, "credit": "90.00"},
                ],
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.data["code"] == "unbalanced_entry"
        assert JournalEntry.objects.count() == 0

    def test_system_source_is_400(self, api_client, chart, january):
        response = api_client.post(
            reverse("accounting:journal-entry-list-create"),
            {
                "date": "2026-01-15",
                "description": "Cierre a mano",
                "source": "PERIOD_CLOSE",
                "lines": [
                    {"account_id": chart["110505"].pk, "debit": "100.00"},
                    {"account_id": chart["413505"].pk, "credit": "100.00"},
                ],
            },
            format="json",
        )

        assert response.status_code == 400
        assert "source" in response.data
        assert JournalEntry.objects.count() == 0

    def test_list_is_paginated(self, api_client, chart, january, post, line):
        for amount in (10, 20, 30):
            post([line(chart["110505"], debit=amount), line(chart["413505"], credit=amount)])

        response = api_client.get(reverse("accounting:journal-entry-list-create"), {"page_size": 2, "page": 2})

        assert response.status_code == 200
        assert response.data["total"] == 3
        assert response.data["page"] == 2
        assert response.data["page_size"] == 2
        assert len(response.data["results"]) == 1

    def test_other_company_entry_is_404(self, other_user, sale):
        response = _client_for(other_user).get(reverse("accounting:journal-entry-detail", args=[sale.pk]))
        assert response.status_code == 404

    def test_void(self, api_client, sale):
        response = api_client.post(
            reverse("accounting:journal-entry-void", args=[sale.pk]),
            {"reason": "Duplicado"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["status"] == "VOIDED"
        assert response.data["void_reason"] == "Duplicado"

    def test_void_other_company_is_404(self, other_user, sale):
        response = _client_for(other_user).post(
            reverse("accounting:journal-entry-void", args=[sale.pk]),
            {"reason": "x"},
            format="json",
        )
        assert response.status_code == 404
        assert response.data["code"] == "not_found"

    def test_reverse(self, api_client, sale):
        response = api_client.post(
            reverse("accounting:journal-entry-reverse", args=[sale.pk]),
            {"date": "2026-01-25"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["reverses_id"] == sale.pk
        assert response.data["date"] == "2026-01-25"

    def test_delete_draft(self, api_client, chart, january):
        created = api_client.post(
            reverse("accounting:journal-entry-list-create"),
            {
                "date": "2026-01-15",
                "description": "Borrador",
                "post": False,
                "lines": [
                    {"account_id": chart["110505"].pk, "debit": "5.00"},
                    {"account_id": chart["413505"].pk, "credit": "5.00"},
                ],
            },
            format="json",
        )
        assert created.data["status"] == "DRAFT"

        response = api_client.delete(reverse("accounting:journal-entry-detail", args=[created.data["id"]]))
        assert response.status_code == 204


# =============================================================================
# Periods and config
# =============================================================================

@pytest.mark.django_db
class TestPeriodAndConfigEndpoints:

    def test_period_workflow(self, api_client, january):
        begin = api_client.post(reverse("accounting:period-begin-closing", args=[january.pk]))
        close = api_client.post(reverse("accounting:period-close", args=[january.pk]))

        assert begin.status_code == 200
        assert close.status_code == 200
        assert close.data["status"] == "CLOSED"

    def test_overlapping_period_is_400(self, api_client, january):
        response = api_client.post(
            reverse("accounting:period-list-create"),
            {"name": "Mid", "start_date": "2026-01-15", "end_date": "2026-02-15"},
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "period_overlap"

    def test_config_get_and_patch(self, api_client, chart):
        response = api_client.get(reverse("accounting:config"))
        assert response.status_code == 200
        assert response.data["is_configured"] is True
        assert response.data["auto_generate_entries"] is False

        response = api_client.patch(reverse("accounting:config"), {"auto_generate_entries": True}, format="json")
        assert response.status_code == 200
        assert response.data["auto_generate_entries"] is True


# =============================================================================
# Reports
# =============================================================================

@pytest.mark.django_db
class TestReportEndpoints:

    def test_balance_sheet(self, api_client, sale):
        response = api_client.get(reverse("reports:balance-sheet"), {"as_of_date": "2026-01-31"})

        assert response.status_code == 200
        assert response.data["total_assets"] == "100000.00"
        assert response.data["net_income"] == "100000.00"
        assert response.data["is_balanced"] is True

    def test_trial_balance(self, api_client, sale):
        response = api_client.get(reverse("reports:trial-balance"), {"as_of_date": "2026-01-31"})

        assert response.status_code == 200
        assert response.data["total_debit"] == response.data["total_credit"] == "100000.00"
        assert response.data["as_of_date"] == "2026-01-31"

    def test_general_ledger_unknown_account(self, api_client, sale):
        response = api_client.get(
            reverse("reports:general-ledger"),
            {"from_date": "2026-01-01", "to_date": "2026-01-31", "account_id": 999999},
        )
        assert response.status_code == 404

    def test_bad_range_is_400(self, api_client, sale):
        response = api_client.get(
            reverse("reports:income-statement"),
            {"from_date": "2026-02-01", "to_date": "2026-01-01"},
        )
        assert response.status_code == 400
        assert response.data["code"] == "validation_error"

    def test_missing_required_date_is_400(self, api_client, sale):
        response = api_client.get(reverse("reports:general-journal"), {"from_date": "2026-01-01"})
        assert response.status_code == 400

    def test_invalid_month(self, api_client):
        response = api_client.get(reverse("reports:withholding-summary"), {"year": 2026, "month": 13})
        assert response.status_code == 400

    def test_iva_declaration_label(self, api_client):
        response = api_client.get(reverse("reports:iva-declaration"), {"year": 2026, "period": 2})

        assert response.status_code == 200
        assert response.data["period_label"] == "Marzo - Abril 2026"
        assert response.data["net_iva_payable"] == "0.00"

    def test_revoked_report_permission(self, viewer_user, company):
        membership = CompanyMembership.objects.get(user=viewer_user, company=company)
        revoke_permission(membership, "reports.view")

        response = _client_for(viewer_user).get(reverse("reports:trial-balance"))
        assert response.status_code == 403


# =============================================================================
# Health
# =============================================================================

@pytest.mark.django_db
def test_health_endpoints(client):
    assert client.get("/_health/live").json() == {"status": "alive"}

    ready = client.get("/_health/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"


def test_report_dates_are_iso():
    payload = to_payload(TrialBalance(
        as_of_date=date(2026, 1, 31),
        from_date=None,
        accounts=[],
        total_debit=Decimal("0.00"),
        total_credit=Decimal("0.00"),
        is_balanced=True,
    ))
    assert payload["as_of_date"] == "2026-01-31"
    assert payload["from_date"] is None
