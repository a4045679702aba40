# tests/test_journal_engine.py
"""
Tests for journal entry validation, numbering and posting.

Tests cover:
- Balanced entries post; unbalanced or malformed ones leave no rows
- Line rules (one side per line, non-negative, two lines minimum)
- Leaf / active / same-tenant account checks
- Per-company sequential entry numbers, including concurrent posting
- Draft -> posted workflow
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.db import connection

from accounting.commands import (
    create_entry,
    create_journal_entry,
    delete_draft_entry,
    post_journal_entry,
)
from accounting.exceptions import UnbalancedEntryError
from accounting.models import AccountingPeriod, JournalEntry, JournalEntryLine
from accounting.setup import seed_chart_of_accounts


def _entry(actor, lines, **kwargs):
    kwargs.setdefault("date", date(2026, 1, 15))
    kwargs.setdefault("description", "Asiento de prueba")
    return create_journal_entry(actor, lines=lines, **kwargs)


# =============================================================================
# Balance and line validation
# =============================================================================

@pytest.mark.django_db
class TestEntryValidation:

    def test_balanced_entry_posts(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["110505"], debit=100000), line(chart["413505"], credit=100000)])

        assert result.success
        entry = result.data
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.total_debit == entry.total_credit == Decimal("100000.00")
        assert entry.period_id == january.pk
        assert entry.lines.count() == 2

    def test_unbalanced_entry_rejected_without_rows(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["110505"], debit=100000), line(chart["413505"], credit=90000)])

        assert not result.success
        assert result.error_code == "unbalanced_entry"
        assert JournalEntry.objects.count() == 0
        assert JournalEntryLine.objects.count() == 0

    def test_unbalanced_raises_from_create_entry(self, company, chart, january, line):
        with pytest.raises(UnbalancedEntryError):
            create_entry(
                company,
                date=date(2026, 1, 15),
                description="Descuadrado",
                lines=[line(chart["110505"], debit=100), line(chart["413505"], credit=90)],
            )

    def test_posted_totals_match_lines(self, actor, chart, january, post, line):
        entry = post([
            line(chart["110505"], debit=119000),
            line(chart["413505"], credit=100000),
            line(chart["240805"], credit=19000),
        ])
        debit = sum(row.debit for row in entry.lines.all())
        credit = sum(row.credit for row in entry.lines.all())
        assert debit == credit == entry.total_debit == entry.total_credit

    def test_single_line_rejected(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["110505"], debit=100)])
        assert result.error_code == "invalid_journal_line"

    def test_line_with_both_sides_rejected(self, actor, chart, january, line):
        both = {"account_id": chart["110505"].pk, "debit": "50", "credit": "50"}
        result = _entry(actor, [both, line(chart["413505"], credit=0)])
        assert result.error_code == "invalid_journal_line"

    def test_zero_line_rejected(self, actor, chart, january, line):
        result = _entry(actor, [
            line(chart["110505"], debit=100),
            line(chart["413505"], credit=100),
            line(chart["5105"]),
        ])
        assert result.error_code == "invalid_journal_line"

    def test_negative_amount_rejected(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["110505"], debit=-100), line(chart["413505"], credit=-100)])
        assert result.error_code == "invalid_journal_line"

    def test_zero_total_rejected(self, actor, chart, january):
        lines = [{"account_id": chart["110505"].pk, "debit": "0.001"}, {"account_id": chart["413505"].pk, "credit": "0.001"}]
        result = _entry(actor, lines)
        assert not result.success

    def test_amounts_rounded_to_cents(self, actor, chart, january):
        lines = [
            {"account_id": chart["110505"].pk, "debit": "10.005"},
            {"account_id": chart["413505"].pk, "credit": "10.005"},
        ]
        result = _entry(actor, lines)
        assert result.success
        assert result.data.total_debit == Decimal("10.01")

    def test_roll_up_account_rejected(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["1105"], debit=100), line(chart["413505"], credit=100)])
        assert result.error_code == "invalid_account_level"

    def test_other_company_account_rejected(self, other_actor, chart, line):
        result = _entry(other_actor, [line(chart["110505"], debit=100), line(chart["413505"], credit=100)])
        assert result.error_code == "invalid_journal_line"

    def test_unknown_source_rejected(self, actor, chart, january, line):
        result = _entry(actor, [line(chart["110505"], debit=1), line(chart["413505"], credit=1)], source="BOGUS")
        assert result.error_code == "validation_error"

    def test_references_stored(self, actor, chart, january, line):
        result = _entry(
            actor,
            [line(chart["110505"], debit=1), line(chart["413505"], credit=1)],
            invoice_ref="INV-1",
        )
        assert result.data.invoice_ref == "INV-1"

    def test_unknown_reference_is_a_programming_error(self, actor, chart, january, line):
        with pytest.raises(TypeError):
            _entry(actor, [line(chart["110505"], debit=1), line(chart["413505"], credit=1)], order_ref="X")

    def test_viewer_cannot_post(self, viewer_actor, chart, january, line):
        with pytest.raises(PermissionDenied):
            _entry(viewer_actor, [line(chart["110505"], debit=1), line(chart["413505"], credit=1)])

    def test_clerk_can_only_draft(self, clerk_actor, chart, january, line):
        lines = [line(chart["110505"], debit=1), line(chart["413505"], credit=1)]
        with pytest.raises(PermissionDenied):
            _entry(clerk_actor, lines)

        result = _entry(clerk_actor, lines, post=False)
        assert result.success
        assert result.data.status == JournalEntry.Status.DRAFT


# =============================================================================
# Numbering
# =============================================================================

@pytest.mark.django_db
class TestEntryNumbering:

    def test_sequential_numbers(self, chart, january, post, line):
        numbers = [
            post([line(chart["110505"], debit=n), line(chart["413505"], credit=n)]).entry_number
            for n in (10, 20, 30)
        ]
        assert numbers == ["CE-00001", "CE-00002", "CE-00003"]

    def test_rejected_entry_consumes_no_number(self, actor, chart, january, post, line):
        _entry(actor, [line(chart["110505"], debit=100), line(chart["413505"], credit=90)])
        entry = post([line(chart["110505"], debit=100), line(chart["413505"], credit=100)])
        assert entry.entry_number == "CE-00001"

    def test_draft_numbered_on_post(self, actor, chart, january, post, line):
        draft = _entry(actor, [line(chart["110505"], debit=5), line(chart["413505"], credit=5)], post=False).data
        assert draft.entry_number == ""

        post([line(chart["110505"], debit=7), line(chart["413505"], credit=7)])
        posted = post_journal_entry(actor, draft.pk)

        assert posted.success
        assert posted.data.entry_number == "CE-00002"
        assert posted.data.status == JournalEntry.Status.POSTED

    def test_numbers_are_per_company(self, other_actor, second_company, chart, january, post, line):
        post([line(chart["110505"], debit=1), line(chart["413505"], credit=1)])

        other_chart = seed_chart_of_accounts(second_company)
        AccountingPeriod.objects.create(
            company=second_company, name="Enero", start_date=date(2026, 1, 1), end_date=date(2026, 1, 31)
        )
        entry = post(
            [line(other_chart["110505"], debit=1), line(other_chart["413505"], credit=1)],
            using=other_actor,
        )
        assert entry.entry_number == "CE-00001"


# =============================================================================
# Drafts
# =============================================================================

@pytest.mark.django_db
class TestDrafts:

    def test_post_non_draft_fails(self, actor, chart, january, post, line):
        entry = post([line(chart["110505"], debit=5), line(chart["413505"], credit=5)])
        result = post_journal_entry(actor, entry.pk)
        assert result.error_code == "entry_not_draft"

    def test_draft_revalidated_on_post(self, actor, chart, january, line):
        draft = _entry(actor, [line(chart["110505"], debit=5), line(chart["413505"], credit=5)], post=False).data
        january.status = AccountingPeriod.Status.CLOSING
        january.save(update_fields=["status"])

        result = post_journal_entry(actor, draft.pk)
        assert result.error_code == "period_not_open"
        draft.refresh_from_db()
        assert draft.status == JournalEntry.Status.DRAFT

    def test_system_draft_cannot_be_posted_by_caller(self, actor, company, chart, january, line):
        draft = create_entry(
            company,
            date=date(2026, 1, 15),
            description="Venta automatica",
            lines=[line(chart["130505"], debit=5), line(chart["413505"], credit=5)],
            source=JournalEntry.Source.INVOICE_SALE,
            post=False,
        )

        result = post_journal_entry(actor, draft.pk)
        assert result.error_code == "validation_error"
        draft.refresh_from_db()
        assert draft.status == JournalEntry.Status.DRAFT

    def test_delete_draft(self, actor, chart, january, line):
        draft = _entry(actor, [line(chart["110505"], debit=5), line(chart["413505"], credit=5)], post=False).data
        result = delete_draft_entry(actor, draft.pk)
        assert result.data == {"deleted": True}
        assert not JournalEntry.objects.filter(pk=draft.pk).exists()

    def test_cannot_delete_posted(self, actor, chart, january, post, line):
        entry = post([line(chart["110505"], debit=5), line(chart["413505"], credit=5)])
        result = delete_draft_entry(actor, entry.pk)
        assert result.error_code == "entry_not_draft"


# =============================================================================
# Concurrency (row locks need a real server)
# =============================================================================

@pytest.mark.skipif(connection.vendor != "postgresql", reason="row-level locking needs PostgreSQL")
@pytest.mark.django_db(transaction=True)
class TestConcurrentPosting:

    WORKERS = 8

    def _post_concurrently(self, actor, lines, count):
        barrier = threading.Barrier(count)

        def worker(_):
            try:
                barrier.wait(timeout=10)
                return create_journal_entry(
                    actor,
                    date=date(2026, 1, 15),
                    description="Concurrente",
                    lines=lines,
                )
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=count) as pool:
            return list(pool.map(worker, range(count)))

    def test_concurrent_posts_get_distinct_gapless_numbers(self, actor, chart, january, line):
        lines = [line(chart["110505"], debit=10), line(chart["413505"], credit=10)]
        results = self._post_concurrently(actor, lines, self.WORKERS)

        assert all(result.success for result in results)
        numbers = sorted(result.data.entry_number for result in results)
        assert numbers == [f"CE-{n:05d}" for n in range(1, self.WORKERS + 1)]

        january.refresh_from_db()
        assert january.entry_count == self.WORKERS
