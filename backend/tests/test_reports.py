# tests/test_reports.py
"""
Tests for ledger and tax reports.

Tests cover:
- Trial balance totals and nature-signed balances
- General journal / general ledger (opening, running balance)
- Balance sheet equation, including contra accounts and random postings
- Income statement and cash flow
- AR / AP aging buckets
- IVA declaration, withholding summary, year-to-date tax summary
- Integrity alarms when the ledger is tampered with
"""

import random
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest

from accounting.commands import begin_closing, create_journal_entry, generate_closing_entry
from accounting.documents import (
    apply_document_payment,
    cancel_business_document,
    record_business_document,
)
from accounting.exceptions import (
    LedgerIntegrityError,
    LedgerStateError,
    LedgerValidationError,
    NotFound,
)
from accounting.models import BusinessDocument, JournalEntryLine
from reports import services
from reports.types import to_payload


@pytest.fixture
def ledger(chart, january, post, line):
    """
    January 2026:
    capital 5,000,000 cash; sale 1,000,000 + IVA on credit with its cost;
    purchase 500,000 + IVA; payroll paid from the bank; customer pays by bank.
    """
    c = chart
    post([line(c["110505"], debit=5000000), line(c["3105"], credit=5000000)],
         on=date(2026, 1, 2), description="Aporte de capital")
    post([line(c["130505"], debit=1190000), line(c["413505"], credit=1000000), line(c["240805"], credit=190000)],
         on=date(2026, 1, 10), description="Venta FV-1")
    post([line(c["613505"], debit=300000), line(c["143505"], credit=300000)],
         on=date(2026, 1, 10), description="Costo FV-1")
    post([line(c["143505"], debit=500000), line(c["241205"], debit=95000), line(c["220505"], credit=595000)],
         on=date(2026, 1, 12), description="Compra OC-1")
    post([line(c["5105"], debit=200000), line(c["111005"], credit=200000)],
         on=date(2026, 1, 20), description="Nomina")
    post([line(c["111005"], debit=1190000), line(c["130505"], credit=1190000)],
         on=date(2026, 1, 25), description="Recaudo FV-1")
    return c


JAN_1, JAN_31 = date(2026, 1, 1), date(2026, 1, 31)


# =============================================================================
# Trial balance / journal / ledger
# =============================================================================

@pytest.mark.django_db
class TestTrialBalance:

    def test_totals_balance(self, company, ledger):
        tb = services.trial_balance(company, JAN_31)

        assert tb.total_debit == tb.total_credit == Decimal("8475000.00")
        assert tb.is_balanced

    def test_balance_follows_nature(self, company, ledger):
        rows = {row.code: row for row in services.trial_balance(company, JAN_31).accounts}

        assert rows["110505"].balance == Decimal("5000000.00")
        assert rows["413505"].balance == Decimal("1000000.00")
        assert rows["241205"].balance == Decimal("95000.00")
        assert rows["111005"].balance == Decimal("990000.00")

    def test_as_of_cuts_off_later_entries(self, company, ledger):
        tb = services.trial_balance(company, date(2026, 1, 5))
        assert [row.code for row in tb.accounts] == ["110505", "3105"]

    def test_from_date_limits_window(self, company, ledger):
        tb = services.trial_balance(company, JAN_31, from_date=date(2026, 1, 20))
        assert tb.total_debit == Decimal("1390000.00")

    def test_other_company_sees_nothing(self, second_company, ledger):
        tb = services.trial_balance(second_company, JAN_31)
        assert tb.accounts == []
        assert tb.is_balanced

    def test_drafts_not_reported(self, company, actor, chart, january, line):
        create_journal_entry(
            actor,
            date=date(2026, 1, 3),
            description="Borrador",
            lines=[line(chart["110505"], debit=10), line(chart["413505"], credit=10)],
            post=False,
        )
        assert services.trial_balance(company, JAN_31).accounts == []


@pytest.mark.django_db
class TestGeneralJournal:

    def test_entries_in_date_order(self, company, ledger):
        journal = services.general_journal(company, JAN_1, JAN_31)

        assert [row.date.day for row in journal.entries] == [2, 10, 10, 12, 20, 25]
        assert journal.total_debit == journal.total_credit == Decimal("8475000.00")
        first = journal.entries[0]
        assert first.entry_number == "CE-00001"
        assert [row.account_code for row in first.lines] == ["110505", "3105"]

    def test_range_validated(self, company, ledger):
        with pytest.raises(LedgerValidationError):
            services.general_journal(company, JAN_31, JAN_1)


@pytest.mark.django_db
class TestGeneralLedger:

    def test_running_balance(self, company, ledger):
        result = services.general_ledger(company, JAN_1, JAN_31, account_id=ledger["111005"].pk)

        [bank] = result.accounts
        assert bank.opening_balance == Decimal("0.00")
        assert [m.running_balance for m in bank.movements] == [Decimal("-200000.00"), Decimal("990000.00")]
        assert bank.closing_balance == Decimal("990000.00")
        assert bank.movements[0].description == "Nomina"

    def test_opening_balance_from_earlier_postings(self, company, ledger):
        result = services.general_ledger(company, date(2026, 1, 15), JAN_31)
        sections = {section.code: section for section in result.accounts}

        receivables = sections["130505"]
        assert receivables.opening_balance == Decimal("1190000.00")
        assert receivables.closing_balance == Decimal("0.00")

        cash = sections["110505"]
        assert cash.movements == []
        assert cash.opening_balance == cash.closing_balance == Decimal("5000000.00")

    def test_single_account_without_movements(self, company, ledger):
        result = services.general_ledger(company, date(2026, 1, 15), JAN_31, account_id=ledger["110505"].pk)
        [cash] = result.accounts
        assert cash.movements == []
        assert cash.closing_balance == Decimal("5000000.00")

    def test_unknown_account(self, company, second_company, ledger):
        with pytest.raises(NotFound):
            services.general_ledger(second_company, JAN_1, JAN_31, account_id=ledger["110505"].pk)


# =============================================================================
# Statements
# =============================================================================

@pytest.mark.django_db
class TestBalanceSheet:

    def test_equation_holds(self, company, ledger):
        bs = services.balance_sheet(company, JAN_31)

        assert bs.total_assets == Decimal("6190000.00")
        assert bs.liabilities.total == Decimal("690000.00")
        assert bs.net_income == Decimal("500000.00")
        assert bs.equity.total == Decimal("5500000.00")
        assert bs.total_liabilities_and_equity == bs.total_assets
        assert bs.is_balanced

    def test_contra_liability_is_negative(self, company, ledger):
        bs = services.balance_sheet(company, JAN_31)
        amounts = {row.code: row.amount for row in bs.liabilities.accounts}
        assert amounts["241205"] == Decimal("-95000.00")

    def test_net_income_row_in_equity(self, company, ledger):
        bs = services.balance_sheet(company, JAN_31)
        last = bs.equity.accounts[-1]
        assert last.account_id is None
        assert last.name == "Utilidad del ejercicio"
        assert last.amount == Decimal("500000.00")

    def test_section_titles(self, company, ledger):
        bs = services.balance_sheet(company, JAN_31)
        assert (bs.assets.title, bs.liabilities.title, bs.equity.title) == ("Activos", "Pasivos", "Patrimonio")

    def test_equation_holds_after_closing(self, actor, company, january, ledger):
        begin_closing(actor, january.pk)
        generate_closing_entry(actor, january.pk)

        bs = services.balance_sheet(company, JAN_31)
        assert bs.net_income == Decimal("0.00")
        assert bs.is_balanced

    def test_equation_holds_for_random_postings(self, company, chart, january, post, line):
        rng = random.Random(20260115)
        leaves = [account for account in chart.values() if account.is_leaf]

        for n in range(25):
            amount = Decimal(rng.randint(300, 5_000_000)) / 100
            split = (amount / 3).quantize(Decimal("0.01"))
            debit_a, debit_b, credit = rng.sample(leaves, 3)
            post(
                [
                    line(debit_a, debit=split),
                    line(debit_b, debit=amount - split),
                    line(credit, credit=amount),
                ],
                on=date(2026, 1, 1 + n),
            )
            bs = services.balance_sheet(company, JAN_31)
            assert bs.is_balanced, f"unbalanced after entry {n + 1}"
            assert services.trial_balance(company, JAN_31).is_balanced


@pytest.mark.django_db
class TestIncomeStatement:

    def test_sections(self, company, ledger):
        statement = services.income_statement(company, JAN_1, JAN_31)

        assert statement.revenue.total == Decimal("1000000.00")
        assert statement.cogs.total == Decimal("300000.00")
        assert statement.gross_profit == Decimal("700000.00")
        assert statement.expenses.total == Decimal("200000.00")
        assert statement.net_income == Decimal("500000.00")

    def test_ignores_period_close(self, actor, company, january, ledger):
        begin_closing(actor, january.pk)
        generate_closing_entry(actor, january.pk)

        statement = services.income_statement(company, JAN_1, JAN_31)
        assert statement.net_income == Decimal("500000.00")


@pytest.mark.django_db
class TestCashFlow:

    def test_month(self, company, ledger):
        flow = services.cash_flow(company, JAN_1, JAN_31)

        assert flow.opening_balance == Decimal("0.00")
        assert flow.total_inflows == Decimal("6190000.00")
        assert flow.total_outflows == Decimal("200000.00")
        assert flow.net_change == Decimal("5990000.00")
        assert flow.closing_balance == Decimal("5990000.00")
        assert [m.account_code for m in flow.movements] == ["110505", "111005", "111005"]

    def test_opening_from_earlier_movements(self, company, ledger):
        flow = services.cash_flow(company, date(2026, 1, 15), JAN_31)

        assert flow.opening_balance == Decimal("5000000.00")
        assert flow.closing_balance == Decimal("5990000.00")


# =============================================================================
# Aging
# =============================================================================

def _sale(company, number, partner, issue, subtotal, tax=0, **kwargs):
    return record_business_document(
        company,
        kind=BusinessDocument.Kind.SALE,
        number=number,
        partner_ref=partner,
        partner_name=f"Cliente {partner}",
        partner_document=f"NIT-{partner}",
        issue_date=issue,
        lines=[{"subtotal": subtotal, "tax": tax, "tax_rate": 19 if tax else 0}],
        **kwargs,
    )


@pytest.mark.django_db
class TestAging:

    AS_OF = date(2026, 3, 15)

    @pytest.fixture
    def receivables(self, company):
        _sale(company, "FV-1", "c1", date(2026, 1, 1), 100000, 19000, payment_terms="NET_30")
        _sale(company, "FV-2", "c1", date(2026, 3, 10), 50000, due_date=date(2026, 4, 10))
        _sale(company, "FV-3", "c2", date(2025, 11, 1), 200000, paid_amount=50000)
        _sale(company, "FV-4", "c2", date(2026, 2, 1), 80000, paid_amount=80000)
        _sale(company, "FV-5", "c3", date(2026, 2, 1), 70000, status=BusinessDocument.Status.CANCELLED)
        _sale(company, "FV-6", "c3", date(2026, 3, 20), 90000)

    def test_rows_and_buckets(self, company, receivables):
        report = services.ar_aging(company, self.AS_OF)

        assert [row.partner_ref for row in report.rows] == ["c1", "c2"]
        c1, c2 = report.rows
        assert c1.days_31_60 == Decimal("119000.00")
        assert c1.current == Decimal("50000.00")
        assert c1.total_balance == Decimal("169000.00")
        assert c2.days_90_plus == Decimal("150000.00")
        assert c2.partner_document == "NIT-c2"

    def test_buckets_sum_to_balance(self, company, receivables):
        report = services.ar_aging(company, self.AS_OF)
        for row in report.rows:
            assert row.bucket_sum == row.total_balance
        assert report.totals.total_balance == Decimal("319000.00")
        assert report.totals.total_overdue == Decimal("269000.00")

    def test_payment_and_cancellation_update_aging(self, company):
        first = _sale(company, "FV-20", "c9", date(2026, 3, 1), 100000)
        second = _sale(company, "FV-21", "c9", date(2026, 3, 1), 40000)

        apply_document_payment(company, first.pk, 60000)
        cancel_business_document(company, second.pk)

        [row] = services.ar_aging(company, self.AS_OF).rows
        assert row.total_balance == Decimal("40000.00")
        assert row.days_1_30 == Decimal("40000.00")

    def test_overpayment_rejected(self, company):
        document = _sale(company, "FV-22", "c9", date(2026, 3, 1), 100000)

        with pytest.raises(LedgerValidationError):
            apply_document_payment(company, document.pk, 100001)
        cancel_business_document(company, document.pk)
        with pytest.raises(LedgerStateError):
            cancel_business_document(company, document.pk)

    def test_payables(self, company):
        record_business_document(
            company,
            kind=BusinessDocument.Kind.PURCHASE,
            number="FC-1",
            partner_ref="s1",
            partner_name="Proveedor 1",
            issue_date=date(2026, 1, 1),
            lines=[{"subtotal": 300000, "tax": 57000, "tax_rate": 19}],
        )
        report = services.ap_aging(company, date(2026, 2, 10))

        [row] = report.rows
        assert row.days_1_30 == Decimal("357000.00")
        assert report.kind == BusinessDocument.Kind.PURCHASE


# =============================================================================
# Tax
# =============================================================================

@pytest.fixture
def tax_documents(company):
    record_business_document(
        company, kind="SALE", number="FV-10", partner_ref="c1", partner_name="Cliente 1",
        issue_date=date(2026, 1, 5),
        lines=[
            {"subtotal": 100000, "tax": 19000, "tax_rate": 19},
            {"subtotal": 20000, "tax": 1000, "tax_rate": 5},
            {"subtotal": 30000, "tax": 0, "tax_rate": 0, "tax_category": "EXENTO"},
        ],
    )
    record_business_document(
        company, kind="SALE", number="FV-11", partner_ref="c2", partner_name="Cliente 2",
        issue_date=date(2026, 2, 10),
        lines=[{"subtotal": 200000, "tax": 38000, "tax_rate": 19}],
    )
    record_business_document(
        company, kind="SALE", number="FV-12", partner_ref="c2", partner_name="Cliente 2",
        issue_date=date(2026, 2, 11), status="CANCELLED",
        lines=[{"subtotal": 1000000, "tax": 190000, "tax_rate": 19}],
    )
    record_business_document(
        company, kind="SALE", number="FV-13", partner_ref="c1", partner_name="Cliente 1",
        issue_date=date(2026, 3, 2),
        lines=[{"subtotal": 10000, "tax": 1900, "tax_rate": 19}],
    )
    record_business_document(
        company, kind="PURCHASE", number="FC-10", partner_ref="s1", partner_name="Proveedor 1",
        issue_date=date(2026, 1, 20),
        lines=[
            {"subtotal": 500000, "tax": 95000, "tax_rate": 19},
            {"subtotal": 10000, "tax": 0, "tax_rate": 0, "tax_category": "EXCLUIDO"},
        ],
    )


@pytest.mark.django_db
class TestIvaDeclaration:

    def test_first_bimester(self, company, tax_documents):
        iva = services.iva_declaration(company, 2026, 1)

        assert iva.period_label == "Enero - Febrero 2026"
        assert (iva.from_date, iva.to_date) == (date(2026, 1, 1), date(2026, 2, 28))

        assert [(b.tax_rate, b.taxable_base, b.tax_amount, b.document_count) for b in iva.sales_by_rate] == [
            (Decimal("19.00"), Decimal("300000.00"), Decimal("57000.00"), 2),
            (Decimal("5.00"), Decimal("20000.00"), Decimal("1000.00"), 1),
        ]
        assert [(e.category, e.taxable_base) for e in iva.sales_exempt] == [("EXENTO", Decimal("30000.00"))]
        assert iva.total_sales_base == Decimal("350000.00")
        assert iva.total_iva_generated == Decimal("58000.00")

        assert iva.total_purchases_base == Decimal("510000.00")
        assert iva.total_iva_deductible == Decimal("95000.00")
        assert iva.net_iva_payable == Decimal("-37000.00")

    def test_zero_rate_taxed_line_is_bucketed(self, company, tax_documents):
        record_business_document(
            company, kind="SALE", number="FV-14", partner_ref="c3", partner_name="Cliente 3",
            issue_date=date(2026, 3, 20),
            lines=[{"subtotal": 40000, "tax": 0, "tax_rate": 0}],
        )

        iva = services.iva_declaration(company, 2026, 2)

        assert [(b.tax_rate, b.taxable_base) for b in iva.sales_by_rate] == [
            (Decimal("19.00"), Decimal("10000.00")),
            (Decimal("0.00"), Decimal("40000.00")),
        ]
        assert iva.total_sales_base == Decimal("50000.00")
        assert iva.total_iva_generated == Decimal("1900.00")

    def test_invalid_bimester(self, company):
        with pytest.raises(LedgerValidationError):
            services.iva_declaration(company, 2026, 7)


@pytest.mark.django_db
class TestWithholding:

    @pytest.fixture
    def purchases(self, company):
        def purchase(number, partner, issue, subtotal):
            record_business_document(
                company, kind="PURCHASE", number=number, partner_ref=partner,
                partner_name=f"Proveedor {partner}", issue_date=issue,
                lines=[{"subtotal": subtotal, "tax": 0, "tax_rate": 0}],
            )

        purchase("FC-1", "s1", date(2026, 1, 5), 1000000)
        purchase("FC-2", "s1", date(2026, 1, 18), 600000)
        purchase("FC-3", "s2", date(2026, 1, 22), 2000000)
        purchase("FC-4", "s3", date(2026, 1, 23), 100000)
        purchase("FC-5", "s2", date(2026, 2, 2), 2000000)

    def test_month_summary(self, company, purchases):
        summary = services.withholding_summary(company, 2026, 1)

        assert summary.month_label == "Enero 2026"
        assert [row.partner_ref for row in summary.rows] == ["s2", "s1"]
        s2, s1 = summary.rows
        assert s2.total_withheld == Decimal("50000")
        assert s1.total_withheld == Decimal("40000")
        assert s1.purchase_count == 2
        assert s1.total_base == Decimal("1600000.00")
        assert s1.withholding_rate == Decimal("2.5")
        assert summary.total_base == Decimal("3600000.00")
        assert summary.total_withheld == Decimal("90000")

    def test_ytd(self, company, purchases):
        ytd = services.ytd_tax_summary(company, 2026)
        assert ytd.withholding_base == Decimal("5600000.00")
        assert ytd.withholding_withheld == Decimal("140000")


@pytest.mark.django_db
def test_ytd_iva(company, tax_documents):
    ytd = services.ytd_tax_summary(company, 2026)

    assert ytd.iva_generated == Decimal("59900.00")
    assert ytd.iva_deductible == Decimal("95000.00")
    assert ytd.net_iva == Decimal("-35100.00")
    assert ytd.withholding_withheld == Decimal("0")


# =============================================================================
# Integrity / payloads
# =============================================================================

@pytest.mark.django_db
class TestIntegrity:

    def test_clean_ledger_passes(self, company, ledger):
        services.assert_ledger_integrity(company, JAN_31)

    def test_tampered_line_detected(self, company, ledger):
        tampered = JournalEntryLine.objects.filter(account=ledger["110505"]).first()
        JournalEntryLine.objects.filter(pk=tampered.pk).update(debit=Decimal("5000001.00"))

        with mock.patch.object(services.logger, "critical") as critical:
            assert services.trial_balance(company, JAN_31).is_balanced is False
            critical.assert_called_once()

        with pytest.raises(LedgerIntegrityError):
            services.assert_ledger_integrity(company, JAN_31)


@pytest.mark.django_db
def test_payload_is_json_ready(company, ledger):
    payload = to_payload(services.balance_sheet(company, JAN_31))

    assert payload["as_of_date"] == "2026-01-31"
    assert payload["total_assets"] == "6190000.00"
    assert payload["assets"]["accounts"][0]["code"] == "110505"
    assert payload["is_balanced"] is True
