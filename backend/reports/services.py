# reports/services.py
"""
Read-side reports over the ledger and business documents.

Balances, statements and ledgers aggregate POSTED journal lines only;
drafts and voided entries never count. Aging and tax reports read
BusinessDocument rows. Each report runs inside ``consistent_snapshot`` so
all of its queries see the same committed state.

Balance conventions:
- Trial balance and ledgers sign each account by its nature
  (debit-nature: debit - credit, credit-nature: credit - debit).
- Balance sheet sections sign by account type, so contra accounts
  (e.g. accumulated depreciation under assets) reduce their section.
"""

import calendar
import logging
from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Count, F, Sum

from accounting.auto_entries import withholding_for_purchase
from accounting.conf import retefuente_min_base, retefuente_rate
from accounting.exceptions import LedgerIntegrityError, LedgerValidationError, NotFound
from accounting.models import (
    Account,
    AccountingConfig,
    BusinessDocument,
    BusinessDocumentLine,
    JournalEntry,
    JournalEntryLine,
)

from .types import (
    ZERO,
    AccountBalance,
    AgingBuckets,
    AgingReport,
    AgingRow,
    BalanceSheet,
    CashFlow,
    CashFlowMovement,
    GeneralJournal,
    GeneralJournalRow,
    GeneralLedger,
    IncomeStatement,
    IvaDeclaration,
    IvaExemptSummary,
    IvaRateBucket,
    JournalLineRow,
    LedgerAccountSection,
    LedgerMovement,
    StatementLine,
    StatementSection,
    TrialBalance,
    WithholdingRow,
    WithholdingSummary,
    YtdTaxSummary,
)

logger = logging.getLogger(__name__)

POSTED = JournalEntry.Status.POSTED

BIMONTHLY_LABELS = {
    1: "Enero - Febrero",
    2: "Marzo - Abril",
    3: "Mayo - Junio",
    4: "Julio - Agosto",
    5: "Septiembre - Octubre",
    6: "Noviembre - Diciembre",
}

MONTH_LABELS = {
    1: "Enero", 2: "Febrero", 3: "Marzo", 4: "Abril", 5: "Mayo", 6: "Junio",
    7: "Julio", 8: "Agosto", 9: "Septiembre", 10: "Octubre", 11: "Noviembre", 12: "Diciembre",
}

NET_INCOME_LABEL = "Utilidad del ejercicio"


# =============================================================================
# Snapshot / helpers
# =============================================================================

@contextmanager
def consistent_snapshot():
    """
    Run a report's queries in one transaction.

    On PostgreSQL a fresh transaction is switched to REPEATABLE READ so
    every query sees the same snapshot. When the caller already holds a
    transaction, its isolation level is kept.
    """
    connection = transaction.get_connection()
    outermost = not connection.in_atomic_block
    with transaction.atomic():
        if outermost and connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
        yield


def _posted_lines(company):
    return JournalEntryLine.objects.filter(entry__company=company, entry__status=POSTED)


def _check_range(from_date, to_date):
    if from_date > to_date:
        raise LedgerValidationError(
            "from_date must be on or before to_date.",
            from_date=from_date,
            to_date=to_date,
        )


def _month_range(year: int, first_month: int, last_month: int):
    return (
        date(year, first_month, 1),
        date(year, last_month, calendar.monthrange(year, last_month)[1]),
    )


def calculate_balances(
    company,
    as_of: date,
    from_date: Optional[date] = None,
    exclude_sources: Iterable[str] = (),
) -> list[AccountBalance]:
    """
    Per-account debit/credit totals of POSTED lines dated up to ``as_of``
    (and from ``from_date`` when given), ordered by account code.

    Accounts without movements in the window are left out. Deactivated
    accounts still appear: their history stays part of the ledger.
    """
    lines = _posted_lines(company).filter(entry__date__lte=as_of)
    if from_date is not None:
        lines = lines.filter(entry__date__gte=from_date)
    if exclude_sources:
        lines = lines.exclude(entry__source__in=list(exclude_sources))

    totals = {
        row["account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in lines.values("account_id").annotate(debit=Sum("debit"), credit=Sum("credit")).order_by()
    }
    if not totals:
        return []

    balances = []
    for account in Account.objects.filter(company=company, pk__in=totals).order_by("code"):
        debit, credit = totals[account.pk]
        balances.append(AccountBalance(
            account_id=account.pk,
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            nature=account.nature,
            level=account.level,
            total_debit=debit,
            total_credit=credit,
            balance=account.signed_balance(debit, credit),
        ))
    return balances


# =============================================================================
# Trial balance / journal / ledger
# =============================================================================

def trial_balance(company, as_of: date, from_date: Optional[date] = None) -> TrialBalance:
    with consistent_snapshot():
        balances = calculate_balances(company, as_of, from_date)

    total_debit = sum((b.total_debit for b in balances), ZERO)
    total_credit = sum((b.total_credit for b in balances), ZERO)
    is_balanced = total_debit == total_credit
    if not is_balanced:
        logger.critical(
            "Trial balance out of balance",
            extra={
                "company_id": company.pk,
                "as_of": as_of.isoformat(),
                "total_debit": str(total_debit),
                "total_credit": str(total_credit),
            },
        )

    return TrialBalance(
        as_of_date=as_of,
        from_date=from_date,
        accounts=balances,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=is_balanced,
    )


def general_journal(company, from_date: date, to_date: date) -> GeneralJournal:
    """POSTED entries in the range, chronologically, with their lines."""
    _check_range(from_date, to_date)
    entries = (
        JournalEntry.objects.filter(
            company=company,
            status=POSTED,
            date__gte=from_date,
            date__lte=to_date,
        )
        .prefetch_related("lines__account")
        .order_by("date", "id")
    )

    rows = []
    with consistent_snapshot():
        for entry in entries.iterator(chunk_size=500):
            lines = [
                JournalLineRow(
                    account_code=line.account.code,
                    account_name=line.account.name,
                    description=line.description,
                    debit=line.debit,
                    credit=line.credit,
                )
                for line in sorted(entry.lines.all(), key=lambda item: item.line_no)
            ]
            rows.append(GeneralJournalRow(
                entry_id=entry.pk,
                entry_number=entry.entry_number,
                date=entry.date,
                description=entry.description,
                source=entry.source,
                lines=lines,
                total_debit=entry.total_debit,
                total_credit=entry.total_credit,
            ))

    return GeneralJournal(
        from_date=from_date,
        to_date=to_date,
        entries=rows,
        total_debit=sum((row.total_debit for row in rows), ZERO),
        total_credit=sum((row.total_credit for row in rows), ZERO),
    )


def general_ledger(company, from_date: date, to_date: date, account_id: Optional[int] = None) -> GeneralLedger:
    """
    Movements per account with a running balance seeded by the opening
    balance (everything posted before ``from_date``).

    Without ``account_id`` only accounts with movements or a non-zero
    opening balance get a section. With it, that account always gets one.
    """
    _check_range(from_date, to_date)
    if account_id is not None and not Account.objects.filter(company=company, pk=account_id).exists():
        raise NotFound("Account not found.", account_id=account_id)

    lines = (
        _posted_lines(company)
        .filter(entry__date__gte=from_date, entry__date__lte=to_date)
        .select_related("entry", "account")
        .order_by("account__code", "entry__date", "entry_id", "line_no")
    )
    if account_id is not None:
        lines = lines.filter(account_id=account_id)

    sections: dict[int, LedgerAccountSection] = {}
    with consistent_snapshot():
        opening = {
            b.account_id: b.balance
            for b in calculate_balances(company, from_date - timedelta(days=1))
            if account_id is None or b.account_id == account_id
        }

        for line in lines.iterator(chunk_size=2000):
            account = line.account
            section = sections.get(account.pk)
            if section is None:
                start = opening.get(account.pk, ZERO)
                section = LedgerAccountSection(
                    account_id=account.pk,
                    code=account.code,
                    name=account.name,
                    account_type=account.account_type,
                    nature=account.nature,
                    opening_balance=start,
                    closing_balance=start,
                )
                sections[account.pk] = section
            section.closing_balance += account.signed_balance(line.debit, line.credit)
            section.movements.append(LedgerMovement(
                entry_id=line.entry_id,
                entry_number=line.entry.entry_number,
                date=line.entry.date,
                description=line.description or line.entry.description,
                debit=line.debit,
                credit=line.credit,
                running_balance=section.closing_balance,
            ))

        quiet = [pk for pk, balance in opening.items() if pk not in sections and balance != ZERO]
        if account_id is not None and account_id not in sections:
            quiet = [account_id]
        for account in Account.objects.filter(company=company, pk__in=quiet):
            start = opening.get(account.pk, ZERO)
            sections[account.pk] = LedgerAccountSection(
                account_id=account.pk,
                code=account.code,
                name=account.name,
                account_type=account.account_type,
                nature=account.nature,
                opening_balance=start,
                closing_balance=start,
            )

    return GeneralLedger(
        from_date=from_date,
        to_date=to_date,
        accounts=sorted(sections.values(), key=lambda section: section.code),
    )


# =============================================================================
# Financial statements
# =============================================================================

def _section(title: str, balances: list[AccountBalance], credit_positive: bool) -> StatementSection:
    lines = []
    for b in balances:
        amount = b.total_credit - b.total_debit if credit_positive else b.total_debit - b.total_credit
        lines.append(StatementLine(
            account_id=b.account_id,
            code=b.code,
            name=b.name,
            level=b.level,
            amount=amount,
        ))
    return StatementSection(title=title, accounts=lines, total=sum((line.amount for line in lines), ZERO))


def _by_type(balances: list[AccountBalance], *types) -> list[AccountBalance]:
    return [b for b in balances if b.account_type in types]


def _net_income(balances: list[AccountBalance]) -> Decimal:
    result = _by_type(
        balances,
        Account.AccountType.REVENUE,
        Account.AccountType.EXPENSE,
        Account.AccountType.COGS,
    )
    return sum((b.total_credit - b.total_debit for b in result), ZERO)


def balance_sheet(company, as_of: date) -> BalanceSheet:
    """
    Assets = Liabilities + Equity as of a date. Unclosed revenue and
    expense balances appear in equity as the year's net income.
    """
    with consistent_snapshot():
        balances = calculate_balances(company, as_of)

    assets = _section("Activos", _by_type(balances, Account.AccountType.ASSET), credit_positive=False)
    liabilities = _section("Pasivos", _by_type(balances, Account.AccountType.LIABILITY), credit_positive=True)
    equity = _section("Patrimonio", _by_type(balances, Account.AccountType.EQUITY), credit_positive=True)

    net_income = _net_income(balances)
    equity.accounts.append(StatementLine(
        account_id=None,
        code="",
        name=NET_INCOME_LABEL,
        level=0,
        amount=net_income,
    ))
    equity.total += net_income

    total_liabilities_and_equity = liabilities.total + equity.total
    is_balanced = assets.total == total_liabilities_and_equity
    if not is_balanced:
        logger.critical(
            "Balance sheet equation does not hold",
            extra={
                "company_id": company.pk,
                "as_of": as_of.isoformat(),
                "total_assets": str(assets.total),
                "total_liabilities_and_equity": str(total_liabilities_and_equity),
            },
        )

    return BalanceSheet(
        as_of_date=as_of,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        net_income=net_income,
        total_assets=assets.total,
        total_liabilities_and_equity=total_liabilities_and_equity,
        is_balanced=is_balanced,
    )


def income_statement(company, from_date: date, to_date: date) -> IncomeStatement:
    """Revenue - COGS - expenses for the range, before period-close entries."""
    _check_range(from_date, to_date)
    with consistent_snapshot():
        balances = calculate_balances(
            company,
            to_date,
            from_date,
            exclude_sources=[JournalEntry.Source.PERIOD_CLOSE],
        )

    revenue = _section("Ingresos", _by_type(balances, Account.AccountType.REVENUE), credit_positive=True)
    cogs = _section("Costo de Ventas", _by_type(balances, Account.AccountType.COGS), credit_positive=False)
    expenses = _section("Gastos", _by_type(balances, Account.AccountType.EXPENSE), credit_positive=False)
    gross_profit = revenue.total - cogs.total

    return IncomeStatement(
        from_date=from_date,
        to_date=to_date,
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        expenses=expenses,
        net_income=gross_profit - expenses.total,
    )


def _cash_account_ids(company) -> set[int]:
    ids = set(Account.objects.filter(company=company, is_bank_account=True).values_list("pk", flat=True))
    config = AccountingConfig.objects.filter(company=company).first()
    if config is not None:
        ids.update(pk for pk in (config.cash_account_id, config.bank_account_id) if pk)
    return ids


def cash_flow(company, from_date: date, to_date: date) -> CashFlow:
    """
    Direct-method cash movements: debits to cash and bank accounts are
    inflows, credits are outflows.
    """
    _check_range(from_date, to_date)
    with consistent_snapshot():
        account_ids = _cash_account_ids(company)
        cash_lines = _posted_lines(company).filter(account_id__in=account_ids)

        before = cash_lines.filter(entry__date__lt=from_date).aggregate(debit=Sum("debit"), credit=Sum("credit"))
        opening = (before["debit"] or ZERO) - (before["credit"] or ZERO)

        movements = [
            CashFlowMovement(
                date=line.entry.date,
                entry_number=line.entry.entry_number,
                description=line.description or line.entry.description,
                account_code=line.account.code,
                inflow=line.debit,
                outflow=line.credit,
            )
            for line in (
                cash_lines.filter(entry__date__gte=from_date, entry__date__lte=to_date)
                .select_related("entry", "account")
                .order_by("entry__date", "entry_id", "line_no")
            )
        ]

    total_inflows = sum((m.inflow for m in movements), ZERO)
    total_outflows = sum((m.outflow for m in movements), ZERO)
    net_change = total_inflows - total_outflows
    return CashFlow(
        from_date=from_date,
        to_date=to_date,
        opening_balance=opening,
        movements=movements,
        total_inflows=total_inflows,
        total_outflows=total_outflows,
        net_change=net_change,
        closing_balance=opening + net_change,
    )


# =============================================================================
# Aging
# =============================================================================

def _aging(company, kind: str, as_of: date) -> AgingReport:
    documents = BusinessDocument.objects.filter(
        company=company,
        kind=kind,
        status=BusinessDocument.Status.ISSUED,
        issue_date__lte=as_of,
    ).order_by("issue_date", "id")

    rows: dict[str, AgingRow] = {}
    with consistent_snapshot():
        for document in documents.iterator(chunk_size=1000):
            balance = document.balance
            if balance <= ZERO:
                continue
            row = rows.get(document.partner_ref)
            if row is None:
                row = AgingRow(
                    partner_ref=document.partner_ref,
                    partner_name=document.partner_name,
                    partner_document=document.partner_document,
                )
                rows[document.partner_ref] = row
            row.add((as_of - document.effective_due_date).days, balance)

    ordered = sorted(rows.values(), key=lambda row: row.total_balance, reverse=True)
    totals = AgingBuckets()
    for row in ordered:
        totals.merge(row)
    return AgingReport(kind=kind, as_of_date=as_of, rows=ordered, totals=totals)


def ar_aging(company, as_of: date) -> AgingReport:
    """Open customer balances bucketed by days past due."""
    return _aging(company, BusinessDocument.Kind.SALE, as_of)


def ap_aging(company, as_of: date) -> AgingReport:
    """Open supplier balances bucketed by days past due."""
    return _aging(company, BusinessDocument.Kind.PURCHASE, as_of)


# =============================================================================
# Tax reports
# =============================================================================

def _iva_side(company, kind, from_date, to_date):
    lines = BusinessDocumentLine.objects.filter(
        document__company=company,
        document__kind=kind,
        document__status=BusinessDocument.Status.ISSUED,
        document__issue_date__gte=from_date,
        document__issue_date__lte=to_date,
    )
    taxed = (
        lines.filter(tax_category=BusinessDocumentLine.TaxCategory.GRAVADO)
        .values("tax_rate")
        .annotate(base=Sum("subtotal"), tax=Sum("tax"), documents=Count("document", distinct=True))
        .order_by("-tax_rate")
    )
    by_rate = [
        IvaRateBucket(
            tax_rate=row["tax_rate"],
            taxable_base=row["base"] or ZERO,
            tax_amount=row["tax"] or ZERO,
            document_count=row["documents"],
        )
        for row in taxed
    ]
    untaxed = (
        lines.filter(tax_category__in=[
            BusinessDocumentLine.TaxCategory.EXENTO,
            BusinessDocumentLine.TaxCategory.EXCLUIDO,
        ])
        .values("tax_category")
        .annotate(base=Sum("subtotal"), documents=Count("document", distinct=True))
        .order_by("tax_category")
    )
    exempt = [
        IvaExemptSummary(
            category=row["tax_category"],
            taxable_base=row["base"] or ZERO,
            document_count=row["documents"],
        )
        for row in untaxed
    ]
    total_base = sum((b.taxable_base for b in by_rate), ZERO) + sum((e.taxable_base for e in exempt), ZERO)
    total_tax = sum((b.tax_amount for b in by_rate), ZERO)
    return by_rate, exempt, total_base, total_tax


def iva_declaration(company, year: int, bimonthly_period: int) -> IvaDeclaration:
    """
    Bimonthly IVA return: IVA generated on sales minus IVA deductible on
    purchases, broken down by rate.
    """
    if bimonthly_period not in BIMONTHLY_LABELS:
        raise LedgerValidationError(
            "Bimonthly period must be between 1 and 6.",
            bimonthly_period=bimonthly_period,
        )
    from_date, to_date = _month_range(year, 2 * bimonthly_period - 1, 2 * bimonthly_period)

    with consistent_snapshot():
        sales = _iva_side(company, BusinessDocument.Kind.SALE, from_date, to_date)
        purchases = _iva_side(company, BusinessDocument.Kind.PURCHASE, from_date, to_date)

    sales_by_rate, sales_exempt, total_sales_base, iva_generated = sales
    purchases_by_rate, purchases_exempt, total_purchases_base, iva_deductible = purchases
    return IvaDeclaration(
        year=year,
        bimonthly_period=bimonthly_period,
        period_label=f"{BIMONTHLY_LABELS[bimonthly_period]} {year}",
        from_date=from_date,
        to_date=to_date,
        sales_by_rate=sales_by_rate,
        sales_exempt=sales_exempt,
        total_sales_base=total_sales_base,
        total_iva_generated=iva_generated,
        purchases_by_rate=purchases_by_rate,
        purchases_exempt=purchases_exempt,
        total_purchases_base=total_purchases_base,
        total_iva_deductible=iva_deductible,
        net_iva_payable=iva_generated - iva_deductible,
    )


def _withholding_purchases(company, from_date, to_date):
    return BusinessDocument.objects.filter(
        company=company,
        kind=BusinessDocument.Kind.PURCHASE,
        status=BusinessDocument.Status.ISSUED,
        issue_date__gte=from_date,
        issue_date__lte=to_date,
        subtotal__gt=retefuente_min_base(),
    ).order_by("issue_date", "id")


def withholding_summary(company, year: int, month: int) -> WithholdingSummary:
    """Retención en la fuente withheld from suppliers in one month."""
    if month not in MONTH_LABELS:
        raise LedgerValidationError("Month must be between 1 and 12.", month=month)
    from_date, to_date = _month_range(year, month, month)
    rate = retefuente_rate() * 100

    rows: dict[str, WithholdingRow] = {}
    with consistent_snapshot():
        for purchase in _withholding_purchases(company, from_date, to_date):
            row = rows.get(purchase.partner_ref)
            if row is None:
                row = WithholdingRow(
                    partner_ref=purchase.partner_ref,
                    partner_name=purchase.partner_name,
                    partner_document=purchase.partner_document,
                    withholding_rate=rate,
                )
                rows[purchase.partner_ref] = row
            row.total_base += purchase.subtotal
            row.total_withheld += withholding_for_purchase(purchase.subtotal)
            row.purchase_count += 1

    ordered = sorted(rows.values(), key=lambda row: row.total_withheld, reverse=True)
    return WithholdingSummary(
        year=year,
        month=month,
        month_label=f"{MONTH_LABELS[month]} {year}",
        from_date=from_date,
        to_date=to_date,
        rows=ordered,
        total_base=sum((row.total_base for row in ordered), ZERO),
        total_withheld=sum((row.total_withheld for row in ordered), ZERO),
    )


def ytd_tax_summary(company, year: int, as_of: Optional[date] = None) -> YtdTaxSummary:
    """IVA and withholding totals from January 1 up to ``as_of`` (default year end)."""
    from_date = date(year, 1, 1)
    to_date = as_of or date(year, 12, 31)

    def tax_total(kind):
        return BusinessDocument.objects.filter(
            company=company,
            kind=kind,
            status=BusinessDocument.Status.ISSUED,
            issue_date__gte=from_date,
            issue_date__lte=to_date,
        ).aggregate(total=Sum("tax"))["total"] or ZERO

    with consistent_snapshot():
        iva_generated = tax_total(BusinessDocument.Kind.SALE)
        iva_deductible = tax_total(BusinessDocument.Kind.PURCHASE)
        withholding_base = ZERO
        withheld = ZERO
        for purchase in _withholding_purchases(company, from_date, to_date):
            withholding_base += purchase.subtotal
            withheld += withholding_for_purchase(purchase.subtotal)

    return YtdTaxSummary(
        year=year,
        iva_generated=iva_generated,
        iva_deductible=iva_deductible,
        net_iva=iva_generated - iva_deductible,
        withholding_base=withholding_base,
        withholding_withheld=withheld,
    )


# =============================================================================
# Integrity
# =============================================================================

def assert_ledger_integrity(company, as_of: date) -> None:
    """
    Raise LedgerIntegrityError when posted debits and credits disagree
    or the balance sheet equation fails. Both mean a bug or a direct
    database write bypassed the commands.
    """
    tb = trial_balance(company, as_of)
    if not tb.is_balanced:
        raise LedgerIntegrityError(
            "Posted debits and credits do not match.",
            total_debit=tb.total_debit,
            total_credit=tb.total_credit,
        )
    unbalanced_entries = (
        JournalEntry.objects.filter(company=company, status=POSTED, date__lte=as_of)
        .exclude(total_debit=F("total_credit"))
        .count()
    )
    if unbalanced_entries:
        raise LedgerIntegrityError(
            "Posted entries with unequal totals found.",
            count=unbalanced_entries,
        )
    bs = balance_sheet(company, as_of)
    if not bs.is_balanced:
        raise LedgerIntegrityError(
            "Balance sheet equation does not hold.",
            total_assets=bs.total_assets,
            total_liabilities_and_equity=bs.total_liabilities_and_equity,
        )
