# reports/types.py
"""
Typed report results.

Every report returns one of these dataclasses; ``to_payload`` turns it
into JSON-ready data (Decimal amounts as strings, dates as ISO strings)
for the HTTP layer and the report-rendering collaborators.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

ZERO = Decimal("0.00")


def to_payload(report) -> dict:
    return _plain(asdict(report))


def _plain(value):
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


# =============================================================================
# Balances
# =============================================================================

@dataclass
class AccountBalance:
    """Debit/credit totals of one account; ``balance`` follows its nature."""
    account_id: int
    code: str
    name: str
    account_type: str
    nature: str
    level: int
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal


@dataclass
class TrialBalance:
    as_of_date: date
    from_date: Optional[date]
    accounts: list[AccountBalance]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


# =============================================================================
# Journal and ledger
# =============================================================================

@dataclass
class JournalLineRow:
    account_code: str
    account_name: str
    description: str
    debit: Decimal
    credit: Decimal


@dataclass
class GeneralJournalRow:
    entry_id: int
    entry_number: str
    date: date
    description: str
    source: str
    lines: list[JournalLineRow]
    total_debit: Decimal
    total_credit: Decimal


@dataclass
class GeneralJournal:
    from_date: date
    to_date: date
    entries: list[GeneralJournalRow]
    total_debit: Decimal
    total_credit: Decimal


@dataclass
class LedgerMovement:
    entry_id: int
    entry_number: str
    date: date
    description: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass
class LedgerAccountSection:
    account_id: int
    code: str
    name: str
    account_type: str
    nature: str
    opening_balance: Decimal
    movements: list[LedgerMovement] = field(default_factory=list)
    closing_balance: Decimal = ZERO


@dataclass
class GeneralLedger:
    from_date: date
    to_date: date
    accounts: list[LedgerAccountSection]


# =============================================================================
# Financial statements
# =============================================================================

@dataclass
class StatementLine:
    """
    One account on a statement. ``amount`` is signed by the section:
    contra accounts show up negative.
    """
    account_id: Optional[int]
    code: str
    name: str
    level: int
    amount: Decimal


@dataclass
class StatementSection:
    title: str
    accounts: list[StatementLine]
    total: Decimal


@dataclass
class BalanceSheet:
    as_of_date: date
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    net_income: Decimal
    total_assets: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool


@dataclass
class IncomeStatement:
    from_date: date
    to_date: date
    revenue: StatementSection
    cogs: StatementSection
    gross_profit: Decimal
    expenses: StatementSection
    net_income: Decimal


@dataclass
class CashFlowMovement:
    date: date
    entry_number: str
    description: str
    account_code: str
    inflow: Decimal
    outflow: Decimal


@dataclass
class CashFlow:
    from_date: date
    to_date: date
    opening_balance: Decimal
    movements: list[CashFlowMovement]
    total_inflows: Decimal
    total_outflows: Decimal
    net_change: Decimal
    closing_balance: Decimal


# =============================================================================
# Aging
# =============================================================================

@dataclass
class AgingBuckets:
    current: Decimal = ZERO
    days_1_30: Decimal = ZERO
    days_31_60: Decimal = ZERO
    days_61_90: Decimal = ZERO
    days_90_plus: Decimal = ZERO
    total_overdue: Decimal = ZERO
    total_balance: Decimal = ZERO

    def add(self, days_overdue: int, amount: Decimal) -> None:
        self.total_balance += amount
        if days_overdue <= 0:
            self.current += amount
            return
        if days_overdue <= 30:
            self.days_1_30 += amount
        elif days_overdue <= 60:
            self.days_31_60 += amount
        elif days_overdue <= 90:
            self.days_61_90 += amount
        else:
            self.days_90_plus += amount
        self.total_overdue += amount

    def merge(self, other: "AgingBuckets") -> None:
        self.current += other.current
        self.days_1_30 += other.days_1_30
        self.days_31_60 += other.days_31_60
        self.days_61_90 += other.days_61_90
        self.days_90_plus += other.days_90_plus
        self.total_overdue += other.total_overdue
        self.total_balance += other.total_balance

    @property
    def bucket_sum(self) -> Decimal:
        return self.current + self.days_1_30 + self.days_31_60 + self.days_61_90 + self.days_90_plus


@dataclass
class AgingRow(AgingBuckets):
    """Customer (AR) or supplier (AP) row."""
    partner_ref: str = ""
    partner_name: str = ""
    partner_document: str = ""


@dataclass
class AgingReport:
    kind: str
    as_of_date: date
    rows: list[AgingRow]
    totals: AgingBuckets


# =============================================================================
# Tax
# =============================================================================

@dataclass
class IvaRateBucket:
    tax_rate: Decimal
    taxable_base: Decimal
    tax_amount: Decimal
    document_count: int


@dataclass
class IvaExemptSummary:
    category: str
    taxable_base: Decimal
    document_count: int


@dataclass
class IvaDeclaration:
    year: int
    bimonthly_period: int
    period_label: str
    from_date: date
    to_date: date
    sales_by_rate: list[IvaRateBucket]
    sales_exempt: list[IvaExemptSummary]
    total_sales_base: Decimal
    total_iva_generated: Decimal
    purchases_by_rate: list[IvaRateBucket]
    purchases_exempt: list[IvaExemptSummary]
    total_purchases_base: Decimal
    total_iva_deductible: Decimal
    net_iva_payable: Decimal


@dataclass
class WithholdingRow:
    partner_ref: str
    partner_name: str
    partner_document: str
    withholding_rate: Decimal
    total_base: Decimal = ZERO
    total_withheld: Decimal = ZERO
    purchase_count: int = 0


@dataclass
class WithholdingSummary:
    year: int
    month: int
    month_label: str
    from_date: date
    to_date: date
    rows: list[WithholdingRow]
    total_base: Decimal
    total_withheld: Decimal


@dataclass
class YtdTaxSummary:
    year: int
    iva_generated: Decimal
    iva_deductible: Decimal
    net_iva: Decimal
    withholding_base: Decimal
    withholding_withheld: Decimal
