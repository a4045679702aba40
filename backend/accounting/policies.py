# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job. Each one
raises the specific ledger error when the action is not allowed.

Policies never write. Those that need fresh state (children, lines,
overlapping periods) read it, so commands must hold the relevant row
locks when the answer has to stay true until commit.
"""

from decimal import Decimal

from accounting.exceptions import (
    AccountHasChildrenError,
    AccountInUseError,
    EntryAlreadyVoidedError,
    EntryNotPostedError,
    InactiveAccountError,
    InvalidAccountLevel,
    InvalidJournalLine,
    InvalidParentAccount,
    InvalidPeriodRange,
    InvalidPeriodTransition,
    PeriodAlreadyClosedError,
    PeriodNotOpenError,
    PeriodOverlapError,
    PolicyViolation,
    SystemAccountError,
    UnbalancedEntryError,
)

__all__ = ["PolicyViolation"]


# =============================================================================
# Account Policies
# =============================================================================

def assert_valid_parent(parent, child_level: int, company_id: int, child_id=None) -> None:
    """
    A parent must belong to the same company and sit at a strictly lower
    level than the child. This makes cycles impossible.
    """
    if child_id is not None and parent.pk == child_id:
        raise InvalidParentAccount("An account cannot be its own parent.")
    if parent.company_id != company_id:
        raise InvalidParentAccount("Parent account must belong to the same company.")
    if parent.level >= child_level:
        raise InvalidParentAccount(
            f"Parent account {parent.code} (level {parent.level}) must have a lower "
            f"level than the new account (level {child_level})."
        )


def assert_can_post_to_account(account) -> None:
    """Only active leaf accounts receive postings."""
    if not account.is_active:
        raise InactiveAccountError(f"Cannot post to inactive account: {account.code}")
    if account.children.exists():
        raise InvalidAccountLevel(
            f"Cannot post to roll-up account {account.code}; it has child accounts."
        )


def assert_can_deactivate_account(account) -> None:
    """
    Rules:
    - System accounts are protected
    - No active children
    - No POSTED lines in a period that is still OPEN or CLOSING
    """
    from accounting.models import AccountingPeriod, JournalEntry

    if account.is_system_account:
        raise SystemAccountError(f"System account {account.code} cannot be deactivated.")

    if account.children.filter(is_active=True).exists():
        raise AccountHasChildrenError(
            f"Account {account.code} has active child accounts."
        )

    if account.journal_lines.filter(
        entry__status=JournalEntry.Status.POSTED,
        entry__period__status__in=[AccountingPeriod.Status.OPEN, AccountingPeriod.Status.CLOSING],
    ).exists():
        raise AccountInUseError(
            f"Account {account.code} has posted movements in a period that is not closed."
        )


def assert_can_delete_account(account) -> None:
    """Hard delete only for accounts that were never referenced."""
    if account.is_system_account:
        raise SystemAccountError(f"System account {account.code} cannot be deleted.")
    if account.children.exists():
        raise AccountHasChildrenError(f"Account {account.code} has child accounts.")
    if account.journal_lines.exists():
        raise AccountInUseError(f"Account {account.code} is referenced by journal lines.")


# =============================================================================
# Journal Entry Policies
# =============================================================================

def assert_lines_well_formed(lines) -> None:
    """
    Per-line rules: exactly one of debit/credit is non-zero and both are
    non-negative. At least two lines.
    """
    if len(lines) < 2:
        raise InvalidJournalLine("A journal entry needs at least two lines.")

    for index, line in enumerate(lines, start=1):
        debit, credit = line["debit"], line["credit"]
        if debit < 0 or credit < 0:
            raise InvalidJournalLine(f"Line {index}: debit/credit cannot be negative.")
        if debit > 0 and credit > 0:
            raise InvalidJournalLine(f"Line {index}: a line cannot have both debit and credit.")
        if debit == 0 and credit == 0:
            raise InvalidJournalLine(f"Line {index}: debit and credit cannot both be zero.")


def assert_entry_balanced(lines) -> tuple[Decimal, Decimal]:
    """Return (total_debit, total_credit); raise unless equal and positive."""
    total_debit = sum((line["debit"] for line in lines), Decimal("0.00"))
    total_credit = sum((line["credit"] for line in lines), Decimal("0.00"))

    if total_debit != total_credit:
        raise UnbalancedEntryError(
            f"Entry is not balanced. Debit={total_debit} Credit={total_credit}",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
        )
    if total_debit <= 0:
        raise UnbalancedEntryError("Entry totals must be greater than zero.")
    return total_debit, total_credit


def assert_can_void_entry(entry) -> None:
    """
    Rules:
    - Entry must be POSTED (not DRAFT, not already VOIDED)
    - Its period must still be OPEN
    """
    from accounting.models import AccountingPeriod, JournalEntry

    if entry.status == JournalEntry.Status.VOIDED:
        raise EntryAlreadyVoidedError(f"Entry {entry.entry_number} is already voided.")
    if entry.status != JournalEntry.Status.POSTED:
        raise EntryNotPostedError("Only POSTED entries can be voided.")

    period = entry.period
    if period is not None and period.status == AccountingPeriod.Status.CLOSED:
        raise PeriodAlreadyClosedError(
            f"Entry {entry.entry_number} belongs to closed period {period.name}."
        )
    if period is not None and period.status != AccountingPeriod.Status.OPEN:
        raise PeriodNotOpenError(
            f"Entry {entry.entry_number} belongs to period {period.name} which is {period.status}."
        )


# =============================================================================
# Period Policies
# =============================================================================

def assert_valid_period_range(start_date, end_date) -> None:
    if end_date < start_date:
        raise InvalidPeriodRange("End date cannot be before start date.")


def assert_no_period_overlap(company, start_date, end_date, exclude_id=None) -> None:
    """Periods of one company never share a day."""
    from accounting.models import AccountingPeriod

    overlapping = AccountingPeriod.objects.filter(
        company=company,
        start_date__lte=end_date,
        end_date__gte=start_date,
    )
    if exclude_id is not None:
        overlapping = overlapping.exclude(pk=exclude_id)

    other = overlapping.order_by("start_date").first()
    if other is not None:
        raise PeriodOverlapError(
            f"Period overlaps with '{other.name}' ({other.start_date} - {other.end_date}).",
            period_id=other.pk,
        )


def assert_period_accepts(period, entry_date, source) -> None:
    """
    Posting validation, invoked inside the posting transaction with the
    period row locked.

    OPEN accepts everything; CLOSING accepts only the period-close sweep.
    """
    from accounting.models import AccountingPeriod, JournalEntry

    if period.status == AccountingPeriod.Status.CLOSING:
        if source != JournalEntry.Source.PERIOD_CLOSE:
            raise PeriodNotOpenError(f"Period {period.name} is closing.")
    elif period.status != AccountingPeriod.Status.OPEN:
        raise PeriodNotOpenError(f"Period {period.name} is {period.status}.")

    if not period.contains(entry_date):
        raise PeriodNotOpenError(
            f"Date {entry_date} is outside period {period.name} "
            f"({period.start_date} - {period.end_date})."
        )


# OPEN -> CLOSING -> CLOSED; nothing leaves CLOSED.
PERIOD_TRANSITIONS = {
    "OPEN": {"CLOSING"},
    "CLOSING": {"CLOSED"},
    "CLOSED": set(),
}


def validate_period_transition(old_status: str, new_status: str) -> None:
    if old_status == "CLOSED":
        raise PeriodAlreadyClosedError("Period is already closed.")
    if new_status not in PERIOD_TRANSITIONS.get(old_status, set()):
        raise InvalidPeriodTransition(
            f"Invalid period transition: {old_status} -> {new_status}."
        )
