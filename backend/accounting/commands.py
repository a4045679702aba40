# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where ledger state changes. Views (and
the auto-entry generator) call commands; commands enforce policies and
write inside one transaction.

Pattern:
1. Validate permissions (require)
2. Lock the rows whose state the decision depends on
3. Apply business policies (assert_*), raising ledger errors
4. Write
5. Return CommandResult

A ledger error raised anywhere inside a command rolls back every write
the command made and comes back as ``CommandResult.fail``. Permission
errors propagate.
"""

import functools
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounts.models import Company
from accounting import policies
from accounting.conf import format_entry_number
from accounting.exceptions import (
    AccountInUseError,
    ConfigurationError,
    DuplicateAccountCode,
    EntryAlreadyReversedError,
    EntryAlreadyVoidedError,
    EntryNotDraftError,
    EntryNotPostedError,
    InvalidJournalLine,
    InvalidParentAccount,
    InvalidPeriodTransition,
    LedgerError,
    LedgerValidationError,
    NoOpenPeriodError,
    NotFound,
    PeriodAlreadyClosedError,
    PeriodHasDraftsError,
)
from accounting.models import (
    Account,
    AccountingConfig,
    AccountingConfigIssue,
    AccountingPeriod,
    CompanySequence,
    JournalEntry,
    JournalEntryLine,
    level_for_code,
)

logger = logging.getLogger(__name__)

MONEY_Q = Decimal("0.01")
ENTRY_SEQUENCE = "journal_entry_number"
ENTRY_REF_FIELDS = ("invoice_ref", "payment_ref", "purchase_ref", "stock_movement_ref", "document_ref")


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_journal_entry(actor, date=..., description=..., lines=[...])
        if result.success:
            entry = result.data
        else:
            error_message, error_code = result.error, result.error_code
    """

    def __init__(self, success: bool, data=None, error: str = None, error_code: str = None):
        self.success = success
        self.data = data
        self.error = error
        self.error_code = error_code

    def __repr__(self):
        if self.success:
            return f"CommandResult.ok({self.data!r})"
        return f"CommandResult.fail({self.error!r}, code={self.error_code!r})"

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = None):
        return cls(success=False, error=error, error_code=code)


def ledger_command(func):
    """
    Run the command body in one transaction and wrap its return value.

    Ledger errors roll the transaction back and become a failed result.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                data = func(*args, **kwargs)
        except LedgerError as exc:
            logger.info(
                "Command %s rejected: %s",
                func.__name__,
                exc,
                extra={"command": func.__name__, "error_code": exc.code},
            )
            return CommandResult.fail(str(exc), code=exc.code)
        return CommandResult.ok(data)

    return wrapper


# =============================================================================
# Helpers
# =============================================================================

def _next_company_sequence(company, name: str) -> int:
    """
    Allocate the next sequence value for a company/name pair.

    Must run inside the transaction that consumes the value. The row
    lock serializes concurrent allocations for the same company only.
    """
    try:
        seq = CompanySequence.objects.select_for_update().get(
            company=company,
            name=name,
        )
    except CompanySequence.DoesNotExist:
        try:
            with transaction.atomic():
                seq = CompanySequence.objects.create(
                    company=company,
                    name=name,
                    next_value=1,
                )
        except IntegrityError:
            seq = CompanySequence.objects.select_for_update().get(
                company=company,
                name=name,
            )

    value = seq.next_value
    seq.next_value = value + 1
    seq.save(update_fields=["next_value", "updated_at"])
    return value


def _next_entry_number(company) -> str:
    return format_entry_number(_next_company_sequence(company, ENTRY_SEQUENCE))


def _to_money(value, line_index: int, field: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidJournalLine(f"Line {line_index}: invalid {field} amount '{value}'.")
    if not amount.is_finite():
        raise InvalidJournalLine(f"Line {line_index}: invalid {field} amount '{value}'.")
    return amount.quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def _normalize_lines(lines) -> list[dict]:
    normalized = []
    for index, line in enumerate(lines or [], start=1):
        account_id = line.get("account_id")
        if account_id is None:
            raise InvalidJournalLine(f"Line {index}: account_id is required.")
        normalized.append({
            "account_id": int(account_id),
            "debit": _to_money(line.get("debit"), index, "debit"),
            "credit": _to_money(line.get("credit"), index, "credit"),
            "description": line.get("description") or "",
            "cost_center": line.get("cost_center") or "",
        })
    return normalized


def _load_postable_accounts(company, lines) -> dict:
    """Every line must reference an active leaf account of this company."""
    ids = {line["account_id"] for line in lines}
    accounts = {a.pk: a for a in Account.objects.filter(company=company, pk__in=ids)}
    for index, line in enumerate(lines, start=1):
        account = accounts.get(line["account_id"])
        if account is None:
            raise InvalidJournalLine(
                f"Line {index}: account {line['account_id']} does not exist in this company."
            )
    for account in accounts.values():
        policies.assert_can_post_to_account(account)
    return accounts


def _lock_period_for(company, entry_date, period_id, source) -> AccountingPeriod:
    """
    Resolve and lock the period an entry posts into, then re-validate
    its status under the lock. A concurrent begin_closing either waits
    for this transaction or is seen here.
    """
    periods = AccountingPeriod.objects.select_for_update()
    if period_id is not None:
        try:
            period = periods.get(pk=period_id, company=company)
        except AccountingPeriod.DoesNotExist:
            raise NotFound("Accounting period not found.")
    else:
        period = periods.filter(
            company=company,
            start_date__lte=entry_date,
            end_date__gte=entry_date,
        ).order_by("start_date").first()
        if period is None:
            raise NoOpenPeriodError(f"No open accounting period contains {entry_date}.")

    policies.assert_period_accepts(period, entry_date, source)
    return period


def _lock_entry(company, entry_id) -> JournalEntry:
    try:
        return JournalEntry.objects.select_for_update().get(pk=entry_id, company=company)
    except JournalEntry.DoesNotExist:
        raise NotFound("Journal entry not found.")


def _lock_account(company, account_id) -> Account:
    try:
        return Account.objects.select_for_update().get(pk=account_id, company=company)
    except Account.DoesNotExist:
        raise NotFound("Account not found.")


def _lock_period(company, period_id) -> AccountingPeriod:
    try:
        return AccountingPeriod.objects.select_for_update().get(pk=period_id, company=company)
    except AccountingPeriod.DoesNotExist:
        raise NotFound("Accounting period not found.")


def _mark_posted(entry: JournalEntry, period: AccountingPeriod, user) -> None:
    entry.entry_number = _next_entry_number(entry.company)
    entry.status = JournalEntry.Status.POSTED
    entry.posted_at = timezone.now()
    entry.posted_by = user
    AccountingPeriod.objects.filter(pk=period.pk).update(entry_count=F("entry_count") + 1)


def create_entry(
    company: Company,
    *,
    date,
    description: str,
    lines,
    source: str = JournalEntry.Source.MANUAL,
    period_id=None,
    post: bool = True,
    user=None,
    reverses: JournalEntry = None,
    **refs,
) -> JournalEntry:
    """
    Validate, number and insert one journal entry.

    Raises ledger errors instead of returning a result; the caller owns
    the transaction (a command, or the auto-entry generator's savepoint).
    Validation order: line shape, balance, accounts, then the period
    under lock. Numbering happens last so a rejected entry never
    consumes a number.
    """
    unknown = set(refs) - set(ENTRY_REF_FIELDS)
    if unknown:
        raise TypeError(f"Unknown entry reference(s): {', '.join(sorted(unknown))}")

    normalized = _normalize_lines(lines)
    policies.assert_lines_well_formed(normalized)
    total_debit, total_credit = policies.assert_entry_balanced(normalized)
    _load_postable_accounts(company, normalized)

    with transaction.atomic():
        period = _lock_period_for(company, date, period_id, source)

        entry = JournalEntry(
            company=company,
            period=period,
            date=date,
            description=description,
            source=source,
            status=JournalEntry.Status.DRAFT,
            total_debit=total_debit,
            total_credit=total_credit,
            created_by=user,
            reverses=reverses,
            **{field: str(value) for field, value in refs.items() if value},
        )
        if post:
            _mark_posted(entry, period, user)
        entry.save()

        JournalEntryLine.objects.bulk_create([
            JournalEntryLine(
                entry=entry,
                company=company,
                line_no=index,
                account_id=line["account_id"],
                cost_center=line["cost_center"],
                description=line["description"],
                debit=line["debit"],
                credit=line["credit"],
            )
            for index, line in enumerate(normalized, start=1)
        ])

    logger.info(
        "Journal entry %s",
        "posted" if post else "saved as draft",
        extra={
            "company_id": company.pk,
            "entry_id": entry.pk,
            "entry_number": entry.entry_number,
            "source": source,
            "period_id": period.pk,
            "total": str(total_debit),
        },
    )
    return entry


# =============================================================================
# Account Commands
# =============================================================================

@ledger_command
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    nature: str = None,
    parent_id: int = None,
    description: str = "",
    is_bank_account: bool = False,
) -> Account:
    """
    Create a new account in the chart of accounts.

    The level is derived from the code (1, 2, 4 or 6 digits). A parent,
    when given, must belong to the company, sit at a lower level and
    have no movements of its own (it becomes a roll-up).
    """
    require(actor, "accounts.manage")

    code = (code or "").strip()
    level = level_for_code(code)

    if account_type not in Account.AccountType.values:
        raise LedgerValidationError(f"Unknown account type '{account_type}'.")
    if nature and nature not in Account.Nature.values:
        raise LedgerValidationError(f"Unknown account nature '{nature}'.")

    if Account.objects.filter(company=actor.company, code=code).exists():
        raise DuplicateAccountCode(f"Account code '{code}' already exists.")

    parent = None
    if parent_id is not None:
        parent = Account.objects.filter(company=actor.company, pk=parent_id).first()
        if parent is None:
            raise InvalidParentAccount("Parent account not found.")
        policies.assert_valid_parent(parent, level, actor.company.pk)
        if parent.journal_lines.exists():
            raise InvalidParentAccount(
                f"Account {parent.code} already has movements and cannot become a roll-up account."
            )

    try:
        with transaction.atomic():
            account = Account.objects.create(
                company=actor.company,
                code=code,
                name=name,
                description=description or "",
                account_type=account_type,
                nature=nature or Account.NATURE_BY_TYPE[account_type],
                parent=parent,
                is_bank_account=is_bank_account,
            )
    except IntegrityError:
        raise DuplicateAccountCode(f"Account code '{code}' already exists.")

    logger.info(
        "Account created",
        extra={"company_id": actor.company.pk, "code": code, "level": account.level},
    )
    return account


ACCOUNT_UPDATABLE_FIELDS = {"name", "description", "parent_id", "is_bank_account"}


@ledger_command
def update_account(actor: ActorContext, account_id: int, **updates) -> Account:
    """
    Update name, description, parent or bank flag. Code, type and nature
    are fixed once the account exists.
    """
    require(actor, "accounts.manage")

    not_allowed = set(updates) - ACCOUNT_UPDATABLE_FIELDS
    if not_allowed:
        raise LedgerValidationError(
            f"Field(s) cannot be changed: {', '.join(sorted(not_allowed))}."
        )

    account = _lock_account(actor.company, account_id)

    if "parent_id" in updates:
        parent_id = updates["parent_id"]
        if parent_id is None:
            account.parent = None
        else:
            if parent_id == account.pk:
                raise InvalidParentAccount("An account cannot be its own parent.")
            parent = Account.objects.filter(company=actor.company, pk=parent_id).first()
            if parent is None:
                raise InvalidParentAccount("Parent account not found.")
            policies.assert_valid_parent(parent, account.level, actor.company.pk, child_id=account.pk)
            if parent.journal_lines.exists():
                raise InvalidParentAccount(
                    f"Account {parent.code} already has movements and cannot become a roll-up account."
                )
            account.parent = parent

    for field in ("name", "description", "is_bank_account"):
        if field in updates:
            setattr(account, field, updates[field])

    account.save()
    return account


def _config_roles_using(account) -> list[str]:
    config = AccountingConfig.objects.filter(company_id=account.company_id).first()
    if config is None:
        return []
    return [role for role in AccountingConfig.ROLES if config.account_id_for(role) == account.pk]


@ledger_command
def deactivate_account(actor: ActorContext, account_id: int) -> Account:
    """Soft-deactivate. Inactive accounts reject new postings."""
    require(actor, "accounts.manage")

    account = _lock_account(actor.company, account_id)
    policies.assert_can_deactivate_account(account)

    account.is_active = False
    account.save(update_fields=["is_active", "updated_at"])

    roles = _config_roles_using(account)
    if roles:
        logger.warning(
            "Deactivated account is mapped in AccountingConfig",
            extra={"company_id": actor.company.pk, "code": account.code, "roles": roles},
        )
    return account


@ledger_command
def reactivate_account(actor: ActorContext, account_id: int) -> Account:
    require(actor, "accounts.manage")

    account = _lock_account(actor.company, account_id)
    account.is_active = True
    account.save(update_fields=["is_active", "updated_at"])
    return account


@ledger_command
def delete_account(actor: ActorContext, account_id: int) -> dict:
    """Hard delete, only for accounts no line, child or config mapping references."""
    require(actor, "accounts.manage")

    account = _lock_account(actor.company, account_id)
    policies.assert_can_delete_account(account)

    roles = _config_roles_using(account)
    if roles:
        raise AccountInUseError(
            f"Account {account.code} is mapped in the accounting configuration ({', '.join(roles)})."
        )

    code = account.code
    account.delete()
    return {"deleted": True, "code": code}


# =============================================================================
# Period Commands
# =============================================================================

@ledger_command
def create_period(
    actor: ActorContext,
    name: str,
    start_date,
    end_date,
    notes: str = "",
) -> AccountingPeriod:
    """
    Open a new accounting period. Rejects ranges that overlap any
    existing period of the company, whatever its status.
    """
    require(actor, "periods.manage")

    policies.assert_valid_period_range(start_date, end_date)

    # Serializes period creation per company so two overlapping
    # requests cannot both pass the overlap check.
    Company.objects.select_for_update().get(pk=actor.company.pk)
    policies.assert_no_period_overlap(actor.company, start_date, end_date)

    period = AccountingPeriod.objects.create(
        company=actor.company,
        name=name,
        start_date=start_date,
        end_date=end_date,
        notes=notes or "",
    )
    logger.info(
        "Accounting period opened",
        extra={"company_id": actor.company.pk, "period_id": period.pk, "period": name},
    )
    return period


@ledger_command
def begin_closing(actor: ActorContext, period_id: int) -> AccountingPeriod:
    """OPEN -> CLOSING. From here on only the period-close sweep may post."""
    require(actor, "periods.close")

    period = _lock_period(actor.company, period_id)
    policies.validate_period_transition(period.status, AccountingPeriod.Status.CLOSING)

    period.status = AccountingPeriod.Status.CLOSING
    period.save(update_fields=["status"])

    logger.info(
        "Accounting period closing",
        extra={"company_id": actor.company.pk, "period_id": period.pk},
    )
    return period


@ledger_command
def generate_closing_entry(actor: ActorContext, period_id: int):
    """
    Sweep the period's revenue, expense and COGS balances into the
    retained-earnings account. Runs while the period is CLOSING.

    Returns the PERIOD_CLOSE entry, or None when there is nothing to sweep.
    """
    from accounting.auto_entries import build_period_close_lines

    require(actor, "periods.close")

    period = _lock_period(actor.company, period_id)
    if period.status != AccountingPeriod.Status.CLOSING:
        raise InvalidPeriodTransition(
            "The closing entry can only be generated while the period is CLOSING."
        )
    if period.entries.filter(
        source=JournalEntry.Source.PERIOD_CLOSE,
        status=JournalEntry.Status.POSTED,
    ).exists():
        raise InvalidPeriodTransition(f"Period {period.name} already has a closing entry.")

    config = AccountingConfig.objects.filter(company=actor.company).first()
    if config is None or config.retained_earnings_id is None:
        raise ConfigurationError("No retained-earnings account is configured.")

    lines = build_period_close_lines(period, config.retained_earnings_id)
    if not lines:
        return None

    return create_entry(
        actor.company,
        date=period.end_date,
        description=f"Cierre del periodo {period.name}",
        lines=lines,
        source=JournalEntry.Source.PERIOD_CLOSE,
        period_id=period.pk,
        user=actor.user,
    )


@ledger_command
def close_period(actor: ActorContext, period_id: int) -> AccountingPeriod:
    """CLOSING -> CLOSED. Terminal; there is no reopen."""
    require(actor, "periods.close")

    period = _lock_period(actor.company, period_id)
    if period.status == AccountingPeriod.Status.CLOSED:
        raise PeriodAlreadyClosedError(f"Period {period.name} is already closed.")
    if period.status == AccountingPeriod.Status.OPEN:
        raise InvalidPeriodTransition(
            f"Period {period.name} must begin closing before it can be closed."
        )

    drafts = JournalEntry.objects.filter(
        company=actor.company,
        status=JournalEntry.Status.DRAFT,
        date__gte=period.start_date,
        date__lte=period.end_date,
    ).count()
    if drafts:
        raise PeriodHasDraftsError(
            f"Period {period.name} has {drafts} draft entr{'y' if drafts == 1 else 'ies'}; "
            "post or delete them first.",
            draft_count=drafts,
        )

    policies.validate_period_transition(period.status, AccountingPeriod.Status.CLOSED)
    period.status = AccountingPeriod.Status.CLOSED
    period.closed_at = timezone.now()
    period.closed_by = actor.user
    period.save(update_fields=["status", "closed_at", "closed_by"])

    logger.info(
        "Accounting period closed",
        extra={"company_id": actor.company.pk, "period_id": period.pk},
    )
    return period


# =============================================================================
# Journal Entry Commands
# =============================================================================

@ledger_command
def create_journal_entry(
    actor: ActorContext,
    date,
    description: str,
    lines,
    source: str = JournalEntry.Source.MANUAL,
    period_id: int = None,
    post: bool = True,
    **refs,
) -> JournalEntry:
    """
    Create a journal entry, posted by default.

    Args:
        actor: The actor context (user + company)
        date: Entry date; selects the period when period_id is omitted
        description: Entry description
        lines: [{"account_id", "debit", "credit", "description"?, "cost_center"?}, ...]
        source: MANUAL; every other source is reserved for system postings
        period_id: Explicit period (must contain date)
        post: False stores a numbered-later DRAFT
        **refs: invoice_ref / payment_ref / purchase_ref / stock_movement_ref / document_ref

    Returns:
        CommandResult with the JournalEntry or error
    """
    require(actor, "journal.create")
    if post:
        require(actor, "journal.post")
    if source not in JournalEntry.Source.values:
        raise LedgerValidationError(f"Unknown entry source '{source}'.")
    if source != JournalEntry.Source.MANUAL:
        raise LedgerValidationError(f"Entries with source {source} are generated by the system.")

    return create_entry(
        actor.company,
        date=date,
        description=description,
        lines=lines,
        source=source,
        period_id=period_id,
        post=post,
        user=actor.user,
        **refs,
    )


@ledger_command
def post_journal_entry(actor: ActorContext, entry_id: int) -> JournalEntry:
    """
    DRAFT -> POSTED. Lines, accounts and period are re-validated under
    lock, then the entry gets its number.
    """
    require(actor, "journal.post")

    entry = _lock_entry(actor.company, entry_id)
    if entry.status != JournalEntry.Status.DRAFT:
        raise EntryNotDraftError(f"Only DRAFT entries can be posted (entry is {entry.status}).")
    if entry.source != JournalEntry.Source.MANUAL:
        raise LedgerValidationError(f"Entries with source {entry.source} are generated by the system.")

    lines = [
        {"account_id": line.account_id, "debit": line.debit, "credit": line.credit}
        for line in entry.lines.all()
    ]
    policies.assert_lines_well_formed(lines)
    policies.assert_entry_balanced(lines)
    _load_postable_accounts(actor.company, lines)

    period = _lock_period_for(actor.company, entry.date, None, entry.source)
    entry.period = period
    _mark_posted(entry, period, actor.user)
    entry.save(update_fields=["period", "entry_number", "status", "posted_at", "posted_by"])

    logger.info(
        "Journal entry posted",
        extra={
            "company_id": actor.company.pk,
            "entry_id": entry.pk,
            "entry_number": entry.entry_number,
        },
    )
    return entry


@ledger_command
def void_journal_entry(actor: ActorContext, entry_id: int, reason: str) -> JournalEntry:
    """
    POSTED -> VOIDED.

    The entry and its lines stay untouched for audit; reports exclude
    VOIDED entries. No compensating entry is created (see
    reverse_journal_entry for that).
    """
    require(actor, "journal.void")

    reason = (reason or "").strip()
    if not reason:
        raise LedgerValidationError("A reason is required to void an entry.")

    entry = _lock_entry(actor.company, entry_id)
    if entry.period_id is not None:
        entry.period = _lock_period(actor.company, entry.period_id)
    policies.assert_can_void_entry(entry)

    entry.status = JournalEntry.Status.VOIDED
    entry.void_reason = reason[:500]
    entry.voided_at = timezone.now()
    entry.voided_by = actor.user
    entry.save(update_fields=["status", "void_reason", "voided_at", "voided_by"])

    logger.info(
        "Journal entry voided",
        extra={
            "company_id": actor.company.pk,
            "entry_id": entry.pk,
            "entry_number": entry.entry_number,
            "reason": entry.void_reason,
        },
    )
    return entry


@ledger_command
def reverse_journal_entry(actor: ActorContext, entry_id: int, date=None) -> JournalEntry:
    """
    Post a compensating entry (debits and credits swapped) that points
    back at the original. The original stays POSTED.
    """
    require(actor, "journal.post")

    original = _lock_entry(actor.company, entry_id)
    if original.status == JournalEntry.Status.VOIDED:
        raise EntryAlreadyVoidedError(f"Entry {original.entry_number} is voided.")
    if original.status != JournalEntry.Status.POSTED:
        raise EntryNotPostedError("Only POSTED entries can be reversed.")
    if JournalEntry.objects.filter(reverses=original).exists():
        raise EntryAlreadyReversedError(f"Entry {original.entry_number} is already reversed.")

    lines = [
        {
            "account_id": line.account_id,
            "debit": line.credit,
            "credit": line.debit,
            "description": line.description,
            "cost_center": line.cost_center,
        }
        for line in original.lines.all()
    ]
    return create_entry(
        actor.company,
        date=date or timezone.localdate(),
        description=f"Reversa de {original.entry_number}: {original.description}"[:500],
        lines=lines,
        source=JournalEntry.Source.MANUAL,
        user=actor.user,
        reverses=original,
    )


@ledger_command
def delete_draft_entry(actor: ActorContext, entry_id: int) -> dict:
    require(actor, "journal.create")

    entry = _lock_entry(actor.company, entry_id)
    if entry.status != JournalEntry.Status.DRAFT:
        raise EntryNotDraftError("Only DRAFT entries can be deleted.")
    entry.delete()
    return {"deleted": True}


# =============================================================================
# AccountingConfig Commands
# =============================================================================

def get_accounting_config(company) -> AccountingConfig:
    config, _ = AccountingConfig.objects.get_or_create(company=company)
    return config


@ledger_command
def update_accounting_config(
    actor: ActorContext,
    auto_generate_entries: bool = None,
    **roles,
) -> AccountingConfig:
    """
    Map system roles to accounts. Each mapped account must be an active
    leaf account of the company. Pass None to clear a role.
    """
    require(actor, "accounting.configure")

    unknown = set(roles) - set(AccountingConfig.ROLES)
    if unknown:
        raise LedgerValidationError(f"Unknown role(s): {', '.join(sorted(unknown))}.")

    get_accounting_config(actor.company)
    config = AccountingConfig.objects.select_for_update().get(company=actor.company)

    for role, account_id in roles.items():
        if account_id is None:
            setattr(config, f"{role}_id", None)
            continue
        account = Account.objects.filter(company=actor.company, pk=account_id).first()
        if account is None:
            raise LedgerValidationError(f"Account {account_id} for role '{role}' does not exist.")
        policies.assert_can_post_to_account(account)
        setattr(config, f"{role}_id", account.pk)

    if auto_generate_entries is not None:
        config.auto_generate_entries = auto_generate_entries

    config.save()
    logger.info(
        "Accounting configuration updated",
        extra={
            "company_id": actor.company.pk,
            "roles": sorted(roles),
            "is_configured": config.is_configured,
        },
    )
    return config


@ledger_command
def resolve_config_issue(actor: ActorContext, issue_id: int) -> AccountingConfigIssue:
    require(actor, "accounting.configure")

    issue = AccountingConfigIssue.objects.filter(company=actor.company, pk=issue_id).first()
    if issue is None:
        raise NotFound("Configuration issue not found.")
    issue.is_resolved = True
    issue.save(update_fields=["is_resolved"])
    return issue
