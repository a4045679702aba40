# accounting/exceptions.py
"""
Ledger error taxonomy.

Every error carries a stable ``code`` so HTTP clients and callers can
branch on it without parsing messages.

- LedgerValidationError: user-correctable input problems
- LedgerStateError: the target is in the wrong lifecycle state
- ConfigurationError: AccountingConfig maps a missing or unusable account
- LedgerIntegrityError: the ledger itself does not balance (fatal)
"""


class PolicyViolation(Exception):
    """Raised when a business policy is violated."""
    pass


class LedgerError(PolicyViolation):
    code = "ledger_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        return self.message


class NotFound(LedgerError):
    code = "not_found"


# =============================================================================
# Validation errors
# =============================================================================

class LedgerValidationError(LedgerError):
    code = "validation_error"


class UnbalancedEntryError(LedgerValidationError):
    code = "unbalanced_entry"


class InvalidJournalLine(LedgerValidationError):
    code = "invalid_journal_line"


class InvalidAccountCodeLength(LedgerValidationError):
    code = "invalid_account_code_length"


class DuplicateAccountCode(LedgerValidationError):
    code = "duplicate_account_code"


class InvalidAccountLevel(LedgerValidationError):
    """Posting to a roll-up (non-leaf) account."""
    code = "invalid_account_level"


class InvalidParentAccount(LedgerValidationError):
    code = "invalid_parent_account"


class InactiveAccountError(LedgerValidationError):
    code = "inactive_account"


class PeriodNotOpenError(LedgerValidationError):
    code = "period_not_open"


class NoOpenPeriodError(LedgerValidationError):
    code = "no_open_period"


class PeriodOverlapError(LedgerValidationError):
    code = "period_overlap"


class InvalidPeriodRange(LedgerValidationError):
    code = "invalid_period_range"


# =============================================================================
# State errors
# =============================================================================

class LedgerStateError(LedgerError):
    code = "state_error"


class EntryAlreadyVoidedError(LedgerStateError):
    code = "entry_already_voided"


class EntryNotPostedError(LedgerStateError):
    code = "entry_not_posted"


class EntryNotDraftError(LedgerStateError):
    code = "entry_not_draft"


class EntryAlreadyReversedError(LedgerStateError):
    code = "entry_already_reversed"


class AccountHasChildrenError(LedgerStateError):
    code = "account_has_children"


class AccountInUseError(LedgerStateError):
    code = "account_in_use"


class SystemAccountError(LedgerStateError):
    code = "system_account"


class PeriodAlreadyClosedError(LedgerStateError):
    code = "period_already_closed"


class PeriodHasDraftsError(LedgerStateError):
    code = "period_has_drafts"


class InvalidPeriodTransition(LedgerStateError):
    code = "invalid_period_transition"


class ChartAlreadyExistsError(LedgerStateError):
    code = "chart_already_exists"


# =============================================================================
# Configuration / integrity
# =============================================================================

class ConfigurationError(LedgerError):
    code = "configuration_error"


class LedgerIntegrityError(LedgerError):
    """Raised only when a report proves the ledger is out of balance."""
    code = "ledger_integrity"
