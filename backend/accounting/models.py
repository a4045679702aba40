# accounting/models.py
"""
Ledger models.

Write access goes through accounting.commands (and the auto-entry
generator, which reuses the same posting path). Models only enforce
true invariants: derived fields (Account.level), database constraints
on lines, and tenant consistency. Workflow rules (which period accepts
postings, who may void) live in accounting.policies.

Models:
- CompanySequence: per-company counters (entry numbers)
- Account: chart of accounts (PUC style, 4 levels)
- AccountingPeriod: OPEN -> CLOSING -> CLOSED posting windows
- JournalEntry / JournalEntryLine: the ledger itself
- AccountingConfig: per-company mapping of system roles to accounts
- AccountingConfigIssue: configuration problems surfaced to administrators
- BusinessDocument / BusinessDocumentLine: invoices and received
  purchases as recorded by upstream modules (aging and tax reports)
"""

import uuid
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounts.models import Company
from accounting.exceptions import InvalidAccountCodeLength

ZERO = Decimal("0.00")

# Account level is a function of the code length (PUC convention).
LEVEL_BY_CODE_LENGTH = {1: 1, 2: 2, 4: 3, 6: 4}


def level_for_code(code: str) -> int:
    """
    Derive the hierarchy level from an account code.

    "1" -> 1 (class), "11" -> 2 (group), "1105" -> 3 (account),
    "110505" -> 4 (subaccount). Anything else is rejected.
    """
    if not code or not code.isdigit():
        raise InvalidAccountCodeLength(
            f"Account code '{code}' must be numeric with 1, 2, 4 or 6 digits.",
            code_value=code,
        )
    level = LEVEL_BY_CODE_LENGTH.get(len(code))
    if level is None:
        raise InvalidAccountCodeLength(
            f"Account code '{code}' has {len(code)} digits; expected 1, 2, 4 or 6.",
            code_value=code,
        )
    return level


class CompanySequence(models.Model):
    """
    Per-company counters for sequential identifiers.

    Incremented under a row lock inside the same transaction as the
    insert that consumes the value, so a rollback also returns the
    number and no gap becomes visible.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"


class Account(models.Model):
    """
    Chart of Accounts entry.

    Only leaf accounts (no children) receive postings; parents are
    roll-ups. ``level`` is always recomputed from ``code`` on save.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"
        COGS = "COGS", "Cost of Goods Sold"

    class Nature(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    # Default nature per account type (contra accounts pass it explicitly)
    NATURE_BY_TYPE = {
        AccountType.ASSET: Nature.DEBIT,
        AccountType.LIABILITY: Nature.CREDIT,
        AccountType.EQUITY: Nature.CREDIT,
        AccountType.REVENUE: Nature.CREDIT,
        AccountType.EXPENSE: Nature.DEBIT,
        AccountType.COGS: Nature.DEBIT,
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    code = models.CharField(max_length=6)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )
    nature = models.CharField(max_length=6, choices=Nature.choices)

    # Hierarchy
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    level = models.PositiveSmallIntegerField(editable=False)

    is_active = models.BooleanField(default=True)
    is_system_account = models.BooleanField(
        default=False,
        help_text="Created by the chart bootstrap; cannot be deactivated or deleted",
    )
    is_bank_account = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="account_company_type_idx"),
            models.Index(fields=["company", "parent"], name="account_company_parent_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def clean(self):
        if self.parent_id:
            if self.parent_id == self.pk:
                raise ValidationError("An account cannot be its own parent.")
            if self.parent.company_id != self.company_id:
                raise ValidationError("Parent account must belong to the same company.")
            if self.parent.level >= level_for_code(self.code):
                raise ValidationError("Parent account must have a lower level than its child.")

    def save(self, *args, **kwargs):
        self.level = level_for_code(self.code)
        if not self.nature:
            self.nature = self.NATURE_BY_TYPE[self.account_type]
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "level" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["level"]
        super().save(*args, **kwargs)

    @property
    def is_leaf(self) -> bool:
        return not self.children.exists()

    def signed_balance(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Balance in the account's natural direction."""
        if self.nature == self.Nature.DEBIT:
            return debit - credit
        return credit - debit


class AccountingPeriod(models.Model):
    """
    A posting window. Entries are accepted only while OPEN; CLOSING
    only admits the period-close sweep; CLOSED is terminal.
    """

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSING = "CLOSING", "Closing"
        CLOSED = "CLOSED", "Closed"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounting_periods",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    notes = models.TextField(blank=True, default="")

    # Entries numbered into the period (voided ones included); bumped by posting.
    entry_count = models.PositiveIntegerField(default=0, editable=False)

    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="closed_periods",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="chk_period_end_not_before_start",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "start_date", "end_date"], name="period_company_range_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.start_date} - {self.end_date}) {self.status}"

    def contains(self, day) -> bool:
        return self.start_date <= day <= self.end_date


class JournalEntry(models.Model):
    """
    Journal entry header.

    Workflow: DRAFT -> POSTED -> VOIDED
    - DRAFT: balanced but unnumbered; never reported
    - POSTED: numbered, immutable, reported
    - VOIDED: kept for audit, excluded from every report
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        VOIDED = "VOIDED", "Voided"

    class Source(models.TextChoices):
        MANUAL = "MANUAL", "Manual"
        INVOICE_SALE = "INVOICE_SALE", "Invoice Sale"
        INVOICE_CANCEL = "INVOICE_CANCEL", "Invoice Cancellation"
        PAYMENT_RECEIVED = "PAYMENT_RECEIVED", "Payment Received"
        PURCHASE_RECEIVED = "PURCHASE_RECEIVED", "Purchase Received"
        STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT", "Stock Adjustment"
        CREDIT_NOTE = "CREDIT_NOTE", "Credit Note"
        DEBIT_NOTE = "DEBIT_NOTE", "Debit Note"
        PERIOD_CLOSE = "PERIOD_CLOSE", "Period Close"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    period = models.ForeignKey(
        AccountingPeriod,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="entries",
    )

    # Assigned when the entry is posted; blank for drafts.
    entry_number = models.CharField(max_length=20, blank=True, default="")
    date = models.DateField()
    description = models.CharField(max_length=500)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.MANUAL)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    # Back-references to the originating business documents
    invoice_ref = models.CharField(max_length=64, blank=True, default="")
    payment_ref = models.CharField(max_length=64, blank=True, default="")
    purchase_ref = models.CharField(max_length=64, blank=True, default="")
    stock_movement_ref = models.CharField(max_length=64, blank=True, default="")
    document_ref = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Credit/debit note identifier",
    )

    reverses = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversal_entry",
    )

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )
    void_reason = models.CharField(max_length=500, blank=True, default="")
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="voided_journal_entries",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "entry_number"],
                condition=~Q(entry_number=""),
                name="uniq_entry_number_per_company",
            ),
            models.CheckConstraint(
                condition=Q(total_debit=models.F("total_credit")),
                name="chk_entry_totals_balanced",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "date", "id"], name="entry_company_date_idx"),
            models.Index(fields=["company", "status"], name="entry_company_status_idx"),
            models.Index(fields=["company", "source"], name="entry_company_source_idx"),
        ]
        ordering = ["-date", "-id"]

    def __str__(self):
        num = self.entry_number or f"#{self.id}"
        return f"{num} ({self.date}) {self.status}"


class JournalEntryLine(models.Model):
    """
    One debit or one credit against a leaf account.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )
    line_no = models.PositiveIntegerField()
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    cost_center = models.CharField(max_length=50, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")
    debit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    class Meta:
        ordering = ["entry", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_no"],
                name="uniq_line_no_per_entry",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "account"], name="line_company_account_idx"),
        ]

    def __str__(self):
        return f"{self.entry_id} L{self.line_no}"

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0


class AccountingConfig(models.Model):
    """
    Per-company mapping of system roles to accounts.

    Consumed by the auto-entry generator. ``is_configured`` is true only
    when every required role is mapped.
    """

    # role name -> model field
    REQUIRED_ROLES = (
        "cash_account",
        "bank_account",
        "accounts_receivable",
        "inventory_account",
        "accounts_payable",
        "iva_payable",
        "iva_deductible",
        "revenue_account",
        "cogs_account",
        "inventory_adjustment",
    )
    OPTIONAL_ROLES = (
        "withholding_received",
        "withholding_payable",
        "retained_earnings",
    )
    ROLES = REQUIRED_ROLES + OPTIONAL_ROLES

    company = models.OneToOneField(
        Company,
        on_delete=models.CASCADE,
        related_name="accounting_config",
    )

    cash_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    bank_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    accounts_receivable = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    inventory_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    accounts_payable = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    iva_payable = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    iva_deductible = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    revenue_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    cogs_account = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    inventory_adjustment = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    withholding_received = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    withholding_payable = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    retained_earnings = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")

    auto_generate_entries = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"AccountingConfig({self.company_id})"

    @property
    def is_configured(self) -> bool:
        return all(getattr(self, f"{role}_id") for role in self.REQUIRED_ROLES)

    @property
    def missing_roles(self) -> list[str]:
        return [role for role in self.REQUIRED_ROLES if not getattr(self, f"{role}_id")]

    def account_id_for(self, role: str):
        return getattr(self, f"{role}_id")


class AccountingConfigIssue(models.Model):
    """
    A configuration problem detected while generating an automatic entry.

    The business operation that triggered the generator is not affected;
    administrators review and resolve these.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounting_config_issues",
    )
    event_type = models.CharField(max_length=50)
    event_ref = models.CharField(max_length=64, blank=True, default="")
    role = models.CharField(max_length=50, blank=True, default="")
    error_code = models.CharField(max_length=50)
    message = models.TextField()
    is_resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["company", "is_resolved"], name="issue_company_resolved_idx"),
        ]

    def __str__(self):
        return f"{self.event_type}: {self.message}"


class BusinessDocument(models.Model):
    """
    Sales invoice or received purchase as recorded by its upstream module.

    Aging and tax reports read these, never journal lines.
    """

    class Kind(models.TextChoices):
        SALE = "SALE", "Sales Invoice"
        PURCHASE = "PURCHASE", "Purchase"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ISSUED = "ISSUED", "Issued / Received"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentTerms(models.TextChoices):
        IMMEDIATE = "IMMEDIATE", "Immediate"
        NET_15 = "NET_15", "Net 15"
        NET_30 = "NET_30", "Net 30"
        NET_60 = "NET_60", "Net 60"

    TERMS_DAYS = {
        PaymentTerms.IMMEDIATE: 0,
        PaymentTerms.NET_15: 15,
        PaymentTerms.NET_30: 30,
        PaymentTerms.NET_60: 60,
    }
    DEFAULT_TERMS_DAYS = 30

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="business_documents",
    )
    kind = models.CharField(max_length=10, choices=Kind.choices)
    number = models.CharField(max_length=50)
    external_ref = models.CharField(max_length=64, blank=True, default="")

    partner_ref = models.CharField(max_length=64)
    partner_name = models.CharField(max_length=255)
    partner_document = models.CharField(max_length=30, blank=True, default="")

    issue_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    payment_terms = models.CharField(max_length=10, choices=PaymentTerms.choices, blank=True, default="")

    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    paid_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ISSUED)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "number"],
                name="uniq_business_document_number",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "kind", "issue_date"], name="document_company_kind_idx"),
        ]

    def __str__(self):
        return f"{self.kind} {self.number}"

    @property
    def balance(self) -> Decimal:
        return self.total - self.paid_amount

    @property
    def effective_due_date(self):
        """Explicit due date, else issue date plus payment terms."""
        if self.due_date:
            return self.due_date
        if self.kind == self.Kind.SALE and not self.payment_terms:
            return self.issue_date
        days = self.TERMS_DAYS.get(self.payment_terms, self.DEFAULT_TERMS_DAYS)
        return self.issue_date + timedelta(days=days)


class BusinessDocumentLine(models.Model):
    class TaxCategory(models.TextChoices):
        GRAVADO = "GRAVADO", "Taxed"
        EXENTO = "EXENTO", "Exempt"
        EXCLUIDO = "EXCLUIDO", "Excluded"

    document = models.ForeignKey(
        BusinessDocument,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    description = models.CharField(max_length=255, blank=True, default="")
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=ZERO,
        help_text="Percentage, e.g. 19.00",
    )
    tax_category = models.CharField(
        max_length=10,
        choices=TaxCategory.choices,
        default=TaxCategory.GRAVADO,
    )
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    tax = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    def __str__(self):
        return f"{self.document_id}: {self.subtotal} @ {self.tax_rate}%"
