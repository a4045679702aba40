# accounting/auto_entries.py
"""
Automatic journal entries derived from business events.

Upstream modules (invoicing, payments, purchasing, inventory) call
``AutoEntryGenerator(company).handle(event)`` synchronously, inside the
transaction of their own business operation. The generator:

- skips silently when the company has no AccountingConfig, when
  ``auto_generate_entries`` is off or when required roles are unmapped
- resolves roles to accounts through AccountingConfig
- posts through accounting.commands.create_entry, the same path manual
  entries take, inside a savepoint

Accounting automation never blocks the business operation: a ledger
error (unusable mapped account, closed period, unbalanced or malformed amounts)
rolls back only the savepoint, is logged at ERROR and recorded as an
AccountingConfigIssue for administrators.

Entries per event:
    InvoiceIssued      DR AR (or Cash when paid on issue) / CR Revenue, CR IVA payable
                       DR COGS / CR Inventory for the items' cost
    InvoiceCancelled   mirror of InvoiceIssued
    PaymentReceived    DR Cash (CASH) or Bank (anything else) / CR AR
    PurchaseReceived   DR Inventory, DR IVA deductible / CR withholding, CR AP
    StockAdjusted      surplus: DR Inventory / CR adjustment; shrinkage: reverse
    CreditNoteIssued   CR AR / DR Revenue, DR IVA payable (+ COGS reversal on returns)
    DebitNoteIssued    DR AR / CR Revenue, CR IVA payable
"""

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.commands import create_entry
from accounting.conf import retefuente_min_base, retefuente_rate
from accounting.exceptions import ConfigurationError, LedgerError, LedgerValidationError
from accounting.models import (
    Account,
    AccountingConfig,
    AccountingConfigIssue,
    JournalEntry,
    JournalEntryLine,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
MONEY_Q = Decimal("0.01")
RETURN_REASONS = frozenset({"DEVOLUCION_PARCIAL", "DEVOLUCION_TOTAL"})


def _today():
    return timezone.localdate()


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def withholding_for_purchase(subtotal) -> Decimal:
    """
    Retención en la fuente on a purchase: rate x subtotal rounded to
    whole pesos, only when the subtotal exceeds the minimum base.
    """
    subtotal = Decimal(str(subtotal or 0))
    if subtotal <= retefuente_min_base():
        return ZERO
    return (subtotal * retefuente_rate()).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


# =============================================================================
# Business events
# =============================================================================

@dataclass(frozen=True)
class SoldItem:
    quantity: Decimal
    unit_cost: Decimal


def cost_of_items(items) -> Decimal:
    total = sum(
        (Decimal(str(item.quantity)) * Decimal(str(item.unit_cost)) for item in items if item.unit_cost),
        Decimal("0"),
    )
    return _money(total)


@dataclass(frozen=True)
class InvoiceIssued:
    invoice_ref: str
    invoice_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid_on_issue: bool = False
    items: tuple = ()
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class InvoiceCancelled:
    invoice_ref: str
    invoice_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid_on_issue: bool = False
    items: tuple = ()
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class PaymentReceived:
    payment_ref: str
    invoice_number: str
    amount: Decimal
    method: str = "CASH"
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class PurchaseReceived:
    purchase_ref: str
    purchase_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class StockAdjusted:
    stock_movement_ref: str
    product_sku: str
    quantity: Decimal
    unit_cost: Decimal
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class CreditNoteIssued:
    document_ref: str
    note_number: str
    invoice_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    reason_code: str = ""
    items: tuple = ()
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class DebitNoteIssued:
    document_ref: str
    note_number: str
    invoice_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    date: date_type = field(default_factory=_today)


@dataclass(frozen=True)
class DraftLine:
    """A line that names an AccountingConfig role instead of an account."""
    role: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""


@dataclass(frozen=True)
class EntryDraft:
    description: str
    lines: list


# =============================================================================
# Generator
# =============================================================================

class AutoEntryGenerator:
    """
    Turns business events into posted journal entries for one company.
    """

    # event type -> (builder, entry source, reference field)
    HANDLERS = {
        InvoiceIssued: ("_invoice_issued", JournalEntry.Source.INVOICE_SALE, "invoice_ref"),
        InvoiceCancelled: ("_invoice_cancelled", JournalEntry.Source.INVOICE_CANCEL, "invoice_ref"),
        PaymentReceived: ("_payment_received", JournalEntry.Source.PAYMENT_RECEIVED, "payment_ref"),
        PurchaseReceived: ("_purchase_received", JournalEntry.Source.PURCHASE_RECEIVED, "purchase_ref"),
        StockAdjusted: ("_stock_adjusted", JournalEntry.Source.STOCK_ADJUSTMENT, "stock_movement_ref"),
        CreditNoteIssued: ("_credit_note_issued", JournalEntry.Source.CREDIT_NOTE, "document_ref"),
        DebitNoteIssued: ("_debit_note_issued", JournalEntry.Source.DEBIT_NOTE, "document_ref"),
    }

    def __init__(self, company):
        self.company = company

    def handle(self, event):
        """
        Post the entry for ``event``.

        Returns the JournalEntry, or None when the event was skipped or
        rejected (rejections are logged and recorded as issues).
        """
        try:
            builder, source, ref_field = self.HANDLERS[type(event)]
        except KeyError:
            raise TypeError(f"Unsupported business event: {type(event).__name__}")

        event_type = type(event).__name__
        ref = str(getattr(event, ref_field))
        log_extra = {"company_id": self.company.pk, "event_type": event_type, "event_ref": ref}

        config = AccountingConfig.objects.filter(company=self.company).first()
        if config is None or not config.auto_generate_entries or not config.is_configured:
            logger.debug("Auto-entry skipped: accounting automation disabled", extra=log_extra)
            return None

        existing = JournalEntry.objects.filter(
            company=self.company,
            source=source,
            **{ref_field: ref},
        ).exclude(status=JournalEntry.Status.VOIDED)
        if existing.exists():
            logger.warning("Auto-entry skipped: entry already exists for event", extra=log_extra)
            return None

        try:
            draft = self._build(builder, event)
            if draft is None:
                logger.debug("Auto-entry skipped: nothing to post", extra=log_extra)
                return None

            with transaction.atomic():
                entry = create_entry(
                    self.company,
                    date=event.date,
                    description=draft.description,
                    lines=self._resolve_lines(config, draft.lines),
                    source=source,
                    **{ref_field: ref},
                )
        except LedgerError as exc:
            logger.error(
                "Auto-entry failed: %s",
                exc,
                extra={**log_extra, "error_code": exc.code},
            )
            AccountingConfigIssue.objects.create(
                company=self.company,
                event_type=event_type,
                event_ref=ref,
                role=exc.context.get("role", ""),
                error_code=exc.code,
                message=str(exc),
            )
            return None

        logger.info(
            "Auto-entry posted",
            extra={**log_extra, "entry_number": entry.entry_number},
        )
        return entry

    def _build(self, builder: str, event):
        """Run the event's builder; malformed amounts become a ledger error."""
        try:
            return getattr(self, builder)(event)
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise LedgerValidationError(
                f"Malformed {type(event).__name__} event: {exc!r}"
            ) from exc

    def _resolve_lines(self, config, draft_lines) -> list[dict]:
        """Map roles to accounts. Mapped accounts must be active leaves."""
        ids = {config.account_id_for(line.role) for line in draft_lines}
        accounts = {
            a.pk: a
            for a in Account.objects.filter(company=self.company, pk__in=ids)
        }
        lines = []
        for line in draft_lines:
            account = accounts.get(config.account_id_for(line.role))
            if account is None:
                raise ConfigurationError(
                    f"Role '{line.role}' is not mapped to an account.",
                    role=line.role,
                )
            if not account.is_active:
                raise ConfigurationError(
                    f"Role '{line.role}' is mapped to inactive account {account.code}.",
                    role=line.role,
                )
            if not account.is_leaf:
                raise ConfigurationError(
                    f"Role '{line.role}' is mapped to roll-up account {account.code}.",
                    role=line.role,
                )
            lines.append({
                "account_id": account.pk,
                "debit": line.debit,
                "credit": line.credit,
                "description": line.description,
            })
        return lines

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def _sale_lines(self, event, number) -> list[DraftLine]:
        subtotal, tax, total = _money(event.subtotal), _money(event.tax), _money(event.total)
        debit_role = "cash_account" if event.paid_on_issue else "accounts_receivable"

        lines = [
            DraftLine(debit_role, debit=total, description=f"Factura {number}"),
            DraftLine("revenue_account", credit=subtotal, description=f"Venta {number}"),
        ]
        if tax > 0:
            lines.append(DraftLine("iva_payable", credit=tax, description=f"IVA factura {number}"))

        cogs = cost_of_items(event.items)
        if cogs > 0:
            lines.append(DraftLine("cogs_account", debit=cogs, description=f"Costo de venta {number}"))
            lines.append(DraftLine("inventory_account", credit=cogs, description=f"Salida inventario {number}"))
        return lines

    def _invoice_issued(self, event):
        return EntryDraft(
            description=f"Venta - Factura {event.invoice_number}",
            lines=self._sale_lines(event, event.invoice_number),
        )

    def _invoice_cancelled(self, event):
        lines = [
            DraftLine(line.role, debit=line.credit, credit=line.debit, description=f"Anulacion {line.description}")
            for line in self._sale_lines(event, event.invoice_number)
        ]
        return EntryDraft(
            description=f"Anulacion - Factura {event.invoice_number}",
            lines=lines,
        )

    def _payment_received(self, event):
        amount = _money(event.amount)
        role = "cash_account" if (event.method or "").upper() == "CASH" else "bank_account"
        return EntryDraft(
            description=f"Pago recibido - Factura {event.invoice_number} ({event.method})",
            lines=[
                DraftLine(role, debit=amount, description=f"Cobro {event.invoice_number}"),
                DraftLine("accounts_receivable", credit=amount, description=f"Abono cliente {event.invoice_number}"),
            ],
        )

    def _purchase_received(self, event):
        subtotal, tax, total = _money(event.subtotal), _money(event.tax), _money(event.total)
        number = event.purchase_number
        config = AccountingConfig.objects.get(company=self.company)

        lines = [DraftLine("inventory_account", debit=subtotal, description=f"Compra {number}")]
        if tax > 0:
            lines.append(DraftLine("iva_deductible", debit=tax, description=f"IVA compra {number}"))

        withholding = ZERO
        if config.withholding_payable_id:
            withholding = withholding_for_purchase(subtotal)
        if withholding > 0:
            lines.append(
                DraftLine("withholding_payable", credit=withholding, description=f"ReteFuente compra {number}")
            )

        lines.append(DraftLine("accounts_payable", credit=total - withholding, description=f"Proveedor {number}"))
        return EntryDraft(description=f"Compra recibida - OC {number}", lines=lines)

    def _stock_adjusted(self, event):
        quantity = Decimal(str(event.quantity))
        amount = _money(abs(quantity) * Decimal(str(event.unit_cost)))
        if amount == 0:
            return None

        sku = event.product_sku
        if quantity > 0:
            return EntryDraft(
                description=f"Ajuste sobrante - {sku} ({quantity} und)",
                lines=[
                    DraftLine("inventory_account", debit=amount, description=f"Sobrante {sku}"),
                    DraftLine("inventory_adjustment", credit=amount, description=f"Ajuste {sku}"),
                ],
            )
        return EntryDraft(
            description=f"Ajuste faltante - {sku} ({abs(quantity)} und)",
            lines=[
                DraftLine("inventory_adjustment", debit=amount, description=f"Faltante {sku}"),
                DraftLine("inventory_account", credit=amount, description=f"Ajuste {sku}"),
            ],
        )

    def _credit_note_issued(self, event):
        subtotal, tax, total = _money(event.subtotal), _money(event.tax), _money(event.total)
        number = event.note_number

        lines = [
            DraftLine("accounts_receivable", credit=total, description=f"Nota credito {number}"),
            DraftLine("revenue_account", debit=subtotal, description=f"Devolucion venta {number}"),
        ]
        if tax > 0:
            lines.append(DraftLine("iva_payable", debit=tax, description=f"Devolucion IVA {number}"))

        if event.reason_code in RETURN_REASONS:
            cogs = cost_of_items(event.items)
            if cogs > 0:
                lines.append(DraftLine("cogs_account", credit=cogs, description=f"Devolucion costo {number}"))
                lines.append(DraftLine("inventory_account", debit=cogs, description=f"Devolucion inventario {number}"))

        return EntryDraft(
            description=f"Nota credito - {number} (Factura {event.invoice_number})",
            lines=lines,
        )

    def _debit_note_issued(self, event):
        subtotal, tax, total = _money(event.subtotal), _money(event.tax), _money(event.total)
        number = event.note_number

        lines = [
            DraftLine("accounts_receivable", debit=total, description=f"Nota debito {number}"),
            DraftLine("revenue_account", credit=subtotal, description=f"Cargo adicional {number}"),
        ]
        if tax > 0:
            lines.append(DraftLine("iva_payable", credit=tax, description=f"IVA nota debito {number}"))

        return EntryDraft(
            description=f"Nota debito - {number} (Factura {event.invoice_number})",
            lines=lines,
        )


# =============================================================================
# Period close
# =============================================================================

CLOSING_TYPES = (
    Account.AccountType.REVENUE,
    Account.AccountType.EXPENSE,
    Account.AccountType.COGS,
)


def build_period_close_lines(period, retained_earnings_id) -> list[dict]:
    """
    Lines that bring every revenue, expense and COGS account to zero for
    the period and carry the net result to retained earnings.

    Profit ends up as a credit to retained earnings, loss as a debit.
    Returns an empty list when there is nothing to sweep.
    """
    totals = (
        JournalEntryLine.objects.filter(
            entry__company_id=period.company_id,
            entry__period=period,
            entry__status=JournalEntry.Status.POSTED,
            account__account_type__in=CLOSING_TYPES,
        )
        .values("account_id", "account__code")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
        .order_by("account__code")
    )

    lines = []
    swept_debit = ZERO
    swept_credit = ZERO
    for row in totals:
        net = (row["debit"] or ZERO) - (row["credit"] or ZERO)
        if net > 0:
            lines.append({"account_id": row["account_id"], "debit": ZERO, "credit": net,
                          "description": "Cierre de cuenta de resultado"})
            swept_credit += net
        elif net < 0:
            lines.append({"account_id": row["account_id"], "debit": -net, "credit": ZERO,
                          "description": "Cierre de cuenta de resultado"})
            swept_debit += -net

    result = swept_debit - swept_credit
    if result > 0:
        lines.append({"account_id": retained_earnings_id, "debit": ZERO, "credit": result,
                      "description": "Utilidad del periodo"})
    elif result < 0:
        lines.append({"account_id": retained_earnings_id, "debit": -result, "credit": ZERO,
                      "description": "Perdida del periodo"})

    return lines
