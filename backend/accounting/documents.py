# accounting/documents.py
"""
Recording of invoices and received purchases for the aging and tax
reports.

The invoicing and purchasing modules own their documents; they call
these functions with the figures they already computed (subtotal and
tax per line) so the reports never have to reach outside the ledger
schema.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import IntegrityError, transaction

from accounting.exceptions import LedgerStateError, LedgerValidationError, NotFound
from accounting.models import BusinessDocument, BusinessDocumentLine

logger = logging.getLogger(__name__)

MONEY_Q = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


@transaction.atomic
def record_business_document(
    company,
    *,
    kind: str,
    number: str,
    partner_ref: str,
    partner_name: str,
    issue_date,
    lines,
    partner_document: str = "",
    due_date=None,
    payment_terms: str = "",
    paid_amount=0,
    external_ref: str = "",
    status: str = BusinessDocument.Status.ISSUED,
) -> BusinessDocument:
    """
    Store a sales invoice or received purchase with its tax lines.

    ``lines`` is an iterable of dicts with ``subtotal``, ``tax``,
    ``tax_rate`` (percent) and optionally ``tax_category`` and
    ``description``. Document totals are the sums of the lines.
    """
    if kind not in BusinessDocument.Kind.values:
        raise LedgerValidationError(f"Unknown document kind '{kind}'.")
    if payment_terms and payment_terms not in BusinessDocument.PaymentTerms.values:
        raise LedgerValidationError(f"Unknown payment terms '{payment_terms}'.")

    line_rows = []
    for line in lines:
        line_rows.append(BusinessDocumentLine(
            description=line.get("description", ""),
            tax_rate=Decimal(str(line.get("tax_rate", 0))),
            tax_category=line.get("tax_category", BusinessDocumentLine.TaxCategory.GRAVADO),
            subtotal=_money(line.get("subtotal")),
            tax=_money(line.get("tax")),
        ))
    if not line_rows:
        raise LedgerValidationError("A document needs at least one line.")

    subtotal = sum((row.subtotal for row in line_rows), Decimal("0.00"))
    tax = sum((row.tax for row in line_rows), Decimal("0.00"))

    try:
        with transaction.atomic():
            document = BusinessDocument.objects.create(
                company=company,
                kind=kind,
                number=number,
                external_ref=external_ref,
                partner_ref=partner_ref,
                partner_name=partner_name,
                partner_document=partner_document,
                issue_date=issue_date,
                due_date=due_date,
                payment_terms=payment_terms,
                subtotal=subtotal,
                tax=tax,
                total=subtotal + tax,
                paid_amount=_money(paid_amount),
                status=status,
            )
    except IntegrityError:
        raise LedgerValidationError(f"Document {kind} {number} already exists.")

    for row in line_rows:
        row.document = document
    BusinessDocumentLine.objects.bulk_create(line_rows)

    logger.info(
        "Business document recorded",
        extra={"company_id": company.pk, "kind": kind, "number": number, "total": str(document.total)},
    )
    return document


def _lock_document(company, document_id) -> BusinessDocument:
    try:
        return BusinessDocument.objects.select_for_update().get(pk=document_id, company=company)
    except BusinessDocument.DoesNotExist:
        raise NotFound("Document not found.")


@transaction.atomic
def apply_document_payment(company, document_id, amount) -> BusinessDocument:
    """Add a payment; the outstanding balance never goes below zero."""
    amount = _money(amount)
    if amount <= 0:
        raise LedgerValidationError("Payment amount must be greater than zero.")

    document = _lock_document(company, document_id)
    if document.status != BusinessDocument.Status.ISSUED:
        raise LedgerStateError(f"Document {document.number} is {document.status}.")
    if amount > document.balance:
        raise LedgerValidationError(
            f"Payment {amount} exceeds the outstanding balance {document.balance}."
        )

    document.paid_amount += amount
    document.save(update_fields=["paid_amount"])
    return document


@transaction.atomic
def cancel_business_document(company, document_id) -> BusinessDocument:
    document = _lock_document(company, document_id)
    if document.status == BusinessDocument.Status.CANCELLED:
        raise LedgerStateError(f"Document {document.number} is already cancelled.")
    document.status = BusinessDocument.Status.CANCELLED
    document.save(update_fields=["status"])
    return document
