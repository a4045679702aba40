import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18, **kwargs)


def _role():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name="+",
        to="accounting.account",
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CompanySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sequences", to="accounts.company")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uniq_company_sequence_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("code", models.CharField(max_length=6)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("account_type", models.CharField(
                    choices=[
                        ("ASSET", "Asset"),
                        ("LIABILITY", "Liability"),
                        ("EQUITY", "Equity"),
                        ("REVENUE", "Revenue"),
                        ("EXPENSE", "Expense"),
                        ("COGS", "Cost of Goods Sold"),
                    ],
                    db_column="type",
                    max_length=20,
                )),
                ("nature", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], max_length=6)),
                ("level", models.PositiveSmallIntegerField(editable=False)),
                ("is_active", models.BooleanField(default=True)),
                ("is_system_account", models.BooleanField(
                    default=False,
                    help_text="Created by the chart bootstrap; cannot be deactivated or deleted",
                )),
                ("is_bank_account", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounts", to="accounts.company")),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="accounting.account")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["company", "account_type"], name="account_company_type_idx"),
                    models.Index(fields=["company", "parent"], name="account_company_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uniq_account_code_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountingPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=100)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("status", models.CharField(choices=[("OPEN", "Open"), ("CLOSING", "Closing"), ("CLOSED", "Closed")], default="OPEN", max_length=10)),
                ("notes", models.TextField(blank=True, default="")),
                ("entry_count", models.PositiveIntegerField(default=0, editable=False)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("closed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="closed_periods", to=settings.AUTH_USER_MODEL)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounting_periods", to="accounts.company")),
            ],
            options={
                "ordering": ["-start_date"],
                "indexes": [
                    models.Index(fields=["company", "start_date", "end_date"], name="period_company_range_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(end_date__gte=models.F("start_date")), name="chk_period_end_not_before_start"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("entry_number", models.CharField(blank=True, default="", max_length=20)),
                ("date", models.DateField()),
                ("description", models.CharField(max_length=500)),
                ("source", models.CharField(
                    choices=[
                        ("MANUAL", "Manual"),
                        ("INVOICE_SALE", "Invoice Sale"),
                        ("INVOICE_CANCEL", "Invoice Cancellation"),
                        ("PAYMENT_RECEIVED", "Payment Received"),
                        ("PURCHASE_RECEIVED", "Purchase Received"),
                        ("STOCK_ADJUSTMENT", "Stock Adjustment"),
                        ("CREDIT_NOTE", "Credit Note"),
                        ("DEBIT_NOTE", "Debit Note"),
                        ("PERIOD_CLOSE", "Period Close"),
                    ],
                    default="MANUAL",
                    max_length=20,
                )),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("POSTED", "Posted"), ("VOIDED", "Voided")], default="DRAFT", max_length=10)),
                ("total_debit", _money()),
                ("total_credit", _money()),
                ("invoice_ref", models.CharField(blank=True, default="", max_length=64)),
                ("payment_ref", models.CharField(blank=True, default="", max_length=64)),
                ("purchase_ref", models.CharField(blank=True, default="", max_length=64)),
                ("stock_movement_ref", models.CharField(blank=True, default="", max_length=64)),
                ("document_ref", models.CharField(blank=True, default="", help_text="Credit/debit note identifier", max_length=64)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, default="", max_length=500)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="journal_entries", to="accounts.company")),
                ("period", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="entries", to="accounting.accountingperiod")),
                ("reverses", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="reversal_entry", to="accounting.journalentry")),
                ("posted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="posted_journal_entries", to=settings.AUTH_USER_MODEL)),
                ("voided_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="voided_journal_entries", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_journal_entries", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "date", "id"], name="entry_company_date_idx"),
                    models.Index(fields=["company", "status"], name="entry_company_status_idx"),
                    models.Index(fields=["company", "source"], name="entry_company_source_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("entry_number", ""), _negated=True),
                        fields=("company", "entry_number"),
                        name="uniq_entry_number_per_company",
                    ),
                    models.CheckConstraint(condition=models.Q(total_debit=models.F("total_credit")), name="chk_entry_totals_balanced"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("cost_center", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("debit", _money()),
                ("credit", _money()),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="journal_lines", to="accounting.account")),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="journal_lines", to="accounts.company")),
                ("entry", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="accounting.journalentry")),
            ],
            options={
                "ordering": ["entry", "line_no"],
                "indexes": [
                    models.Index(fields=["company", "account"], name="line_company_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("entry", "line_no"), name="uniq_line_no_per_entry"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("debit__gt", 0), ("credit__gt", 0)), _negated=True),
                        name="chk_line_not_both_debit_credit",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("debit__exact", 0), ("credit__exact", 0)), _negated=True),
                        name="chk_line_not_both_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="chk_line_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountingConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("auto_generate_entries", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="accounting_config", to="accounts.company")),
                ("cash_account", _role()),
                ("bank_account", _role()),
                ("accounts_receivable", _role()),
                ("inventory_account", _role()),
                ("accounts_payable", _role()),
                ("iva_payable", _role()),
                ("iva_deductible", _role()),
                ("revenue_account", _role()),
                ("cogs_account", _role()),
                ("inventory_adjustment", _role()),
                ("withholding_received", _role()),
                ("withholding_payable", _role()),
                ("retained_earnings", _role()),
            ],
        ),
        migrations.CreateModel(
            name="AccountingConfigIssue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(max_length=50)),
                ("event_ref", models.CharField(blank=True, default="", max_length=64)),
                ("role", models.CharField(blank=True, default="", max_length=50)),
                ("error_code", models.CharField(max_length=50)),
                ("message", models.TextField()),
                ("is_resolved", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounting_config_issues", to="accounts.company")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["company", "is_resolved"], name="issue_company_resolved_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BusinessDocument",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("SALE", "Sales Invoice"), ("PURCHASE", "Purchase")], max_length=10)),
                ("number", models.CharField(max_length=50)),
                ("external_ref", models.CharField(blank=True, default="", max_length=64)),
                ("partner_ref", models.CharField(max_length=64)),
                ("partner_name", models.CharField(max_length=255)),
                ("partner_document", models.CharField(blank=True, default="", max_length=30)),
                ("issue_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("payment_terms", models.CharField(
                    blank=True,
                    choices=[("IMMEDIATE", "Immediate"), ("NET_15", "Net 15"), ("NET_30", "Net 30"), ("NET_60", "Net 60")],
                    default="",
                    max_length=10,
                )),
                ("subtotal", _money()),
                ("tax", _money()),
                ("total", _money()),
                ("paid_amount", _money()),
                ("status", models.CharField(
                    choices=[("DRAFT", "Draft"), ("ISSUED", "Issued / Received"), ("CANCELLED", "Cancelled")],
                    default="ISSUED",
                    max_length=10,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="business_documents", to="accounts.company")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "kind", "issue_date"], name="document_company_kind_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "kind", "number"), name="uniq_business_document_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BusinessDocumentLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Percentage, e.g. 19.00", max_digits=5)),
                ("tax_category", models.CharField(
                    choices=[("GRAVADO", "Taxed"), ("EXENTO", "Exempt"), ("EXCLUIDO", "Excluded")],
                    default="GRAVADO",
                    max_length=10,
                )),
                ("subtotal", _money()),
                ("tax", _money()),
                ("document", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="accounting.businessdocument")),
            ],
        ),
    ]
