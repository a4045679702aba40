# accounting/admin.py
"""
Django admin configuration for ledger models.

The ledger is append-mostly and every write must go through
accounting.commands (balance, period and numbering checks run there).
The admin is therefore read-only, except for AccountingConfigIssue
which administrators mark as resolved.
"""

from django.contrib import admin

from .models import (
    Account,
    AccountingConfig,
    AccountingConfigIssue,
    AccountingPeriod,
    BusinessDocument,
    BusinessDocumentLine,
    JournalEntry,
    JournalEntryLine,
)


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """Use the API/command layer to make changes."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    list_display = ("code", "name", "company", "account_type", "nature", "level", "is_active", "is_system_account")
    list_filter = ("company", "account_type", "level", "is_active")
    search_fields = ("code", "name")
    ordering = ("company", "code")


@admin.register(AccountingPeriod)
class AccountingPeriodAdmin(ReadOnlyModelAdmin):
    list_display = ("name", "company", "start_date", "end_date", "status", "entry_count", "closed_at")
    list_filter = ("company", "status")


class JournalEntryLineInline(ReadOnlyInline):
    model = JournalEntryLine
    fields = ("line_no", "account", "description", "debit", "credit")
    readonly_fields = fields


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    list_display = ("entry_number", "company", "date", "source", "status", "total_debit", "total_credit")
    list_filter = ("company", "status", "source")
    search_fields = ("entry_number", "description")
    date_hierarchy = "date"
    inlines = [JournalEntryLineInline]


@admin.register(AccountingConfig)
class AccountingConfigAdmin(ReadOnlyModelAdmin):
    list_display = ("company", "auto_generate_entries", "is_configured", "updated_at")


@admin.register(AccountingConfigIssue)
class AccountingConfigIssueAdmin(admin.ModelAdmin):
    list_display = ("created_at", "company", "event_type", "event_ref", "error_code", "is_resolved")
    list_filter = ("company", "error_code", "is_resolved")
    readonly_fields = ("company", "event_type", "event_ref", "role", "error_code", "message", "created_at")

    def has_add_permission(self, request):
        return False


class BusinessDocumentLineInline(ReadOnlyInline):
    model = BusinessDocumentLine
    fields = ("description", "tax_category", "tax_rate", "subtotal", "tax")
    readonly_fields = fields


@admin.register(BusinessDocument)
class BusinessDocumentAdmin(ReadOnlyModelAdmin):
    list_display = ("number", "kind", "company", "partner_name", "issue_date", "total", "paid_amount", "status")
    list_filter = ("company", "kind", "status")
    search_fields = ("number", "partner_name", "partner_ref")
    inlines = [BusinessDocumentLineInline]
