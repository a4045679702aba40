# accounting/serializers.py
"""
Serializers for the accounting API.

Input serializers only validate shape and types; ledger rules live in
policies and are enforced by the commands. Output serializers format
models for responses.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import (
    Account,
    AccountingConfig,
    AccountingConfigIssue,
    AccountingPeriod,
    JournalEntry,
    JournalEntryLine,
)


MONEY_FIELD = {"max_digits": 18, "decimal_places": 2}


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)

    class Meta:
        model = Account
        fields = [
            "id",
            "public_id",
            "code",
            "name",
            "description",
            "account_type",
            "nature",
            "parent_id",
            "parent_code",
            "level",
            "is_active",
            "is_system_account",
            "is_bank_account",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AccountCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=10)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    nature = serializers.ChoiceField(choices=Account.Nature.choices, required=False, allow_null=True)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_bank_account = serializers.BooleanField(required=False, default=False)


class AccountUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    parent_id = serializers.IntegerField(required=False, allow_null=True)
    is_bank_account = serializers.BooleanField(required=False)

    def validate(self, attrs):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                f"Field(s) cannot be changed: {', '.join(sorted(unknown))}."
            )
        return attrs


# =============================================================================
# Period Serializers
# =============================================================================

class AccountingPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccountingPeriod
        fields = [
            "id",
            "public_id",
            "name",
            "start_date",
            "end_date",
            "status",
            "notes",
            "entry_count",
            "closed_at",
            "closed_by_id",
            "created_at",
        ]
        read_only_fields = fields


class AccountingPeriodCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


# =============================================================================
# Journal Entry Serializers
# =============================================================================

class JournalEntryLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalEntryLine
        fields = [
            "line_no",
            "account_id",
            "account_code",
            "account_name",
            "cost_center",
            "description",
            "debit",
            "credit",
        ]
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalEntryLineSerializer(many=True, read_only=True)
    reverses_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = JournalEntry
        fields = [
            "id",
            "public_id",
            "entry_number",
            "date",
            "description",
            "source",
            "status",
            "period_id",
            "total_debit",
            "total_credit",
            "invoice_ref",
            "payment_ref",
            "purchase_ref",
            "stock_movement_ref",
            "document_ref",
            "reverses_id",
            "posted_at",
            "posted_by_id",
            "void_reason",
            "voided_at",
            "voided_by_id",
            "created_at",
            "lines",
        ]
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    debit = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=Decimal("0"), **MONEY_FIELD)
    credit = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=Decimal("0"), **MONEY_FIELD)
    description = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    cost_center = serializers.CharField(required=False, allow_blank=True, default="", max_length=50)


class JournalEntryCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    description = serializers.CharField(max_length=500)
    source = serializers.ChoiceField(
        choices=[(JournalEntry.Source.MANUAL, JournalEntry.Source.MANUAL.label)],
        required=False,
        default=JournalEntry.Source.MANUAL,
    )
    period_id = serializers.IntegerField(required=False, allow_null=True)
    post = serializers.BooleanField(required=False, default=True)
    lines = JournalLineInputSerializer(many=True)

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("A journal entry needs at least two lines.")
        return value


class JournalVoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class JournalReverseSerializer(serializers.Serializer):
    date = serializers.DateField(required=False, allow_null=True)


# =============================================================================
# AccountingConfig Serializers
# =============================================================================

class AccountingConfigSerializer(serializers.ModelSerializer):
    is_configured = serializers.BooleanField(read_only=True)
    missing_roles = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = AccountingConfig
        fields = (
            [f"{role}_id" for role in AccountingConfig.ROLES]
            + ["auto_generate_entries", "is_configured", "missing_roles", "updated_at"]
        )
        read_only_fields = fields


class AccountingConfigUpdateSerializer(serializers.Serializer):
    auto_generate_entries = serializers.BooleanField(required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for role in AccountingConfig.ROLES:
            self.fields[role] = serializers.IntegerField(required=False, allow_null=True)


class AccountingConfigIssueSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccountingConfigIssue
        fields = [
            "id",
            "event_type",
            "event_ref",
            "role",
            "error_code",
            "message",
            "is_resolved",
            "created_at",
        ]
        read_only_fields = fields
