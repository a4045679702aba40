# accounting/apps.py
"""Ledger app: chart of accounts, periods, journal and auto-entries."""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Ledger"
