# accounting/conf.py
"""Ledger settings with their defaults."""

from decimal import Decimal

from django.conf import settings


def entry_number_prefix() -> str:
    return getattr(settings, "LEDGER_ENTRY_NUMBER_PREFIX", "CE")


def entry_number_width() -> int:
    return int(getattr(settings, "LEDGER_ENTRY_NUMBER_WIDTH", 5))


def retefuente_rate() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_RETEFUENTE_RATE", "0.025")))


def retefuente_min_base() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_RETEFUENTE_MIN_BASE", "523740")))


def format_entry_number(value: int) -> str:
    """format_entry_number(1) -> "CE-00001" with default settings."""
    return f"{entry_number_prefix()}-{value:0{entry_number_width()}d}"
