# accounting/__init__.py
"""
Accounting app - Multi-tenant double-entry ledger.

This app provides:
- Account: PUC chart of accounts with a 4-level hierarchy
- AccountingPeriod: OPEN -> CLOSING -> CLOSED posting windows
- JournalEntry / JournalEntryLine: balanced, sequentially numbered entries
- AccountingConfig: per-company role -> account mapping
- BusinessDocument: invoices and purchases read by aging and tax reports

Commands handle all mutations so every write is validated under the same locks.
"""
