# reports/urls.py
"""
URL configuration for reports API.

All endpoints are read-only GETs parameterized by query string.
"""

from django.urls import path

from .views import (
    APAgingView,
    ARAgingView,
    BalanceSheetView,
    CashFlowView,
    GeneralJournalView,
    GeneralLedgerView,
    IncomeStatementView,
    IvaDeclarationView,
    TaxSummaryView,
    TrialBalanceView,
    WithholdingSummaryView,
)

app_name = "reports"

urlpatterns = [
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("general-journal/", GeneralJournalView.as_view(), name="general-journal"),
    path("general-ledger/", GeneralLedgerView.as_view(), name="general-ledger"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("cash-flow/", CashFlowView.as_view(), name="cash-flow"),
    path("ar-aging/", ARAgingView.as_view(), name="ar-aging"),
    path("ap-aging/", APAgingView.as_view(), name="ap-aging"),
    path("iva-declaration/", IvaDeclarationView.as_view(), name="iva-declaration"),
    path("withholding-summary/", WithholdingSummaryView.as_view(), name="withholding-summary"),
    path("tax-summary/", TaxSummaryView.as_view(), name="tax-summary"),
]
