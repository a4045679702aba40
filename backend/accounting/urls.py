# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of accounts (list, tree, setup, lifecycle)
- /periods/ - Accounting periods and closing workflow
- /journal-entries/ - Journal entries with post/void/reverse actions
- /config/ - AccountingConfig role mapping and auto-entry issues
"""

from django.urls import path

from .views import (
    AccountDeactivateView,
    AccountDetailView,
    AccountListCreateView,
    AccountReactivateView,
    AccountTreeView,
    AccountingConfigIssueListView,
    AccountingConfigIssueResolveView,
    AccountingConfigView,
    ChartSetupView,
    JournalEntryDetailView,
    JournalEntryListCreateView,
    JournalPostView,
    JournalReverseView,
    JournalVoidView,
    PeriodBeginClosingView,
    PeriodCloseView,
    PeriodClosingEntryView,
    PeriodDetailView,
    PeriodListCreateView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path("accounts/", AccountListCreateView.as_view(), name="account-list-create"),
    path("accounts/tree/", AccountTreeView.as_view(), name="account-tree"),
    path("accounts/setup/", ChartSetupView.as_view(), name="account-setup"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),
    path("accounts/<int:pk>/deactivate/", AccountDeactivateView.as_view(), name="account-deactivate"),
    path("accounts/<int:pk>/reactivate/", AccountReactivateView.as_view(), name="account-reactivate"),

    # ==========================================================================
    # Periods
    # ==========================================================================
    path("periods/", PeriodListCreateView.as_view(), name="period-list-create"),
    path("periods/<int:pk>/", PeriodDetailView.as_view(), name="period-detail"),
    path("periods/<int:pk>/begin-closing/", PeriodBeginClosingView.as_view(), name="period-begin-closing"),
    path("periods/<int:pk>/closing-entry/", PeriodClosingEntryView.as_view(), name="period-closing-entry"),
    path("periods/<int:pk>/close/", PeriodCloseView.as_view(), name="period-close"),

    # ==========================================================================
    # Journal Entries
    # ==========================================================================
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-entry-list-create"),
    path("journal-entries/<int:pk>/", JournalEntryDetailView.as_view(), name="journal-entry-detail"),
    path("journal-entries/<int:pk>/post/", JournalPostView.as_view(), name="journal-entry-post"),
    path("journal-entries/<int:pk>/void/", JournalVoidView.as_view(), name="journal-entry-void"),
    path("journal-entries/<int:pk>/reverse/", JournalReverseView.as_view(), name="journal-entry-reverse"),

    # ==========================================================================
    # AccountingConfig
    # ==========================================================================
    path("config/", AccountingConfigView.as_view(), name="config"),
    path("config/issues/", AccountingConfigIssueListView.as_view(), name="config-issues"),
    path("config/issues/<int:pk>/resolve/", AccountingConfigIssueResolveView.as_view(), name="config-issue-resolve"),
]
