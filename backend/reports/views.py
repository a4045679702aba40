# reports/views.py
"""
Read-only report endpoints.

Every view requires ``reports.view`` in the actor's company and returns
the report payload (amounts as decimal strings, dates as ISO strings).
"""

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.exceptions import LedgerError, NotFound
from accounting.views import query_date, query_int
from accounts.authz import resolve_actor, require

from . import services
from .types import to_payload


def _report_error(exc: LedgerError) -> Response:
    http_status = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFound) else status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc), "code": exc.code}, status=http_status)


class ReportView(APIView):
    """
    Base for report endpoints: subclasses implement ``build(request, company)``
    and return a report dataclass.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        try:
            report = self.build(request, actor.company)
        except LedgerError as exc:
            return _report_error(exc)
        return Response(to_payload(report))

    def build(self, request, company):
        raise NotImplementedError


def _as_of(request):
    return query_date(request, "as_of_date") or timezone.localdate()


def _current_year() -> int:
    return timezone.localdate().year


class TrialBalanceView(ReportView):
    """GET /api/reports/trial-balance/?as_of_date=&from_date="""

    def build(self, request, company):
        return services.trial_balance(company, _as_of(request), query_date(request, "from_date"))


class GeneralJournalView(ReportView):
    """GET /api/reports/general-journal/?from_date=&to_date="""

    def build(self, request, company):
        return services.general_journal(
            company,
            query_date(request, "from_date", required=True),
            query_date(request, "to_date", required=True),
        )


class GeneralLedgerView(ReportView):
    """GET /api/reports/general-ledger/?from_date=&to_date=&account_id="""

    def build(self, request, company):
        account_id = query_int(request, "account_id", default=0) or None
        return services.general_ledger(
            company,
            query_date(request, "from_date", required=True),
            query_date(request, "to_date", required=True),
            account_id=account_id,
        )


class BalanceSheetView(ReportView):
    """GET /api/reports/balance-sheet/?as_of_date="""

    def build(self, request, company):
        return services.balance_sheet(company, _as_of(request))


class IncomeStatementView(ReportView):
    """GET /api/reports/income-statement/?from_date=&to_date="""

    def build(self, request, company):
        return services.income_statement(
            company,
            query_date(request, "from_date", required=True),
            query_date(request, "to_date", required=True),
        )


class CashFlowView(ReportView):
    """GET /api/reports/cash-flow/?from_date=&to_date="""

    def build(self, request, company):
        return services.cash_flow(
            company,
            query_date(request, "from_date", required=True),
            query_date(request, "to_date", required=True),
        )


class ARAgingView(ReportView):
    """GET /api/reports/ar-aging/?as_of_date="""

    def build(self, request, company):
        return services.ar_aging(company, _as_of(request))


class APAgingView(ReportView):
    """GET /api/reports/ap-aging/?as_of_date="""

    def build(self, request, company):
        return services.ap_aging(company, _as_of(request))


class IvaDeclarationView(ReportView):
    """GET /api/reports/iva-declaration/?year=&period= (bimonthly 1-6)"""

    def build(self, request, company):
        return services.iva_declaration(
            company,
            query_int(request, "year", default=_current_year()),
            query_int(request, "period", default=1),
        )


class WithholdingSummaryView(ReportView):
    """GET /api/reports/withholding-summary/?year=&month="""

    def build(self, request, company):
        today = timezone.localdate()
        return services.withholding_summary(
            company,
            query_int(request, "year", default=today.year),
            query_int(request, "month", default=today.month),
        )


class TaxSummaryView(ReportView):
    """GET /api/reports/tax-summary/?year="""

    def build(self, request, company):
        return services.ytd_tax_summary(company, query_int(request, "year", default=_current_year()))
