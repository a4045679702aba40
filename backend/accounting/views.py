# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: permissions, ledger rules, transactions.

All mutations go through accounting.commands so every write is
validated under the same locks; views never call .save() on models.
"""

from django.http import Http404
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from .commands import (
    begin_closing,
    close_period,
    create_account,
    create_journal_entry,
    create_period,
    deactivate_account,
    delete_draft_entry,
    generate_closing_entry,
    get_accounting_config,
    post_journal_entry,
    reactivate_account,
    resolve_config_issue,
    reverse_journal_entry,
    update_account,
    update_accounting_config,
    void_journal_entry,
)
from .models import AccountingConfigIssue, AccountingPeriod, JournalEntry
from .queries import build_account_tree, filter_accounts, filter_journal_entries
from .serializers import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    AccountingConfigIssueSerializer,
    AccountingConfigSerializer,
    AccountingConfigUpdateSerializer,
    AccountingPeriodCreateSerializer,
    AccountingPeriodSerializer,
    JournalEntryCreateSerializer,
    JournalEntrySerializer,
    JournalReverseSerializer,
    JournalVoidSerializer,
)
from .setup import setup_chart_of_accounts

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def failure_response(result) -> Response:
    """Failed CommandResult -> 404 for missing targets, 400 otherwise."""
    http_status = (
        status.HTTP_404_NOT_FOUND
        if result.error_code == "not_found"
        else status.HTTP_400_BAD_REQUEST
    )
    return Response({"detail": result.error, "code": result.error_code}, status=http_status)


def query_date(request, name: str, required: bool = False):
    raw = request.query_params.get(name)
    if not raw:
        if required:
            raise DRFValidationError({name: "This query parameter is required (YYYY-MM-DD)."})
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise DRFValidationError({name: f"Invalid date '{raw}' (expected YYYY-MM-DD)."})
    return value


def query_int(request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise DRFValidationError({name: f"Invalid integer '{raw}'."})


def query_bool(request, name: str) -> bool:
    return (request.query_params.get(name) or "").lower() in ("1", "true", "yes")


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/ -> list accounts (search, type, active_only)
    POST /api/accounting/accounts/ -> create account
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        accounts = filter_accounts(
            actor.company,
            search=request.query_params.get("search", ""),
            account_type=request.query_params.get("type", ""),
            active_only=query_bool(request, "active_only"),
        ).select_related("parent")
        return Response(AccountSerializer(accounts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = AccountCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_account(actor, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountTreeView(APIView):
    """GET /api/accounting/accounts/tree/ -> nested chart of accounts"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        accounts = filter_accounts(actor.company, active_only=query_bool(request, "active_only"))
        return Response(build_account_tree(accounts))


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<pk>/ -> retrieve account
    PATCH /api/accounting/accounts/<pk>/ -> update name, description, parent, bank flag
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        account = filter_accounts(actor.company).filter(pk=pk).select_related("parent").first()
        if account is None:
            raise Http404
        return Response(AccountSerializer(account).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = AccountUpdateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = update_account(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)
        return Response(AccountSerializer(result.data).data)


class AccountDeactivateView(APIView):
    """POST /api/accounting/accounts/<pk>/deactivate/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = deactivate_account(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(AccountSerializer(result.data).data)


class AccountReactivateView(APIView):
    """POST /api/accounting/accounts/<pk>/reactivate/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = reactivate_account(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(AccountSerializer(result.data).data)


class ChartSetupView(APIView):
    """POST /api/accounting/accounts/setup/ -> seed the PUC chart and config"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)
        result = setup_chart_of_accounts(actor)
        if not result.success:
            return failure_response(result)
        return Response(result.data, status=status.HTTP_201_CREATED)


# =============================================================================
# Period Views
# =============================================================================

class PeriodListCreateView(APIView):
    """
    GET /api/accounting/periods/ -> list periods
    POST /api/accounting/periods/ -> open a period
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "periods.view")

        periods = AccountingPeriod.objects.filter(company=actor.company).order_by("-start_date")
        return Response(AccountingPeriodSerializer(periods, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = AccountingPeriodCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_period(actor, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)
        return Response(AccountingPeriodSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PeriodDetailView(APIView):
    """GET /api/accounting/periods/<pk>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "periods.view")

        period = AccountingPeriod.objects.filter(company=actor.company, pk=pk).first()
        if period is None:
            raise Http404
        return Response(AccountingPeriodSerializer(period).data)


class PeriodBeginClosingView(APIView):
    """POST /api/accounting/periods/<pk>/begin-closing/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = begin_closing(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(AccountingPeriodSerializer(result.data).data)


class PeriodClosingEntryView(APIView):
    """POST /api/accounting/periods/<pk>/closing-entry/ -> revenue/expense sweep"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = generate_closing_entry(actor, pk)
        if not result.success:
            return failure_response(result)
        if result.data is None:
            return Response({"detail": "Nothing to close.", "entry": None})
        return Response(
            {"entry": JournalEntrySerializer(result.data).data},
            status=status.HTTP_201_CREATED,
        )


class PeriodCloseView(APIView):
    """POST /api/accounting/periods/<pk>/close/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = close_period(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(AccountingPeriodSerializer(result.data).data)


# =============================================================================
# Journal Entry Views
# =============================================================================

class JournalEntryListCreateView(APIView):
    """
    GET /api/accounting/journal-entries/ -> filtered, paginated list
    POST /api/accounting/journal-entries/ -> create (posted unless post=false)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entries = filter_journal_entries(
            actor.company,
            date_from=query_date(request, "from_date"),
            date_to=query_date(request, "to_date"),
            status=request.query_params.get("status", ""),
            source=request.query_params.get("source", ""),
            search=request.query_params.get("search", ""),
        )

        page = max(query_int(request, "page", 1), 1)
        page_size = min(max(query_int(request, "page_size", DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
        offset = (page - 1) * page_size

        return Response({
            "page": page,
            "page_size": page_size,
            "total": entries.count(),
            "results": JournalEntrySerializer(entries[offset:offset + page_size], many=True).data,
        })

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = create_journal_entry(
            actor,
            date=data["date"],
            description=data["description"],
            lines=[dict(line) for line in data["lines"]],
            source=data["source"],
            period_id=data.get("period_id"),
            post=data["post"],
        )
        if not result.success:
            return failure_response(result)
        return Response(JournalEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    """
    GET /api/accounting/journal-entries/<pk>/
    DELETE /api/accounting/journal-entries/<pk>/ -> drafts only
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entry = filter_journal_entries(actor.company).filter(pk=pk).first()
        if entry is None:
            raise Http404
        return Response(JournalEntrySerializer(entry).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        result = delete_draft_entry(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalPostView(APIView):
    """POST /api/accounting/journal-entries/<pk>/post/ -> post a draft"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = post_journal_entry(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(JournalEntrySerializer(result.data).data)


class JournalVoidView(APIView):
    """POST /api/accounting/journal-entries/<pk>/void/ {"reason": ...}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = JournalVoidSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = void_journal_entry(actor, pk, input_serializer.validated_data["reason"])
        if not result.success:
            return failure_response(result)
        return Response(JournalEntrySerializer(result.data).data)


class JournalReverseView(APIView):
    """POST /api/accounting/journal-entries/<pk>/reverse/ -> compensating entry"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = JournalReverseSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = reverse_journal_entry(actor, pk, date=input_serializer.validated_data.get("date"))
        if not result.success:
            return failure_response(result)
        return Response(JournalEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


# =============================================================================
# AccountingConfig Views
# =============================================================================

class AccountingConfigView(APIView):
    """
    GET /api/accounting/config/ -> role mapping + is_configured
    PATCH /api/accounting/config/ -> map roles to account ids
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounting.configure")

        config = get_accounting_config(actor.company)
        return Response(AccountingConfigSerializer(config).data)

    def patch(self, request):
        actor = resolve_actor(request)

        input_serializer = AccountingConfigUpdateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = update_accounting_config(actor, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)
        return Response(AccountingConfigSerializer(result.data).data)


class AccountingConfigIssueListView(APIView):
    """GET /api/accounting/config/issues/ -> unresolved auto-entry problems"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounting.configure")

        issues = AccountingConfigIssue.objects.filter(company=actor.company)
        if not query_bool(request, "include_resolved"):
            issues = issues.filter(is_resolved=False)
        return Response(AccountingConfigIssueSerializer(issues, many=True).data)


class AccountingConfigIssueResolveView(APIView):
    """POST /api/accounting/config/issues/<pk>/resolve/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = resolve_config_issue(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(AccountingConfigIssueSerializer(result.data).data)
