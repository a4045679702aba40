# accounting/queries.py
"""
Read helpers for the chart of accounts and the journal.
"""

from django.db.models import Q

from accounting.models import Account, JournalEntry


def filter_accounts(company, search: str = "", account_type: str = "", active_only: bool = False):
    qs = Account.objects.filter(company=company).order_by("code")
    if search:
        qs = qs.filter(Q(code__startswith=search) | Q(name__icontains=search))
    if account_type:
        qs = qs.filter(account_type=account_type)
    if active_only:
        qs = qs.filter(is_active=True)
    return qs


def build_account_tree(accounts, serialize=None) -> list[dict]:
    """
    Nest a flat account list by parent_id.

    Pure grouping over the given accounts: a node whose parent is not in
    the list is returned as a root. Children are ordered by code.
    ``serialize`` turns an account into a dict (defaults to the basic
    fields); every node gets a ``children`` list.
    """
    serialize = serialize or _account_node
    accounts = sorted(accounts, key=lambda a: a.code)

    nodes = {}
    for account in accounts:
        node = serialize(account)
        node["children"] = []
        nodes[account.pk] = node

    roots = []
    for account in accounts:
        node = nodes[account.pk]
        parent = nodes.get(account.parent_id)
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


def _account_node(account) -> dict:
    return {
        "id": account.pk,
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "nature": account.nature,
        "level": account.level,
        "parent_id": account.parent_id,
        "is_active": account.is_active,
        "is_system_account": account.is_system_account,
        "is_bank_account": account.is_bank_account,
    }


def filter_journal_entries(
    company,
    date_from=None,
    date_to=None,
    status: str = "",
    source: str = "",
    search: str = "",
):
    qs = (
        JournalEntry.objects.filter(company=company)
        .select_related("period")
        .prefetch_related("lines__account")
        .order_by("-date", "-id")
    )
    if date_from:
        qs = qs.filter(date__gte=date_from)
    if date_to:
        qs = qs.filter(date__lte=date_to)
    if status:
        qs = qs.filter(status=status)
    if source:
        qs = qs.filter(source=source)
    if search:
        qs = qs.filter(Q(entry_number__icontains=search) | Q(description__icontains=search))
    return qs
