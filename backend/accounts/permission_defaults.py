# accounts/permission_defaults.py

VIEW_CODES = {
    "accounts.view",
    "journal.view",
    "periods.view",
    "reports.view",
}

ROLE_DEFAULTS = {
    # OWNER is implicitly allowed everything; the explicit set keeps the
    # catalog complete for grants.
    "OWNER": VIEW_CODES | {
        "accounts.manage",
        "journal.create",
        "journal.post",
        "journal.void",
        "periods.manage",
        "periods.close",
        "accounting.configure",
    },
    "ADMIN": VIEW_CODES | {
        "accounts.manage",
        "journal.create",
        "journal.post",
        "journal.void",
        "periods.manage",
        "periods.close",
        "accounting.configure",
    },
    "USER": VIEW_CODES | {
        "journal.create",
    },
    "VIEWER": set(VIEW_CODES),
}


def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes


PERMISSION_DESCRIPTIONS = {
    "accounts.view": "View the chart of accounts",
    "accounts.manage": "Create, edit, deactivate and delete accounts",
    "journal.view": "View journal entries",
    "journal.create": "Create draft journal entries",
    "journal.post": "Post journal entries",
    "journal.void": "Void and reverse posted entries",
    "periods.view": "View accounting periods",
    "periods.manage": "Create periods and start closing",
    "periods.close": "Generate closing entries and close periods",
    "reports.view": "View financial and tax reports",
    "accounting.configure": "Map account roles and seed the chart",
}
