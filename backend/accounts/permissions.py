# accounts/permissions.py
from __future__ import annotations

from typing import Optional

from django.db import transaction

from accounts.models import CompanyMembership, CompanyMembershipPermission, CompanyPermission
from accounts.permission_defaults import ROLE_DEFAULTS


@transaction.atomic
def grant_role_defaults(
    membership: CompanyMembership,
    granted_by=None,
    overwrite: bool = False,
) -> int:
    """
    Grant default permissions for the membership.role.

    - Idempotent by default: only grants missing codes.
    - If overwrite=True: first removes existing permissions then grants defaults.
    Returns number of permissions newly granted.
    """
    default_codes = ROLE_DEFAULTS.get(membership.role, set())

    if overwrite:
        CompanyMembershipPermission.objects.filter(membership=membership).delete()

    # Ensure catalog rows exist for these codes
    CompanyPermission.objects.bulk_create(
        [CompanyPermission(code=c, module=c.split(".")[0]) for c in default_codes],
        ignore_conflicts=True,
    )
    perms = list(CompanyPermission.objects.filter(code__in=default_codes))

    already = set(
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            permission__in=perms,
        ).values_list("permission__code", flat=True)
    )
    to_grant = [p for p in perms if p.code not in already]
    if not to_grant:
        return 0

    CompanyMembershipPermission.objects.bulk_create(
        [
            CompanyMembershipPermission(
                membership=membership,
                company=membership.company,
                permission=p,
                granted_by=granted_by if (granted_by and granted_by.is_authenticated) else None,
            )
            for p in to_grant
        ],
        ignore_conflicts=True,
    )
    return len(to_grant)


def revoke_permission(membership: CompanyMembership, code: str) -> bool:
    """Remove one explicit grant. Returns True if something was removed."""
    deleted, _ = CompanyMembershipPermission.objects.filter(
        membership=membership,
        permission__code=code,
    ).delete()
    return deleted > 0


def add_member(company, user, role: str, granted_by: Optional[object] = None) -> CompanyMembership:
    """Create (or reactivate) a membership, grant its role defaults and make the company active."""
    with transaction.atomic():
        membership, created = CompanyMembership.objects.get_or_create(
            company=company,
            user=user,
            defaults={"role": role, "is_active": True},
        )
        if not created and (membership.role != role or not membership.is_active):
            membership.role = role
            membership.is_active = True
            membership.save(update_fields=["role", "is_active"])
        grant_role_defaults(membership, granted_by=granted_by)
        if user.active_company_id is None:
            user.active_company = company
            user.save(update_fields=["active_company"])
    return membership
