# accounts/authz.py
"""
Authorization utilities.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require: Check permissions and raise if not granted

Permissions are checked:
1. OWNER: implicit allow
2. ADMIN/USER/VIEWER: explicit permissions only (role defaults + manual grants)
"""

from dataclasses import dataclass
from typing import FrozenSet

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import Company, CompanyMembership


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + company).

    Passed to commands and policies so they know who is acting and in
    which company (tenant).

    Attributes:
        user: The authenticated user
        company: The active company (tenant)
        membership: The user's membership in the company
        perms: Set of explicit permission codes the user has
    """
    user: object
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        if not self.membership.is_active:
            return False
        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        return code in self.perms

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def is_admin(self) -> bool:
        """Owner or admin role."""
        return self.membership.role in [
            CompanyMembership.Role.OWNER,
            CompanyMembership.Role.ADMIN,
        ]

    @property
    def role(self) -> str:
        return self.membership.role


def actor_for(user, company) -> ActorContext:
    """
    Build an ActorContext for a user in a company, loading membership
    and permissions fresh from the database.

    Raises:
        PermissionDenied: If the user has no active membership in company
    """
    try:
        membership = CompanyMembership.objects.select_related(
            "company"
        ).get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    perms = frozenset(
        membership.permissions.values_list("code", flat=True)
    )
    return ActorContext(
        user=user,
        company=membership.company,
        membership=membership,
        perms=perms,
    )


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Called at the start of every view that needs authorization.
    Membership and permissions are loaded fresh on every request so
    permission changes take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)

    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    return actor_for(user, company)


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Raises:
        PermissionDenied: If permission is not granted

    Example:
        require(actor, "journal.post")
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")
