"""
fleetflow/core/roles.py
────────────────────────
Authorization guard: one predicate for every mutating or sensitive read.

    allowed = principal.company_id == resource_company_id
              and principal.role in allowed_roles

Roles (company-scoped, stored on Profile.role):
  admin    → everything, including manager invites and deletes
  manager  → drivers and driver invites
  driver   → own data only
  customer → own data only

Usage:
    from fleetflow.core.roles import require_admin, require_manager_or_admin

    @router.delete("/drivers/{id}")
    async def delete_driver(principal: Profile = Depends(require_admin)):
        ...

    # company id supplied by the client
    authorize(principal, payload.company_id, INVITE_POLICY[payload.role])

A denial is always a bare ForbiddenError: it never says which half of the
check failed, so a caller learns nothing about other companies' resources.
"""

from __future__ import annotations

from typing import Iterable

from fastapi import Depends

from fleetflow.core.deps import get_current_principal
from fleetflow.core.errors import ForbiddenError
from fleetflow.models.invitation import InviteRole
from fleetflow.models.models import Profile, UserRole


# Who may issue which invitation
INVITE_POLICY: dict[InviteRole, frozenset[UserRole]] = {
    InviteRole.manager: frozenset({UserRole.admin}),
    InviteRole.driver:  frozenset({UserRole.admin, UserRole.manager}),
}


def _role_of(principal: Profile) -> UserRole | None:
    try:
        return UserRole(principal.role)
    except ValueError:
        return None


def is_allowed(
    principal: Profile,
    company_id: str | None,
    allowed_roles: Iterable[UserRole],
) -> bool:
    if not principal.company_id or principal.company_id != company_id:
        return False
    return _role_of(principal) in set(allowed_roles)


def authorize(
    principal: Profile,
    company_id: str | None,
    allowed_roles: Iterable[UserRole],
) -> Profile:
    """Raise ForbiddenError unless the principal passes the guard."""
    if not is_allowed(principal, company_id, allowed_roles):
        raise ForbiddenError()
    return principal


def require_roles(*roles: UserRole):
    """
    Returns a FastAPI dependency that runs the guard against the
    principal's own company.

    Example:
        principal: Profile = Depends(require_roles(UserRole.admin))
    """
    allowed = frozenset(roles)

    async def _check(
        principal: Profile = Depends(get_current_principal),
    ) -> Profile:
        return authorize(principal, principal.company_id, allowed)

    return _check


# Pre-built dependency instances
require_admin            = require_roles(UserRole.admin)
require_manager_or_admin = require_roles(UserRole.admin, UserRole.manager)
require_member           = require_roles(*UserRole)   # any role, just be in the company
