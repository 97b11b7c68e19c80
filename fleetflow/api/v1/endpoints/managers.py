"""
fleetflow/api/v1/endpoints/managers.py — admin-only management of managers.
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.database import get_db
from fleetflow.core.deps import get_current_principal
from fleetflow.core.errors import NotFoundError, ValidationError
from fleetflow.core.roles import require_admin
from fleetflow.models.audit import AuditEventType
from fleetflow.models.invitation import InviteRole
from fleetflow.models.models import Profile, UserRole
from fleetflow.repositories.audit_repository import AuditRepository
from fleetflow.repositories.repositories import ProfileRepository
from fleetflow.schemas.invites import InviteIssued, RoleInviteCreate
from fleetflow.schemas.schemas import ManagerUpdate, MemberOut, MemberPage
from fleetflow.services.invite_service import InviteService
from fleetflow.api.v1.endpoints.invites import get_invite_service, issue_invite

router = APIRouter(prefix="/managers", tags=["Managers"])

LOCKED_FIELDS = {"role", "companyId", "company_id"}


async def _get_manager(db: AsyncSession, manager_id: str, principal: Profile) -> Profile:
    manager = await ProfileRepository(db).get_in_company(
        manager_id, principal.company_id, role=UserRole.manager.value
    )
    # Cross-company ids are refused as not found, same as drivers.
    if not manager:
        raise NotFoundError("Manager not found")
    return manager


@router.get("", response_model=MemberPage)
async def list_managers(
    status: Literal["active", "inactive", "suspended", "all"] = "all",
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_admin),
):
    items, total = await ProfileRepository(db).list_by_role(
        principal.company_id,
        UserRole.manager.value,
        status=None if status == "all" else status,
        limit=limit,
        offset=offset,
    )
    return MemberPage(
        items=[MemberOut.model_validate(p) for p in items],
        total=total, limit=limit, offset=offset,
    )


@router.post("/invite", response_model=InviteIssued, status_code=201)
async def invite_manager(
    payload: RoleInviteCreate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(get_current_principal),
    service: InviteService = Depends(get_invite_service),
):
    return await issue_invite(payload.with_role(InviteRole.manager), principal, service, db)


@router.get("/{manager_id}", response_model=MemberOut)
async def get_manager(
    manager_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_admin),
):
    return await _get_manager(db, manager_id, principal)


@router.put("/{manager_id}", response_model=MemberOut)
async def update_manager(
    manager_id: str,
    payload: ManagerUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_admin),
):
    extra = set(payload.model_extra or {})
    if LOCKED_FIELDS & extra:
        raise ValidationError("Cannot change manager company or role")

    manager = await _get_manager(db, manager_id, principal)
    changes = payload.model_dump(exclude_unset=True, exclude=extra)
    if changes.get("status") is None:
        changes.pop("status", None)
    else:
        changes["status"] = changes["status"].value
    manager = await ProfileRepository(db).update(manager, changes)

    await AuditRepository(db).log(
        AuditEventType.PROFILE_UPDATED,
        actor_user_id=principal.id,
        company_id=principal.company_id,
        subject_id=manager.id,
        metadata={"fields": sorted(changes)},
    )
    return manager


@router.delete("/{manager_id}", status_code=204)
async def delete_manager(
    manager_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_admin),
):
    manager = await _get_manager(db, manager_id, principal)
    await ProfileRepository(db).delete(manager)

    await AuditRepository(db).log(
        AuditEventType.PROFILE_DELETED,
        actor_user_id=principal.id,
        company_id=principal.company_id,
        subject_id=manager_id,
        metadata={"role": UserRole.manager.value},
    )
