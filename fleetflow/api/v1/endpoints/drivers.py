"""
fleetflow/api/v1/endpoints/drivers.py
──────────────────────────────────────
Drivers are profiles with role=driver. Every lookup is scoped to the
caller's company, so a driver id from another company is indistinguishable
from one that does not exist.

  GET    /drivers            any member
  POST   /drivers/invite     admin | manager
  GET    /drivers/{id}       any member
  PUT    /drivers/{id}       admin | manager
  DELETE /drivers/{id}       admin
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.database import get_db
from fleetflow.core.deps import get_current_principal
from fleetflow.core.errors import NotFoundError, ValidationError
from fleetflow.core.roles import require_admin, require_manager_or_admin, require_member
from fleetflow.models.audit import AuditEventType
from fleetflow.models.invitation import InviteRole
from fleetflow.models.models import Profile, UserRole
from fleetflow.repositories.audit_repository import AuditRepository
from fleetflow.repositories.repositories import ProfileRepository
from fleetflow.schemas.invites import InviteIssued, RoleInviteCreate
from fleetflow.schemas.schemas import DriverUpdate, MemberOut, MemberPage
from fleetflow.services.invite_service import InviteService
from fleetflow.api.v1.endpoints.invites import get_invite_service, issue_invite

router = APIRouter(prefix="/drivers", tags=["Drivers"])

LOCKED_FIELDS = {"role", "companyId", "company_id"}


async def _get_driver(db: AsyncSession, driver_id: str, principal: Profile) -> Profile:
    driver = await ProfileRepository(db).get_in_company(
        driver_id, principal.company_id, role=UserRole.driver.value
    )
    # Another company's driver is refused as not found, so the response
    # never reveals which ids exist elsewhere.
    if not driver:
        raise NotFoundError("Driver not found")
    return driver


@router.get("", response_model=MemberPage)
async def list_drivers(
    status: Literal["active", "inactive", "suspended", "all"] = "all",
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_member),
):
    repo = ProfileRepository(db)
    items, total = await repo.list_by_role(
        principal.company_id,
        UserRole.driver.value,
        status=None if status == "all" else status,
        limit=limit,
        offset=offset,
    )
    return MemberPage(
        items=[MemberOut.model_validate(p) for p in items],
        total=total, limit=limit, offset=offset,
    )


@router.post("/invite", response_model=InviteIssued, status_code=201)
async def invite_driver(
    payload: RoleInviteCreate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(get_current_principal),
    service: InviteService = Depends(get_invite_service),
):
    return await issue_invite(payload.with_role(InviteRole.driver), principal, service, db)


@router.get("/{driver_id}", response_model=MemberOut)
async def get_driver(
    driver_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_member),
):
    return await _get_driver(db, driver_id, principal)


@router.put("/{driver_id}", response_model=MemberOut)
async def update_driver(
    driver_id: str,
    payload: DriverUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_manager_or_admin),
):
    extra = set(payload.model_extra or {})
    if LOCKED_FIELDS & extra:
        raise ValidationError("Cannot change driver company or role")

    driver = await _get_driver(db, driver_id, principal)
    changes = payload.model_dump(exclude_unset=True, exclude=extra)
    if changes.get("status") is None:
        changes.pop("status", None)
    else:
        changes["status"] = changes["status"].value
    driver = await ProfileRepository(db).update(driver, changes)

    await AuditRepository(db).log(
        AuditEventType.PROFILE_UPDATED,
        actor_user_id=principal.id,
        company_id=principal.company_id,
        subject_id=driver.id,
        metadata={"fields": sorted(changes)},
    )
    return driver


@router.delete("/{driver_id}", status_code=204)
async def delete_driver(
    driver_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(require_admin),
):
    """Removes the profile; the orphaned identity is cleaned up by the sweep."""
    driver = await _get_driver(db, driver_id, principal)
    await ProfileRepository(db).delete(driver)

    await AuditRepository(db).log(
        AuditEventType.PROFILE_DELETED,
        actor_user_id=principal.id,
        company_id=principal.company_id,
        subject_id=driver_id,
        metadata={"role": UserRole.driver.value},
    )
