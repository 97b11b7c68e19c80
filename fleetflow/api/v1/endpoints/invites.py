"""
fleetflow/api/v1/endpoints/invites.py
──────────────────────────────────────
  POST /invites              → issue (admin: any role, manager: drivers)
  GET  /invites              → list the caller company's invites
  GET  /invites/{token}      → public preview
  POST /invites/accept       → public redemption (alias: POST /accept-invite)

The role-specific issue routes (/managers/invite, /drivers/invite) live on
their own routers and call issue_invite() below.
"""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.backend import Backend, get_backend
from fleetflow.core.config import settings
from fleetflow.core.database import get_db
from fleetflow.core.deps import Clock, get_clock, get_current_principal
from fleetflow.core.roles import require_manager_or_admin
from fleetflow.core.tasks import run_background
from fleetflow.models.audit import AuditEventType
from fleetflow.models.invitation import as_utc
from fleetflow.models.models import Profile
from fleetflow.repositories.audit_repository import AuditRepository
from fleetflow.schemas.invites import (
    AccountSummary, InviteCreate, InviteIssued, InviteOut, InvitePreview, InviteRedeem,
)
from fleetflow.services.email_service import EmailService
from fleetflow.services.invite_service import InviteService

router = APIRouter(prefix="/invites", tags=["Invites"])
accept_router = APIRouter(tags=["Invites"])

_email = EmailService()


def get_invite_service(
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
    clock: Clock = Depends(get_clock),
) -> InviteService:
    return InviteService(db, backend.identity, clock=clock)


async def issue_invite(
    payload: InviteCreate,
    principal: Profile,
    service: InviteService,
    db: AsyncSession,
) -> InviteIssued:
    issued = await service.issue(principal, payload)
    invite = issued.invite

    await AuditRepository(db).log(
        AuditEventType.INVITE_ISSUED,
        actor_user_id=principal.id,
        company_id=invite.company_id,
        subject_id=invite.email,
        metadata={"role": invite.role, "invite_id": invite.id},
    )

    await run_background(
        _email.send_invite(
            to_email=invite.email,
            invitee_name=payload.invitee_name,
            company_name=issued.company_name or "FleetFlow",
            inviter_name=principal.display_name,
            role=invite.role,
            invite_token=invite.token,
            expiry_days=settings.INVITE_EXPIRY_DAYS,
        )
    )

    return InviteIssued(
        invite_id=invite.id,
        token=invite.token,
        email=invite.email,
        role=invite.role,
        company_id=invite.company_id,
        expires_at=invite.expires_at,
    )


# ─────────────────────────────────────────────────────────────────────────
# Issue / list (authenticated)
# ─────────────────────────────────────────────────────────────────────────

@router.post("", response_model=InviteIssued, status_code=201)
async def create_invite(
    payload: InviteCreate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(get_current_principal),
    service: InviteService = Depends(get_invite_service),
):
    return await issue_invite(payload, principal, service, db)


@router.get("", response_model=list[InviteOut])
async def list_invites(
    principal: Profile = Depends(require_manager_or_admin),
    service: InviteService = Depends(get_invite_service),
):
    rows = await service.list_for(principal)
    return [
        InviteOut.model_validate(inv).model_copy(update={"status": status.value})
        for inv, status in rows
    ]


# ─────────────────────────────────────────────────────────────────────────
# Preview / redeem (public, token-authenticated)
# ─────────────────────────────────────────────────────────────────────────

@router.get("/{token}", response_model=InvitePreview)
async def preview_invite(
    token: str,
    response: Response,
    service: InviteService = Depends(get_invite_service),
    clock: Clock = Depends(get_clock),
):
    invite = await service.resolve(token)
    remaining = (as_utc(invite.expires_at) - clock()).total_seconds()
    response.headers["Cache-Control"] = f"private, max-age={max(0, math.floor(remaining))}"
    return await service.describe(invite)


async def _redeem(
    payload: InviteRedeem,
    service: InviteService,
    db: AsyncSession,
) -> AccountSummary:
    redemption = await service.redeem(payload)
    summary = redemption.summary
    await AuditRepository(db).log(
        AuditEventType.INVITE_REDEEM_RESUMED if redemption.resumed else AuditEventType.INVITE_REDEEMED,
        actor_user_id=summary.id,
        company_id=summary.company_id,
        subject_id=summary.email,
        metadata={"role": summary.role, "invite_id": redemption.invite_id},
    )
    return summary


@router.post("/accept", response_model=AccountSummary, status_code=201)
async def accept_invite(
    payload: InviteRedeem,
    db: AsyncSession = Depends(get_db),
    service: InviteService = Depends(get_invite_service),
):
    return await _redeem(payload, service, db)


@accept_router.post("/accept-invite", response_model=AccountSummary, status_code=201)
async def accept_invite_alias(
    payload: InviteRedeem,
    db: AsyncSession = Depends(get_db),
    service: InviteService = Depends(get_invite_service),
):
    return await _redeem(payload, service, db)
