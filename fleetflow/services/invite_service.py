"""
fleetflow/services/invite_service.py
─────────────────────────────────────
Invitation & account-provisioning flow.

  issue()   → guard, persist Invitation (random token, +7 day expiry)
  preview() → read-only: token → {email, role, company}
  redeem()  → saga over two systems:

      step 1  resolve         same checks as preview
      step 2  email check     exact match with the invited address
      step 3  identity        identity provider creates the account
      step 4  profile         insert profile (role/company from the invite)
      step 5  consume         UPDATE invitations SET used=true WHERE used=false

  Steps 4 and 5 share one store transaction, so a profile only exists for a
  consumed invite. Step 3 commits on its own. A crash between 3 and 5 leaves
  an identity without a profile and a still-redeemable invite; a retry with
  the same token, email and password resumes from step 4 with that identity
  instead of failing on "email taken". Identities nobody resumes are removed
  by the orphan sweep (fleetflow.services.scheduler).

Every store failure leaves this module as UpstreamError.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.config import settings
from fleetflow.core.deps import Clock, utcnow
from fleetflow.core.errors import (
    EmailTakenError,
    InviteExpiredError,
    InviteNotFoundError,
    InviteUsedError,
    UpstreamError,
    ValidationError,
)
from fleetflow.core.roles import INVITE_POLICY, authorize
from fleetflow.models.invitation import Invitation, InviteRole, InviteStatus
from fleetflow.models.models import Profile, UserRole
from fleetflow.repositories.invitation_repository import InvitationRepository
from fleetflow.repositories.repositories import CompanyRepository, ProfileRepository
from fleetflow.schemas.invites import AccountSummary, InviteCreate, InvitePreview, InviteRedeem
from fleetflow.services.identity import AccountRecord, IdentityProvider

log = logging.getLogger(__name__)


def _store_errors(fn):
    """Roll back and re-raise SQLAlchemy failures as UpstreamError."""
    @functools.wraps(fn)
    async def wrapper(self: "InviteService", *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error("Invite store failure in %s: %s", fn.__name__, e)
            raise UpstreamError() from e
    return wrapper


@dataclass
class IssuedInvite:
    invite: Invitation
    company_name: Optional[str]


@dataclass
class Redemption:
    summary: AccountSummary
    invite_id: str
    resumed: bool


class InviteService:

    def __init__(
        self,
        db: AsyncSession,
        identity: IdentityProvider,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.identity = identity
        self.clock = clock
        self.invites = InvitationRepository(db)
        self.profiles = ProfileRepository(db)
        self.companies = CompanyRepository(db)

    # ── Issue ───────────────────────────────────────────────────────────

    @_store_errors
    async def issue(self, principal: Profile, payload: InviteCreate) -> IssuedInvite:
        authorize(principal, payload.company_id, INVITE_POLICY[payload.role])

        invite = await self.invites.create(
            company_id=payload.company_id,
            created_by=principal.id,
            email=payload.invitee_email,
            role=payload.role.value,
            invitee_name=payload.invitee_name,
            phone_number=payload.phone_number,
            now=self.clock(),
            expiry=timedelta(days=settings.INVITE_EXPIRY_DAYS),
        )
        log.info(
            "Invite %s issued by %s for %s (%s) in company %s",
            invite.id, principal.id, invite.email, invite.role, invite.company_id,
        )
        company_name = await self.companies.get_name(payload.company_id)
        return IssuedInvite(invite=invite, company_name=company_name)

    @_store_errors
    async def list_for(self, principal: Profile) -> list[tuple[Invitation, InviteStatus]]:
        """Admins see every invite of their company, managers only driver invites."""
        role = None if principal.role == UserRole.admin.value else InviteRole.driver.value
        now = self.clock()
        invites = await self.invites.list_for_company(principal.company_id, role=role)
        return [(inv, inv.status_at(now)) for inv in invites]

    # ── Resolve / Preview ───────────────────────────────────────────────

    @_store_errors
    async def resolve(self, token: str) -> Invitation:
        """Return the invitation behind `token` or raise not-found / expired / used."""
        invite = await self.invites.get_by_token(token) if token else None
        if invite is None:
            raise InviteNotFoundError()
        # Expired wins over used
        if invite.is_expired(self.clock()):
            raise InviteExpiredError()
        if invite.used:
            raise InviteUsedError()
        return invite

    @_store_errors
    async def preview(self, token: str) -> InvitePreview:
        return await self.describe(await self.resolve(token))

    @_store_errors
    async def describe(self, invite: Invitation) -> InvitePreview:
        """Redacted view of a resolved invitation: no token, no issuer."""
        return InvitePreview(
            email=invite.email,
            role=invite.role,
            company_id=invite.company_id,
            company_name=await self.companies.get_name(invite.company_id),
        )

    # ── Redeem ──────────────────────────────────────────────────────────

    @_store_errors
    async def redeem(self, payload: InviteRedeem) -> Redemption:
        # 1. resolve
        invite = await self.resolve(payload.token)
        invite_id, email = invite.id, invite.email
        role, company_id = invite.role, invite.company_id

        # 2. email check, before anything is created
        if payload.email != email:
            raise ValidationError("Email does not match invite.")

        company_name = await self.companies.get_name(company_id)
        display_name = payload.display_name or email.split("@")[0]

        # 3. identity
        account, resumed = await self._provision_identity(
            invite_id, email, payload.password, display_name
        )

        # 4 + 5. profile and consume, one transaction
        now = self.clock()
        try:
            self.profiles.add(
                account.id,
                email=account.email,
                display_name=account.display_name or display_name,
                role=role,
                company_id=company_id,
            )
            await self.db.flush()
            consumed = await self.invites.mark_used(invite_id, account.id, now)
            if not consumed:
                await self.db.rollback()
                log.warning("Invite %s consumed concurrently; profile for %s rolled back", invite_id, account.id)
                raise InviteUsedError()
            await self.db.commit()
        except IntegrityError:
            # A profile for this identity already exists: a concurrent redemption won
            await self.db.rollback()
            log.warning("Profile %s already exists while redeeming invite %s", account.id, invite_id)
            raise InviteUsedError()

        log.info(
            "Invite %s redeemed by %s%s", invite_id, account.id, " (resumed)" if resumed else ""
        )
        return Redemption(
            summary=AccountSummary(
                id=account.id,
                email=account.email,
                display_name=account.display_name or display_name,
                role=role,
                company_id=company_id,
                company_name=company_name,
            ),
            invite_id=invite_id,
            resumed=resumed,
        )

    async def _provision_identity(
        self, invite_id: str, email: str, password: str, display_name: str
    ) -> tuple[AccountRecord, bool]:
        try:
            return await self.identity.create_account(email, password, display_name), False
        except EmailTakenError:
            if not await self._still_unused(invite_id):
                raise InviteUsedError()
            existing = await self.identity.get_by_email(email)
            if (
                existing is not None
                and not await self.profiles.exists(existing.id)
                and await self.identity.check_password(existing.id, password)
            ):
                log.warning("Resuming redemption of invite %s with orphaned identity %s", invite_id, existing.id)
                return existing, True
            raise

    async def _still_unused(self, invite_id: str) -> bool:
        # Column select bypasses the identity map, so this sees other sessions' commits
        used = await self.db.scalar(select(Invitation.used).where(Invitation.id == invite_id))
        return used is not None and not used
