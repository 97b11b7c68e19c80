"""
fleetflow/repositories/invitation_repository.py
────────────────────────────────────────────────
Data access for invitations.

mark_used() is the only write after creation and is conditional: it flips
used=false → used=true in a single UPDATE ... WHERE used = false, so two
concurrent redemptions cannot both commit.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.security import generate_invite_token
from fleetflow.models.invitation import Invitation


class InvitationRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        company_id: str,
        created_by: str,
        email: str,
        role: str,
        now: datetime,
        expiry: timedelta,
        invitee_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Invitation:
        invite = Invitation(
            token=generate_invite_token(),
            email=email,
            invitee_name=invitee_name,
            phone_number=phone_number,
            role=role,
            company_id=company_id,
            created_by=created_by,
            created_at=now,
            expires_at=now + expiry,
            used=False,
        )
        self.db.add(invite)
        await self.db.commit()
        await self.db.refresh(invite)
        return invite

    async def get_by_token(self, token: str) -> Optional[Invitation]:
        result = await self.db.execute(
            select(Invitation).where(Invitation.token == token).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_company(
        self, company_id: str, role: Optional[str] = None
    ) -> list[Invitation]:
        q = select(Invitation).where(Invitation.company_id == company_id)
        if role:
            q = q.where(Invitation.role == role)
        q = q.order_by(Invitation.created_at.desc())
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def list_for_email(self, email: str) -> list[Invitation]:
        result = await self.db.execute(select(Invitation).where(Invitation.email == email))
        return list(result.scalars().all())

    async def mark_used(self, invite_id: str, account_id: str, now: datetime) -> bool:
        """
        Conditional write, no commit. Returns False when another redemption
        already flipped the row.
        """
        result = await self.db.execute(
            update(Invitation)
            .where(Invitation.id == invite_id, Invitation.used.is_(False))
            .values(used=True, used_at=now, used_by=account_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
