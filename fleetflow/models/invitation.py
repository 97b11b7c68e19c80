"""
fleetflow/models/invitation.py
───────────────────────────────
Invitation for a prospective manager or driver.

Flow:
  1. Admin (or manager, for drivers) POSTs to /invites
  2. Row created here with used=false, token=random, expires_at=+7 days
  3. Email sent with link: /accept-invite?token={token}
  4. Invitee previews with GET /invites/{token}
  5. Invitee POSTs to /invites/accept → account + profile created,
     used=true, used_at/used_by set

Status is derived, never stored:
  pending → used     (redemption)
  pending → expired  (now >= expires_at)
  used and expired are terminal. Expired rows are kept.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fleetflow.core.database import Base


class InviteRole(str, enum.Enum):
    manager = "manager"
    driver  = "driver"


class InviteStatus(str, enum.Enum):
    pending = "pending"
    used    = "used"
    expired = "expired"


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Invitation(Base):
    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    invitee_name: Mapped[str] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(40), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    company_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    used_by: Mapped[str] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        Index("ix_invitations_company_id", "company_id"),
        Index("ix_invitations_email", "email"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= as_utc(self.expires_at)

    def status_at(self, now: datetime) -> InviteStatus:
        if self.used:
            return InviteStatus.used
        if self.is_expired(now):
            return InviteStatus.expired
        return InviteStatus.pending
