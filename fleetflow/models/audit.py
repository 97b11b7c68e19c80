"""
fleetflow/models/audit.py
──────────────────────────
Immutable audit log for compliance and debugging.

Captures auth, invitation and profile-management events.
Design: append-only, no FK constraints (rows survive profile/company deletion).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fleetflow.core.database import Base


class AuditEventType(str, enum.Enum):
    # Auth
    COMPANY_REGISTERED            = "auth.company_registered"
    USER_SIGNIN                   = "auth.signin"
    USER_SIGNIN_FAILED            = "auth.signin_failed"
    USER_SIGNOUT                  = "auth.signout"
    PASSWORD_RESET_REQUESTED      = "auth.password_reset_requested"
    PASSWORD_RESET_COMPLETED      = "auth.password_reset_completed"

    # Invitations
    INVITE_ISSUED                 = "invite.issued"
    INVITE_REDEEMED               = "invite.redeemed"
    INVITE_REDEEM_RESUMED         = "invite.redeem_resumed"

    # Profiles
    PROFILE_UPDATED               = "profile.updated"
    PROFILE_DELETED               = "profile.deleted"

    # Repair
    ORPHAN_ACCOUNT_DELETED        = "repair.orphan_account_deleted"


class AuditLog(Base):
    """
    Immutable audit trail. Never UPDATE or DELETE rows here.
    Use INSERT only.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    event_type: Mapped[str] = mapped_column(String(80), nullable=False)

    # No FK constraints — rows must survive profile/company deletion
    actor_user_id: Mapped[str] = mapped_column(String(32), nullable=True)
    company_id: Mapped[str] = mapped_column(String(32), nullable=True)
    subject_id: Mapped[str] = mapped_column(String(255), nullable=True)

    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_logs_company_id", "company_id"),
        Index("ix_audit_logs_actor",      "actor_user_id"),
        Index("ix_audit_logs_event_type", "event_type"),
    )
