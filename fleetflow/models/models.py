"""
SQLAlchemy ORM models for FleetFlow.

Multi-tenant: every profile and invitation belongs to a Company (tenant).

Two halves of a user:
  - Account  → identity provider's record (credentials). Owned by
               fleetflow.services.identity; nothing else writes it.
  - Profile  → company-scoped record (role, status, contact info), keyed by
               the account id.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fleetflow.core.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class UserRole(str, enum.Enum):
    admin    = "admin"     # owns the company: managers, drivers, everything
    manager  = "manager"   # manages drivers and day-to-day operations
    driver   = "driver"
    customer = "customer"


class UserStatus(str, enum.Enum):
    active    = "active"
    inactive  = "inactive"
    suspended = "suspended"


# ---------------------------------------------------------------------------
# Company (Tenant)
# ---------------------------------------------------------------------------

class Company(Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(40), nullable=True)
    country: Mapped[str] = mapped_column(String(10), nullable=True)
    admin_user_id: Mapped[str] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    profiles: Mapped[list["Profile"]] = relationship(back_populates="company")


# ---------------------------------------------------------------------------
# Account (identity half)
# ---------------------------------------------------------------------------

class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=True)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False)
    # Bumped on sign-out and password reset; tokens minted under an older
    # version stop verifying.
    token_version: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Profile (document-store half)
# ---------------------------------------------------------------------------

class Profile(Base):
    __tablename__ = "profiles"

    # Same value as Account.id; no FK because the two live in different systems
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=UserStatus.active.value)
    company_id: Mapped[str] = mapped_column(String(32), ForeignKey("companies.id"), nullable=False)

    phone_number: Mapped[str] = mapped_column(String(40), nullable=True)
    photo_url: Mapped[str] = mapped_column(String(500), nullable=True)
    license_number: Mapped[str] = mapped_column(String(60), nullable=True)   # drivers only
    license_expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    last_login_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_profiles_company_role", "company_id", "role"),
        Index("ix_profiles_email", "email"),
    )

    company: Mapped["Company"] = relationship(back_populates="profiles")
