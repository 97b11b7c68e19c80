"""
fleetflow/schemas/invites.py
─────────────────────────────
Pydantic schemas for invitation issue / preview / redeem.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from fleetflow.models.invitation import InviteRole, InviteStatus
from fleetflow.schemas.schemas import CamelModel, CamelOut, Email, Password


# ── Issue ─────────────────────────────────────────────────────────────────

class InviteCreate(CamelModel):
    invitee_name: str = Field(min_length=1, max_length=255)
    invitee_email: Email
    company_id: str = Field(min_length=1, max_length=32)
    role: InviteRole
    phone_number: Optional[str] = Field(default=None, max_length=40)


class RoleInviteCreate(CamelModel):
    """Body for /managers/invite and /drivers/invite; the path fixes the role."""
    invitee_name: str = Field(min_length=1, max_length=255)
    invitee_email: Email
    company_id: str = Field(min_length=1, max_length=32)
    phone_number: Optional[str] = Field(default=None, max_length=40)

    def with_role(self, role: InviteRole) -> InviteCreate:
        return InviteCreate(role=role, **self.model_dump())


class InviteIssued(CamelModel):
    invite_id: str
    token: str          # returned to the issuer so the link can be shared out-of-band
    email: str
    role: str
    company_id: str
    expires_at: datetime


class InviteOut(CamelOut):
    id: str
    email: str
    invitee_name: Optional[str]
    role: str
    company_id: str
    status: str = InviteStatus.pending.value   # derived at read time
    created_by: str
    created_at: Optional[datetime]
    expires_at: datetime
    used_at: Optional[datetime]
    used_by: Optional[str]


# ── Preview ───────────────────────────────────────────────────────────────

class InvitePreview(CamelModel):
    email: str
    role: str
    company_id: str
    company_name: Optional[str]


# ── Redeem ────────────────────────────────────────────────────────────────

class InviteRedeem(CamelModel):
    # role / companyId in the body are dropped here; the invitation decides both
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    token: str = Field(min_length=1)
    email: Email
    password: Password
    display_name: Optional[str] = Field(default=None, max_length=255)


class AccountSummary(CamelModel):
    id: str
    email: str
    display_name: Optional[str]
    role: str
    company_id: str
    company_name: Optional[str]
