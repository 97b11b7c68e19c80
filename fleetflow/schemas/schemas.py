"""
Pydantic schemas for auth, profile and member endpoints.

Wire format is camelCase (the web client's convention); snake_case names are
accepted too.
"""
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email

from fleetflow.models.models import UserStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# bcrypt only looks at the first 72 bytes
Password = Annotated[str, Field(min_length=1, max_length=72)]


def _email_as_typed(value: str) -> str:
    # EmailStr would hand back the normalized form (lower-cased domain);
    # addresses are compared exactly, so keep what was sent.
    validate_email(value)
    if "<" in value:
        raise ValueError("value is not a valid email address: display names are not accepted")
    return value


Email = Annotated[str, AfterValidator(_email_as_typed)]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class SignupRequest(CamelModel):
    """Bootstraps a tenant: new company + its admin."""
    email: Email
    password: Password
    display_name: str = Field(min_length=1, max_length=255)
    company_name: str = Field(min_length=1, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    country: Optional[str] = Field(default=None, max_length=10)


class SigninRequest(CamelModel):
    email: Email
    password: Password


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"


class ResetPasswordRequest(CamelModel):
    email: Email


class ResetPasswordConfirm(CamelModel):
    token: str = Field(min_length=1)
    password: Password


class MessageOut(CamelModel):
    message: str


class VerifyOut(CamelModel):
    id: str
    email: str
    role: str
    company_id: str


class ProfileOut(CamelOut):
    id: str
    email: str
    display_name: Optional[str]
    role: str
    company_id: str
    status: str
    phone_number: Optional[str]
    photo_url: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    last_login_at: Optional[datetime]


class ProfileUpdate(CamelModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    photo_url: Optional[str] = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Drivers / Managers
# ---------------------------------------------------------------------------

class MemberOut(CamelOut):
    id: str
    email: str
    display_name: Optional[str]
    role: str
    company_id: str
    status: str
    phone_number: Optional[str]
    license_number: Optional[str] = None
    license_expiry: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class MemberPage(CamelModel):
    items: list[MemberOut]
    total: int
    limit: int
    offset: int


class _MemberUpdate(CamelModel):
    # extra="allow" so the router can name the forbidden fields instead of dropping them
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=40)
    status: Optional[UserStatus] = None
    notes: Optional[str] = None


class ManagerUpdate(_MemberUpdate):
    pass


class DriverUpdate(_MemberUpdate):
    license_number: Optional[str] = Field(default=None, max_length=60)
    license_expiry: Optional[datetime] = None
