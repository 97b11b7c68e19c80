"""
FastAPI dependency functions for authentication.

get_current_principal resolves the bearer credential through the identity
provider and loads the caller's profile. The returned Profile *is* the
principal: its company_id and role are what the guard checks.
"""
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.backend import Backend, get_backend
from fleetflow.core.database import get_db
from fleetflow.core.errors import ForbiddenError, UnauthenticatedError
from fleetflow.models.models import Profile, UserStatus
from fleetflow.repositories.repositories import ProfileRepository

bearer_scheme = HTTPBearer(auto_error=False)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """Overridden in tests to freeze or advance time."""
    return utcnow


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    backend: Backend = Depends(get_backend),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError("Authorization header missing.")

    account_id = await backend.identity.verify_credential(credentials.credentials)

    profile = await ProfileRepository(db).get(account_id)
    if profile is None:
        raise UnauthenticatedError("No profile exists for this account.")
    if profile.status != UserStatus.active.value:
        raise ForbiddenError(f"Your account is {profile.status}. Please contact your administrator.")
    return profile
