"""
fleetflow/services/identity.py
───────────────────────────────
Identity provider boundary.

The rest of the code only talks to IdentityProvider:
  create_account(email, password, display_name) → AccountRecord
  verify_credential(bearer_token)               → account id
  sign_in(email, password)                      → (AccountRecord, bearer token)
  revoke_tokens(account_id)                     → None (sign-out everywhere)
  issue_reset_token(email)                      → (AccountRecord, reset token) or None
  reset_password(reset_token, new_password)     → AccountRecord

Error kinds surfaced to callers:
  EmailTakenError      email already registered
  WeakCredentialError  password below the strength floor
  UnauthenticatedError invalid credential / wrong password
  ValidationError      reset token invalid, expired or already used
  UpstreamError        the provider itself failed

LocalIdentityProvider keeps accounts in the `accounts` table and issues
JWT bearer tokens. It opens its own sessions so its writes commit
independently of whatever the request's document-store session is doing,
the same way a hosted provider would.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetflow.core.config import settings
from fleetflow.core.errors import (
    EmailTakenError,
    UnauthenticatedError,
    UpstreamError,
    ValidationError,
    WeakCredentialError,
)
from fleetflow.core.security import (
    RESET_TOKEN_TYPE,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    verify_password,
)
from fleetflow.models.models import Account

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountRecord:
    id: str
    email: str
    display_name: Optional[str]
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm(cls, account: Account) -> "AccountRecord":
        return cls(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            created_at=account.created_at,
        )


class IdentityProvider(abc.ABC):

    @abc.abstractmethod
    async def create_account(
        self, email: str, password: str, display_name: Optional[str]
    ) -> AccountRecord: ...

    @abc.abstractmethod
    async def verify_credential(self, bearer_token: str) -> str: ...

    @abc.abstractmethod
    async def sign_in(self, email: str, password: str) -> tuple[AccountRecord, str]: ...

    @abc.abstractmethod
    async def get_by_email(self, email: str) -> Optional[AccountRecord]: ...

    @abc.abstractmethod
    async def check_password(self, account_id: str, password: str) -> bool: ...

    @abc.abstractmethod
    async def delete_account(self, account_id: str) -> None: ...

    @abc.abstractmethod
    async def list_created_before(self, cutoff: datetime) -> list[AccountRecord]: ...

    @abc.abstractmethod
    async def revoke_tokens(self, account_id: str) -> None: ...

    @abc.abstractmethod
    async def issue_reset_token(self, email: str) -> Optional[tuple[AccountRecord, str]]: ...

    @abc.abstractmethod
    async def reset_password(self, reset_token: str, new_password: str) -> AccountRecord: ...


class LocalIdentityProvider(IdentityProvider):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    def _check_strength(self, password: str) -> None:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise WeakCredentialError(
                f"Password should be at least {settings.MIN_PASSWORD_LENGTH} characters."
            )

    async def create_account(
        self, email: str, password: str, display_name: Optional[str]
    ) -> AccountRecord:
        self._check_strength(password)
        try:
            async with self._sessions() as db:
                existing = await db.execute(select(Account.id).where(Account.email == email))
                if existing.scalar_one_or_none():
                    raise EmailTakenError()
                account = Account(
                    email=email,
                    hashed_password=hash_password(password),
                    display_name=display_name,
                )
                db.add(account)
                try:
                    await db.commit()
                except IntegrityError:
                    # Lost a race on the unique email index
                    await db.rollback()
                    raise EmailTakenError()
                await db.refresh(account)
                log.info("Identity created id=%s", account.id)
                return AccountRecord.from_orm(account)
        except SQLAlchemyError as e:
            log.error("Identity store failed creating %s: %s", email, e)
            raise UpstreamError("Identity provider unavailable.") from e

    async def verify_credential(self, bearer_token: str) -> str:
        claims = decode_token(bearer_token) if bearer_token else None
        if not claims:
            raise UnauthenticatedError()
        try:
            async with self._sessions() as db:
                account = await db.get(Account, claims["sub"])
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        if (
            account is None
            or account.disabled
            or claims.get("ver", 0) != account.token_version
        ):
            raise UnauthenticatedError()
        return account.id

    async def sign_in(self, email: str, password: str) -> tuple[AccountRecord, str]:
        try:
            async with self._sessions() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        if (
            account is None
            or account.disabled
            or not verify_password(password, account.hashed_password)
        ):
            raise UnauthenticatedError("Incorrect email or password.")
        return (
            AccountRecord.from_orm(account),
            create_access_token(account.id, account.token_version),
        )

    async def get_by_email(self, email: str) -> Optional[AccountRecord]:
        try:
            async with self._sessions() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        return AccountRecord.from_orm(account) if account else None

    async def check_password(self, account_id: str, password: str) -> bool:
        try:
            async with self._sessions() as db:
                account = await db.get(Account, account_id)
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        return bool(account) and verify_password(password, account.hashed_password)

    async def delete_account(self, account_id: str) -> None:
        try:
            async with self._sessions() as db:
                account = await db.get(Account, account_id)
                if account is not None:
                    await db.delete(account)
                    await db.commit()
                    log.info("Identity deleted id=%s", account_id)
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e

    async def list_created_before(self, cutoff: datetime) -> list[AccountRecord]:
        try:
            async with self._sessions() as db:
                result = await db.execute(select(Account).where(Account.created_at < cutoff))
                return [AccountRecord.from_orm(a) for a in result.scalars().all()]
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e

    async def revoke_tokens(self, account_id: str) -> None:
        try:
            async with self._sessions() as db:
                account = await db.get(Account, account_id)
                if account is None:
                    return
                account.token_version += 1
                await db.commit()
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        log.info("Tokens revoked id=%s", account_id)

    async def issue_reset_token(self, email: str) -> Optional[tuple[AccountRecord, str]]:
        """
        Reset token bound to the account's current token version, or None
        when no enabled account has this email. Callers must not reveal
        which of the two happened.
        """
        try:
            async with self._sessions() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
        if account is None or account.disabled:
            return None
        token = create_reset_token(account.id, account.token_version)
        return AccountRecord.from_orm(account), token

    async def reset_password(self, reset_token: str, new_password: str) -> AccountRecord:
        claims = decode_token(reset_token, RESET_TOKEN_TYPE)
        if not claims:
            raise ValidationError("Reset link is invalid or has expired.")
        self._check_strength(new_password)
        try:
            async with self._sessions() as db:
                account = await db.get(Account, claims["sub"])
                # A used reset token, or one issued before a sign-out, carries
                # a stale version.
                if (
                    account is None
                    or account.disabled
                    or claims.get("ver", 0) != account.token_version
                ):
                    raise ValidationError("Reset link is invalid or has expired.")
                account.hashed_password = hash_password(new_password)
                account.token_version += 1
                await db.commit()
                await db.refresh(account)
                log.info("Password reset id=%s", account.id)
                return AccountRecord.from_orm(account)
        except SQLAlchemyError as e:
            raise UpstreamError("Identity provider unavailable.") from e
