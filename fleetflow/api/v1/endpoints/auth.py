"""
Auth endpoints: signup, signin, signout, verify, profile, password reset.

Sign-out is server-side: it bumps the account's token version, so every
bearer token issued before it stops verifying. Password reset mails a
signed, single-use reset token; the request endpoint answers the same way
whether or not the email has an account.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.core.backend import Backend, get_backend
from fleetflow.core.config import settings
from fleetflow.core.database import get_db
from fleetflow.core.deps import Clock, get_clock, get_current_principal
from fleetflow.core.errors import UnauthenticatedError, UpstreamError, ValidationError
from fleetflow.core.tasks import run_background
from fleetflow.models.audit import AuditEventType
from fleetflow.models.models import Profile, UserRole
from fleetflow.repositories.audit_repository import AuditRepository
from fleetflow.repositories.repositories import CompanyRepository, ProfileRepository
from fleetflow.schemas.schemas import (
    MessageOut, ProfileOut, ProfileUpdate, ResetPasswordConfirm, ResetPasswordRequest,
    SigninRequest, SignupRequest, Token, VerifyOut,
)
from fleetflow.services.email_service import EmailService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])
_email = EmailService()

RESET_REQUESTED_MESSAGE = "If an account exists for that email, a reset link has been sent."


@router.post("/signup", response_model=ProfileOut, status_code=201)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
):
    """Register a new company and its admin."""
    account = await backend.identity.create_account(
        payload.email, payload.password, payload.display_name
    )

    try:
        company = await CompanyRepository(db).create(
            name=payload.company_name,
            email=payload.email,
            phone_number=payload.phone_number,
            country=payload.country,
            admin_user_id=account.id,
        )
        profile = ProfileRepository(db).add(
            account.id,
            email=account.email,
            display_name=payload.display_name,
            role=UserRole.admin.value,
            company_id=company.id,
            phone_number=payload.phone_number,
        )
        await db.commit()
        await db.refresh(profile)
    except SQLAlchemyError as e:
        await db.rollback()
        # identity stays orphaned; the sweep removes it
        log.error("Signup failed after identity %s was created: %s", account.id, e)
        raise UpstreamError() from e

    await AuditRepository(db).log(
        AuditEventType.COMPANY_REGISTERED,
        actor_user_id=account.id,
        company_id=profile.company_id,
        subject_id=account.email,
    )
    return profile


@router.post("/signin", response_model=Token)
async def signin(
    payload: SigninRequest,
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
    clock: Clock = Depends(get_clock),
):
    audit = AuditRepository(db)
    try:
        account, token = await backend.identity.sign_in(payload.email, payload.password)
    except UnauthenticatedError:
        await audit.log(AuditEventType.USER_SIGNIN_FAILED, subject_id=payload.email)
        raise

    repo = ProfileRepository(db)
    profile = await repo.get(account.id)
    if profile is None:
        raise UnauthenticatedError("No profile exists for this account.")
    await repo.touch_login(profile, clock())

    await audit.log(
        AuditEventType.USER_SIGNIN,
        actor_user_id=profile.id,
        company_id=profile.company_id,
    )
    return Token(access_token=token)


@router.get("/verify", response_model=VerifyOut)
async def verify(principal: Profile = Depends(get_current_principal)):
    return VerifyOut(
        id=principal.id,
        email=principal.email,
        role=principal.role,
        company_id=principal.company_id,
    )


@router.get("/profile", response_model=ProfileOut)
async def get_profile(principal: Profile = Depends(get_current_principal)):
    return principal


@router.put("/profile", response_model=ProfileOut)
async def update_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Profile = Depends(get_current_principal),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("Provide at least one of displayName, phoneNumber, photoUrl.")

    profile = await ProfileRepository(db).update(principal, changes)
    await AuditRepository(db).log(
        AuditEventType.PROFILE_UPDATED,
        actor_user_id=profile.id,
        company_id=profile.company_id,
        subject_id=profile.id,
        metadata={"fields": sorted(changes)},
    )
    return profile


@router.post("/signout", response_model=MessageOut)
async def signout(
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
    principal: Profile = Depends(get_current_principal),
):
    await backend.identity.revoke_tokens(principal.id)
    await AuditRepository(db).log(
        AuditEventType.USER_SIGNOUT,
        actor_user_id=principal.id,
        company_id=principal.company_id,
    )
    return MessageOut(message="Signed out successfully.")


@router.post("/reset-password", response_model=MessageOut)
async def request_password_reset(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
):
    issued = await backend.identity.issue_reset_token(payload.email)
    if issued is not None:
        account, token = issued
        await run_background(
            _email.send_password_reset(
                to_email=account.email,
                display_name=account.display_name,
                reset_token=token,
                expiry_minutes=settings.RESET_TOKEN_EXPIRE_MINUTES,
            )
        )
        await AuditRepository(db).log(
            AuditEventType.PASSWORD_RESET_REQUESTED,
            actor_user_id=account.id,
            subject_id=account.email,
        )
    return MessageOut(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password/confirm", response_model=MessageOut)
async def confirm_password_reset(
    payload: ResetPasswordConfirm,
    db: AsyncSession = Depends(get_db),
    backend: Backend = Depends(get_backend),
):
    account = await backend.identity.reset_password(payload.token, payload.password)
    await AuditRepository(db).log(
        AuditEventType.PASSWORD_RESET_COMPLETED,
        actor_user_id=account.id,
        subject_id=account.email,
    )
    return MessageOut(message="Password has been reset. Please sign in.")
