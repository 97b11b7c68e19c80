from datetime import timedelta

import pytest
from sqlalchemy import select

from fleetflow.core.deps import utcnow
from fleetflow.models.audit import AuditEventType, AuditLog
from fleetflow.models.invitation import InviteRole
from fleetflow.models.models import UserRole
from fleetflow.repositories.invitation_repository import InvitationRepository
from fleetflow.repositories.repositories import CompanyRepository, ProfileRepository
from fleetflow.services.scheduler import build_scheduler, sweep_orphaned_accounts


@pytest.mark.asyncio
async def test_sweep_removes_unclaimable_orphan(backend, db_session):
    orphan = await backend.identity.create_account("ghost@x.com", "secret123", "Ghost")

    removed = await sweep_orphaned_accounts(backend, now=utcnow() + timedelta(days=8))
    assert removed == 1
    assert await backend.identity.get_by_email("ghost@x.com") is None

    row = await db_session.scalar(
        select(AuditLog).where(AuditLog.event_type == AuditEventType.ORPHAN_ACCOUNT_DELETED.value)
    )
    assert row.subject_id == orphan.id


@pytest.mark.asyncio
async def test_sweep_ignores_recent_orphans(backend):
    await backend.identity.create_account("ghost@x.com", "secret123", "Ghost")

    assert await sweep_orphaned_accounts(backend, now=utcnow()) == 0
    assert await backend.identity.get_by_email("ghost@x.com") is not None


@pytest.mark.asyncio
async def test_sweep_keeps_accounts_with_profiles(backend, db_session):
    account = await backend.identity.create_account("admin@fleet.com", "secret123", "Admin")
    company = await CompanyRepository(db_session).create(name="Acme Haulage")
    ProfileRepository(db_session).add(
        account.id,
        email=account.email,
        display_name="Admin",
        role=UserRole.admin.value,
        company_id=company.id,
    )
    await db_session.commit()

    assert await sweep_orphaned_accounts(backend, now=utcnow() + timedelta(days=30)) == 0
    assert await backend.identity.get_by_email("admin@fleet.com") is not None


@pytest.mark.asyncio
async def test_sweep_keeps_orphan_with_pending_invite(backend, db_session):
    await backend.identity.create_account("jane@x.com", "secret123", "Jane")
    company = await CompanyRepository(db_session).create(name="Acme Haulage")
    await db_session.commit()
    now = utcnow() + timedelta(days=8)
    await InvitationRepository(db_session).create(
        company_id=company.id,
        created_by="admin-1",
        email="jane@x.com",
        role=InviteRole.driver.value,
        now=now - timedelta(days=2),
        expiry=timedelta(days=7),
    )

    # Still resumable through its invite
    assert await sweep_orphaned_accounts(backend, now=now) == 0
    assert await backend.identity.get_by_email("jane@x.com") is not None


@pytest.mark.asyncio
async def test_build_scheduler_registers_sweep(backend):
    scheduler = build_scheduler(backend)
    job = scheduler.get_job("orphan_sweep")
    assert job is not None
    assert job.trigger.interval == timedelta(minutes=60)
