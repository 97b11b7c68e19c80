"""
fleetflow/services/scheduler.py
────────────────────────────────
APScheduler setup for the orphaned-identity repair job.

An orphan is an identity-provider account with no profile. It appears when
a redemption (or signup) crashes after the account was created. While the
invite that produced it is still redeemable, a retry resumes with the same
account, so the sweep leaves it alone. Once no pending invite for that email
remains and the account is older than the invite lifetime, nothing can ever
claim it and it is deleted.

Invitations themselves are never removed here.
"""
import logging
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from fleetflow.core.backend import Backend
from fleetflow.core.config import settings
from fleetflow.core.deps import utcnow
from fleetflow.models.audit import AuditEventType
from fleetflow.models.invitation import InviteStatus
from fleetflow.repositories.audit_repository import AuditRepository
from fleetflow.repositories.invitation_repository import InvitationRepository
from fleetflow.repositories.repositories import ProfileRepository

log = logging.getLogger(__name__)


async def sweep_orphaned_accounts(backend: Backend, now: datetime | None = None) -> int:
    """Delete unclaimable orphaned identities. Returns how many were removed."""
    now = now or utcnow()
    cutoff = now - timedelta(days=settings.INVITE_EXPIRY_DAYS)
    removed = 0

    candidates = await backend.identity.list_created_before(cutoff)
    async with backend.session() as db:
        profiles = ProfileRepository(db)
        invites = InvitationRepository(db)
        audit = AuditRepository(db)

        for account in candidates:
            if await profiles.exists(account.id):
                continue
            pending = [
                inv for inv in await invites.list_for_email(account.email)
                if inv.status_at(now) == InviteStatus.pending
            ]
            if pending:
                continue

            await backend.identity.delete_account(account.id)
            await audit.log(
                AuditEventType.ORPHAN_ACCOUNT_DELETED,
                subject_id=account.id,
                metadata={"email": account.email},
            )
            removed += 1

    if removed:
        log.info("[Scheduler] Removed %d orphaned identities", removed)
    return removed


def build_scheduler(backend: Backend) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()

    async def _job():
        log.info("[Scheduler] Starting orphan sweep")
        try:
            await sweep_orphaned_accounts(backend)
        except Exception:
            log.exception("[Scheduler] Orphan sweep failed")

    scheduler.add_job(
        _job,
        IntervalTrigger(minutes=settings.ORPHAN_SWEEP_INTERVAL_MINUTES),
        id="orphan_sweep",
        replace_existing=True,
    )
    return scheduler
