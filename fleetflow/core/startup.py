import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetflow.core.backend import Backend
from fleetflow.core.config import settings
from fleetflow.core.log_config import configure_logging
from fleetflow.services.identity import LocalIdentityProvider
from fleetflow.services.scheduler import build_scheduler

log = logging.getLogger(__name__)


def build_backend(database_url: str | None = None, **engine_kwargs) -> Backend:
    """Construct the one Backend for this process."""
    engine = create_async_engine(database_url or settings.DATABASE_URL, **engine_kwargs)
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    return Backend(
        engine=engine,
        session_factory=session_factory,
        identity=LocalIdentityProvider(session_factory),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────────────
    configure_logging()

    # 1. Backend (store + identity provider)
    backend = build_backend(pool_pre_ping=True)
    app.state.backend = backend
    log.info("Backend ready.")

    # 2. Scheduler
    scheduler = build_scheduler(backend)
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
        log.info("APScheduler started.")

    yield  # Application runs here

    # ── Shutdown ─────────────────────────────────────────────────────────
    if scheduler.running:
        scheduler.shutdown()
        log.info("APScheduler shut down.")
    await backend.dispose()
    app.state.backend = None
    log.info("FleetFlow shutting down.")
