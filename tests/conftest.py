import os
from datetime import datetime, timedelta, timezone

# ── Environment Overrides ───────────────────────────────────────────
os.environ["SCHEDULER_ENABLED"] = "False"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["TESTING"] = "True"
os.environ.pop("RESEND_API_KEY", None)
# ────────────────────────────────────────────────────────────────────

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from fleetflow.main import app
from fleetflow.core.database import Base
from fleetflow.core.deps import get_clock
from fleetflow.core.startup import build_backend

# Register every table with Base.metadata before create_all runs
import fleetflow.models.models  # noqa: F401,E402
import fleetflow.models.invitation  # noqa: F401,E402
import fleetflow.models.audit  # noqa: F401,E402


class FrozenClock:
    """Stands in for utcnow(); tests move it forward explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
async def backend():
    # One in-memory database per test; StaticPool keeps it on a single connection
    _backend = build_backend(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _backend.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.backend = _backend
    yield _backend
    app.state.backend = None
    await _backend.dispose()


@pytest.fixture
async def db_session(backend):
    async with backend.session() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture(autouse=True)
def override_clock(clock):
    app.dependency_overrides[get_clock] = lambda: clock
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(backend):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
