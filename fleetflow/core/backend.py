"""
fleetflow/core/backend.py
──────────────────────────
The process-wide handle on the remote collaborators: the document store
(SQLAlchemy async engine + session factory) and the identity provider.

Lifecycle:
  1. Built exactly once by the FastAPI lifespan (fleetflow.core.startup)
  2. Stored on app.state.backend
  3. Handed to request handlers through the get_backend dependency
  4. Disposed on shutdown

Nothing else in the code base creates engines or identity clients, and there
is no module-level instance; tests build their own Backend and override
get_backend.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

if TYPE_CHECKING:
    from fleetflow.services.identity import IdentityProvider

log = logging.getLogger(__name__)


class Backend:

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        identity: "IdentityProvider",
    ):
        self.engine = engine
        self.session_factory = session_factory
        self.identity = identity
        self._closed = False

    def session(self) -> AsyncSession:
        if self._closed:
            raise RuntimeError("Backend has been disposed")
        return self.session_factory()

    async def dispose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        log.info("Backend disposed.")


def get_backend(request: Request) -> Backend:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise RuntimeError("Backend not initialised; is the lifespan running?")
    return backend
