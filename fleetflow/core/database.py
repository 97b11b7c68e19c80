"""
Declarative base and the per-request session dependency.
"""
from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from fleetflow.core.backend import Backend, get_backend


class Base(DeclarativeBase):
    pass


async def get_db(backend: Backend = Depends(get_backend)) -> AsyncIterator[AsyncSession]:
    async with backend.session() as session:
        yield session
