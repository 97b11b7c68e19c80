"""
Repository layer — data access objects for companies and profiles.
All repos accept an AsyncSession and return ORM models.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.models.models import Company, Profile, UserStatus


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class BaseRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit_refresh(self, obj):
        await self.db.commit()
        await self.db.refresh(obj)
        return obj


# ---------------------------------------------------------------------------
# Company
# ---------------------------------------------------------------------------

class CompanyRepository(BaseRepository):
    async def create(self, name: str, **kwargs) -> Company:
        company = Company(name=name, **kwargs)
        self.db.add(company)
        await self.db.flush()
        return company

    async def get_name(self, company_id: str) -> Optional[str]:
        result = await self.db.execute(select(Company.name).where(Company.id == company_id))
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class ProfileRepository(BaseRepository):
    async def get(self, profile_id: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def get_in_company(
        self, profile_id: str, company_id: str, role: Optional[str] = None
    ) -> Optional[Profile]:
        q = select(Profile).where(Profile.id == profile_id, Profile.company_id == company_id)
        if role:
            q = q.where(Profile.role == role)
        result = await self.db.execute(q)
        return result.scalar_one_or_none()

    def add(
        self,
        profile_id: str,
        email: str,
        display_name: Optional[str],
        role: str,
        company_id: str,
        **kwargs,
    ) -> Profile:
        """Stage a new profile in the current transaction. Caller commits."""
        profile = Profile(
            id=profile_id,
            email=email,
            display_name=display_name,
            role=role,
            company_id=company_id,
            status=UserStatus.active.value,
            **kwargs,
        )
        self.db.add(profile)
        return profile

    async def exists(self, profile_id: str) -> bool:
        result = await self.db.execute(select(Profile.id).where(Profile.id == profile_id))
        return result.scalar_one_or_none() is not None

    async def list_by_role(
        self,
        company_id: str,
        role: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Profile], int]:
        """Newest first. Returns (page, total matching)."""
        filters = [Profile.company_id == company_id, Profile.role == role]
        if status:
            filters.append(Profile.status == status)

        total = await self.db.scalar(select(func.count(Profile.id)).where(*filters))
        result = await self.db.execute(
            select(Profile)
            .where(*filters)
            .order_by(Profile.created_at.desc(), Profile.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def update(self, profile: Profile, data: dict) -> Profile:
        for field, value in data.items():
            setattr(profile, field, value)
        return await self._commit_refresh(profile)

    async def touch_login(self, profile: Profile, when: datetime) -> Profile:
        profile.last_login_at = when
        return await self._commit_refresh(profile)

    async def delete(self, profile: Profile) -> None:
        await self.db.delete(profile)
        await self.db.commit()
