from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.db.models import Profile, utcnow


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        full_name: str | None = None,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        profile = Profile(
            user_id=user_id,
            full_name=full_name,
            phone=phone,
            avatar_url=avatar_url,
        )
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def get_for_user(self, user_id: uuid.UUID) -> Profile | None:
        stmt = select(Profile).where(Profile.user_id == user_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_all(self, *, limit: int = 200) -> list[Profile]:
        stmt = select(Profile).order_by(Profile.created_at).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def patch(
        self,
        profile: Profile,
        *,
        full_name: str | None = None,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        if full_name is not None:
            profile.full_name = full_name
        if phone is not None:
            profile.phone = phone
        if avatar_url is not None:
            profile.avatar_url = avatar_url
        profile.updated_at = utcnow()
        await self._session.flush()
        return profile
