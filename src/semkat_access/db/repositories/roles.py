"""
semkat_access.db.repositories.roles

Role Store: repository for `UserRole` entities.

Responsibilities:
- Answer `has_role` / `get_effective_role` straight from the table (no policy layer).
- Insert role assignments idempotently and revoke them idempotently.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import case, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.db.models import ROLE_PRECEDENCE, AppRole, UserRole, utcnow
from semkat_access.errors import ConflictError


class RoleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def has_role(self, user_id: uuid.UUID, role: AppRole) -> bool:
        stmt = select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role)
        return (await self._session.execute(stmt.limit(1))).first() is not None

    async def get_effective_role(self, user_id: uuid.UUID) -> AppRole:
        rank = case(
            *((UserRole.role == role, order) for role, order in ROLE_PRECEDENCE.items()),
            else_=len(ROLE_PRECEDENCE) + 1,
        )
        stmt = select(UserRole.role).where(UserRole.user_id == user_id).order_by(rank).limit(1)
        role = (await self._session.execute(stmt)).scalar_one_or_none()
        # Every principal gets a `user` row at sign-up; an empty result still maps to it.
        return role if role is not None else AppRole.user

    async def get(self, user_id: uuid.UUID, role: AppRole) -> UserRole | None:
        stmt = select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_all(self) -> list[UserRole]:
        stmt = select(UserRole).order_by(UserRole.created_at, UserRole.user_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserRole]:
        stmt = select(UserRole).where(UserRole.user_id == user_id).order_by(UserRole.created_at)
        return list((await self._session.execute(stmt)).scalars().all())

    async def insert(
        self,
        *,
        user_id: uuid.UUID,
        role: AppRole,
        approved_by: uuid.UUID | None = None,
        approved_at: datetime | None = None,
    ) -> UserRole:
        """
        Plain insert inside a savepoint; a duplicate (user_id, role) raises ConflictError
        and leaves the outer transaction usable.
        """

        assignment = UserRole(
            user_id=user_id,
            role=role,
            approved_by=approved_by,
            approved_at=approved_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(assignment)
        except IntegrityError as e:
            raise ConflictError() from e
        return assignment

    async def assign(
        self,
        *,
        user_id: uuid.UUID,
        role: AppRole,
        approved_by: uuid.UUID | None = None,
    ) -> UserRole:
        """
        Ensure (user_id, role) exists. Returns the existing row when it already does.
        """

        existing = await self.get(user_id, role)
        if existing is not None:
            return existing
        try:
            return await self.insert(
                user_id=user_id,
                role=role,
                approved_by=approved_by,
                approved_at=utcnow() if approved_by is not None else None,
            )
        except ConflictError:
            # Lost a race with a concurrent grant: the postcondition already holds.
            existing = await self.get(user_id, role)
            if existing is None:
                raise
            return existing

    async def revoke(self, user_id: uuid.UUID, role: AppRole) -> bool:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
        result = await self._session.execute(stmt)
        return bool(result.rowcount)


# --- Module Notes -----------------------------------------------------------
# `has_role` and `get_effective_role` are the only reads exposed to policy predicates,
# through `semkat_access.policy.privileged.PrivilegedRoleReader`.
