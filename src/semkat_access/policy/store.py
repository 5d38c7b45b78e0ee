"""
semkat_access.policy.store

Policy-checked data access for one acting principal.

Responsibilities:
- Wrap the trusted repositories so every read is filtered and every write is
  authorized by `PolicyEngine` at access time.
- Build the `PolicyContext` with the privileged role reader.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace

from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.auth.models import Principal
from semkat_access.db.models import (
    AgentApplication,
    AppRole,
    ApplicationStatus,
    Profile,
    UserRole,
)
from semkat_access.db.repositories.applications import ApplicationRepo
from semkat_access.db.repositories.profiles import ProfileRepo
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.errors import ConflictError, NotFoundError
from semkat_access.observability.logging import get_logger
from semkat_access.policy.engine import (
    Operation,
    PolicyContext,
    PolicyEngine,
    Resource,
    default_engine,
)
from semkat_access.policy.privileged import PrivilegedRoleReader

log = get_logger(__name__)


class SecuredStore:
    """
    The only caller-facing path to `user_roles`, `profiles` and `agent_applications`.
    Rows the actor may not read are simply absent from results.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        actor: Principal | None,
        engine: PolicyEngine = default_engine,
    ) -> None:
        self._session = session
        self._engine = engine
        self.ctx = PolicyContext(actor=actor, roles=PrivilegedRoleReader(session))

        self._roles = RoleRepo(session)
        self._profiles = ProfileRepo(session)
        self._applications = ApplicationRepo(session)

    @property
    def actor(self) -> Principal | None:
        return self.ctx.actor

    async def authorize(self, resource: Resource, operation: Operation, row: object) -> None:
        await self._engine.authorize(self.ctx, resource, operation, row)

    async def can(self, resource: Resource, operation: Operation, row: object) -> bool:
        return await self._engine.allows(self.ctx, resource, operation, row)

    # user_roles

    async def list_roles(self, *, user_id: uuid.UUID | None = None) -> list[UserRole]:
        rows = (
            await self._roles.list_for_user(user_id)
            if user_id is not None
            else await self._roles.list_all()
        )
        return await self._engine.filter_visible(self.ctx, Resource.user_roles, rows)

    async def grant_role(self, *, user_id: uuid.UUID, role: AppRole) -> UserRole:
        # Check against the row that would be written, before touching the table.
        candidate = SimpleNamespace(user_id=user_id, role=role)
        await self.authorize(Resource.user_roles, Operation.insert, candidate)
        existing = await self._roles.get(user_id, role)
        assignment = await self._roles.assign(
            user_id=user_id, role=role, approved_by=self._actor_id()
        )
        event = "role_already_present" if existing is not None else "role_granted"
        log.info(event, user_id=str(user_id), role=role.value, by=str(self._actor_id()))
        return assignment

    async def revoke_role(self, *, user_id: uuid.UUID, role: AppRole) -> bool:
        existing = await self._roles.get(user_id, role)
        if existing is None:
            # Deleting a missing row still requires the delete privilege.
            await self.authorize(
                Resource.user_roles,
                Operation.delete,
                SimpleNamespace(user_id=user_id, role=role),
            )
            return False
        await self.authorize(Resource.user_roles, Operation.delete, existing)
        removed = await self._roles.revoke(user_id, role)
        log.info("role_revoked", user_id=str(user_id), role=role.value, by=str(self._actor_id()))
        return removed

    # profiles

    async def list_profiles(self, *, limit: int = 200) -> list[Profile]:
        rows = await self._profiles.list_all(limit=limit)
        return await self._engine.filter_visible(self.ctx, Resource.profiles, rows)

    async def get_profile(self, user_id: uuid.UUID) -> Profile:
        profile = await self._profiles.get_for_user(user_id)
        if profile is None or not await self.can(Resource.profiles, Operation.read, profile):
            raise NotFoundError("Profile not found")
        return profile

    async def create_profile(
        self,
        *,
        user_id: uuid.UUID,
        full_name: str | None = None,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        await self.authorize(
            Resource.profiles, Operation.insert, SimpleNamespace(user_id=user_id)
        )
        if await self._profiles.get_for_user(user_id) is not None:
            raise ConflictError("Profile already exists")
        return await self._profiles.create(
            user_id=user_id, full_name=full_name, phone=phone, avatar_url=avatar_url
        )

    async def update_profile(
        self,
        user_id: uuid.UUID,
        *,
        full_name: str | None = None,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        profile = await self.get_profile(user_id)
        await self.authorize(Resource.profiles, Operation.update, profile)
        return await self._profiles.patch(
            profile, full_name=full_name, phone=phone, avatar_url=avatar_url
        )

    # agent_applications

    async def list_applications(
        self, *, status: ApplicationStatus | None = None, limit: int = 200
    ) -> list[AgentApplication]:
        # Scope non-admins in SQL so LIMIT applies to rows they can actually read.
        scope: uuid.UUID | None = None
        actor = self.actor
        if actor is not None and not await self.ctx.roles.has_role(actor.user_id, AppRole.admin):
            scope = actor.user_id
        rows = await self._applications.list_recent(status=status, user_id=scope, limit=limit)
        return await self._engine.filter_visible(self.ctx, Resource.agent_applications, rows)

    async def get_application(
        self, application_id: uuid.UUID, *, for_update: bool = False
    ) -> AgentApplication:
        app = await self._applications.get(application_id, for_update=for_update)
        if app is None or not await self.can(Resource.agent_applications, Operation.read, app):
            raise NotFoundError("Application not found")
        return app

    async def create_application(
        self,
        *,
        user_id: uuid.UUID,
        full_name: str,
        phone: str,
        email: str,
        company: str | None = None,
        license_number: str | None = None,
        experience_years: int | None = None,
    ) -> AgentApplication:
        await self.authorize(
            Resource.agent_applications, Operation.insert, SimpleNamespace(user_id=user_id)
        )
        return await self._applications.create(
            user_id=user_id,
            full_name=full_name,
            phone=phone,
            email=email,
            company=company,
            license_number=license_number,
            experience_years=experience_years,
        )

    def _actor_id(self) -> uuid.UUID | None:
        return self.ctx.actor.user_id if self.ctx.actor is not None else None


# --- Module Notes -----------------------------------------------------------
# Writes on `agent_applications` (reviews) are authorized here but performed by
# `semkat_access.services.workflow`, which owns the transition rules.
