"""
semkat_access.services.workflow

Agent application workflow (transaction owner).

Responsibilities:
- Submit applications in `pending` for the acting principal.
- Review applications: `pending` -> `approved` | `rejected`, exactly once.
- On approval, grant the `agent` role in the same transaction as the status change.
- Register agents directly (admin creates principal + agent role in one transaction).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from types import SimpleNamespace

from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.auth.models import Principal
from semkat_access.auth.service import AuthService, ProfileFields
from semkat_access.db.models import AgentApplication, AppRole, ApplicationStatus, User
from semkat_access.db.repositories.applications import ApplicationRepo
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.errors import (
    InvalidTransition,
    NotFoundError,
    PolicyDenied,
    WorkflowInvariantViolation,
)
from semkat_access.observability.logging import get_logger
from semkat_access.policy.engine import Operation, Resource
from semkat_access.policy.store import SecuredStore
from semkat_access.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ApplicationFields:
    full_name: str
    phone: str
    email: str
    company: str | None = None
    license_number: str | None = None
    experience_years: int | None = None


@dataclass(frozen=True, slots=True)
class AgentCredentials:
    email: str
    password: str


class ApplicationWorkflow:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        actor: Principal,
    ) -> None:
        self._session = session
        self._settings = settings
        self._actor = actor

        self._store = SecuredStore(session, actor=actor)
        self._applications = ApplicationRepo(session)
        self._roles = RoleRepo(session)

    async def submit(self, fields: ApplicationFields) -> AgentApplication:
        app = await self._store.create_application(
            user_id=self._actor.user_id,
            full_name=fields.full_name,
            phone=fields.phone,
            email=fields.email,
            company=fields.company,
            license_number=fields.license_number,
            experience_years=fields.experience_years,
        )
        await self._session.commit()
        log.info("application_submitted", application_id=str(app.id), user_id=str(app.user_id))
        return app

    async def review(
        self,
        application_id: uuid.UUID,
        decision: ApplicationStatus,
        *,
        notes: str | None = None,
    ) -> AgentApplication:
        """
        Apply an admin decision. Repeating the decision already recorded is a no-op
        (approval re-ensures the agent role); a different decision on a reviewed
        application raises InvalidTransition.
        """

        if not decision.is_terminal:
            raise InvalidTransition("Decision must be approved or rejected")

        app = await self._load_for_review(application_id)
        await self._store.authorize(Resource.agent_applications, Operation.update, app)

        already_reviewed = app.status.is_terminal
        if already_reviewed and app.status is not decision:
            raise InvalidTransition()

        try:
            if not already_reviewed:
                await self._applications.mark_reviewed(
                    app, status=decision, reviewed_by=self._actor.user_id, notes=notes
                )
            # Re-approval re-ensures the role, repairing a grant that has gone missing.
            if decision is ApplicationStatus.approved:
                await self._grant_agent(app)
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            log.error(
                "application_review_failed",
                application_id=str(application_id),
                decision=decision.value,
                error=str(e),
            )
            raise WorkflowInvariantViolation() from e

        if already_reviewed:
            return app
        log.info(
            "application_reviewed",
            application_id=str(app.id),
            decision=decision.value,
            reviewed_by=str(self._actor.user_id),
        )
        return app

    async def register_agent_directly(
        self, credentials: AgentCredentials, profile: ProfileFields
    ) -> User:
        # Same privilege as inserting a role row directly.
        await self._store.authorize(
            Resource.user_roles,
            Operation.insert,
            SimpleNamespace(user_id=None, role=AppRole.agent),
        )
        auth = AuthService(session=self._session, settings=self._settings)
        try:
            user = await auth.create_principal(
                email=credentials.email, password=credentials.password, profile=profile
            )
            await self._roles.assign(
                user_id=user.id, role=AppRole.agent, approved_by=self._actor.user_id
            )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        log.info("agent_registered", user_id=str(user.id), by=str(self._actor.user_id))
        return user

    async def _load_for_review(self, application_id: uuid.UUID) -> AgentApplication:
        app = await self._applications.get(application_id, for_update=True)
        if app is not None:
            return app
        # Only an admin learns that the id does not exist.
        if await self._store.ctx.roles.has_role(self._actor.user_id, AppRole.admin):
            raise NotFoundError("Application not found")
        raise PolicyDenied()

    async def _grant_agent(self, app: AgentApplication) -> None:
        await self._roles.assign(
            user_id=app.user_id, role=AppRole.agent, approved_by=self._actor.user_id
        )


# --- Module Notes -----------------------------------------------------------
# The Policy Engine filters callers (admin-only update); this service only enforces the
# state machine and the atomicity of status change + role grant.
