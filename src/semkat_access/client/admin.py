"""
semkat_access.client.admin

Admin-facing client actions over the application workflow.

Responsibilities:
- List applications visible to the signed-in admin.
- Review an application and register agents directly, reporting outcomes as
  `ActionResult` values for display.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import httpx

from semkat_access.api.schemas import ApplicationOut
from semkat_access.auth.service import ProfileFields
from semkat_access.client.auth import AuthClient
from semkat_access.client.http import BackendClient
from semkat_access.db.models import ApplicationStatus
from semkat_access.errors import InvalidSessionError, SemkatError, WorkflowInvariantViolation
from semkat_access.observability.logging import get_logger
from semkat_access.services.workflow import AgentCredentials

log = get_logger(__name__)

REVIEW_FAILED = "Failed to update application"


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    message: str
    retriable: bool = False


class AdminConsole:
    def __init__(self, *, auth: AuthClient, backend: BackendClient) -> None:
        self._auth = auth
        self._backend = backend

    async def _token(self) -> str:
        session = await self._auth.get_session()
        if session is None:
            raise InvalidSessionError("Not signed in")
        return session.access_token

    async def list_applications(
        self, *, status: ApplicationStatus | None = None
    ) -> list[ApplicationOut]:
        # Newest first; an empty list when the caller may not see any.
        try:
            return await self._backend.list_applications(await self._token(), status=status)
        except SemkatError as e:
            log.error("list_applications_failed", error=e.message)
            return []

    async def review_application(
        self, application_id: uuid.UUID, decision: ApplicationStatus, *, notes: str | None = None
    ) -> ActionResult:
        try:
            await self._backend.review_application(
                await self._token(), application_id, decision, notes=notes
            )
        except WorkflowInvariantViolation as e:
            log.error("review_failed", application_id=str(application_id), error=e.message)
            return ActionResult(ok=False, message=REVIEW_FAILED, retriable=e.retriable)
        except (SemkatError, httpx.HTTPError) as e:
            log.error("review_failed", application_id=str(application_id), error=str(e))
            return ActionResult(ok=False, message=REVIEW_FAILED)
        return ActionResult(ok=True, message=f"Application {decision.value}")

    async def register_agent_directly(
        self,
        credentials: AgentCredentials,
        profile: ProfileFields,
        *,
        company: str | None = None,
    ) -> ActionResult:
        try:
            await self._backend.register_agent(
                await self._token(),
                email=credentials.email,
                password=credentials.password,
                full_name=profile.full_name or "",
                phone=profile.phone,
                company=company,
            )
        except SemkatError as e:
            return ActionResult(ok=False, message=e.message)
        except httpx.HTTPError as e:
            log.error("register_agent_failed", error=str(e))
            return ActionResult(ok=False, message="Network error", retriable=True)
        return ActionResult(ok=True, message="Agent registered successfully")
