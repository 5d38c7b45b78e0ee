"""
semkat_access.api.routers.applications

Agent application endpoints (`/rest/v1`).

Responsibilities:
- Submit and list applications (listing filtered by policy).
- Review an application (admin) and register agents directly (admin).
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.api.deps import db_session, settings_dep
from semkat_access.api.schemas import (
    AgentRegistrationRequest,
    ApplicationCreateRequest,
    ApplicationOut,
    ReviewRequest,
    UserOut,
)
from semkat_access.auth.deps import get_principal, require_api_key
from semkat_access.auth.models import Principal
from semkat_access.auth.service import ProfileFields
from semkat_access.db.models import ApplicationStatus
from semkat_access.policy.store import SecuredStore
from semkat_access.services.workflow import (
    AgentCredentials,
    ApplicationFields,
    ApplicationWorkflow,
)
from semkat_access.settings import Settings

router = APIRouter(
    prefix="/rest/v1",
    tags=["applications"],
    dependencies=[Depends(require_api_key)],
)


@router.get("/agent_applications", response_model=list[ApplicationOut])
async def list_applications(
    status: ApplicationStatus | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[ApplicationOut]:
    rows = await SecuredStore(session, actor=principal).list_applications(
        status=status, limit=limit
    )
    return [ApplicationOut.model_validate(a) for a in rows]


@router.get("/agent_applications/{application_id}", response_model=ApplicationOut)
async def get_application(
    application_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ApplicationOut:
    app = await SecuredStore(session, actor=principal).get_application(application_id)
    return ApplicationOut.model_validate(app)


@router.post("/agent_applications", response_model=ApplicationOut)
async def submit_application(
    body: ApplicationCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> ApplicationOut:
    workflow = ApplicationWorkflow(session=session, settings=settings, actor=principal)
    app = await workflow.submit(ApplicationFields(**body.model_dump()))
    return ApplicationOut.model_validate(app)


@router.post("/agent_applications/{application_id}/review", response_model=ApplicationOut)
async def review_application(
    application_id: uuid.UUID,
    body: ReviewRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> ApplicationOut:
    workflow = ApplicationWorkflow(session=session, settings=settings, actor=principal)
    app = await workflow.review(application_id, body.decision, notes=body.notes)
    return ApplicationOut.model_validate(app)


@router.post("/agents", response_model=UserOut)
async def register_agent(
    body: AgentRegistrationRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> UserOut:
    workflow = ApplicationWorkflow(session=session, settings=settings, actor=principal)
    user = await workflow.register_agent_directly(
        AgentCredentials(email=body.email, password=body.password),
        ProfileFields(full_name=body.full_name, phone=body.phone),
    )
    return UserOut(id=user.id, email=user.email)


# --- Module Notes -----------------------------------------------------------
# Unlike a client-side sign-up, direct registration never replaces the admin's own
# session: the new principal is created server-side in the admin's transaction.
