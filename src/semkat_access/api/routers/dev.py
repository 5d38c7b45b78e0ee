from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from semkat_access.api.deps import db_session, settings_dep
from semkat_access.api.schemas import RoleGrantRequest, UserRoleOut
from semkat_access.auth.deps import require_api_key
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.db.repositories.users import UserRepo
from semkat_access.observability.logging import get_logger
from semkat_access.settings import Settings

router = APIRouter(
    prefix="/v1/dev",
    tags=["dev"],
    dependencies=[Depends(require_api_key)],
)

log = get_logger(__name__)


@router.post("/roles", response_model=UserRoleOut)
async def bootstrap_role(
    body: RoleGrantRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> UserRoleOut:
    # Seeds the first admin locally; there is no policy-checked path to do that.
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")
    if await UserRepo(session).get(body.user_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")

    assignment = await RoleRepo(session).assign(user_id=body.user_id, role=body.role)
    await session.commit()
    log.warning("dev_role_granted", user_id=str(body.user_id), role=body.role.value)
    return UserRoleOut.model_validate(assignment)
