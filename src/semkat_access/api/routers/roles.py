from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_204_NO_CONTENT

from semkat_access.api.deps import db_session
from semkat_access.api.schemas import RoleGrantRequest, UserRoleOut
from semkat_access.auth.deps import get_principal, require_api_key
from semkat_access.auth.models import Principal
from semkat_access.db.models import AppRole
from semkat_access.policy.store import SecuredStore

router = APIRouter(
    prefix="/rest/v1/user_roles",
    tags=["roles"],
    dependencies=[Depends(require_api_key)],
)


@router.get("", response_model=list[UserRoleOut])
async def list_roles(
    user_id: uuid.UUID | None = None,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> list[UserRoleOut]:
    # Non-admins only ever see their own rows.
    rows = await SecuredStore(session, actor=principal).list_roles(user_id=user_id)
    return [UserRoleOut.model_validate(r) for r in rows]


@router.post("", response_model=UserRoleOut)
async def grant_role(
    body: RoleGrantRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserRoleOut:
    assignment = await SecuredStore(session, actor=principal).grant_role(
        user_id=body.user_id, role=body.role
    )
    await session.commit()
    return UserRoleOut.model_validate(assignment)


@router.delete("/{user_id}/{role}", status_code=HTTP_204_NO_CONTENT)
async def revoke_role(
    user_id: uuid.UUID,
    role: AppRole,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> Response:
    await SecuredStore(session, actor=principal).revoke_role(user_id=user_id, role=role)
    await session.commit()
    return Response(status_code=HTTP_204_NO_CONTENT)
