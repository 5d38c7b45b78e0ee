"""
semkat_access.api.routers.rpc

Privileged role functions exposed as RPC endpoints (`/rest/v1/rpc`).

Responsibilities:
- `get_user_role`: highest-precedence role of a principal (admin > agent > user).
- `has_role`: whether a principal holds an exact role.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.api.deps import db_session
from semkat_access.api.schemas import HasRoleQuery, RoleQuery
from semkat_access.auth.deps import get_principal, require_api_key
from semkat_access.db.models import AppRole
from semkat_access.policy.privileged import PrivilegedRoleReader

router = APIRouter(
    prefix="/rest/v1/rpc",
    tags=["rpc"],
    dependencies=[Depends(require_api_key), Depends(get_principal)],
)


@router.post("/get_user_role")
async def get_user_role(
    body: RoleQuery,
    session: AsyncSession = Depends(db_session),
) -> AppRole:
    return await PrivilegedRoleReader(session).get_effective_role(body.user_id)


@router.post("/has_role")
async def has_role(
    body: HasRoleQuery,
    session: AsyncSession = Depends(db_session),
) -> bool:
    return await PrivilegedRoleReader(session).has_role(body.user_id, body.role)


# --- Module Notes -----------------------------------------------------------
# These run with the service's privileges, like the SECURITY DEFINER functions they
# replace; any signed-in principal may call them.
