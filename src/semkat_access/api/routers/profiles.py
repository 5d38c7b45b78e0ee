from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.api.deps import db_session
from semkat_access.api.schemas import ProfileCreateRequest, ProfileOut, ProfilePatchRequest
from semkat_access.auth.deps import get_optional_principal, get_principal, require_api_key
from semkat_access.auth.models import Principal
from semkat_access.policy.store import SecuredStore

router = APIRouter(
    prefix="/rest/v1/profiles",
    tags=["profiles"],
    dependencies=[Depends(require_api_key)],
)


@router.get("", response_model=list[ProfileOut])
async def list_profiles(
    limit: int = Query(default=200, ge=1, le=1000),
    principal: Principal | None = Depends(get_optional_principal),
    session: AsyncSession = Depends(db_session),
) -> list[ProfileOut]:
    rows = await SecuredStore(session, actor=principal).list_profiles(limit=limit)
    return [ProfileOut.model_validate(p) for p in rows]


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(
    user_id: uuid.UUID,
    principal: Principal | None = Depends(get_optional_principal),
    session: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await SecuredStore(session, actor=principal).get_profile(user_id)
    return ProfileOut.model_validate(profile)


@router.post("", response_model=ProfileOut)
async def create_profile(
    body: ProfileCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await SecuredStore(session, actor=principal).create_profile(
        user_id=body.user_id,
        full_name=body.full_name,
        phone=body.phone,
        avatar_url=body.avatar_url,
    )
    await session.commit()
    return ProfileOut.model_validate(profile)


@router.patch("/{user_id}", response_model=ProfileOut)
async def update_profile(
    user_id: uuid.UUID,
    body: ProfilePatchRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await SecuredStore(session, actor=principal).update_profile(
        user_id,
        full_name=body.full_name,
        phone=body.phone,
        avatar_url=body.avatar_url,
    )
    await session.commit()
    return ProfileOut.model_validate(profile)
