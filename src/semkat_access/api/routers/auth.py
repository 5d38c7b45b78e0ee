"""
semkat_access.api.routers.auth

Auth subsystem endpoints (`/auth/v1`).

Responsibilities:
- Sign-up (principal + profile + default role), password sign-in, refresh, logout.
- Current user lookup and admin principal deletion.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_204_NO_CONTENT

from semkat_access.api.deps import db_session, settings_dep
from semkat_access.api.schemas import SessionOut, SignInRequest, SignUpRequest, UserOut
from semkat_access.auth.deps import get_principal, require_api_key
from semkat_access.auth.models import AuthSession, Principal
from semkat_access.auth.service import AuthService
from semkat_access.settings import Settings

router = APIRouter(
    prefix="/auth/v1",
    tags=["auth"],
    dependencies=[Depends(require_api_key)],
)


def _session_out(auth_session: AuthSession) -> SessionOut:
    return SessionOut(
        access_token=auth_session.access_token,
        token_type=auth_session.token_type,
        expires_at=auth_session.expires_at,
        user=UserOut(id=auth_session.user.user_id, email=auth_session.user.email),
    )


@router.post("/signup", response_model=SessionOut)
async def sign_up(
    body: SignUpRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> SessionOut:
    svc = AuthService(session=session, settings=settings)
    auth_session = await svc.sign_up(
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        redirect_to=body.redirect_to,
    )
    return _session_out(auth_session)


@router.post("/token", response_model=SessionOut)
async def sign_in_with_password(
    body: SignInRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> SessionOut:
    svc = AuthService(session=session, settings=settings)
    return _session_out(await svc.sign_in(email=body.email, password=body.password))


@router.post("/refresh", response_model=SessionOut)
async def refresh_session(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> SessionOut:
    svc = AuthService(session=session, settings=settings)
    return _session_out(await svc.refresh(principal))


@router.post("/logout", status_code=HTTP_204_NO_CONTENT)
async def logout(principal: Principal = Depends(get_principal)) -> Response:
    # Session tokens are stateless; the client drops its copy and notifies listeners.
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/user", response_model=UserOut)
async def current_user(principal: Principal = Depends(get_principal)) -> UserOut:
    return UserOut(id=principal.user_id, email=principal.email)


@router.delete("/admin/users/{user_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> Response:
    svc = AuthService(session=session, settings=settings)
    await svc.delete_principal(actor=principal, user_id=user_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
