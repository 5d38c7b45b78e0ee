"""
semkat_access.auth.deps

FastAPI dependency functions for authentication.

Responsibilities:
- Require the public API key on every backing-store request.
- Convert a bearer token into a typed `Principal` (or None for anonymous reads).
"""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED

from semkat_access.api.deps import db_session, settings_dep
from semkat_access.auth.models import Principal
from semkat_access.auth.service import AuthService
from semkat_access.errors import InvalidSessionError
from semkat_access.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def require_api_key(
    apikey: str | None = Header(default=None),
    settings: Settings = Depends(settings_dep),
) -> None:
    if apikey is None or not hmac.compare_digest(apikey, settings.public_api_key):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid API key")


async def get_optional_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> Principal | None:
    if creds is None or not creds.credentials:
        return None
    # InvalidSessionError propagates to the app-level handler (401).
    return await AuthService(session=session, settings=settings).principal_from_token(
        creds.credentials
    )


async def get_principal(
    principal: Principal | None = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise InvalidSessionError("Missing bearer token")
    return principal


# --- Module Notes -----------------------------------------------------------
# Authorization is not decided here: routers hand the principal to `SecuredStore` or
# the workflow service, which consult the Policy Engine per row.
