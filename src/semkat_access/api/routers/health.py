"""
semkat_access.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Liveness probe (`/healthz`) with the running version.
- Readiness probe (`/readyz`): the database answers and the role table exists.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access import __version__
from semkat_access.api.deps import db_session
from semkat_access.db.models import UserRole

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    # Every policy decision reads user_roles; not ready until it can be queried.
    await session.execute(select(UserRole.id).limit(1))
    return {"status": "ready"}
