"""
semkat_access.db.repositories.applications

Repository for `AgentApplication` entities.

Responsibilities:
- Create applications in `pending`.
- Fetch (optionally row-locked) and list applications newest-first.
- Persist a review (status + reviewer + timestamp) in one place.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.db.models import AgentApplication, ApplicationStatus, utcnow


class ApplicationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        full_name: str,
        phone: str,
        email: str,
        company: str | None = None,
        license_number: str | None = None,
        experience_years: int | None = None,
    ) -> AgentApplication:
        app = AgentApplication(
            user_id=user_id,
            full_name=full_name,
            phone=phone,
            email=email,
            company=company,
            license_number=license_number,
            experience_years=experience_years,
            status=ApplicationStatus.pending,
        )
        self._session.add(app)
        await self._session.flush()
        return app

    async def get(
        self, application_id: uuid.UUID, *, for_update: bool = False
    ) -> AgentApplication | None:
        # Reviews lock the row so two admins cannot both move it out of `pending`.
        return await self._session.get(
            AgentApplication, application_id, with_for_update=for_update or None
        )

    async def list_recent(
        self,
        *,
        status: ApplicationStatus | None = None,
        user_id: uuid.UUID | None = None,
        limit: int = 200,
    ) -> list[AgentApplication]:
        stmt = select(AgentApplication)
        if status is not None:
            stmt = stmt.where(AgentApplication.status == status)
        if user_id is not None:
            stmt = stmt.where(AgentApplication.user_id == user_id)
        stmt = stmt.order_by(desc(AgentApplication.created_at)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def mark_reviewed(
        self,
        app: AgentApplication,
        *,
        status: ApplicationStatus,
        reviewed_by: uuid.UUID,
        notes: str | None = None,
    ) -> AgentApplication:
        app.status = status
        app.reviewed_by = reviewed_by
        app.reviewed_at = utcnow()
        if notes is not None:
            app.notes = notes
        await self._session.flush()
        return app


# --- Module Notes -----------------------------------------------------------
# Transition rules (terminal states, role grant on approval) live in
# `semkat_access.services.workflow`; this repo only writes what it is told.
