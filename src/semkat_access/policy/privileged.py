"""
semkat_access.policy.privileged

Trusted role read path used inside policy predicates and by the RPC endpoints.

Responsibilities:
- Expose exactly two reads: `has_role` and `get_effective_role`.
- Read the role table directly, never through `PolicyEngine`, so that checking
  "is the caller an admin" can't be blocked by a rule that itself requires admin.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.db.models import AppRole
from semkat_access.db.repositories.roles import RoleRepo


class PrivilegedRoleReader:
    """
    Runs with the service's own privileges, not the caller's. Side-effect free.
    """

    __slots__ = ("_roles",)

    def __init__(self, session: AsyncSession) -> None:
        self._roles = RoleRepo(session)

    async def has_role(self, user_id: uuid.UUID, role: AppRole) -> bool:
        return await self._roles.has_role(user_id, role)

    async def get_effective_role(self, user_id: uuid.UUID) -> AppRole:
        return await self._roles.get_effective_role(user_id)


# --- Module Notes -----------------------------------------------------------
# Do not add write methods here. Writes to `user_roles` go through `SecuredStore`
# (policy-checked) or the workflow service.
