"""
semkat_access.policy.engine

Declarative row-level authorization rules.

Responsibilities:
- Describe one rule per (resource, operation set) as an async predicate over
  (acting principal, target row).
- Evaluate deny-by-default: an access is allowed iff at least one matching rule holds.
- Filter read results and reject denied writes with a generic `PolicyDenied`.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from semkat_access.auth.models import Principal
from semkat_access.db.models import AppRole
from semkat_access.errors import PolicyDenied
from semkat_access.observability.logging import get_logger

log = get_logger(__name__)


class Resource(enum.StrEnum):
    user_roles = "user_roles"
    profiles = "profiles"
    agent_applications = "agent_applications"


class Operation(enum.StrEnum):
    read = "read"
    insert = "insert"
    update = "update"
    delete = "delete"


class RoleChecker(Protocol):
    async def has_role(self, user_id: uuid.UUID, role: AppRole) -> bool: ...


@dataclass(frozen=True, slots=True)
class PolicyContext:
    # `actor` is None for anonymous requests (public API key only).
    actor: Principal | None
    roles: RoleChecker


Predicate = Callable[[PolicyContext, Any], Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class PolicyRule:
    name: str
    resource: Resource
    operations: frozenset[Operation]
    predicate: Predicate


async def always(ctx: PolicyContext, row: Any) -> bool:
    return True


async def is_owner(ctx: PolicyContext, row: Any) -> bool:
    return ctx.actor is not None and row.user_id == ctx.actor.user_id


def holds_role(role: AppRole) -> Predicate:
    async def predicate(ctx: PolicyContext, row: Any) -> bool:
        if ctx.actor is None:
            return False
        return await ctx.roles.has_role(ctx.actor.user_id, role)

    predicate.__name__ = f"holds_role_{role.value}"
    return predicate


def _ops(*ops: Operation) -> frozenset[Operation]:
    return frozenset(ops)


_ADMIN = holds_role(AppRole.admin)

DEFAULT_RULES: tuple[PolicyRule, ...] = (
    # user_roles
    PolicyRule(
        "Users can view their own roles",
        Resource.user_roles,
        _ops(Operation.read),
        is_owner,
    ),
    PolicyRule(
        "Admins can view all roles",
        Resource.user_roles,
        _ops(Operation.read),
        _ADMIN,
    ),
    PolicyRule(
        "Admins can manage roles",
        Resource.user_roles,
        _ops(Operation.insert, Operation.update, Operation.delete),
        _ADMIN,
    ),
    # profiles
    PolicyRule(
        "Users can view all profiles",
        Resource.profiles,
        _ops(Operation.read),
        always,
    ),
    PolicyRule(
        "Users can update their own profile",
        Resource.profiles,
        _ops(Operation.update),
        is_owner,
    ),
    PolicyRule(
        "Users can insert their own profile",
        Resource.profiles,
        _ops(Operation.insert),
        is_owner,
    ),
    # agent_applications
    PolicyRule(
        "Users can view their own applications",
        Resource.agent_applications,
        _ops(Operation.read),
        is_owner,
    ),
    PolicyRule(
        "Users can create applications",
        Resource.agent_applications,
        _ops(Operation.insert),
        is_owner,
    ),
    PolicyRule(
        "Admins can view all applications",
        Resource.agent_applications,
        _ops(Operation.read),
        _ADMIN,
    ),
    PolicyRule(
        "Admins can update applications",
        Resource.agent_applications,
        _ops(Operation.update),
        _ADMIN,
    ),
)


class PolicyEngine:
    def __init__(self, rules: Iterable[PolicyRule] = DEFAULT_RULES) -> None:
        self._index: dict[tuple[Resource, Operation], tuple[PolicyRule, ...]] = {}
        for rule in rules:
            for op in rule.operations:
                key = (rule.resource, op)
                self._index[key] = (*self._index.get(key, ()), rule)

    def rules_for(self, resource: Resource, operation: Operation) -> tuple[PolicyRule, ...]:
        return self._index.get((resource, operation), ())

    async def allows(
        self, ctx: PolicyContext, resource: Resource, operation: Operation, row: Any
    ) -> bool:
        # Evaluated on every access; nothing is cached between calls.
        for rule in self.rules_for(resource, operation):
            if await rule.predicate(ctx, row):
                return True
        return False

    async def authorize(
        self, ctx: PolicyContext, resource: Resource, operation: Operation, row: Any
    ) -> None:
        if await self.allows(ctx, resource, operation, row):
            return
        log.info(
            "policy_denied",
            resource=resource.value,
            operation=operation.value,
            actor=str(ctx.actor.user_id) if ctx.actor else None,
        )
        raise PolicyDenied()

    async def filter_visible(
        self, ctx: PolicyContext, resource: Resource, rows: Sequence[Any]
    ) -> list[Any]:
        return [row for row in rows if await self.allows(ctx, resource, Operation.read, row)]


default_engine = PolicyEngine()


# --- Module Notes -----------------------------------------------------------
# Insert rules check the new row; update/delete rules check the existing row.
# Role predicates read through `PolicyContext.roles` (the privileged reader), never
# through this engine.
