"""
tests.test_policy

Policy engine rules in isolation (fake role checker) and through `SecuredStore`.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from semkat_access.auth.models import Principal
from semkat_access.db.models import AppRole
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.errors import ConflictError, NotFoundError, PolicyDenied
from semkat_access.policy.engine import (
    DEFAULT_RULES,
    Operation,
    PolicyContext,
    PolicyEngine,
    Resource,
)
from semkat_access.policy import store as store_module
from semkat_access.policy.store import SecuredStore


class FakeRoles:
    def __init__(self, grants: dict[uuid.UUID, set[AppRole]] | None = None) -> None:
        self.grants = grants or {}
        self.calls = 0

    async def has_role(self, user_id: uuid.UUID, role: AppRole) -> bool:
        self.calls += 1
        return role in self.grants.get(user_id, set())


def _principal(email: str = "u@example.com") -> Principal:
    return Principal(user_id=uuid.uuid4(), email=email)


def _row(user_id: uuid.UUID | None) -> SimpleNamespace:
    return SimpleNamespace(user_id=user_id)


engine = PolicyEngine()


@pytest.mark.asyncio
async def test_no_rule_means_deny() -> None:
    admin = _principal()
    ctx = PolicyContext(actor=admin, roles=FakeRoles({admin.user_id: {AppRole.admin}}))
    # Nothing grants delete on profiles or applications, not even to admins.
    assert engine.rules_for(Resource.profiles, Operation.delete) == ()
    assert not await engine.allows(ctx, Resource.profiles, Operation.delete, _row(admin.user_id))
    assert not await engine.allows(
        ctx, Resource.agent_applications, Operation.delete, _row(admin.user_id)
    )


@pytest.mark.asyncio
async def test_role_rows_visible_to_owner_or_admin() -> None:
    alice, bob, admin = _principal("a@x.io"), _principal("b@x.io"), _principal("root@x.io")
    roles = FakeRoles({admin.user_id: {AppRole.admin}})

    alice_ctx = PolicyContext(actor=alice, roles=roles)
    admin_ctx = PolicyContext(actor=admin, roles=roles)
    rows = [_row(alice.user_id), _row(bob.user_id)]

    assert await engine.filter_visible(alice_ctx, Resource.user_roles, rows) == rows[:1]
    assert await engine.filter_visible(admin_ctx, Resource.user_roles, rows) == rows


@pytest.mark.asyncio
async def test_only_admin_writes_roles() -> None:
    user, admin = _principal(), _principal()
    roles = FakeRoles({admin.user_id: {AppRole.admin}})
    # Even a row for the caller's own id.
    own = SimpleNamespace(user_id=user.user_id, role=AppRole.admin)

    for op in (Operation.insert, Operation.update, Operation.delete):
        with pytest.raises(PolicyDenied):
            await engine.authorize(PolicyContext(user, roles), Resource.user_roles, op, own)
        await engine.authorize(PolicyContext(admin, roles), Resource.user_roles, op, own)


@pytest.mark.asyncio
async def test_profiles_readable_by_anyone_writable_by_owner() -> None:
    owner, other = _principal(), _principal()
    row = _row(owner.user_id)
    anon = PolicyContext(actor=None, roles=FakeRoles())

    assert await engine.allows(anon, Resource.profiles, Operation.read, row)
    assert not await engine.allows(anon, Resource.profiles, Operation.update, row)
    assert await engine.allows(
        PolicyContext(owner, FakeRoles()), Resource.profiles, Operation.update, row
    )
    assert not await engine.allows(
        PolicyContext(other, FakeRoles()), Resource.profiles, Operation.update, row
    )
    assert not await engine.allows(
        PolicyContext(other, FakeRoles()), Resource.profiles, Operation.insert, row
    )


@pytest.mark.asyncio
async def test_applications_rules() -> None:
    applicant, other, admin = _principal(), _principal(), _principal()
    roles = FakeRoles({admin.user_id: {AppRole.admin}})
    row = _row(applicant.user_id)

    applicant_ctx = PolicyContext(applicant, roles)
    other_ctx = PolicyContext(other, roles)
    admin_ctx = PolicyContext(admin, roles)

    assert await engine.allows(applicant_ctx, Resource.agent_applications, Operation.insert, row)
    assert not await engine.allows(other_ctx, Resource.agent_applications, Operation.insert, row)

    assert await engine.allows(applicant_ctx, Resource.agent_applications, Operation.read, row)
    assert not await engine.allows(other_ctx, Resource.agent_applications, Operation.read, row)
    assert await engine.allows(admin_ctx, Resource.agent_applications, Operation.read, row)

    # The applicant may not review their own application.
    assert not await engine.allows(
        applicant_ctx, Resource.agent_applications, Operation.update, row
    )
    assert await engine.allows(admin_ctx, Resource.agent_applications, Operation.update, row)


@pytest.mark.asyncio
async def test_roles_are_checked_on_every_access() -> None:
    user = _principal()
    roles = FakeRoles()
    ctx = PolicyContext(user, roles)
    row = _row(uuid.uuid4())

    assert not await engine.allows(ctx, Resource.agent_applications, Operation.update, row)
    roles.grants[user.user_id] = {AppRole.admin}
    assert await engine.allows(ctx, Resource.agent_applications, Operation.update, row)
    roles.grants[user.user_id] = set()
    assert not await engine.allows(ctx, Resource.agent_applications, Operation.update, row)


def test_rule_names_are_unique() -> None:
    names = [r.name for r in DEFAULT_RULES]
    assert len(names) == len(set(names))


@pytest.mark.asyncio
async def test_store_denies_role_grant_to_non_admin(session_factory, make_principal) -> None:
    user = await make_principal("climber@example.com")
    async with session_factory() as session:
        with pytest.raises(PolicyDenied):
            await SecuredStore(session, actor=user).grant_role(
                user_id=user.user_id, role=AppRole.admin
            )
        await session.rollback()
        assert not await RoleRepo(session).has_role(user.user_id, AppRole.admin)


@pytest.mark.asyncio
async def test_store_admin_grants_and_revokes(session_factory, make_principal) -> None:
    admin = await make_principal("root@example.com", AppRole.admin)
    user = await make_principal("member@example.com")
    async with session_factory() as session:
        store = SecuredStore(session, actor=admin)
        granted = await store.grant_role(user_id=user.user_id, role=AppRole.agent)
        await session.commit()
        assert granted.approved_by == admin.user_id

        assert await store.revoke_role(user_id=user.user_id, role=AppRole.agent) is True
        assert await store.revoke_role(user_id=user.user_id, role=AppRole.agent) is False
        await session.commit()
        assert await RoleRepo(session).get_effective_role(user.user_id) is AppRole.user


@pytest.mark.asyncio
async def test_store_grant_logs_only_real_inserts(
    session_factory, make_principal, monkeypatch
) -> None:
    events: list[str] = []

    class _Recorder:
        def info(self, event: str, **_: object) -> None:
            events.append(event)

    monkeypatch.setattr(store_module, "log", _Recorder())
    admin = await make_principal("root@example.com", AppRole.admin)
    user = await make_principal("member@example.com")
    async with session_factory() as session:
        store = SecuredStore(session, actor=admin)
        await store.grant_role(user_id=user.user_id, role=AppRole.agent)
        await store.grant_role(user_id=user.user_id, role=AppRole.agent)
        await session.commit()
    assert events == ["role_granted", "role_already_present"]


@pytest.mark.asyncio
async def test_store_scopes_application_listing_before_limit(
    session_factory, make_principal
) -> None:
    mine = await make_principal("mine@example.com")
    other = await make_principal("busy@example.com")
    async with session_factory() as session:
        own = await SecuredStore(session, actor=mine).create_application(
            user_id=mine.user_id, full_name="Mine", phone="1", email="mine@example.com"
        )
        for _ in range(3):
            await SecuredStore(session, actor=other).create_application(
                user_id=other.user_id, full_name="Busy", phone="2", email="busy@example.com"
            )
        await session.commit()

        rows = await SecuredStore(session, actor=mine).list_applications(limit=1)
        assert [r.id for r in rows] == [own.id]

@pytest.mark.asyncio
async def test_store_lists_only_own_roles(session_factory, make_principal) -> None:
    user = await make_principal("mine@example.com")
    await make_principal("theirs@example.com", AppRole.agent)
    async with session_factory() as session:
        rows = await SecuredStore(session, actor=user).list_roles()
        assert {r.user_id for r in rows} == {user.user_id}


@pytest.mark.asyncio
async def test_store_profile_rules(session_factory, make_principal) -> None:
    owner = await make_principal("owner@example.com")
    other = await make_principal("other@example.com")
    async with session_factory() as session:
        # Anonymous readers see every profile.
        visible = await SecuredStore(session, actor=None).list_profiles()
        assert {p.user_id for p in visible} == {owner.user_id, other.user_id}

        with pytest.raises(PolicyDenied):
            await SecuredStore(session, actor=other).update_profile(owner.user_id, phone="1")

        updated = await SecuredStore(session, actor=owner).update_profile(
            owner.user_id, phone="555-0100"
        )
        await session.commit()
        assert updated.phone == "555-0100"

        # Sign-up already created the profile.
        with pytest.raises(ConflictError):
            await SecuredStore(session, actor=owner).create_profile(user_id=owner.user_id)
        with pytest.raises(NotFoundError):
            await SecuredStore(session, actor=owner).get_profile(uuid.uuid4())
