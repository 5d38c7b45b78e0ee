"""
semkat_access.client.context

Session/role context: the client-side view of "who is signed in, and as what".

Responsibilities:
- Track the current principal, session token and effective role.
- Re-derive the effective role on every session change, without calling the backing
  store from inside an auth-change notification.
- Discard role results that arrive for a superseded session.
- Expose sign-in / sign-up / sign-out wrappers that surface errors as values.

All state lives on one event loop; there is a single writer and no locking.
"""

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from semkat_access.auth.models import AuthSession, Principal
from semkat_access.client.auth import AuthChangeEvent, AuthClient, Subscription
from semkat_access.db.models import AppRole
from semkat_access.errors import SemkatError
from semkat_access.observability.logging import get_logger

log = get_logger(__name__)


class RoleSource(Protocol):
    async def get_user_role(self, user_id: uuid.UUID) -> AppRole: ...


@dataclass(frozen=True, slots=True)
class SessionRoleState:
    principal: Principal | None = None
    session_token: str | None = None
    # None while unknown (no principal, or fetch in flight).
    effective_role: AppRole | None = None
    # True until the initial session determination has completed.
    loading: bool = True


@dataclass(frozen=True, slots=True)
class AuthResult:
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


StateListener = Callable[[SessionRoleState], None]


class SessionRoleContext:
    def __init__(self, *, auth: AuthClient, roles: RoleSource) -> None:
        self._auth = auth
        self._roles = roles

        self._state = SessionRoleState()
        self._listeners: list[StateListener] = []
        self._subscription: Subscription | None = None
        self._tasks: set[asyncio.Task[None]] = set()

        # Bumped on every session change; a role result is applied only if it was
        # requested under the current generation.
        self._generation = 0
        # Bumped on every auth notification; lets the initial query detect that a
        # notification overtook it.
        self._notifications = 0

        self._started = False
        self._disposed = False

    # state

    @property
    def state(self) -> SessionRoleState:
        return self._state

    @property
    def principal(self) -> Principal | None:
        return self._state.principal

    @property
    def session_token(self) -> str | None:
        return self._state.session_token

    @property
    def effective_role(self) -> AppRole | None:
        return self._state.effective_role

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _update(self, **changes: object) -> None:
        new = dataclasses.replace(self._state, **changes)
        if new == self._state:
            return
        self._state = new
        for listener in list(self._listeners):
            try:
                listener(new)
            except Exception:
                log.exception("state_listener_failed")

    # lifecycle

    async def start(self) -> None:
        """
        Subscribe to auth changes, then determine the current session. Returns once the
        initial determination is done (`loading` is False); the role may still be in
        flight.
        """

        if self._started:
            raise RuntimeError("SessionRoleContext already started")
        self._started = True

        self._subscription = self._auth.on_auth_state_change(self._on_auth_change)

        seen = self._notifications
        session = await self._auth.get_session()
        if self._disposed:
            return
        if self._notifications == seen:
            self._apply_session(session)
        # else: a notification already carried a session at least as recent.
        self._finish_loading()

    async def aclose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()

    async def __aenter__(self) -> SessionRoleContext:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # auth notifications

    def _on_auth_change(self, event: AuthChangeEvent, session: AuthSession | None) -> None:
        # Runs inside the auth client's dispatch; must not await it.
        if self._disposed:
            return
        self._notifications += 1
        log.debug("auth_state_changed", auth_event=event.value)
        self._apply_session(None if event is AuthChangeEvent.signed_out else session)
        self._finish_loading()

    def _apply_session(self, session: AuthSession | None) -> None:
        self._generation += 1
        if session is None:
            self._update(principal=None, session_token=None, effective_role=None)
            return

        current = self._state.principal
        same_principal = current is not None and current.user_id == session.user.user_id
        self._update(
            principal=session.user,
            session_token=session.access_token,
            # A token refresh keeps the known role until the new fetch lands.
            effective_role=self._state.effective_role if same_principal else None,
        )
        loop = asyncio.get_running_loop()
        loop.call_soon(self._spawn_role_fetch, session.user.user_id, self._generation)

    def _finish_loading(self) -> None:
        if self._state.loading:
            self._update(loading=False)

    # role fetch

    def _spawn_role_fetch(self, user_id: uuid.UUID, generation: int) -> None:
        if self._disposed or generation != self._generation:
            return
        task = asyncio.get_running_loop().create_task(self._fetch_role(user_id, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch_role(self, user_id: uuid.UUID, generation: int) -> None:
        try:
            role = await self._roles.get_user_role(user_id)
        except Exception as e:
            # Fail closed to the least-privileged role.
            log.warning("role_fetch_failed", user_id=str(user_id), error=str(e))
            role = AppRole.user

        if self._disposed or generation != self._generation:
            log.debug("stale_role_discarded", user_id=str(user_id))
            return
        self._update(effective_role=role)

    # auth actions

    async def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            await self._auth.sign_in_with_password(email=email, password=password)
        except SemkatError as e:
            return AuthResult(error=e.message)
        except httpx.HTTPError as e:
            log.warning("sign_in_failed", error=str(e))
            return AuthResult(error="Network error")
        return AuthResult()

    async def sign_up(
        self, email: str, password: str, display_name: str | None = None
    ) -> AuthResult:
        try:
            await self._auth.sign_up(email=email, password=password, display_name=display_name)
        except SemkatError as e:
            return AuthResult(error=e.message)
        except httpx.HTTPError as e:
            log.warning("sign_up_failed", error=str(e))
            return AuthResult(error="Network error")
        return AuthResult()

    async def sign_out(self) -> None:
        await self._auth.sign_out()


# --- Module Notes -----------------------------------------------------------
# The role fetch is scheduled with `loop.call_soon` from the notification handler: the
# auth client holds its lock while dispatching, and the role RPC needs that lock to read
# the session token.
