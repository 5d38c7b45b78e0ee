"""
semkat_access.client.auth

Client-side auth state holder.

Responsibilities:
- Hold the current session and expose sign-in / sign-up / sign-out / refresh.
- Notify subscribers of auth-state changes (INITIAL_SESSION, SIGNED_IN, SIGNED_OUT,
  TOKEN_REFRESHED).
- Serialize every session read/write behind one lock.

Subscribers are invoked while that lock is held. An async subscriber that awaits
`get_session()` (directly or through a backing-store call) deadlocks; subscribers must
defer such work to a later event-loop turn.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import StrEnum

import httpx

from semkat_access.auth.models import AuthSession
from semkat_access.client.http import BackendClient
from semkat_access.db.models import AppRole
from semkat_access.errors import SemkatError, TransientRoleFetchFailure
from semkat_access.observability.logging import get_logger
from semkat_access.settings import Settings

log = get_logger(__name__)


class AuthChangeEvent(StrEnum):
    initial_session = "INITIAL_SESSION"
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"


AuthListener = Callable[[AuthChangeEvent, AuthSession | None], Awaitable[None] | None]


class Subscription:
    def __init__(self, owner: AuthClient, listener_id: int) -> None:
        self._owner = owner
        self._listener_id = listener_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        # Only the first call has an effect.
        if not self._active:
            return
        self._active = False
        self._owner._remove_listener(self._listener_id)


class AuthClient:
    def __init__(self, *, backend: BackendClient, settings: Settings) -> None:
        self._backend = backend
        self._settings = settings
        self._session: AuthSession | None = None
        self._lock = asyncio.Lock()
        self._listeners: dict[int, AuthListener] = {}
        self._ids = itertools.count(1)

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        listener_id = next(self._ids)
        self._listeners[listener_id] = listener
        return Subscription(self, listener_id)

    def _remove_listener(self, listener_id: int) -> None:
        self._listeners.pop(listener_id, None)

    async def _emit(self, event: AuthChangeEvent, session: AuthSession | None) -> None:
        # Caller holds self._lock.
        for listener in list(self._listeners.values()):
            try:
                result = listener(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("auth_listener_failed", auth_event=event.value)

    async def get_session(self) -> AuthSession | None:
        async with self._lock:
            if self._session is not None and self._session.expires_at <= datetime.now(UTC):
                log.info("session_expired", user_id=str(self._session.user.user_id))
                self._session = None
                await self._emit(AuthChangeEvent.signed_out, None)
            return self._session

    async def set_session(self, session: AuthSession | None) -> None:
        """Restore a persisted session (emits INITIAL_SESSION)."""
        async with self._lock:
            self._session = session
            await self._emit(AuthChangeEvent.initial_session, session)

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        async with self._lock:
            session = await self._backend.sign_in(email=email, password=password)
            self._session = session
            await self._emit(AuthChangeEvent.signed_in, session)
            return session

    async def sign_up(
        self, *, email: str, password: str, display_name: str | None = None
    ) -> AuthSession:
        async with self._lock:
            session = await self._backend.sign_up(
                email=email,
                password=password,
                full_name=display_name,
                redirect_to=self._settings.signup_redirect_url,
            )
            self._session = session
            await self._emit(AuthChangeEvent.signed_in, session)
            return session

    async def sign_out(self) -> None:
        async with self._lock:
            session, self._session = self._session, None
            try:
                if session is not None:
                    await self._backend.sign_out(session.access_token)
            except (SemkatError, httpx.HTTPError) as e:
                # The local session is gone either way.
                log.warning("sign_out_remote_failed", error=str(e))
            finally:
                await self._emit(AuthChangeEvent.signed_out, None)

    async def refresh_session(self) -> AuthSession | None:
        async with self._lock:
            if self._session is None:
                return None
            session = await self._backend.refresh(self._session.access_token)
            self._session = session
            await self._emit(AuthChangeEvent.token_refreshed, session)
            return session


class RpcRoleSource:
    """Computes a principal's effective role through the `get_user_role` RPC."""

    def __init__(self, *, auth: AuthClient, backend: BackendClient) -> None:
        self._auth = auth
        self._backend = backend

    async def get_user_role(self, user_id: uuid.UUID) -> AppRole:
        session = await self._auth.get_session()
        if session is None:
            raise TransientRoleFetchFailure("No active session")
        try:
            role = await self._backend.get_user_role(session.access_token, user_id)
        except SemkatError as e:
            raise TransientRoleFetchFailure(e.message) from e
        return role or AppRole.user
