"""
semkat_access.client.http

HTTP client boundary to the Semkat access service.

Responsibilities:
- Attach the public API key and (when signed in) the bearer session token.
- Call the auth, RPC and REST endpoints and parse typed responses.
- Map error responses back onto the domain error taxonomy.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx

from semkat_access.api.schemas import (
    ApplicationOut,
    SessionOut,
    UserOut,
    UserRoleOut,
)
from semkat_access.auth.models import AuthSession, Principal
from semkat_access.db.models import AppRole, ApplicationStatus
from semkat_access.errors import (
    AuthError,
    ConflictError,
    InvalidSessionError,
    InvalidTransition,
    NotFoundError,
    PolicyDenied,
    SemkatError,
    WorkflowInvariantViolation,
)
from semkat_access.settings import Settings


def _to_session(out: SessionOut) -> AuthSession:
    return AuthSession(
        access_token=out.access_token,
        expires_at=out.expires_at,
        user=Principal(user_id=out.user.id, email=out.user.email),
        token_type=out.token_type,
    )


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        body = r.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message")

    if r.status_code == 401:
        raise InvalidSessionError(message)
    if r.status_code == 400:
        raise AuthError(message)
    if r.status_code == 403:
        raise PolicyDenied()
    if r.status_code == 404:
        raise NotFoundError(message)
    if r.status_code == 409:
        if body.get("error") == InvalidTransition.__name__:
            raise InvalidTransition(message)
        raise ConflictError(message)
    if r.status_code == 422:
        raise SemkatError("Invalid request")
    if r.status_code == 503 and body.get("error") == WorkflowInvariantViolation.__name__:
        raise WorkflowInvariantViolation(message)
    r.raise_for_status()


class BackendClient:
    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    @classmethod
    def from_settings(cls, settings: Settings) -> BackendClient:
        http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.client_timeout_seconds,
        )
        return cls(settings=settings, http=http)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self, token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._settings.public_api_key}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        token: str | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        r = await self._http.request(
            method, url, headers=self._headers(token), json=json, params=params
        )
        _raise_for_error(r)
        return r

    # auth

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
        redirect_to: str | None = None,
    ) -> AuthSession:
        r = await self._request(
            "POST",
            "/auth/v1/signup",
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "redirect_to": redirect_to,
            },
        )
        return _to_session(SessionOut.model_validate(r.json()))

    async def sign_in(self, *, email: str, password: str) -> AuthSession:
        r = await self._request(
            "POST", "/auth/v1/token", json={"email": email, "password": password}
        )
        return _to_session(SessionOut.model_validate(r.json()))

    async def refresh(self, token: str) -> AuthSession:
        r = await self._request("POST", "/auth/v1/refresh", token=token)
        return _to_session(SessionOut.model_validate(r.json()))

    async def sign_out(self, token: str) -> None:
        await self._request("POST", "/auth/v1/logout", token=token)

    # rpc

    async def get_user_role(self, token: str, user_id: uuid.UUID) -> AppRole | None:
        r = await self._request(
            "POST", "/rest/v1/rpc/get_user_role", token=token, json={"_user_id": str(user_id)}
        )
        data = r.json()
        return AppRole(data) if data else None

    async def has_role(self, token: str, user_id: uuid.UUID, role: AppRole) -> bool:
        r = await self._request(
            "POST",
            "/rest/v1/rpc/has_role",
            token=token,
            json={"_user_id": str(user_id), "_role": role.value},
        )
        return bool(r.json())

    # rest

    async def list_roles(
        self, token: str, *, user_id: uuid.UUID | None = None
    ) -> list[UserRoleOut]:
        params = {"user_id": str(user_id)} if user_id is not None else None
        r = await self._request("GET", "/rest/v1/user_roles", token=token, params=params)
        return [UserRoleOut.model_validate(x) for x in r.json()]

    async def list_applications(
        self, token: str, *, status: ApplicationStatus | None = None
    ) -> list[ApplicationOut]:
        params = {"status": status.value} if status is not None else None
        r = await self._request("GET", "/rest/v1/agent_applications", token=token, params=params)
        return [ApplicationOut.model_validate(x) for x in r.json()]

    async def submit_application(self, token: str, fields: dict[str, Any]) -> ApplicationOut:
        r = await self._request("POST", "/rest/v1/agent_applications", token=token, json=fields)
        return ApplicationOut.model_validate(r.json())

    async def review_application(
        self,
        token: str,
        application_id: uuid.UUID,
        decision: ApplicationStatus,
        *,
        notes: str | None = None,
    ) -> ApplicationOut:
        r = await self._request(
            "POST",
            f"/rest/v1/agent_applications/{application_id}/review",
            token=token,
            json={"decision": decision.value, "notes": notes},
        )
        return ApplicationOut.model_validate(r.json())

    async def register_agent(
        self,
        token: str,
        *,
        email: str,
        password: str,
        full_name: str,
        phone: str | None = None,
        company: str | None = None,
    ) -> UserOut:
        r = await self._request(
            "POST",
            "/rest/v1/agents",
            token=token,
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "phone": phone,
                "company": company,
            },
        )
        return UserOut.model_validate(r.json())


# --- Module Notes -----------------------------------------------------------
# Tests inject an `httpx.AsyncClient` over `httpx.ASGITransport(app=...)` so the client
# talks to the service in-process.
