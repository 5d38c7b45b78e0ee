"""
tests.test_api

HTTP surface: API key gate, auth endpoints, RPC role functions, policy-filtered REST
resources and error mapping.
"""

from __future__ import annotations

import uuid

import httpx
import pytest
from conftest import bearer, sign_up


async def _make_admin(http: httpx.AsyncClient, email: str = "root@example.com") -> dict:
    session = await sign_up(http, email)
    r = await http.post(
        "/v1/dev/roles", json={"user_id": session["user"]["id"], "role": "admin"}
    )
    assert r.status_code == 200, r.text
    return session


@pytest.mark.asyncio
async def test_api_key_is_required(http: httpx.AsyncClient) -> None:
    r = await http.get("/rest/v1/profiles", headers={"apikey": "wrong"})
    assert r.status_code == 401

    r = await http.post(
        "/auth/v1/token",
        json={"email": "a@example.com", "password": "secret123"},
        headers={"apikey": ""},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_sign_up_then_sign_in(http: httpx.AsyncClient) -> None:
    created = await sign_up(http, "Person@Example.com")
    assert created["user"]["email"] == "person@example.com"
    assert created["token_type"] == "bearer"

    r = await http.post(
        "/auth/v1/token", json={"email": "person@example.com", "password": "secret123"}
    )
    assert r.status_code == 200
    session = r.json()

    r = await http.get("/auth/v1/user", headers=bearer(session))
    assert r.status_code == 200
    assert r.json()["id"] == created["user"]["id"]

    r = await http.post("/auth/v1/refresh", headers=bearer(session))
    assert r.status_code == 200
    assert r.json()["user"]["id"] == created["user"]["id"]

    r = await http.post("/auth/v1/logout", headers=bearer(session))
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_auth_errors(http: httpx.AsyncClient) -> None:
    await sign_up(http, "person@example.com")

    r = await http.post(
        "/auth/v1/signup", json={"email": "person@example.com", "password": "secret123"}
    )
    assert r.status_code == 400
    assert r.json() == {"error": "AuthError", "message": "User already registered"}

    r = await http.post(
        "/auth/v1/token", json={"email": "person@example.com", "password": "wrong-pass"}
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid login credentials"

    r = await http.post(
        "/auth/v1/signup", json={"email": "short@example.com", "password": "abc"}
    )
    assert r.status_code == 400
    assert "at least 6" in r.json()["message"]

    r = await http.get("/auth/v1/user", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["error"] == "InvalidSessionError"

    r = await http.get("/auth/v1/user")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_rpc_role_functions(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    user = await sign_up(http, "member@example.com")
    user_id = user["user"]["id"]

    r = await http.post(
        "/rest/v1/rpc/get_user_role", json={"_user_id": user_id}, headers=bearer(user)
    )
    assert r.status_code == 200
    assert r.json() == "user"

    r = await http.post(
        "/rest/v1/rpc/get_user_role",
        json={"_user_id": admin["user"]["id"]},
        headers=bearer(user),
    )
    assert r.json() == "admin"

    r = await http.post(
        "/rest/v1/rpc/has_role",
        json={"_user_id": user_id, "_role": "agent"},
        headers=bearer(user),
    )
    assert r.json() is False

    r = await http.post("/rest/v1/rpc/get_user_role", json={"_user_id": user_id})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_role_rows_are_policy_filtered(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    user = await sign_up(http, "member@example.com")
    user_id = user["user"]["id"]

    r = await http.get("/rest/v1/user_roles", headers=bearer(user))
    assert r.status_code == 200
    assert {row["user_id"] for row in r.json()} == {user_id}

    r = await http.get("/rest/v1/user_roles", headers=bearer(admin))
    assert {row["user_id"] for row in r.json()} == {user_id, admin["user"]["id"]}

    # Self-promotion is denied with a generic message.
    r = await http.post(
        "/rest/v1/user_roles", json={"user_id": user_id, "role": "admin"}, headers=bearer(user)
    )
    assert r.status_code == 403
    assert r.json() == {"error": "PolicyDenied", "message": "permission denied"}

    r = await http.post(
        "/rest/v1/user_roles", json={"user_id": user_id, "role": "agent"}, headers=bearer(admin)
    )
    assert r.status_code == 200
    assert r.json()["approved_by"] == admin["user"]["id"]

    r = await http.delete(f"/rest/v1/user_roles/{user_id}/agent", headers=bearer(user))
    assert r.status_code == 403
    r = await http.delete(f"/rest/v1/user_roles/{user_id}/agent", headers=bearer(admin))
    assert r.status_code == 204
    r = await http.delete(f"/rest/v1/user_roles/{user_id}/agent", headers=bearer(admin))
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_profiles(http: httpx.AsyncClient) -> None:
    owner = await sign_up(http, "owner@example.com")
    other = await sign_up(http, "other@example.com")
    owner_id = owner["user"]["id"]

    # Readable without a session.
    r = await http.get("/rest/v1/profiles")
    assert r.status_code == 200
    assert len(r.json()) == 2

    r = await http.patch(
        f"/rest/v1/profiles/{owner_id}", json={"phone": "555"}, headers=bearer(other)
    )
    assert r.status_code == 403

    r = await http.patch(
        f"/rest/v1/profiles/{owner_id}", json={"phone": "555"}, headers=bearer(owner)
    )
    assert r.status_code == 200
    assert r.json()["phone"] == "555"
    assert r.json()["full_name"] == "owner@example.com"

    r = await http.get(f"/rest/v1/profiles/{uuid.uuid4()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_application_review_over_http(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    applicant = await sign_up(http, "ada@example.com")

    r = await http.post(
        "/rest/v1/agent_applications",
        json={"full_name": "Ada", "phone": "555-0100", "email": "ada@example.com"},
        headers=bearer(applicant),
    )
    assert r.status_code == 200
    application = r.json()
    assert application["status"] == "pending"
    review_url = f"/rest/v1/agent_applications/{application['id']}/review"

    r = await http.post(review_url, json={"decision": "approved"}, headers=bearer(applicant))
    assert r.status_code == 403

    r = await http.post(review_url, json={"decision": "approved"}, headers=bearer(admin))
    assert r.status_code == 200
    assert r.json()["status"] == "approved"
    assert r.json()["reviewed_by"] == admin["user"]["id"]

    r = await http.post(review_url, json={"decision": "rejected"}, headers=bearer(admin))
    assert r.status_code == 409
    assert r.json()["error"] == "InvalidTransition"

    r = await http.post(
        "/rest/v1/rpc/get_user_role",
        json={"_user_id": applicant["user"]["id"]},
        headers=bearer(applicant),
    )
    assert r.json() == "agent"

    r = await http.get(
        f"/rest/v1/agent_applications/{application['id']}", headers=bearer(applicant)
    )
    assert r.status_code == 200

    outsider = await sign_up(http, "outsider@example.com")
    r = await http.get(
        f"/rest/v1/agent_applications/{application['id']}", headers=bearer(outsider)
    )
    assert r.status_code == 404
    r = await http.get("/rest/v1/agent_applications", headers=bearer(outsider))
    assert r.json() == []


@pytest.mark.asyncio
async def test_failed_grant_maps_to_retriable_error(http: httpx.AsyncClient, monkeypatch) -> None:
    from semkat_access.db.repositories.roles import RoleRepo

    admin = await _make_admin(http)
    applicant = await sign_up(http, "ada@example.com")
    r = await http.post(
        "/rest/v1/agent_applications",
        json={"full_name": "Ada", "phone": "555-0100", "email": "ada@example.com"},
        headers=bearer(applicant),
    )
    application_id = r.json()["id"]

    async def broken_assign(self, *, user_id, role, approved_by=None):
        raise RuntimeError("role table unavailable")

    monkeypatch.setattr(RoleRepo, "assign", broken_assign)
    r = await http.post(
        f"/rest/v1/agent_applications/{application_id}/review",
        json={"decision": "approved"},
        headers=bearer(admin),
    )
    assert r.status_code == 503
    assert r.json() == {
        "error": "WorkflowInvariantViolation",
        "message": "Failed to update application",
        "retriable": True,
    }

    r = await http.get(
        f"/rest/v1/agent_applications/{application_id}", headers=bearer(admin)
    )
    assert r.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_direct_agent_registration(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    user = await sign_up(http, "member@example.com")
    body = {"email": "agent@example.com", "password": "secret123", "full_name": "Agent Smith"}

    r = await http.post("/rest/v1/agents", json=body, headers=bearer(user))
    assert r.status_code == 403

    r = await http.post("/rest/v1/agents", json=body, headers=bearer(admin))
    assert r.status_code == 200
    agent_id = r.json()["id"]

    r = await http.post(
        "/rest/v1/rpc/get_user_role", json={"_user_id": agent_id}, headers=bearer(admin)
    )
    assert r.json() == "agent"

    # The new principal can sign in; the admin's own session is untouched.
    r = await http.post(
        "/auth/v1/token", json={"email": "agent@example.com", "password": "secret123"}
    )
    assert r.status_code == 200
    r = await http.get("/auth/v1/user", headers=bearer(admin))
    assert r.json()["id"] == admin["user"]["id"]

    r = await http.post("/rest/v1/agents", json=body, headers=bearer(admin))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_admin_deletes_principal(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    doomed = await sign_up(http, "doomed@example.com")
    doomed_id = doomed["user"]["id"]

    r = await http.delete(f"/auth/v1/admin/users/{doomed_id}", headers=bearer(doomed))
    assert r.status_code == 403

    r = await http.delete(f"/auth/v1/admin/users/{doomed_id}", headers=bearer(admin))
    assert r.status_code == 204

    # Its token no longer resolves and its rows are gone.
    r = await http.get("/auth/v1/user", headers=bearer(doomed))
    assert r.status_code == 401
    r = await http.get("/rest/v1/user_roles", headers=bearer(admin))
    assert doomed_id not in {row["user_id"] for row in r.json()}
    r = await http.get(f"/rest/v1/profiles/{doomed_id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_own_applications_survive_limit(http: httpx.AsyncClient) -> None:
    mine = await sign_up(http, "mine@example.com")
    other = await sign_up(http, "busy@example.com")

    def payload(name: str, email: str) -> dict:
        return {"full_name": name, "phone": "555-0100", "email": email}

    r = await http.post(
        "/rest/v1/agent_applications",
        json=payload("Mine", "mine@example.com"),
        headers=bearer(mine),
    )
    assert r.status_code == 200
    own_id = r.json()["id"]
    for _ in range(3):
        r = await http.post(
            "/rest/v1/agent_applications",
            json=payload("Busy", "busy@example.com"),
            headers=bearer(other),
        )
        assert r.status_code == 200

    r = await http.get("/rest/v1/agent_applications?limit=2", headers=bearer(mine))
    assert r.status_code == 200
    assert [row["id"] for row in r.json()] == [own_id]

    admin = await _make_admin(http)
    r = await http.get("/rest/v1/agent_applications?limit=2", headers=bearer(admin))
    assert len(r.json()) == 2


@pytest.mark.asyncio
async def test_sole_admin_role_reads_every_role_row(http: httpx.AsyncClient) -> None:
    admin = await _make_admin(http)
    admin_id = admin["user"]["id"]
    member = await sign_up(http, "member@example.com")

    r = await http.delete(f"/rest/v1/user_roles/{admin_id}/user", headers=bearer(admin))
    assert r.status_code == 204

    r = await http.get(
        "/rest/v1/user_roles", params={"user_id": admin_id}, headers=bearer(admin)
    )
    assert [row["role"] for row in r.json()] == ["admin"]

    r = await http.get("/rest/v1/user_roles", headers=bearer(admin))
    assert r.status_code == 200
    assert {(row["user_id"], row["role"]) for row in r.json()} == {
        (admin_id, "admin"),
        (member["user"]["id"], "user"),
    }
