"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and DB readiness probe works in test mode.
"""

from __future__ import annotations

import httpx
import pytest

from semkat_access.api.app import create_app
from semkat_access.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(settings: Settings) -> None:
    app = create_app(settings=settings)

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"
            assert r.headers["x-request-id"]

            r = await client.get("/healthz", headers={"x-request-id": "req-123"})
            assert r.headers["x-request-id"] == "req-123"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_dev_router_absent_in_prod(settings: Settings) -> None:
    app = create_app(settings=settings.model_copy(update={"env": "prod"}))
    paths = set(app.openapi()["paths"])
    assert "/v1/dev/roles" not in paths
    assert "/rest/v1/agent_applications" in paths


# --- Module Notes -----------------------------------------------------------
# End-to-end flows live in test_api.py and test_client.py.
