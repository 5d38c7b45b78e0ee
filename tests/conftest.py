"""
tests.conftest

Shared fixtures: per-test SQLite database, service app, and principal factories.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from semkat_access.api.app import create_app
from semkat_access.auth.models import Principal
from semkat_access.auth.service import AuthService, ProfileFields
from semkat_access.db.init_db import init_db
from semkat_access.db.models import AppRole
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.db.session import create_engine, create_sessionmaker
from semkat_access.settings import Settings

PrincipalFactory = Callable[..., Awaitable[Principal]]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'semkat.db'}",
        jwt_secret="test-secret-with-enough-bytes-for-hs256",
        public_api_key="test-anon-key",
        api_base_url="http://test",
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def make_principal(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> PrincipalFactory:
    async def _make(email: str, *roles: AppRole, password: str = "secret123") -> Principal:
        async with session_factory() as session:
            auth = AuthService(session=session, settings=settings)
            user = await auth.create_principal(
                email=email, password=password, profile=ProfileFields(full_name=email)
            )
            for role in roles:
                await RoleRepo(session).assign(user_id=user.id, role=role)
            await session.commit()
            return Principal(user_id=user.id, email=user.email)

    return _make


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def http(app: FastAPI, settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"apikey": settings.public_api_key},
    ) as client:
        yield client


async def sign_up(http: httpx.AsyncClient, email: str, password: str = "secret123") -> dict:
    r = await http.post(
        "/auth/v1/signup", json={"email": email, "password": password, "full_name": email}
    )
    assert r.status_code == 200, r.text
    return r.json()


def bearer(session: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {session['access_token']}"}
