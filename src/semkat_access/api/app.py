"""
semkat_access.api.app

FastAPI app factory for the Semkat access service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Map domain errors to HTTP responses in one place.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from semkat_access import __version__
from semkat_access.api.routers.applications import router as applications_router
from semkat_access.api.routers.auth import router as auth_router
from semkat_access.api.routers.dev import router as dev_router
from semkat_access.api.routers.health import router as health_router
from semkat_access.api.routers.profiles import router as profiles_router
from semkat_access.api.routers.roles import router as roles_router
from semkat_access.api.routers.rpc import router as rpc_router
from semkat_access.db.init_db import init_db
from semkat_access.db.session import create_engine, create_sessionmaker
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
from semkat_access.observability.logging import configure_logging, get_logger
from semkat_access.observability.middleware import RequestContextMiddleware
from semkat_access.settings import Settings

log = get_logger(__name__)

# Most specific first; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[SemkatError], int], ...] = (
    (InvalidSessionError, HTTP_401_UNAUTHORIZED),
    (AuthError, HTTP_400_BAD_REQUEST),
    (PolicyDenied, HTTP_403_FORBIDDEN),
    (NotFoundError, HTTP_404_NOT_FOUND),
    (ConflictError, HTTP_409_CONFLICT),
    (InvalidTransition, HTTP_409_CONFLICT),
    (WorkflowInvariantViolation, HTTP_503_SERVICE_UNAVAILABLE),
)


async def _domain_error_handler(request: Request, exc: SemkatError) -> JSONResponse:
    status_code = next(
        (code for err_type, code in _STATUS_BY_ERROR if isinstance(exc, err_type)),
        HTTP_400_BAD_REQUEST,
    )
    body: dict[str, object] = {"error": type(exc).__name__, "message": exc.message}
    if isinstance(exc, WorkflowInvariantViolation):
        body["retriable"] = exc.retriable
    return JSONResponse(status_code=status_code, content=body)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.log_json,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Routers obtain sessions via dependencies (see `semkat_access.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod uses Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Semkat Access Service",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(SemkatError, _domain_error_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(rpc_router)
    app.include_router(roles_router)
    app.include_router(profiles_router)
    app.include_router(applications_router)
    if settings.env != "prod":
        app.include_router(dev_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; policy decisions stay in `semkat_access.policy` and
# transition rules in `semkat_access.services`.
