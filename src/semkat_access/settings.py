"""
semkat_access.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the service and the client.
- Hide secrets from repr/logging (JWT secret, public API key).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    One settings object shared by the service (backing store) and the client package.
    """

    model_config = SettingsConfigDict(env_prefix="SEMKAT_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and the dev router.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "semkat-access"
    log_level: str = "INFO"
    # Console rendering is easier to read locally; deployed envs ship JSON.
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Sessions
    jwt_alg: str = "HS256"
    jwt_issuer: str = "semkat-access"
    jwt_audience: str = "authenticated"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    session_ttl_minutes: int = 60
    min_password_length: int = 6

    # Every request to the backing store carries this key in the `apikey` header.
    public_api_key: str = Field(default="dev-public-anon-key", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./semkat.db"

    # Post-registration confirmation redirect
    site_url: str = "http://localhost:5173"
    email_redirect_to: str | None = None

    # Client
    api_base_url: str = "http://localhost:8080"
    client_timeout_seconds: float = 10.0

    @property
    def signup_redirect_url(self) -> str:
        return self.email_redirect_to or f"{self.site_url.rstrip('/')}/"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The client package reads `api_base_url`, `public_api_key` and `client_timeout_seconds`;
# everything else is consumed by the service.
