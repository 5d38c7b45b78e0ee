"""
semkat_access.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
- Define the `AuthSession` value returned by sign-in / sign-up / refresh.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity. Carries no roles: those are evaluated per access.
    """

    user_id: uuid.UUID
    email: str


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    expires_at: datetime
    user: Principal

    token_type: str = "bearer"


# --- Module Notes -----------------------------------------------------------
# Keep these models minimal; they are used across API, services and the client package.
