"""
semkat_access.api.schemas

Request/response models shared by the routers and the client package.

Responsibilities:
- Validate request bodies (lengths, email shape, enum values).
- Serialize ORM rows via `from_attributes`.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from semkat_access.db.models import AppRole, ApplicationStatus

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# auth


class SignUpRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=256)
    full_name: str | None = Field(default=None, max_length=256)
    redirect_to: str | None = Field(default=None, max_length=2048)


class SignInRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class UserOut(BaseModel):
    id: uuid.UUID
    email: str


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut


# roles


class UserRoleOut(_Row):
    id: uuid.UUID
    user_id: uuid.UUID
    role: AppRole
    created_at: datetime
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None


class RoleGrantRequest(BaseModel):
    user_id: uuid.UUID
    role: AppRole


class RoleQuery(BaseModel):
    user_id: uuid.UUID = Field(alias="_user_id")

    model_config = ConfigDict(populate_by_name=True)


class HasRoleQuery(RoleQuery):
    role: AppRole = Field(alias="_role")


# profiles


class ProfileOut(_Row):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileCreateRequest(BaseModel):
    user_id: uuid.UUID
    full_name: str | None = Field(default=None, max_length=256)
    phone: str | None = Field(default=None, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=2048)


class ProfilePatchRequest(BaseModel):
    full_name: str | None = Field(default=None, max_length=256)
    phone: str | None = Field(default=None, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=2048)


# agent applications


class ApplicationCreateRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=256)
    phone: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, max_length=320, pattern=_EMAIL_PATTERN)
    company: str | None = Field(default=None, max_length=256)
    license_number: str | None = Field(default=None, max_length=128)
    experience_years: int | None = Field(default=None, ge=0, le=100)


class ApplicationOut(_Row):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    phone: str
    email: str
    company: str | None = None
    license_number: str | None = None
    experience_years: int | None = None
    status: ApplicationStatus
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    notes: str | None = None
    created_at: datetime


class ReviewRequest(BaseModel):
    decision: ApplicationStatus
    notes: str | None = Field(default=None, max_length=4000)


class AgentRegistrationRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=256)
    full_name: str = Field(min_length=1, max_length=256)
    phone: str | None = Field(default=None, max_length=64)
    company: str | None = Field(default=None, max_length=256)


# --- Module Notes -----------------------------------------------------------
# RPC bodies use the `_user_id` / `_role` argument names of the database functions they
# stand in for.
