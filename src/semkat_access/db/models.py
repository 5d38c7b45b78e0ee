"""
semkat_access.db.models

Persistence schema for principals, roles, profiles and agent applications.

Responsibilities:
- Define ORM models:
  - User: principal issued by the auth subsystem
  - UserRole: role assignments, unique per (user_id, role)
  - Profile: one-to-one public profile
  - AgentApplication: request to become an agent (pending/approved/rejected)
- Cascade-delete everything owned by a principal when it is deleted.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from semkat_access.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite has no tz-aware column type.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class AppRole(enum.StrEnum):
    # Enum values are stored in DB; treat as stable API contract.
    admin = "admin"
    agent = "agent"
    user = "user"


# Lower rank wins when a principal holds several roles.
ROLE_PRECEDENCE: dict[AppRole, int] = {
    AppRole.admin: 1,
    AppRole.agent: 2,
    AppRole.user: 3,
}


class ApplicationStatus(enum.StrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ApplicationStatus.pending


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Stored lower-cased; uniqueness is case-insensitive by construction.
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    last_sign_in_at: Mapped[datetime | None] = mapped_column(nullable=True)

    roles: Mapped[list[UserRole]] = relationship(
        foreign_keys="UserRole.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    profile: Mapped[Profile | None] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    applications: Mapped[list[AgentApplication]] = relationship(
        foreign_keys="AgentApplication.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[AppRole] = mapped_column(Enum(AppRole), nullable=False, default=AppRole.user)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        Index("ix_user_roles_user_id", "user_id"),
    )


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class AgentApplication(Base):
    __tablename__ = "agent_applications"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    experience_years: Mapped[int | None] = mapped_column(nullable=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus), nullable=False, default=ApplicationStatus.pending
    )
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)

    __table_args__ = (
        CheckConstraint(
            "experience_years IS NULL OR experience_years >= 0",
            name="experience_nonnegative",
        ),
        Index("ix_agent_applications_user_id", "user_id"),
        Index("ix_agent_applications_status_created", "status", "created_at"),
    )


# --- Module Notes -----------------------------------------------------------
# Role changes are additive (insert a new UserRole); rows are never updated in place.
# `users` stands in for the hosted auth schema; nothing outside `auth.service` writes it.
