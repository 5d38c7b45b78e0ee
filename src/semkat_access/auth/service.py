"""
semkat_access.auth.service

Auth subsystem of the backing store.

Responsibilities:
- Register principals; in the same transaction create their Profile and default
  `user` role (the "on principal created" trigger).
- Sign principals in with email + password and issue session tokens.
- Resolve bearer tokens to principals; refresh and delete principals.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from semkat_access.auth.jwt import (
    JwtConfig,
    JwtExpiredError,
    JwtValidationError,
    decode_and_validate,
    issue_token,
)
from semkat_access.auth.models import AuthSession, Principal
from semkat_access.auth.passwords import hash_password, verify_password
from semkat_access.db.models import AppRole, User, utcnow
from semkat_access.db.repositories.profiles import ProfileRepo
from semkat_access.db.repositories.roles import RoleRepo
from semkat_access.db.repositories.users import UserRepo
from semkat_access.errors import (
    AuthError,
    InvalidSessionError,
    NotFoundError,
    PolicyDenied,
    SessionExpiredError,
)
from semkat_access.observability.logging import get_logger
from semkat_access.policy.privileged import PrivilegedRoleReader
from semkat_access.settings import Settings

log = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid login credentials"
ALREADY_REGISTERED = "User already registered"


@dataclass(frozen=True, slots=True)
class ProfileFields:
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._jwt = JwtConfig.from_settings(settings)

        self._users = UserRepo(session)
        self._profiles = ProfileRepo(session)
        self._roles = RoleRepo(session)

    async def create_principal(
        self, *, email: str, password: str, profile: ProfileFields | None = None
    ) -> User:
        """
        Insert the principal, its Profile and its `user` role. Does not commit; callers
        that need more writes in the same transaction (direct agent registration) add
        them before committing.
        """

        email = normalize_email(email)
        if "@" not in email:
            raise AuthError("Unable to validate email address: invalid format")
        if len(password) < self._settings.min_password_length:
            raise AuthError(
                f"Password should be at least {self._settings.min_password_length} characters."
            )
        if await self._users.get_by_email(email) is not None:
            raise AuthError(ALREADY_REGISTERED)

        fields = profile or ProfileFields()
        try:
            user = await self._users.create(email=email, password_hash=hash_password(password))
        except IntegrityError as e:
            # Concurrent registration of the same email.
            await self._session.rollback()
            raise AuthError(ALREADY_REGISTERED) from e
        await self._profiles.create(
            user_id=user.id,
            full_name=fields.full_name,
            phone=fields.phone,
            avatar_url=fields.avatar_url,
        )
        await self._roles.insert(user_id=user.id, role=AppRole.user)
        return user

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
        redirect_to: str | None = None,
    ) -> AuthSession:
        user = await self.create_principal(
            email=email, password=password, profile=ProfileFields(full_name=full_name)
        )
        user.last_sign_in_at = utcnow()
        await self._session.commit()
        log.info(
            "principal_registered",
            user_id=str(user.id),
            redirect_to=redirect_to or self._settings.signup_redirect_url,
        )
        return self.issue_session(user)

    async def sign_in(self, *, email: str, password: str) -> AuthSession:
        user = await self._users.get_by_email(normalize_email(email))
        # Same message for unknown email and wrong password.
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError(INVALID_CREDENTIALS)
        user.last_sign_in_at = utcnow()
        await self._session.commit()
        return self.issue_session(user)

    async def refresh(self, principal: Principal) -> AuthSession:
        user = await self._users.get(principal.user_id)
        if user is None:
            raise InvalidSessionError()
        return self.issue_session(user)

    def issue_session(self, user: User) -> AuthSession:
        token, expires_at = issue_token(
            cfg=self._jwt,
            subject=str(user.id),
            email=user.email,
            ttl=timedelta(minutes=self._settings.session_ttl_minutes),
        )
        return AuthSession(
            access_token=token,
            expires_at=expires_at,
            user=Principal(user_id=user.id, email=user.email),
        )

    async def principal_from_token(self, token: str) -> Principal:
        try:
            payload = decode_and_validate(cfg=self._jwt, token=token)
        except JwtExpiredError as e:
            raise SessionExpiredError() from e
        except JwtValidationError as e:
            raise InvalidSessionError() from e

        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except ValueError as e:
            raise InvalidSessionError() from e

        # A token outliving its principal (deleted account) is not a session.
        user = await self._users.get(user_id)
        if user is None:
            raise InvalidSessionError()
        return Principal(user_id=user.id, email=user.email)

    async def delete_principal(self, *, actor: Principal, user_id: uuid.UUID) -> None:
        if not await PrivilegedRoleReader(self._session).has_role(actor.user_id, AppRole.admin):
            raise PolicyDenied()
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        await self._users.delete(user)
        await self._session.commit()
        log.info("principal_deleted", user_id=str(user_id), by=str(actor.user_id))


# --- Module Notes -----------------------------------------------------------
# Deleting a principal cascades (FK ON DELETE CASCADE) to its roles, profile and
# applications.
