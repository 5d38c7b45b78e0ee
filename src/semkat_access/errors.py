"""
semkat_access.errors

Domain exceptions shared by services, the API layer and the client package.

Responsibilities:
- Define the error taxonomy raised by the auth subsystem, the policy engine and the
  application workflow.
- Keep user-facing messages stable (the API layer returns them verbatim).
"""

from __future__ import annotations


class SemkatError(Exception):
    """Base class for all domain errors."""

    message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class AuthError(SemkatError):
    """
    Invalid credentials, duplicate registration or expired session.
    The message is shown to the user as-is and never retried automatically.
    """

    message = "Authentication failed"


class InvalidSessionError(AuthError):
    """Missing, malformed or revoked session token."""

    message = "Invalid session"


class SessionExpiredError(InvalidSessionError):
    message = "Session expired"


class PolicyDenied(SemkatError):
    # Generic on purpose: the failing rule is never named to the caller.
    message = "permission denied"

    def __init__(self) -> None:
        super().__init__(None)


class ConflictError(SemkatError):
    message = "duplicate key value violates unique constraint"


class NotFoundError(SemkatError):
    message = "Not found"


class InvalidTransition(SemkatError):
    message = "Application has already been reviewed"


class WorkflowInvariantViolation(SemkatError):
    """
    The approval could not grant the agent role; the whole transition was rolled back
    and may be retried.
    """

    message = "Failed to update application"
    retriable = True


class TransientRoleFetchFailure(SemkatError):
    """Raised by the client when the effective role could not be computed."""

    message = "Could not fetch role"


# --- Module Notes -----------------------------------------------------------
# HTTP mapping lives in `semkat_access.api.app` (exception handlers); the client maps
# responses back to these types in `semkat_access.client.http`.
