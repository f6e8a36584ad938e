# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Exception Hierarchy

Structured exceptions for the auth, session and audit layers.
All exceptions include context via `details` dict and carry the HTTP
status they map to at the API boundary.
"""

from typing import Any

GENERIC_AUTH_MESSAGE = "Authentication failed"


class CampeiroError(Exception):
    """
    Base exception for all Campeiro errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
    """

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ============================================================
# INPUT ERRORS
# ============================================================


class ValidationError(CampeiroError):
    """Malformed input. Field-level detail is safe to return."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: dict[str, list[str]] | None = None,
        **kwargs,
    ):
        details = kwargs.get("details", {})
        self.field_errors = field_errors or {}
        details["errors"] = self.field_errors
        super().__init__(message, details)


class NotFoundError(CampeiroError):
    """Referenced entity absent."""

    status_code = 404

    def __init__(self, message: str, entity: str | None = None, **kwargs):
        details = kwargs.get("details", {})
        if entity:
            details["entity"] = entity
        super().__init__(message, details)


class ConflictError(CampeiroError):
    """Duplicate value for a unique field."""

    status_code = 409

    def __init__(self, message: str, field: str | None = None, **kwargs):
        details = kwargs.get("details", {})
        self.field = field
        if field:
            details["field"] = field
        super().__init__(message, details)


class InternalError(CampeiroError):
    """Storage returned a state the application cannot continue from."""

    status_code = 500


# ============================================================
# SECURITY ERRORS
# ============================================================


class AuthenticationError(CampeiroError):
    """
    Failed to authenticate a user, token or session.

    `reason` is kept server-side for the audit trail. The outward message
    is always the same so callers cannot tell failure modes apart.
    """

    status_code = 401
    default_reason = "unauthenticated"

    def __init__(self, message: str = GENERIC_AUTH_MESSAGE, reason: str | None = None, **kwargs):
        details = kwargs.get("details", {})
        self.reason = reason or self.default_reason
        details["reason"] = self.reason
        super().__init__(message, details)

    @property
    def public_message(self) -> str:
        return GENERIC_AUTH_MESSAGE


class TokenExpiredError(AuthenticationError):
    default_reason = "token_expired"


class TokenInvalidError(AuthenticationError):
    default_reason = "token_invalid"


class InvalidCredentialsError(AuthenticationError):
    default_reason = "invalid_credentials"


class SessionNotFoundError(AuthenticationError):
    default_reason = "session_not_found"


class SessionRevokedError(AuthenticationError):
    default_reason = "session_revoked"


class SessionExpiredError(AuthenticationError):
    default_reason = "session_expired"


class SessionOwnershipError(AuthenticationError):
    default_reason = "session_owner_mismatch"


class AuthorizationError(CampeiroError):
    """User lacks the required role."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", required_role: str | None = None, **kwargs):
        details = kwargs.get("details", {})
        if required_role:
            details["required_role"] = required_role
        super().__init__(message, details)


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "GENERIC_AUTH_MESSAGE",
    "CampeiroError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "AuthenticationError",
    "TokenExpiredError",
    "TokenInvalidError",
    "InvalidCredentialsError",
    "SessionNotFoundError",
    "SessionRevokedError",
    "SessionExpiredError",
    "SessionOwnershipError",
    "AuthorizationError",
]
