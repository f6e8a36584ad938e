# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Token Service

Provides:
- Password hashing (bcrypt)
- Access token issue/verify (short-lived, stateless)
- Refresh token issue/verify (bound to a server-side session)

Access and refresh tokens are signed with separate secrets. Refresh tokens
carry no exp claim: their lifetime is the session row's expires_at, so
revoking or expiring the session is always authoritative.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import jwt
from passlib.context import CryptContext

from ..core.exceptions import TokenExpiredError, TokenInvalidError
from ..core.settings import SecuritySettings

logger = logging.getLogger(__name__)


class TokenType(StrEnum):
    """Types of JWT tokens."""

    ACCESS = "access"
    REFRESH = "refresh"


class Role(StrEnum):
    ADMIN = "admin"
    CLIENT = "client"


@dataclass(frozen=True)
class AccessClaims:
    """Verified access token claims."""

    subject: str
    role: str
    expires_at: datetime | None = None


@dataclass(frozen=True)
class RefreshClaims:
    """Verified refresh token claims."""

    subject: str
    session_id: str


# ============================================================
# PASSWORDS
# ============================================================


class PasswordService:
    """
    Password hashing and verification.

    Uses bcrypt; rounds come from SECURITY_BCRYPT_ROUNDS (12 by default).
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash_password(self, password: str) -> str:
        return self._context.hash(password)

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        """
        Verify a password against its hash.

        Returns False for a missing or malformed hash instead of raising.
        """
        if not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except Exception:
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when the stored hash uses fewer rounds than configured."""
        return self._context.needs_update(password_hash)


# ============================================================
# TOKENS
# ============================================================


class TokenService:
    """
    JWT issue and verification.

    Usage:
        tokens = TokenService(settings.security)
        access = tokens.issue_access(user_id, "client")
        claims = tokens.verify_access(access)
    """

    def __init__(self, settings: SecuritySettings):
        self.algorithm = settings.jwt_algorithm
        self._access_secret = settings.jwt_access_secret
        self._refresh_secret = settings.jwt_refresh_secret
        self.access_expire = timedelta(minutes=settings.jwt_access_expire_minutes)

    def issue_access(self, subject: str, role: str, expires_delta: timedelta | None = None) -> str:
        """Create a short-lived access token embedding subject and role."""
        now = datetime.now(UTC)
        payload = {
            "sub": subject,
            "role": str(role),
            "type": TokenType.ACCESS.value,
            "iat": now,
            "exp": now + (expires_delta or self.access_expire),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._access_secret, algorithm=self.algorithm)

    def issue_refresh(self, subject: str, session_id: str) -> str:
        """Create a refresh token bound to one session. No exp claim."""
        payload = {
            "sub": subject,
            "sid": session_id,
            "type": TokenType.REFRESH.value,
            "iat": datetime.now(UTC),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._refresh_secret, algorithm=self.algorithm)

    def _decode(self, token: str, secret: str, expected: TokenType, required: list[str]) -> dict:
        if not token:
            raise TokenInvalidError(reason="token_missing")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": required},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(details={"error": type(e).__name__}) from e

        if payload.get("type") != expected.value:
            raise TokenInvalidError(reason="token_type_mismatch")
        return payload

    def verify_access(self, token: str) -> AccessClaims:
        """
        Verify an access token.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Bad signature, malformed or wrong token type
        """
        payload = self._decode(token, self._access_secret, TokenType.ACCESS, ["sub", "exp", "role"])
        return AccessClaims(
            subject=str(payload["sub"]),
            role=str(payload["role"]),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )

    def verify_refresh(self, token: str) -> RefreshClaims:
        """
        Verify a refresh token's signature and shape.

        Session validity is not checked here.
        """
        payload = self._decode(token, self._refresh_secret, TokenType.REFRESH, ["sub", "sid"])
        return RefreshClaims(subject=str(payload["sub"]), session_id=str(payload["sid"]))


__all__ = [
    "TokenType",
    "Role",
    "AccessClaims",
    "RefreshClaims",
    "PasswordService",
    "TokenService",
]
