# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Authentication Service

Register, login, refresh and logout flows composed from TokenService,
PasswordService and SessionManager. HTTP concerns (cookies, status codes)
live in auth_routes; this module only raises CampeiroError subclasses.

Every failure on the login/refresh path is an AuthenticationError whose
`reason` says what actually went wrong. The reason goes to the audit
trail; callers only ever see one generic message.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.context import set_request_user
from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
)
from ..core.settings import SecuritySettings
from .auth import PasswordService, Role, TokenService
from .sessions import SessionInfo, SessionManager

logger = logging.getLogger(__name__)

# Never leave the service
PRIVATE_USER_FIELDS = frozenset({"password_hash"})


def public_user(record: dict[str, Any]) -> dict[str, Any]:
    """User record without credential material."""
    return {k: v for k, v in record.items() if k not in PRIVATE_USER_FIELDS}


@dataclass
class Principal:
    """Authenticated caller."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class AuthResult:
    """Outcome of register/login/refresh."""

    access_token: str
    refresh_token: str
    session: SessionInfo
    user: dict[str, Any] | None = None

    @property
    def session_id(self) -> str:
        return self.session.id


class AuthService:
    """
    Authentication flows.

    Usage:
        service = AuthService(store.users, store.sessions, settings.security)
        result = await service.login("ana@example.com", "secret", user_agent=ua, ip_address=ip)
    """

    def __init__(
        self,
        users,
        sessions_repository,
        settings: SecuritySettings,
        tokens: TokenService | None = None,
        passwords: PasswordService | None = None,
    ):
        self.users = users
        self.sessions = SessionManager(sessions_repository, settings)
        self.tokens = tokens or TokenService(settings)
        self.passwords = passwords or PasswordService(rounds=settings.bcrypt_rounds)
        self._dummy_hash: str | None = None

    # ---- helpers ------------------------------------------------------

    def _issue(self, user: dict[str, Any], session: SessionInfo, include_user: bool) -> AuthResult:
        return AuthResult(
            access_token=self.tokens.issue_access(user["id"], user["role"]),
            refresh_token=self.tokens.issue_refresh(user["id"], session.id),
            session=session,
            user=public_user(user) if include_user else None,
        )

    def _burn_hash_time(self, password: str) -> None:
        # Unknown users still pay for one bcrypt verify
        if self._dummy_hash is None:
            self._dummy_hash = self.passwords.hash_password("campeiro-timing-guard")
        self.passwords.verify_password(password, self._dummy_hash)

    # ---- users --------------------------------------------------------

    async def create_user(self, profile: dict[str, Any], role: str = Role.CLIENT) -> dict[str, Any]:
        """
        Create a user from a validated profile.

        Raises ConflictError when the e-mail or CPF is already registered.
        """
        email = profile["email"].strip().lower()
        cpf = profile["cpf"]

        if await self.users.get({"email": email}) is not None:
            raise ConflictError("E-mail already registered", field="email")
        if await self.users.get({"cpf": cpf}) is not None:
            raise ConflictError("CPF already registered", field="cpf")

        # The unique constraints still catch a concurrent duplicate
        user = await self.users.create(
            {
                "name": profile["name"],
                "email": email,
                "cpf": cpf,
                "phone": profile.get("phone"),
                "password_hash": self.passwords.hash_password(profile["password"]),
                "role": str(role),
            }
        )
        logger.info(f"User registered: {user['id']} role={user['role']}")
        return user

    async def get_user(self, user_id: str) -> dict[str, Any]:
        user = await self.users.get({"id": user_id})
        if user is None:
            raise NotFoundError("User not found", entity="users")
        return public_user(user)

    # ---- flows --------------------------------------------------------

    async def register(
        self,
        profile: dict[str, Any],
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthResult:
        """Create a client account and open its first session."""
        user = await self.create_user(profile, role=Role.CLIENT)
        set_request_user(user["id"], user["role"])

        session = await self.sessions.create(user["id"], user_agent=user_agent, ip_address=ip_address)
        return self._issue(user, session, include_user=True)

    async def login(
        self,
        email: str,
        password: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthResult:
        """
        Verify credentials and open a session.

        Raises InvalidCredentialsError for unknown e-mail and wrong
        password alike.
        """
        user = await self.users.get({"email": email.strip().lower()})
        if user is None:
            self._burn_hash_time(password)
            raise InvalidCredentialsError(reason="user_not_found")

        if not self.passwords.verify_password(password, user.get("password_hash")):
            raise InvalidCredentialsError(reason="password_mismatch")

        set_request_user(user["id"], user["role"])
        session = await self.sessions.create(user["id"], user_agent=user_agent, ip_address=ip_address)
        logger.info(f"User logged in: {user['id']}")
        return self._issue(user, session, include_user=True)

    async def refresh(
        self,
        refresh_token: str | None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthResult:
        """Rotate the session behind `refresh_token` and issue a new pair."""
        if not refresh_token:
            raise AuthenticationError(reason="refresh_missing")

        claims = self.tokens.verify_refresh(refresh_token)
        session = await self.sessions.resolve(claims.session_id, claims.subject)

        user = await self.users.get({"id": claims.subject})
        if user is None:
            raise AuthenticationError(reason="user_not_found")
        set_request_user(user["id"], user["role"])

        successor = await self.sessions.rotate(session, user_agent=user_agent, ip_address=ip_address)
        return self._issue(user, successor, include_user=False)

    async def logout(self, refresh_token: str | None) -> bool:
        """
        Revoke the session behind `refresh_token`, if any.

        A missing, unverifiable or already revoked token is a no-op; only
        a storage fault can raise. Returns True only when a session was
        actually revoked.
        """
        if not refresh_token:
            return False
        try:
            claims = self.tokens.verify_refresh(refresh_token)
        except AuthenticationError as e:
            logger.info(f"Logout with unusable refresh token ignored: {e.reason}")
            return False

        set_request_user(claims.subject)
        return await self.sessions.revoke(claims.session_id)

    async def authenticate(self, access_token: str) -> Principal:
        """Verify a bearer access token and attach the user to the request."""
        claims = self.tokens.verify_access(access_token)
        set_request_user(claims.subject, claims.role)
        return Principal(user_id=claims.subject, role=claims.role)

    async def revoke_all(self, user_id: str) -> int:
        return await self.sessions.revoke_all(user_id)


__all__ = ["AuthService", "AuthResult", "Principal", "public_user"]
