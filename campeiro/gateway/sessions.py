# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Session Store

Session lifecycle on top of the sessions repository:

    ACTIVE --revoke/rotate--> REVOKED   (terminal)
    ACTIVE --time passes----> EXPIRED   (terminal, implicit via expires_at)

Rotation is two ordered writes, not one transaction: the predecessor is
revoked first and only then is the successor created. A crash in between
leaves the user with no valid session, never with two. The revoke is
conditional on the row still being active, so when two refreshes race on
the same session only one of them can win.

Sessions are never deleted here; revoked rows stay for the audit trail.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from ..core.exceptions import (
    InternalError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionOwnershipError,
    SessionRevokedError,
)
from ..core.settings import SecuritySettings

logger = logging.getLogger(__name__)

# Stored user agents are truncated to the column width
_MAX_USER_AGENT = 255


class SessionState(StrEnum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class SessionInfo:
    """A session row as seen by the auth layer."""

    id: str
    user_id: str
    expires_at: datetime
    is_revoked: bool = False
    user_agent: str | None = None
    ip_address: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "SessionInfo":
        expires_at = record["expires_at"]
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return cls(
            id=record["id"],
            user_id=record["user_id"],
            expires_at=expires_at,
            is_revoked=bool(record.get("is_revoked")),
            user_agent=record.get("user_agent"),
            ip_address=record.get("ip_address"),
            created_at=record.get("created_at"),
        )

    def state(self, now: datetime | None = None) -> SessionState:
        # Revocation is reported ahead of expiry
        if self.is_revoked:
            return SessionState.REVOKED
        if self.expires_at <= (now or _utcnow()):
            return SessionState.EXPIRED
        return SessionState.ACTIVE

    def is_valid(self, now: datetime | None = None) -> bool:
        return self.state(now) is SessionState.ACTIVE

    def to_api_response(self, current_session_id: str | None = None) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "is_current": self.id == current_session_id,
        }


class SessionManager:
    """
    Create, resolve, rotate and revoke sessions.

    Usage:
        sessions = SessionManager(store.sessions, settings.security)
        session = await sessions.create(user_id, user_agent=ua, ip_address=ip)
        successor = await sessions.rotate(session, user_agent=ua, ip_address=ip)
    """

    def __init__(self, repository, settings: SecuritySettings):
        self.repository = repository
        self.lifetime = timedelta(days=settings.refresh_session_days)

    async def create(
        self,
        user_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
        expires_at: datetime | None = None,
    ) -> SessionInfo:
        """Open a new active session."""
        record = await self.repository.create(
            {
                "user_id": user_id,
                "user_agent": (user_agent or "")[:_MAX_USER_AGENT] or None,
                "ip_address": ip_address,
                "expires_at": expires_at or (_utcnow() + self.lifetime),
                "is_revoked": False,
            }
        )
        session = SessionInfo.from_record(record)
        logger.info(f"Session created: {session.id} user={user_id}")
        return session

    async def get(self, session_id: str) -> SessionInfo | None:
        record = await self.repository.get({"id": session_id})
        return SessionInfo.from_record(record) if record else None

    async def resolve(self, session_id: str, user_id: str) -> SessionInfo:
        """
        Look up a session a refresh token points at and require it be usable.

        Raises an AuthenticationError subclass naming the exact failure:
        not found, revoked, owned by someone else, or expired.
        """
        session = await self.get(session_id)
        if session is None:
            raise SessionNotFoundError(details={"session_id": session_id})

        if session.user_id != user_id:
            raise SessionOwnershipError(details={"session_id": session_id})

        state = session.state()
        if state is SessionState.REVOKED:
            raise SessionRevokedError(details={"session_id": session_id})
        if state is SessionState.EXPIRED:
            raise SessionExpiredError(details={"session_id": session_id})

        return session

    async def rotate(
        self,
        session: SessionInfo,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> SessionInfo:
        """
        Revoke `session` and open its successor with the same expiry.

        Raises SessionRevokedError when another caller revoked or rotated
        the session after it was resolved.
        """
        if not await self.revoke(session.id):
            raise SessionRevokedError(details={"session_id": session.id, "race": True})

        successor = await self.create(
            session.user_id,
            user_agent=user_agent,
            ip_address=ip_address,
            expires_at=session.expires_at,
        )
        logger.info(f"Session rotated: {session.id} -> {successor.id}")
        return successor

    async def revoke(self, session_id: str) -> bool:
        """
        Revoke one session if it is still active.

        Returns True when this call flipped the flag, False when the
        session was already revoked or does not exist.
        """
        changed = await self.repository.update_many(
            {"id": session_id, "is_revoked": False}, {"is_revoked": True}
        )
        if changed > 1:
            # Ids are unique; more than one row means the table is corrupt
            raise InternalError(
                "Session revoke matched more than one row",
                details={"session_id": session_id, "rows": changed},
            )
        if changed:
            logger.info(f"Session revoked: {session_id}")
        return bool(changed)

    async def revoke_all(self, user_id: str) -> int:
        """Revoke every active session of a user (logout everywhere)."""
        changed = await self.repository.update_many(
            {"user_id": user_id, "is_revoked": False}, {"is_revoked": True}
        )
        logger.info(f"Revoked {changed} sessions for user {user_id}")
        return changed

    async def list_active(self, user_id: str) -> list[SessionInfo]:
        records = await self.repository.find_many(
            {"user_id": user_id, "is_revoked": False}, order_by="created_at", descending=True
        )
        now = _utcnow()
        sessions = [SessionInfo.from_record(r) for r in records]
        return [s for s in sessions if s.is_valid(now)]


__all__ = ["SessionState", "SessionInfo", "SessionManager"]
