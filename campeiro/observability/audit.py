# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Audit Sink

Persists audit entries to the audit_logs repository as best-effort
background tasks. record() never raises and never waits for storage:
the caller's request is not slowed down or failed by the audit trail.

Each entry is tagged with a snapshot of the current request context
(request id, user id, client ip, method, path) taken when record() is
called, so the background write carries the requester's identity even
after the request has finished.

Usage:
    sink = AuditSink(store.audit_logs)
    sink.info("HTTP", {"method": "GET", "path": "/api/auth/me", "status": 200})
    await sink.drain()   # on shutdown / in tests
"""

import asyncio
import logging
from typing import Any

from ..core.context import RequestContext, get_request_context
from ..core.redaction import mask_sensitive

logger = logging.getLogger(__name__)

LEVELS = ("info", "warn", "error")


class AuditSink:
    """Fire-and-forget writer for audit entries."""

    def __init__(self, repository, enabled: bool = True):
        self.repository = repository
        self.enabled = enabled
        self._tasks: set[asyncio.Task] = set()
        self._logger = logging.getLogger("campeiro.audit")

    @property
    def pending(self) -> int:
        """Number of writes not yet finished."""
        return len(self._tasks)

    def build_entry(
        self,
        level: str,
        event: str,
        extra: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> dict[str, Any]:
        """Assemble the audit_logs row for one event."""
        if level not in LEVELS:
            level = "info"
        ctx = context or get_request_context()

        return {
            "level": level,
            "event": event,
            "message": {
                "event": event,
                "extra": mask_sensitive(extra or {}),
                "ctx": {
                    "request_id": ctx.request_id if ctx else None,
                    "method": ctx.method if ctx else None,
                    "path": ctx.path if ctx else None,
                    "user_agent": ctx.user_agent if ctx else None,
                },
            },
            "user_id": ctx.user_id if ctx else None,
            "ip_address": ctx.client_ip if ctx else None,
            "request_id": ctx.request_id if ctx else None,
        }

    def record(
        self,
        level: str,
        event: str,
        extra: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> asyncio.Task | None:
        """
        Schedule one audit entry for persistence.

        Returns the background task, or None when the entry was dropped.
        Never raises.
        """
        if not self.enabled:
            return None

        try:
            entry = self.build_entry(level, event, extra, context)
            self._logger.debug(
                f"AUDIT: {event}",
                extra={"audit_event": True, "audit_level": entry["level"], "details": entry["message"]},
            )
            task = asyncio.get_running_loop().create_task(self._write(entry))
        except Exception:
            logger.debug(f"Audit entry dropped: {event}", exc_info=True)
            return None

        # Keep a strong reference until the write finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _write(self, entry: dict[str, Any]) -> None:
        try:
            await self.repository.create(entry)
        except Exception:
            logger.debug(f"Audit write failed: {entry.get('event')}", exc_info=True)

    def info(self, event: str, extra: dict[str, Any] | None = None) -> asyncio.Task | None:
        return self.record("info", event, extra)

    def warn(self, event: str, extra: dict[str, Any] | None = None) -> asyncio.Task | None:
        return self.record("warn", event, extra)

    def error(self, event: str, extra: dict[str, Any] | None = None) -> asyncio.Task | None:
        return self.record("error", event, extra)

    async def drain(self) -> None:
        """Wait for every scheduled write, including ones scheduled meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["AuditSink", "LEVELS"]
