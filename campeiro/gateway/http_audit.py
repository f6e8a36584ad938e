# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
HTTP audit middleware.

Records one HTTP audit entry per request once the last body chunk has
been handed to the server, so streaming and buffering time is included
in the duration. A request that dies with an unhandled exception is
recorded with status 500 before the exception continues outward.

Must sit inside RequestContextMiddleware so entries carry the request's
context.
"""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..observability.audit import AuditSink

logger = logging.getLogger(__name__)


class HttpAuditMiddleware:
    """Pure ASGI middleware emitting HTTP audit entries."""

    def __init__(self, app: ASGIApp, sink: AuditSink | None = None):
        self.app = app
        self.sink = sink

    def _sink(self, scope: Scope) -> AuditSink | None:
        if self.sink is not None:
            return self.sink
        # Fall back to the store attached to the application
        app = scope.get("app")
        store = getattr(getattr(app, "state", None), "store", None)
        return getattr(store, "audit_sink", None)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code: int | None = None
        recorded = False

        def emit(status: int) -> None:
            nonlocal recorded
            if recorded:
                return
            recorded = True
            sink = self._sink(scope)
            if sink is None:
                return
            sink.record(
                "info",
                "HTTP",
                {
                    "method": scope["method"],
                    "path": scope["path"],
                    "status": status,
                    "ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                emit(status_code or 500)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            emit(500)
            raise


__all__ = ["HttpAuditMiddleware"]
