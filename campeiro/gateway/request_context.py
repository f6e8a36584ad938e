# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Request Context Middleware

Binds a fresh RequestContext for every HTTP request:
- Generates a new request id (client supplied ids are never trusted)
- Captures method, path, client ip and user agent
- Makes the context current for the whole request call graph, including
  tasks spawned while handling it
- Echoes the id back as X-Request-ID
- Logs request start/end with timing

Written as a pure ASGI middleware so the downstream app runs in the same
task and context as the middleware itself.

Usage:
    app.add_middleware(RequestContextMiddleware, trusted_proxies=["10.0.0.1"])

    # Anywhere downstream
    ctx = get_request_context()
"""

import logging
import uuid
from collections.abc import Callable

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.context import (
    RequestContext,
    bind_request_context,
    reset_request_context,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


# ============================================================
# MIDDLEWARE
# ============================================================


class RequestContextMiddleware:
    """
    Middleware for request context management.

    Configuration:
        RequestContextMiddleware(
            app,
            header_name="X-Request-ID",
            generate_id=lambda: str(uuid.uuid4()),
            log_requests=True,
            trusted_proxies=["127.0.0.1"],
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = REQUEST_ID_HEADER,
        generate_id: Callable[[], str] | None = None,
        log_requests: bool = True,
        trusted_proxies: list | None = None,
    ):
        """
        Initialize middleware.

        Args:
            app: ASGI application
            header_name: Response header carrying the request ID
            generate_id: Function to generate request IDs
            log_requests: Whether to log request start/end
            trusted_proxies: Proxy IPs whose X-Forwarded-For is honoured
        """
        self.app = app
        self.header_name = header_name
        self.generate_id = generate_id or (lambda: str(uuid.uuid4()))
        self.log_requests = log_requests
        self.trusted_proxies = set(trusted_proxies or [])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        ctx = RequestContext(
            request_id=self.generate_id(),
            method=scope["method"],
            path=scope["path"],
            client_ip=self._get_client_ip(scope, headers),
            user_agent=headers.get("user-agent"),
        )

        # Exception handlers that run outside this middleware read it from state
        scope.setdefault("state", {})["request_context"] = ctx
        scope["state"]["request_id"] = ctx.request_id

        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message)[self.header_name] = ctx.request_id
            await send(message)

        token = bind_request_context(ctx)
        try:
            if self.log_requests:
                logger.info(
                    f"Request started: {ctx.method} {ctx.path}",
                    extra={"method": ctx.method, "path": ctx.path, "client_ip": ctx.client_ip},
                )

            await self.app(scope, receive, send_with_request_id)

            if self.log_requests:
                logger.info(
                    f"Request completed: {ctx.method} {ctx.path} "
                    f"status={status_code} duration={ctx.elapsed_ms:.2f}ms",
                    extra={
                        "method": ctx.method,
                        "path": ctx.path,
                        "status_code": status_code,
                        "duration_ms": round(ctx.elapsed_ms, 2),
                    },
                )

        except Exception as e:
            logger.error(
                f"Request failed: {ctx.method} {ctx.path} error={type(e).__name__}",
                extra={
                    "method": ctx.method,
                    "path": ctx.path,
                    "error_type": type(e).__name__,
                    "duration_ms": round(ctx.elapsed_ms, 2),
                },
                exc_info=True,
            )
            raise

        finally:
            reset_request_context(token)

    def _get_client_ip(self, scope: Scope, headers: Headers) -> str | None:
        """
        Get client IP, handling proxy headers.

        Trusts X-Forwarded-For only from trusted proxies.
        """
        client = scope.get("client")
        client_host = client[0] if client else None

        if client_host in self.trusted_proxies:
            forwarded_for = headers.get("x-forwarded-for")
            if forwarded_for:
                # First entry is the original client
                return forwarded_for.split(",")[0].strip()

            real_ip = headers.get("x-real-ip")
            if real_ip:
                return real_ip.strip()

        return client_host


__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContextMiddleware",
]
