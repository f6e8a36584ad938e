# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Request Context

Request-scoped correlation data held in a ContextVar. The middleware in
campeiro.gateway.request_context binds one RequestContext per inbound
request; everything running inside that request (including tasks it
spawns) reads the same object through get_request_context().

The context object itself is mutable so that identity resolved later in
the request (set_request_user) is visible to tasks spawned earlier.
"""

import time
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any

# ============================================================
# CONTEXT VARIABLES
# ============================================================

_request_context_var: ContextVar["RequestContext | None"] = ContextVar(
    "request_context", default=None
)


@dataclass
class RequestContext:
    """
    Request-scoped context data.

    Available throughout the request lifecycle via get_request_context().
    """

    # Core identifiers
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Timing
    start_time: float = field(default_factory=time.perf_counter)

    # Request info
    method: str = ""
    path: str = ""
    client_ip: str | None = None
    user_agent: str | None = None

    # Set once authentication resolves an identity
    user_id: str | None = None
    role: str | None = None

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since request started."""
        return (time.perf_counter() - self.start_time) * 1000

    def to_log_dict(self) -> dict[str, Any]:
        """Get dict suitable for structured logging."""
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "user_id": self.user_id,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


# ============================================================
# CONTEXT ACCESSORS
# ============================================================


def get_request_context() -> RequestContext | None:
    """
    Get the current request context.

    Returns None if not in a request context.
    """
    return _request_context_var.get()


def get_request_id() -> str:
    """Current request id, or empty string outside a request."""
    ctx = _request_context_var.get()
    return ctx.request_id if ctx else ""


def bind_request_context(ctx: RequestContext) -> Token:
    """Make ctx current. Pair every call with reset_request_context()."""
    return _request_context_var.set(ctx)


def reset_request_context(token: Token) -> None:
    _request_context_var.reset(token)


def set_request_user(user_id: str, role: str | None = None) -> None:
    """
    Annotate the current request with the authenticated user.

    Called once the auth layer resolves an identity. No-op outside a request.
    """
    ctx = get_request_context()
    if ctx:
        ctx.user_id = user_id
        ctx.role = role


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "RequestContext",
    "get_request_context",
    "get_request_id",
    "bind_request_context",
    "reset_request_context",
    "set_request_user",
]
