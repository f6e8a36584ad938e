# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
FastAPI Gateway Application

Main entry point for the Campeiro API.

Run with the factory so settings are read at startup:
    uvicorn campeiro.gateway.app:create_app --factory
"""

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import (
    GENERIC_AUTH_MESSAGE,
    AuthenticationError,
    CampeiroError,
    ValidationError,
)
from ..core.lifecycle import Lifecycle
from ..core.settings import Settings, get_settings
from ..data.database import close_database
from ..data.store import Store, open_store
from ..observability.logging import configure_logging
from .auth_routes import router as auth_router
from .auth_service import AuthService
from .http_audit import HttpAuditMiddleware
from .log_routes import router as log_router
from .request_context import RequestContextMiddleware

logger = logging.getLogger(__name__)

# Stack lines kept in UNCAUGHT_ERROR audit entries
_STACK_LINES = 5


def attach_store(app: FastAPI, store: Store) -> None:
    """Make `store` and the services built on it available to routes."""
    settings: Settings = app.state.settings
    app.state.store = store
    app.state.auth_service = AuthService(store.users, store.sessions, settings.security)


def _audit(request: Request, level: str, event: str, extra: dict[str, Any]) -> None:
    store = getattr(request.app.state, "store", None)
    if store is None:
        return
    store.audit_sink.record(
        level, event, extra, context=getattr(request.state, "request_context", None)
    )


def _error_body(request: Request, status_code: int, error: str, **extra) -> dict[str, Any]:
    return {
        "error": error,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None),
        **extra,
    }


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        # Drop the "body"/"query" prefix when there is a field after it
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc) or "_"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return errors


# ============================================================
# EXCEPTION HANDLERS
# ============================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Map errors to JSON responses, recording each one in the audit trail."""

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        _audit(request, "warn", "VALIDATION_ERROR", {"errors": errors})
        return JSONResponse(
            status_code=400,
            content=_error_body(request, 400, "Validation failed", errors=errors),
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        # Full detail stays server side; the caller gets one generic message
        _audit(request, "warn", "AUTH_ERROR", {"reason": exc.reason, "details": exc.details})
        logger.info(f"Authentication failed: reason={exc.reason}")
        return JSONResponse(
            status_code=401,
            content=_error_body(request, 401, GENERIC_AUTH_MESSAGE),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(CampeiroError)
    async def campeiro_error_handler(request: Request, exc: CampeiroError):
        status_code = exc.status_code
        _audit(
            request,
            "error" if status_code >= 500 else "warn",
            "HTTP_ERROR",
            {"status": status_code, **exc.to_dict()},
        )
        if status_code >= 500:
            logger.error(f"Internal error: {exc.message}")
            return JSONResponse(
                status_code=status_code,
                content=_error_body(request, status_code, "Internal server error"),
            )

        extra = {"errors": exc.field_errors} if isinstance(exc, ValidationError) else {}
        return JSONResponse(
            status_code=status_code,
            content=_error_body(request, status_code, exc.message, **extra),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        _audit(request, "warn", "HTTP_ERROR", {"status": exc.status_code, "message": exc.detail})
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")

        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        _audit(
            request,
            "error",
            "UNCAUGHT_ERROR",
            {
                "type": type(exc).__name__,
                "message": str(exc),
                "stack": stack.strip().splitlines()[-_STACK_LINES:],
            },
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(request, 500, "Internal server error"),
        )


# ============================================================
# APPLICATION
# ============================================================


def create_app(settings: Settings | None = None, store: Store | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Prebuilt store. When omitted the store is opened at startup
            from settings.database and closed at shutdown.
    """
    settings = settings or get_settings()
    owns_store = store is None

    lifecycle = Lifecycle()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await lifecycle.startup()
        yield
        await lifecycle.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Photo marketplace API",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if store is not None:
        attach_store(app, store)

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    @lifecycle.on_startup
    async def startup_logging():
        configure_logging(
            level=settings.observability.level,
            format=settings.observability.format,
        )

    @lifecycle.on_startup
    async def startup_store():
        if owns_store:
            attach_store(app, await open_store(settings))
        logger.info(f"{settings.app_name} {settings.app_version} ready ({settings.environment})")

    @lifecycle.on_shutdown
    async def shutdown_database():
        if owns_store and not settings.database.is_memory:
            await close_database()

    @lifecycle.on_shutdown
    async def shutdown_audit():
        # Runs before shutdown_database (hooks run in reverse)
        current = getattr(app.state, "store", None)
        if current is not None:
            await current.audit_sink.drain()

    # --------------------------------------------------------
    # MIDDLEWARE (last added runs first)
    # --------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # HTTP audit entries need the request context, so this sits inside it
    app.add_middleware(HttpAuditMiddleware)

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=True,
        trusted_proxies=settings.trusted_proxies,
    )

    register_exception_handlers(app)

    # --------------------------------------------------------
    # ROUTES
    # --------------------------------------------------------

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(log_router, prefix=settings.api_prefix)

    return app


__all__ = ["create_app", "attach_store", "register_exception_handlers"]
