# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
FastAPI dependencies for services and the authenticated caller.
"""

from collections.abc import Callable

from fastapi import Depends, Header, Request

from ..core.context import set_request_user
from ..core.exceptions import AuthenticationError, AuthorizationError
from ..core.settings import Settings
from ..data.store import Store
from .auth import Role
from .auth_service import AuthService, Principal

# Default identity for test-only header injection
TEST_USER_ID = "b05fb3d1-3d58-4c2a-9cde-7b5a8a0f0aaa"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    x_test_user_id: str | None = Header(None),
    x_test_role: str | None = Header(None),
) -> Principal:
    """FastAPI dependency: resolve the caller from the Authorization header.

    Usage in routes:
        principal: Principal = Depends(get_current_user)

    In the test environment only, X-Test-User-Id / X-Test-Role headers
    stand in for a token. Any other environment ignores them.
    """
    settings: Settings = request.app.state.settings
    if settings.is_test and (x_test_user_id or x_test_role):
        principal = Principal(
            user_id=x_test_user_id or TEST_USER_ID,
            role=x_test_role or Role.ADMIN.value,
        )
        set_request_user(principal.user_id, principal.role)
        return principal

    if not authorization:
        raise AuthenticationError(reason="authorization_missing")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError(reason="authorization_malformed")

    service: AuthService = request.app.state.auth_service
    return await service.authenticate(parts[1])


def require_role(*roles: str) -> Callable:
    """Dependency factory: allow only callers holding one of `roles`."""
    allowed = {str(r) for r in roles}

    async def checker(principal: Principal = Depends(get_current_user)) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError(required_role=",".join(sorted(allowed)))
        return principal

    return checker


__all__ = [
    "TEST_USER_ID",
    "get_app_settings",
    "get_store",
    "get_auth_service",
    "get_current_user",
    "require_role",
]
