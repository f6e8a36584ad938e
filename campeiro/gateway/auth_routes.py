# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Authentication Routes

Endpoints for:
- User registration
- Login (password-based)
- Refresh with session rotation
- Logout (idempotent)
- Current user and session management

The refresh token only ever travels in an HttpOnly cookie scoped to the
auth route group; the access token is returned in the JSON body.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..core.context import get_request_context
from ..core.exceptions import AuthenticationError
from ..core.settings import Settings
from .auth_service import AuthResult, AuthService, Principal
from .dependencies import get_app_settings, get_auth_service, get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============================================================
# REQUEST/RESPONSE MODELS
# ============================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    cpf: str = Field(..., pattern=r"^\d{11}$")
    phone: str = Field(..., pattern=r"^\d{10,11}$")
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Public user profile."""

    id: str
    name: str
    email: str
    cpf: str
    phone: str | None = None
    role: str
    created_at: datetime | None = None


class AuthResponse(BaseModel):
    """Register/login response."""

    user: UserResponse
    access_token: str
    session_id: str


class RefreshResponse(BaseModel):
    """Refresh response."""

    access_token: str
    session_id: str


class SessionResponse(BaseModel):
    session_id: str
    created_at: str | None
    expires_at: str
    ip_address: str | None
    user_agent: str | None
    is_current: bool


# ============================================================
# COOKIE HELPERS
# ============================================================


def set_refresh_cookie(response: Response, settings: Settings, result: AuthResult) -> None:
    response.set_cookie(
        key=settings.security.refresh_cookie_name,
        value=result.refresh_token,
        expires=result.session.expires_at,
        path=settings.auth_path,
        domain=settings.security.cookie_domain,
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.security.refresh_cookie_name,
        path=settings.auth_path,
        domain=settings.security.cookie_domain,
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def _caller(request: Request) -> tuple[str | None, str | None]:
    """User agent and client ip as captured for this request."""
    ctx = get_request_context()
    if ctx is not None:
        return ctx.user_agent, ctx.client_ip
    return request.headers.get("user-agent"), request.client.host if request.client else None


# ============================================================
# ROUTES
# ============================================================


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Create a client account and start a session."""
    user_agent, ip_address = _caller(request)
    result = await service.register(
        body.model_dump(), user_agent=user_agent, ip_address=ip_address
    )
    set_refresh_cookie(response, settings, result)
    return {"user": result.user, "access_token": result.access_token, "session_id": result.session_id}


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Authenticate with e-mail and password."""
    user_agent, ip_address = _caller(request)
    result = await service.login(
        body.email, body.password, user_agent=user_agent, ip_address=ip_address
    )
    set_refresh_cookie(response, settings, result)
    return {"user": result.user, "access_token": result.access_token, "session_id": result.session_id}


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Exchange the refresh cookie for a new token pair, rotating the session."""
    user_agent, ip_address = _caller(request)
    result = await service.refresh(
        request.cookies.get(settings.security.refresh_cookie_name),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    set_refresh_cookie(response, settings, result)
    return {"access_token": result.access_token, "session_id": result.session_id}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke the current session. Always succeeds."""
    await service.logout(request.cookies.get(settings.security.refresh_cookie_name))
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_refresh_cookie(response, settings)
    return response


@router.get("/me", response_model=UserResponse)
async def me(
    principal: Principal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.get_user(principal.user_id)


@router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(
    request: Request,
    principal: Principal = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Active sessions of the current user."""
    current = None
    cookie = request.cookies.get(settings.security.refresh_cookie_name)
    if cookie:
        try:
            current = service.tokens.verify_refresh(cookie).session_id
        except AuthenticationError:
            current = None

    sessions = await service.sessions.list_active(principal.user_id)
    return [s.to_api_response(current_session_id=current) for s in sessions]


@router.post("/sessions/revoke-all", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_all_sessions(
    principal: Principal = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    service: AuthService = Depends(get_auth_service),
):
    """Log out everywhere."""
    revoked = await service.revoke_all(principal.user_id)
    logger.info(f"User {principal.user_id} revoked {revoked} sessions")
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_refresh_cookie(response, settings)
    return response
