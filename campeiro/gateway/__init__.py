# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

from .app import create_app
from .auth import AccessClaims, PasswordService, RefreshClaims, Role, TokenService, TokenType
from .auth_service import AuthResult, AuthService, Principal
from .dependencies import get_current_user, require_role
from .http_audit import HttpAuditMiddleware
from .request_context import RequestContextMiddleware
from .sessions import SessionInfo, SessionManager, SessionState

__all__ = [
    # App
    "create_app",
    # Tokens
    "TokenService",
    "PasswordService",
    "TokenType",
    "Role",
    "AccessClaims",
    "RefreshClaims",
    # Sessions
    "SessionManager",
    "SessionInfo",
    "SessionState",
    # Auth
    "AuthService",
    "AuthResult",
    "Principal",
    "get_current_user",
    "require_role",
    # Middleware
    "RequestContextMiddleware",
    "HttpAuditMiddleware",
]
