# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""Settings, errors and request context shared by every layer."""

from .context import (
    RequestContext,
    get_request_context,
    get_request_id,
    set_request_user,
)
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    CampeiroError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .settings import Settings, get_settings

__all__ = [
    # Context
    "RequestContext",
    "get_request_context",
    "get_request_id",
    "set_request_user",
    # Errors
    "CampeiroError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    # Settings
    "Settings",
    "get_settings",
]
