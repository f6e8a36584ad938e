# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Audit log routes (admin only, read-only).

Audit entries are immutable: there is no write endpoint.
"""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..core.exceptions import NotFoundError
from ..data.store import Store
from .auth import Role
from .dependencies import get_store, require_role

router = APIRouter(prefix="/logs", tags=["Audit"])

MAX_LOG_PAGE = 200


class AuditLogResponse(BaseModel):
    id: str
    level: str
    event: str
    message: dict[str, Any]
    user_id: str | None = None
    ip_address: str | None = None
    request_id: str | None = None
    created_at: datetime


@router.get("", response_model=list[AuditLogResponse])
async def list_logs(
    user_id: str | None = None,
    level: Literal["info", "warn", "error"] | None = None,
    event: str | None = None,
    limit: int = Query(default=MAX_LOG_PAGE, ge=1, le=MAX_LOG_PAGE),
    store: Store = Depends(get_store),
    _admin=Depends(require_role(Role.ADMIN)),
):
    """Newest audit entries first, optionally filtered."""
    where = {
        key: value
        for key, value in {"user_id": user_id, "level": level, "event": event}.items()
        if value is not None
    }
    return await store.audit_logs.find_many(
        where or None, order_by="created_at", descending=True, limit=limit
    )


@router.get("/{log_id}", response_model=AuditLogResponse)
async def get_log(
    log_id: str,
    store: Store = Depends(get_store),
    _admin=Depends(require_role(Role.ADMIN)),
):
    entry = await store.audit_logs.get({"id": log_id})
    if entry is None:
        raise NotFoundError("Log entry not found", entity="audit_logs")
    return entry
