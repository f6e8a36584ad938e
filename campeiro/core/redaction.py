# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Redaction helpers for audit payloads.

Two strengths are provided:

- summarize(): one level deep. Sensitive keys are masked and any nested
  object is replaced by a type marker instead of being walked. Used for
  persistence-write audit entries so payload size stays bounded.
- mask_sensitive(): walks nested dicts/lists masking sensitive keys only.
  Used on free-form `extra` payloads handed to the audit sink.

Log extras use the looser is_sensitive(key, partial=True) match, so
`refresh_token` or `Authorization` are caught as well.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

SENSITIVE_FIELDS = frozenset({"password", "password_hash", "cpf", "token"})

MASK = "***"
OBJECT_MARKER = "[object]"

_MAX_DEPTH = 10


# Any key containing one of these is treated as a credential
CREDENTIAL_FRAGMENTS = SENSITIVE_FIELDS | {"secret", "authorization", "cookie", "credential", "jwt"}


def is_sensitive(key: str, partial: bool = False) -> bool:
    key = key.lower()
    if partial:
        return any(fragment in key for fragment in CREDENTIAL_FRAGMENTS)
    return key in SENSITIVE_FIELDS


def _scalar(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return OBJECT_MARKER


def summarize(data: Any) -> dict[str, Any] | None:
    """
    One-level redacted summary of a filter, payload or record.

    Returns None when data is not a mapping (nothing to summarize).
    """
    if not isinstance(data, dict):
        return None

    summary: dict[str, Any] = {}
    for key, value in data.items():
        if is_sensitive(str(key)):
            summary[key] = MASK
        else:
            summary[key] = _scalar(value)
    return summary


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """Recursively mask sensitive keys. Values are made JSON friendly."""
    if depth > _MAX_DEPTH:
        return OBJECT_MARKER

    if isinstance(data, dict):
        return {
            key: MASK if is_sensitive(str(key)) else mask_sensitive(value, depth + 1)
            for key, value in data.items()
        }
    if isinstance(data, list | tuple | set):
        return [mask_sensitive(item, depth + 1) for item in data]
    return _scalar(data)


__all__ = [
    "SENSITIVE_FIELDS",
    "CREDENTIAL_FRAGMENTS",
    "MASK",
    "OBJECT_MARKER",
    "is_sensitive",
    "summarize",
    "mask_sensitive",
]
