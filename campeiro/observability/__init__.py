# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Observability Module

- logging: structured JSON / human logging with request context
- audit: background audit sink backing the audit trail
"""

from .audit import AuditSink
from .logging import (
    HumanFormatter,
    JSONFormatter,
    RequestContextFilter,
    configure_logging,
    mask_sensitive_data,
)

__all__ = [
    "AuditSink",
    "JSONFormatter",
    "HumanFormatter",
    "RequestContextFilter",
    "configure_logging",
    "mask_sensitive_data",
]
