# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Campeiro - Photo Marketplace API

Authentication, session and audit backbone of the marketplace:

- Access/refresh tokens with per-refresh session rotation
- Request-scoped correlation context
- Transparent, redacted audit trail of persistence writes and HTTP exchanges

Quick Start:
    uvicorn campeiro.gateway.app:create_app --factory

Architecture:

    request
      -> RequestContextMiddleware   (request id, ip, user agent)
      -> HttpAuditMiddleware        (one HTTP entry per response)
      -> routes / AuthService       (tokens + sessions)
      -> Store                      (AuditedRepository on business entities)
      -> AuditSink                  (background writes to audit_logs)
"""

__version__ = "1.0.0"
