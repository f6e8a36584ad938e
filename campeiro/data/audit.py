# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Audited repository decorator.

Wraps one entity repository so every state-changing call is recorded as
a DB_WRITE audit entry without the calling handler doing anything:

1. update/delete/upsert fetch the current record first (best effort)
2. the wrapped operation runs; its result or exception is the caller's
3. filter, payload and pre-image are summarized with sensitive fields
   masked and nested objects replaced by a marker
4. the entry is handed to the AuditSink, which writes it in the background

Reads are delegated untouched.
"""

import logging
from typing import Any

from ..core.redaction import summarize
from ..observability.audit import AuditSink

logger = logging.getLogger(__name__)

WRITE_OPERATIONS = frozenset(
    {"create", "update", "delete", "upsert", "create_many", "update_many", "delete_many"}
)
SINGLE_RECORD_OPERATIONS = frozenset({"update", "delete", "upsert"})


class AuditedRepository:
    """Repository decorator that records DB_WRITE audit entries."""

    def __init__(self, inner, sink: AuditSink, entity: str | None = None):
        self.inner = inner
        self.sink = sink
        self.entity = entity or inner.entity

    def __getattr__(self, name: str) -> Any:
        # Reads (get, find_many, count, ...) go straight to the wrapped repository
        return getattr(self.inner, name)

    def __repr__(self) -> str:
        return f"<AuditedRepository {self.inner!r}>"

    # ---- writes -------------------------------------------------------

    async def create(self, data: dict) -> dict:
        return await self._intercept("create", None, data, self.inner.create, data)

    async def create_many(self, rows) -> int:
        rows = list(rows)
        return await self._intercept(
            "create_many", None, {"count": len(rows)}, self.inner.create_many, rows
        )

    async def update(self, where: dict, data: dict) -> dict:
        return await self._intercept("update", where, data, self.inner.update, where, data)

    async def delete(self, where: dict) -> dict:
        return await self._intercept("delete", where, None, self.inner.delete, where)

    async def upsert(self, where: dict, create: dict, update: dict) -> dict:
        return await self._intercept(
            "upsert",
            where,
            {"create": summarize(create), "update": summarize(update)},
            self.inner.upsert,
            where,
            create,
            update,
        )

    async def update_many(self, where: dict, data: dict) -> int:
        return await self._intercept(
            "update_many", where, data, self.inner.update_many, where, data
        )

    async def delete_many(self, where: dict) -> int:
        return await self._intercept("delete_many", where, None, self.inner.delete_many, where)

    # ---- internals ----------------------------------------------------

    async def _before_image(self, action: str, where: dict | None) -> dict | None:
        if action not in SINGLE_RECORD_OPERATIONS or not where:
            return None
        try:
            return await self.inner.get(where)
        except Exception:
            logger.debug(f"Pre-image lookup failed for {self.entity}.{action}", exc_info=True)
            return None

    async def _intercept(self, action: str, where, data, operation, *args):
        before = await self._before_image(action, where)

        result = await operation(*args)

        try:
            if action == "upsert":
                # create/update payloads were summarized individually above
                payload = data
            else:
                payload = summarize(data)
            self.sink.record(
                "info",
                "DB_WRITE",
                {
                    "model": self.entity,
                    "action": action,
                    "where": summarize(where),
                    "data": payload,
                    "result_id": result.get("id") if isinstance(result, dict) else None,
                    "count": result if isinstance(result, int) else None,
                    "before": summarize(before),
                },
            )
        except Exception:
            logger.debug(f"Audit summary failed for {self.entity}.{action}", exc_info=True)

        return result


__all__ = ["AuditedRepository", "WRITE_OPERATIONS", "SINGLE_RECORD_OPERATIONS"]
