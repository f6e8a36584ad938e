# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
In-memory repositories.

Selected with DATABASE_URL=memory:// for development and tests. Satisfies
the same Repository protocol as SqlRepository, including unique-field
conflicts and per-entity column defaults. Every operation yields to the
event loop once, so concurrent callers interleave the way they would
against a real database.
"""

import asyncio
import copy
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from ..core.exceptions import ConflictError, NotFoundError
from .repositories import Record, Where


def _now() -> datetime:
    return datetime.now(UTC)


def _const(value: Any) -> Callable[[], Any]:
    return lambda: value


_TIMESTAMPS = {"created_at": _now, "updated_at": _now}

# entity -> (unique fields, column defaults); mirrors campeiro.data.models
ENTITY_SCHEMAS: dict[str, tuple[tuple[str, ...], dict[str, Callable[[], Any]]]] = {
    "users": (
        ("email", "cpf"),
        {"role": _const("client"), "phone": _const(None), "password_hash": _const(None),
         **_TIMESTAMPS},
    ),
    "sessions": (
        (),
        {"is_revoked": _const(False), "user_agent": _const(None), "ip_address": _const(None),
         "created_at": _now},
    ),
    "audit_logs": (
        (),
        {"message": dict, "user_id": _const(None), "ip_address": _const(None),
         "request_id": _const(None), "created_at": _now},
    ),
    "events": (
        (),
        {"location": _const(None), "description": _const(None), "starts_at": _const(None),
         **_TIMESTAMPS},
    ),
    "photos": ((), {"price_cents": _const(0), "meta": dict, "created_at": _now}),
    "selections": ((), {"created_at": _now}),
    "selection_items": ((), {"created_at": _now}),
    "orders": (
        (),
        {"selection_id": _const(None), "status": _const("pending"), "total_cents": _const(0),
         **_TIMESTAMPS},
    ),
}


class MemoryRepository:
    """Dict-backed Repository. Records are copied in and out."""

    def __init__(
        self,
        entity: str,
        unique: Iterable[str] = (),
        defaults: dict[str, Callable[[], Any]] | None = None,
    ):
        self.entity = entity
        self.unique = tuple(unique)
        self.defaults = defaults or {}
        self._rows: dict[str, Record] = {}

    def __repr__(self) -> str:
        return f"<MemoryRepository {self.entity} rows={len(self._rows)}>"

    @staticmethod
    def _matches(row: Record, where: Where | None) -> bool:
        return all(row.get(key) == value for key, value in (where or {}).items())

    def _select(self, where: Where | None) -> list[Record]:
        return [row for row in self._rows.values() if self._matches(row, where)]

    def _check_unique(self, data: Record, exclude_id: str | None = None) -> None:
        for field in self.unique:
            if field not in data:
                continue
            for row in self._rows.values():
                if row["id"] != exclude_id and row.get(field) == data[field]:
                    raise ConflictError(f"{field} already registered", field=field)

    def _build(self, data: Record) -> Record:
        row = {key: factory() for key, factory in self.defaults.items()}
        row.update(copy.deepcopy(data))
        row.setdefault("id", str(uuid.uuid4()))
        return row

    def _touch(self, row: Record) -> None:
        if "updated_at" in self.defaults:
            row["updated_at"] = _now()

    # ---- reads --------------------------------------------------------

    async def get(self, where: Where) -> Record | None:
        await asyncio.sleep(0)
        rows = self._select(where)
        return copy.deepcopy(rows[0]) if rows else None

    async def find_many(
        self,
        where: Where | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        await asyncio.sleep(0)
        rows = self._select(where)
        if order_by:
            rows.sort(key=lambda row: row[order_by], reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, where: Where | None = None) -> int:
        await asyncio.sleep(0)
        return len(self._select(where))

    # ---- writes -------------------------------------------------------

    async def create(self, data: Record) -> Record:
        await asyncio.sleep(0)
        row = self._build(data)
        if row["id"] in self._rows:
            raise ConflictError(f"Duplicate {self.entity} record", field="id")
        self._check_unique(row)
        self._rows[row["id"]] = row
        return copy.deepcopy(row)

    async def create_many(self, rows: Iterable[Record]) -> int:
        await asyncio.sleep(0)
        built = [self._build(data) for data in rows]
        for index, row in enumerate(built):
            self._check_unique(row)
            for other in built[index + 1:]:
                for field in self.unique:
                    if field in row and row.get(field) == other.get(field):
                        raise ConflictError(f"{field} already registered", field=field)
        for row in built:
            self._rows[row["id"]] = row
        return len(built)

    async def update(self, where: Where, data: Record) -> Record:
        await asyncio.sleep(0)
        rows = self._select(where)
        if not rows:
            raise NotFoundError(f"{self.entity} record not found", entity=self.entity)
        row = rows[0]
        self._check_unique(data, exclude_id=row["id"])
        row.update(copy.deepcopy(data))
        self._touch(row)
        return copy.deepcopy(row)

    async def delete(self, where: Where) -> Record:
        await asyncio.sleep(0)
        rows = self._select(where)
        if not rows:
            raise NotFoundError(f"{self.entity} record not found", entity=self.entity)
        return self._rows.pop(rows[0]["id"])

    async def upsert(self, where: Where, create: Record, update: Record) -> Record:
        existing = await self.get(where)
        if existing is None:
            return await self.create({**where, **create})
        return await self.update(where, update)

    async def update_many(self, where: Where, data: Record) -> int:
        await asyncio.sleep(0)
        rows = self._select(where)
        for row in rows:
            row.update(copy.deepcopy(data))
            self._touch(row)
        return len(rows)

    async def delete_many(self, where: Where) -> int:
        await asyncio.sleep(0)
        rows = self._select(where)
        for row in rows:
            del self._rows[row["id"]]
        return len(rows)


def memory_backend() -> dict[str, MemoryRepository]:
    """One MemoryRepository per known entity."""
    return {
        entity: MemoryRepository(entity, unique=unique, defaults=defaults)
        for entity, (unique, defaults) in ENTITY_SCHEMAS.items()
    }
