# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Repository pattern for per-entity CRUD operations.

Every entity is reached through an object implementing the Repository
protocol below. Records cross this boundary as plain dicts keyed by
column name; filters (`where`) are equality matches on columns.

SqlRepository opens one short-lived AsyncSession per operation and
commits before returning, so each call is its own unit of work.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import DateTime, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import ConflictError, NotFoundError
from .models import MODELS, Base

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Where = dict[str, Any]


@runtime_checkable
class Repository(Protocol):
    """Persistence collaborator for one entity."""

    entity: str

    async def create(self, data: Record) -> Record: ...

    async def get(self, where: Where) -> Record | None: ...

    async def find_many(
        self,
        where: Where | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]: ...

    async def count(self, where: Where | None = None) -> int: ...

    async def update(self, where: Where, data: Record) -> Record: ...

    async def delete(self, where: Where) -> Record: ...

    async def upsert(self, where: Where, create: Record, update: Record) -> Record: ...

    async def create_many(self, rows: Iterable[Record]) -> int: ...

    async def update_many(self, where: Where, data: Record) -> int: ...

    async def delete_many(self, where: Where) -> int: ...


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on the way back; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# SqlRepository
# ---------------------------------------------------------------------------


class SqlRepository:
    """Repository backed by a SQLAlchemy ORM model."""

    def __init__(self, entity: str, model: type[Base], session_factory: async_sessionmaker[AsyncSession]):
        self.entity = entity
        self.model = model
        self._session_factory = session_factory
        self._columns = {c.key: c for c in model.__table__.columns}
        self._unique = [
            c.key for c in model.__table__.columns if c.unique and not c.primary_key
        ]

    def __repr__(self) -> str:
        return f"<SqlRepository {self.entity}>"

    # ---- helpers ------------------------------------------------------

    def _check_columns(self, data: Record) -> None:
        unknown = set(data) - set(self._columns)
        if unknown:
            raise ValueError(f"Unknown fields for {self.entity}: {sorted(unknown)}")

    def _clauses(self, where: Where | None) -> list:
        if not where:
            return []
        self._check_columns(where)
        return [getattr(self.model, key) == value for key, value in where.items()]

    def _to_record(self, row: Base) -> Record:
        record: Record = {}
        for key, column in self._columns.items():
            value = getattr(row, key)
            if isinstance(column.type, DateTime):
                value = _as_utc(value)
            record[key] = value
        return record

    def _conflict(self, exc: IntegrityError) -> ConflictError | None:
        text = str(exc.orig).lower()
        for field in self._unique:
            if f"{self.entity}.{field}" in text or f"({field})" in text or f"_{field}_" in text:
                return ConflictError(f"{field} already registered", field=field)
        if "unique" in text or "duplicate" in text:
            return ConflictError(f"Duplicate {self.entity} record")
        return None

    async def _commit(self, session: AsyncSession) -> None:
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            conflict = self._conflict(e)
            if conflict is not None:
                raise conflict from e
            raise

    async def _first(self, session: AsyncSession, where: Where) -> Base | None:
        result = await session.execute(select(self.model).where(*self._clauses(where)).limit(1))
        return result.scalar_one_or_none()

    # ---- reads --------------------------------------------------------

    async def get(self, where: Where) -> Record | None:
        async with self._session_factory() as session:
            row = await self._first(session, where)
            return self._to_record(row) if row is not None else None

    async def find_many(
        self,
        where: Where | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        stmt = select(self.model).where(*self._clauses(where))
        if order_by:
            column = getattr(self.model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(row) for row in result.scalars().all()]

    async def count(self, where: Where | None = None) -> int:
        stmt = select(func.count()).select_from(self.model).where(*self._clauses(where))
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    # ---- writes -------------------------------------------------------

    async def create(self, data: Record) -> Record:
        self._check_columns(data)
        async with self._session_factory() as session:
            row = self.model(**data)
            session.add(row)
            await self._commit(session)
            return self._to_record(row)

    async def create_many(self, rows: Iterable[Record]) -> int:
        rows = list(rows)
        for data in rows:
            self._check_columns(data)
        async with self._session_factory() as session:
            session.add_all([self.model(**data) for data in rows])
            await self._commit(session)
        return len(rows)

    async def update(self, where: Where, data: Record) -> Record:
        self._check_columns(data)
        async with self._session_factory() as session:
            row = await self._first(session, where)
            if row is None:
                raise NotFoundError(f"{self.entity} record not found", entity=self.entity)
            for key, value in data.items():
                setattr(row, key, value)
            await self._commit(session)
            return self._to_record(row)

    async def delete(self, where: Where) -> Record:
        async with self._session_factory() as session:
            row = await self._first(session, where)
            if row is None:
                raise NotFoundError(f"{self.entity} record not found", entity=self.entity)
            record = self._to_record(row)
            await session.delete(row)
            await self._commit(session)
            return record

    async def upsert(self, where: Where, create: Record, update: Record) -> Record:
        existing = await self.get(where)
        if existing is None:
            return await self.create({**where, **create})
        return await self.update(where, update)

    async def update_many(self, where: Where, data: Record) -> int:
        self._check_columns(data)
        stmt = (
            update(self.model)
            .where(*self._clauses(where))
            .values(**data)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await self._commit(session)
            return result.rowcount or 0

    async def delete_many(self, where: Where) -> int:
        stmt = (
            delete(self.model)
            .where(*self._clauses(where))
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await self._commit(session)
            return result.rowcount or 0


def sql_backend(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, SqlRepository]:
    """One SqlRepository per known entity."""
    return {
        entity: SqlRepository(entity, model, session_factory)
        for entity, model in MODELS.items()
    }
