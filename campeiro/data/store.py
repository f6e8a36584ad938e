# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Store composition.

build_store() takes a backend (entity name -> Repository) and wraps the
allow-listed entities in AuditedRepository. The audit sink writes to the
raw audit_logs repository and sessions are never wrapped, so auditing
cannot recurse into itself. The deny-list always wins over the allow-list.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..core.settings import Settings
from ..observability.audit import AuditSink
from .audit import AuditedRepository
from .database import init_database
from .memory import memory_backend
from .repositories import sql_backend

logger = logging.getLogger(__name__)

AUDITED_ENTITIES = frozenset(
    {"users", "events", "photos", "selections", "selection_items", "orders"}
)
IGNORED_ENTITIES = frozenset({"audit_logs", "sessions"})


@dataclass
class Store:
    """Per-entity repositories used by the application."""

    users: object
    sessions: object
    audit_logs: object
    events: object
    photos: object
    selections: object
    selection_items: object
    orders: object
    audit_sink: AuditSink


def build_store(
    backend: Mapping[str, object],
    audited: Iterable[str] = AUDITED_ENTITIES,
    ignored: Iterable[str] = IGNORED_ENTITIES,
    audit_enabled: bool = True,
) -> Store:
    """Compose a Store, intercepting writes on audited entities."""
    audited = set(audited)
    ignored = set(ignored)

    sink = AuditSink(backend["audit_logs"], enabled=audit_enabled)

    repositories = {}
    for entity, repository in backend.items():
        if entity in audited and entity not in ignored:
            repositories[entity] = AuditedRepository(repository, sink, entity)
        else:
            repositories[entity] = repository

    wrapped = sorted(e for e, r in repositories.items() if isinstance(r, AuditedRepository))
    logger.info(f"Store ready, audited entities: {', '.join(wrapped) or 'none'}")

    return Store(audit_sink=sink, **repositories)


async def open_store(settings: Settings) -> Store:
    """
    Build the Store for the configured backend.

    DATABASE_URL=memory:// keeps everything in-process; any other URL
    initializes the SQLAlchemy engine.
    """
    if settings.database.is_memory:
        logger.info("Using in-memory store")
        backend = memory_backend()
    else:
        backend = sql_backend(await init_database(settings.database))

    return build_store(
        backend,
        audited=settings.audit.audited_entities,
        ignored=settings.audit.ignored_entities,
        audit_enabled=settings.audit.enabled,
    )


__all__ = ["Store", "build_store", "open_store", "AUDITED_ENTITIES", "IGNORED_ENTITIES"]
