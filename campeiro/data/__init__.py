# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Data layer for Campeiro.

Provides database engine management, ORM models, the Repository protocol
with SQL and in-memory implementations, and the audited store composition.
Supports both PostgreSQL (production) and SQLite (development) via
SQLAlchemy async.
"""

from .audit import AuditedRepository
from .database import close_database, init_database
from .memory import MemoryRepository, memory_backend
from .models import (
    AuditLogModel,
    Base,
    EventModel,
    OrderModel,
    PhotoModel,
    SelectionItemModel,
    SelectionModel,
    SessionModel,
    UserModel,
)
from .repositories import Repository, SqlRepository, sql_backend
from .store import AUDITED_ENTITIES, IGNORED_ENTITIES, Store, build_store, open_store

__all__ = [
    # Engine lifecycle
    "init_database",
    "close_database",
    # Models
    "Base",
    "UserModel",
    "SessionModel",
    "AuditLogModel",
    "EventModel",
    "PhotoModel",
    "SelectionModel",
    "SelectionItemModel",
    "OrderModel",
    # Repositories
    "Repository",
    "SqlRepository",
    "MemoryRepository",
    "sql_backend",
    "memory_backend",
    # Store
    "AuditedRepository",
    "Store",
    "build_store",
    "open_store",
    "AUDITED_ENTITIES",
    "IGNORED_ENTITIES",
]
