"""SQLAlchemy adapter package for the local entity repository."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry
from .repositories import (
    SqlAlchemyEntityStore,
    SqlAlchemyImportedEntityMappingStore,
    SqlAlchemyStatementCountLookup,
)
from .unit_of_work import SqlAlchemyImportUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyEntityStore",
    "SqlAlchemyImportUnitOfWork",
    "SqlAlchemyImportedEntityMappingStore",
    "SqlAlchemyStatementCountLookup",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]
