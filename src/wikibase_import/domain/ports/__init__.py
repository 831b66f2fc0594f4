"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import EntityLookup
from .persistence import EntityStore, ImportedEntityMappingStore, StatementCountLookup
from .unit_of_work import (
    ImportRepositories,
    ImportUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "EntityLookup",
    "EntityStore",
    "ImportRepositories",
    "ImportUnitOfWork",
    "ImportedEntityMappingStore",
    "RepositoryCollection",
    "StatementCountLookup",
    "UnitOfWork",
]
