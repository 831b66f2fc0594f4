"""Ports for persisting local entities and import bookkeeping."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from wikibase_import.domain.model import Entity, EntityType, LocalEntityId, RemoteEntityId


@runtime_checkable
class EntityStore(Protocol):
    """Persistence contract for local entities."""

    def new_entity(self, entity_type: EntityType, *, datatype: str | None = None) -> Entity:
        """Return a fresh, unsaved entity; its id is allocated by ``save_entity``."""
        ...

    def load_entity(self, local_id: LocalEntityId) -> Entity:
        """Load an entity or raise ``MissingLocalEntityError``."""
        ...

    def save_entity(self, entity: Entity) -> None:
        """Persist ``entity``, raising ``PersistenceConflictError`` on a stale revision."""
        ...


@runtime_checkable
class ImportedEntityMappingStore(Protocol):
    """Persistent remote-id to local-id mapping."""

    def resolve(self, remote_id: RemoteEntityId) -> LocalEntityId | None: ...

    def record(self, remote_id: RemoteEntityId, local_id: LocalEntityId) -> None:
        """Insert the pair; no-op if present, ``DuplicateMappingError`` on conflict."""
        ...

    def exists(self, remote_id: RemoteEntityId) -> bool: ...


@runtime_checkable
class StatementCountLookup(Protocol):
    """Number of statements already materialized for a local entity."""

    def statement_count(self, local_id: LocalEntityId) -> int: ...
