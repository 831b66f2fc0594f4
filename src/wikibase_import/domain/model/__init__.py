"""Public domain model surface."""

from __future__ import annotations

from wikibase_import.domain.model.entity import Entity, RemoteEntity
from wikibase_import.domain.model.enums import EntityType, Rank, SnakType
from wikibase_import.domain.model.mapping import EntityMapping
from wikibase_import.domain.model.primitives import EntityRef, LocalEntityId, RemoteEntityId
from wikibase_import.domain.model.statements import (
    MAX_VALUE_DEPTH,
    DataValue,
    EntityIdValue,
    EntityLink,
    PlainValue,
    Reference,
    Snak,
    Statement,
    iter_entity_refs,
)

__all__ = [  # noqa: RUF022
    # entities
    "Entity",
    "RemoteEntity",
    "EntityMapping",
    # identifiers
    "EntityRef",
    "LocalEntityId",
    "RemoteEntityId",
    # statements
    "DataValue",
    "EntityIdValue",
    "EntityLink",
    "PlainValue",
    "Reference",
    "Snak",
    "Statement",
    "MAX_VALUE_DEPTH",
    "iter_entity_refs",
    # enums
    "EntityType",
    "Rank",
    "SnakType",
]
