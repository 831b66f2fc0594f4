"""Statements, snaks and their values."""

from __future__ import annotations

import builtins
import json
from dataclasses import dataclass, fields, is_dataclass
from typing import TYPE_CHECKING, Final

from wikibase_import.domain.model.enums import Rank, SnakType
from wikibase_import.domain.model.primitives import EntityRef

if TYPE_CHECKING:
    from collections.abc import Iterator

MAX_VALUE_DEPTH: Final[int] = 32


@dataclass(frozen=True, slots=True)
class EntityIdValue:
    """Value pointing at another entity (``wikibase-entityid`` data values)."""

    ref: EntityRef
    entity_type: str = "item"


@dataclass(frozen=True, slots=True)
class EntityLink:
    """An entity named by concept URI inside a plain value.

    ``name`` is the key the URI was found under (``unit``, ``globe``, ...) and
    ``base_uri`` the concept URI prefix of the repository it came from.
    """

    name: str
    ref: EntityRef
    base_uri: str


@dataclass(frozen=True, slots=True)
class PlainValue:
    """Any other data value (strings, times, quantities, ...).

    ``value`` is kept verbatim except for entity URIs, which live in ``links``
    so they are translated like every other reference.
    """

    value_type: str
    value: object
    links: tuple[EntityLink, ...] = ()

    def key(self) -> str:
        links = sorted([link.name, link.ref.id, link.ref.remote] for link in self.links)
        return json.dumps([self.value_type, self.value, links], sort_keys=True, default=str)


type DataValue = EntityIdValue | PlainValue


@dataclass(frozen=True, slots=True)
class Snak:
    property: EntityRef
    snak_type: SnakType = SnakType.VALUE
    datatype: str | None = None
    value: DataValue | None = None

    def key(self) -> tuple[object, ...]:
        value_key: object
        match self.value:
            case EntityIdValue(ref=ref, entity_type=entity_type):
                value_key = ("entity", entity_type, ref.id, ref.remote)
            case PlainValue():
                value_key = self.value.key()
            case _:
                value_key = None
        return (self.property.id, self.property.remote, self.snak_type, value_key)


@dataclass(frozen=True, slots=True)
class Reference:
    snaks: tuple[Snak, ...] = ()


@dataclass(frozen=True, slots=True)
class Statement:
    mainsnak: Snak
    qualifiers: tuple[Snak, ...] = ()
    references: tuple[Reference, ...] = ()
    rank: Rank = Rank.NORMAL
    guid: str | None = None

    @property
    def property(self) -> EntityRef:
        return self.mainsnak.property

    def dedup_key(self) -> tuple[object, ...]:
        """Identity used for de-duplication: property, main value and qualifiers.

        Qualifier order, references, rank and guid do not take part.
        """

        qualifier_keys = tuple(sorted((q.key() for q in self.qualifiers), key=repr))
        return (self.mainsnak.key(), qualifier_keys)

    def entity_refs(self) -> tuple[EntityRef, ...]:
        return tuple(iter_entity_refs(self))

    @builtins.property
    def has_remote_refs(self) -> bool:
        return any(ref.remote for ref in iter_entity_refs(self))


def iter_entity_refs(node: object, *, max_depth: int = MAX_VALUE_DEPTH) -> Iterator[EntityRef]:
    """Yield every ``EntityRef`` reachable from ``node``.

    Uses an explicit worklist; nodes deeper than ``max_depth`` are not visited.
    """

    stack: list[tuple[object, int]] = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if isinstance(current, EntityRef):
            yield current
            continue
        if depth >= max_depth:
            continue
        if is_dataclass(current) and not isinstance(current, type):
            children = [getattr(current, f.name) for f in fields(current)]
        elif isinstance(current, (tuple, list)):
            children = list(current)
        else:
            continue
        stack.extend((child, depth + 1) for child in reversed(children))
