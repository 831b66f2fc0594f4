"""Local and remote entity aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wikibase_import.domain.model.enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wikibase_import.domain.model.primitives import LocalEntityId, RemoteEntityId
    from wikibase_import.domain.model.statements import Statement


@dataclass(eq=False, kw_only=True)
class Entity:
    """Entity owned by the local repository.

    ``id`` stays ``None`` until the entity store persists it for the first time.
    ``revision`` is the optimistic-concurrency token handed out by the store;
    ``0`` means never saved.
    """

    id: LocalEntityId | None = None
    entity_type: EntityType = EntityType.ITEM
    datatype: str | None = None
    labels: dict[str, str] = field(default_factory=dict[str, str])
    descriptions: dict[str, str] = field(default_factory=dict[str, str])
    aliases: dict[str, list[str]] = field(default_factory=dict[str, list[str]])
    sitelinks: dict[str, str] = field(default_factory=dict[str, str])
    revision: int = 0

    _statements: list[Statement] = field(
        default_factory=list["Statement"], repr=False, init=False
    )
    _badges: set[LocalEntityId] = field(
        default_factory=set["LocalEntityId"], repr=False, init=False
    )

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def statements(self) -> tuple[Statement, ...]:
        return tuple(self._statements)

    @property
    def badges(self) -> frozenset[LocalEntityId]:
        return frozenset(self._badges)

    def add_statement(self, statement: Statement) -> None:
        self._statements.append(statement)

    def replace_statement(self, index: int, statement: Statement) -> None:
        self._statements[index] = statement

    def add_badge(self, badge: LocalEntityId) -> bool:
        """Add ``badge``; return whether the set changed."""

        if badge in self._badges:
            return False
        self._badges.add(badge)
        return True

    def assign_id(self, entity_id: LocalEntityId) -> None:
        if self.id is not None and self.id != entity_id:
            raise ValueError(f"Entity already has id {self.id}, refusing to reassign {entity_id}")
        self.id = entity_id

    def merge_terms(
        self,
        *,
        labels: dict[str, str],
        descriptions: dict[str, str],
        aliases: dict[str, list[str]],
        sitelinks: dict[str, str],
    ) -> None:
        """Overlay remote terms: labels, descriptions and sitelinks win per key,
        aliases are unioned per language keeping first-seen order."""

        self.labels.update(labels)
        self.descriptions.update(descriptions)
        self.sitelinks.update(sitelinks)
        for language, values in aliases.items():
            self.aliases[language] = _ordered_union(self.aliases.get(language, ()), values)


def _ordered_union(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for value in (*existing, *incoming):
        if value not in merged:
            merged.append(value)
    return merged


@dataclass(frozen=True, kw_only=True)
class RemoteEntity:
    """Entity as fetched from the remote repository.

    Every ``EntityRef`` inside ``statements`` is flagged remote; ``badges`` holds
    the remote item ids of all sitelink badges.
    """

    remote_id: RemoteEntityId
    entity_type: EntityType = EntityType.ITEM
    datatype: str | None = None
    labels: dict[str, str] = field(default_factory=dict[str, str])
    descriptions: dict[str, str] = field(default_factory=dict[str, str])
    aliases: dict[str, list[str]] = field(default_factory=dict[str, list[str]])
    sitelinks: dict[str, str] = field(default_factory=dict[str, str])
    statements: tuple[Statement, ...] = ()
    badges: tuple[RemoteEntityId, ...] = ()
