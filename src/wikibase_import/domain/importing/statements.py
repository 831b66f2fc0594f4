"""Merge translated remote statements into a local entity."""

from __future__ import annotations

from dataclasses import replace
from logging import Logger, getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from wikibase_import.domain.errors import StatementTranslationError
from wikibase_import.domain.importing.translation import ReferenceTranslator
from wikibase_import.domain.model import MAX_VALUE_DEPTH

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wikibase_import.domain.model import Entity, Statement
    from wikibase_import.domain.ports import ImportedEntityMappingStore, StatementCountLookup

log = getLogger(__name__)


def new_statement_guid(entity: Entity) -> str | None:
    """Return a fresh guid for ``entity``, or ``None`` while it has no id yet."""

    if entity.id is None:
        return None
    return f"{entity.id}${uuid4()}"


class StatementsImporter:
    """Translate remote statements and append the ones the entity lacks.

    The entity is only mutated in memory; saving it is the caller's job.
    """

    def __init__(
        self,
        mapping_store: ImportedEntityMappingStore,
        statement_count_lookup: StatementCountLookup,
        *,
        logger: Logger | None = None,
        max_depth: int = MAX_VALUE_DEPTH,
    ) -> None:
        self._translator = ReferenceTranslator(mapping_store, max_depth=max_depth)
        self._statement_counts = statement_count_lookup
        self._log = logger or log

    def import_statements(self, entity: Entity, remote_statements: Sequence[Statement]) -> int:
        """Merge ``remote_statements`` into ``entity`` and return how many were added."""

        if self._is_already_imported(entity, remote_statements):
            self._log.debug(
                "Entity %s already holds %s statements, skipping statement import",
                entity.id,
                len(remote_statements),
            )
            return 0

        repaired = self._repair_untranslated(entity)
        if repaired:
            self._log.info(
                "Resolved references in %s existing statements of %s", repaired, entity.id
            )

        seen = {statement.dedup_key() for statement in entity.statements}
        added = 0
        for statement in remote_statements:
            try:
                translated = self._translator.translate(statement)
            except StatementTranslationError as exc:
                self._log.warning(
                    "Skipping statement %s on %s: %s",
                    statement.guid,
                    statement.property.id,
                    exc,
                )
                continue
            if translated.gaps:
                self._log.info(
                    "Statement on %s keeps untranslated references: %s",
                    statement.property.id,
                    ", ".join(translated.gaps),
                )
            key = translated.statement.dedup_key()
            if key in seen:
                continue
            seen.add(key)
            entity.add_statement(replace(translated.statement, guid=new_statement_guid(entity)))
            added += 1
        return added

    def _is_already_imported(self, entity: Entity, remote_statements: Sequence[Statement]) -> bool:
        if entity.id is None:
            return False
        if self._statement_counts.statement_count(entity.id) != len(remote_statements):
            return False
        return not any(statement.has_remote_refs for statement in entity.statements)

    def _repair_untranslated(self, entity: Entity) -> int:
        repaired = 0
        for index, statement in enumerate(entity.statements):
            if not statement.has_remote_refs:
                continue
            try:
                translated = self._translator.translate(statement)
            except StatementTranslationError as exc:
                self._log.warning("Cannot re-translate statement %s: %s", statement.guid, exc)
                continue
            if translated.statement != statement:
                entity.replace_statement(index, translated.statement)
                repaired += 1
        return repaired
