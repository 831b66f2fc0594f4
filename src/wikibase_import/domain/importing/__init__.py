"""Entity import pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .badges import BadgeItemUpdater
from .batch import BatchImporter, BatchImportResult, ImportRetryPolicy
from .importer import CancellationToken, EntityImporter, ImportResult, ImportStage
from .statements import StatementsImporter, new_statement_guid
from .translation import ReferenceTranslator, TranslatedStatement

if TYPE_CHECKING:
    from logging import Logger

    from wikibase_import.domain.ports import EntityLookup, ImportUnitOfWork


def build_entity_importer(
    *,
    entity_lookup: EntityLookup,
    unit_of_work: ImportUnitOfWork,
    logger: Logger | None = None,
) -> EntityImporter:
    """Assemble the pipeline from already constructed collaborators.

    The statements importer and badge updater share the unit of work's mapping
    store, so every read and write of one import goes through the same
    transaction.
    """

    repositories = unit_of_work.repositories
    return EntityImporter(
        entity_lookup=entity_lookup,
        statements_importer=StatementsImporter(
            repositories.mappings,
            repositories.statement_counts,
            logger=logger,
        ),
        badge_updater=BadgeItemUpdater(repositories.mappings, logger=logger),
        unit_of_work=unit_of_work,
        logger=logger,
    )


__all__ = [
    "BadgeItemUpdater",
    "BatchImportResult",
    "BatchImporter",
    "CancellationToken",
    "EntityImporter",
    "ImportResult",
    "ImportRetryPolicy",
    "ImportStage",
    "ReferenceTranslator",
    "StatementsImporter",
    "TranslatedStatement",
    "build_entity_importer",
    "new_statement_guid",
]
