"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from wikibase_import.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    is_started,
    startup,
)
from wikibase_import.adapters.wikibase import WikibaseEntityLookup
from wikibase_import.config import get_import_config, get_remote_api_config
from wikibase_import.domain.importing import (
    BatchImporter,
    ImportRetryPolicy,
    build_entity_importer,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable

    from wikibase_import.domain.importing import BatchImportResult
    from wikibase_import.domain.model import RemoteEntityId
    from wikibase_import.domain.ports import EntityLookup, ImportUnitOfWork

log = getLogger(__name__)


def import_remote_entities(
    remote_ids: Iterable[RemoteEntityId],
    *,
    workers: int | None = None,
    timeout: float | None = None,
    attempts: int | None = None,
    cancel: threading.Event | None = None,
    entity_lookup: EntityLookup | None = None,
    unit_of_work: ImportUnitOfWork | None = None,
) -> BatchImportResult:
    """Import remote entities with the configured adapters.

    Arguments left as ``None`` fall back to the environment configuration.
    """

    import_config = get_import_config()
    if unit_of_work is None:
        if not is_started():
            startup()
        unit_of_work = SqlAlchemyImportUnitOfWork()
    effective_lookup = entity_lookup or WikibaseEntityLookup(config=get_remote_api_config())

    importer = build_entity_importer(entity_lookup=effective_lookup, unit_of_work=unit_of_work)
    batch = BatchImporter(
        importer,
        max_workers=workers if workers is not None else import_config.workers,
        retry=ImportRetryPolicy(
            attempts=attempts if attempts is not None else import_config.attempts,
            backoff_seconds=import_config.backoff_seconds,
        ),
        timeout=timeout,
    )
    result = batch.import_entities(remote_ids, cancel=cancel)

    for remote_id, error in result.failed.items():
        log.error("Import of %s failed at stage %s: %s", remote_id, error.stage, error)
    return result
