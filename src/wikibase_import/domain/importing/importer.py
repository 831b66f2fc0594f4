"""Staged import of one remote entity into the local repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from logging import Logger, getLogger
from typing import TYPE_CHECKING, Protocol

from wikibase_import.domain.errors import (
    DuplicateMappingError,
    EntityImportError,
    ImportCancelledError,
    PersistenceConflictError,
)

if TYPE_CHECKING:
    from wikibase_import.domain.importing.badges import BadgeItemUpdater
    from wikibase_import.domain.importing.statements import StatementsImporter
    from wikibase_import.domain.model import Entity, LocalEntityId, RemoteEntity, RemoteEntityId
    from wikibase_import.domain.ports import (
        EntityLookup,
        ImportedEntityMappingStore,
        ImportUnitOfWork,
    )

log = getLogger(__name__)


class ImportStage(StrEnum):
    START = "start"
    FETCHED = "fetched"
    MAPPED = "mapped"
    STATEMENTS_MERGED = "statements_merged"
    BADGES_MERGED = "badges_merged"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


class CancellationToken(Protocol):
    """Anything with ``is_set``; ``threading.Event`` qualifies."""

    def is_set(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of a successful import."""

    remote_id: RemoteEntityId
    local_id: LocalEntityId
    entity: Entity
    created: bool
    statements_added: int
    badges_added: int
    stage: ImportStage = ImportStage.DONE


@dataclass(slots=True)
class _Progress:
    remote_id: RemoteEntityId
    stage: ImportStage = ImportStage.START
    local_id: LocalEntityId | None = None


class EntityImporter:
    """Fetch a remote entity and write its local counterpart.

    Stages run in order ``start -> fetched -> mapped -> statements_merged ->
    badges_merged -> persisted -> done``. All writes of one import share a
    single unit of work: the entity is saved first, the mapping of a newly
    created entity is recorded after it, and both are committed together, so a
    failure never leaves a mapping behind without its entity.
    """

    def __init__(
        self,
        *,
        entity_lookup: EntityLookup,
        statements_importer: StatementsImporter,
        badge_updater: BadgeItemUpdater,
        unit_of_work: ImportUnitOfWork,
        logger: Logger | None = None,
    ) -> None:
        self._entity_lookup = entity_lookup
        self._statements_importer = statements_importer
        self._badge_updater = badge_updater
        self._unit_of_work = unit_of_work
        self._log = logger or log

    def import_entity(
        self,
        remote_id: RemoteEntityId,
        *,
        cancel: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> ImportResult:
        progress = _Progress(remote_id=remote_id)
        self._log_stage(progress)
        try:
            remote = self._entity_lookup.fetch(remote_id, timeout=timeout)
            self._advance(progress, ImportStage.FETCHED)
            _check_cancelled(cancel, remote_id)
            if remote.remote_id != remote_id:
                self._log.info("Remote entity %s redirects to %s", remote_id, remote.remote_id)
            try:
                result = self._merge_and_persist(progress, remote, cancel=cancel)
            except DuplicateMappingError as exc:
                # another worker recorded this entity first; continue as an update of theirs
                self._log_stage(progress, outcome="retry", error=exc)
                progress.local_id = exc.existing_local_id
                result = self._merge_and_persist(progress, remote, cancel=cancel)
        except EntityImportError as exc:
            exc.stage = progress.stage.value
            if exc.remote_id is None:
                exc.remote_id = remote_id
            self._fail(progress, exc)
            raise
        except Exception as exc:
            self._fail(progress, exc)
            raise

        self._advance(progress, ImportStage.DONE)
        return result

    def _merge_and_persist(
        self,
        progress: _Progress,
        remote: RemoteEntity,
        *,
        cancel: CancellationToken | None,
    ) -> ImportResult:
        with self._unit_of_work as uow:
            repositories = uow.repositories
            local_id = repositories.mappings.resolve(remote.remote_id)
            created = local_id is None
            if local_id is None:
                entity = repositories.entities.new_entity(
                    remote.entity_type, datatype=remote.datatype
                )
            else:
                entity = repositories.entities.load_entity(local_id)
            progress.local_id = local_id
            self._advance(progress, ImportStage.MAPPED)
            _check_cancelled(cancel, progress.remote_id)

            entity.merge_terms(
                labels=remote.labels,
                descriptions=remote.descriptions,
                aliases=remote.aliases,
                sitelinks=remote.sitelinks,
            )
            statements_added = self._statements_importer.import_statements(
                entity, remote.statements
            )
            self._advance(progress, ImportStage.STATEMENTS_MERGED)

            badges_added = self._badge_updater.update_badges(entity, remote.badges)
            self._advance(progress, ImportStage.BADGES_MERGED)

            _check_cancelled(cancel, progress.remote_id)
            repositories.entities.save_entity(entity)
            saved_id = entity.id
            if saved_id is None:
                raise PersistenceConflictError(
                    "Entity store did not assign a local id", remote_id=progress.remote_id
                )
            if created:
                repositories.mappings.record(remote.remote_id, saved_id)
            if progress.remote_id != remote.remote_id:
                self._map_redirect(repositories.mappings, progress.remote_id, saved_id)
            uow.commit()

        progress.local_id = saved_id
        self._advance(progress, ImportStage.PERSISTED)
        self._log.info(
            "Imported %s as %s (created=%s, statements_added=%s, badges_added=%s)",
            progress.remote_id,
            saved_id,
            created,
            statements_added,
            badges_added,
        )
        return ImportResult(
            remote_id=progress.remote_id,
            local_id=saved_id,
            entity=entity,
            created=created,
            statements_added=statements_added,
            badges_added=badges_added,
        )

    def _map_redirect(
        self,
        mappings: ImportedEntityMappingStore,
        requested_id: RemoteEntityId,
        local_id: LocalEntityId,
    ) -> None:
        """Map a redirected id to the local entity of its target.

        An id that already has a mapping keeps it.
        """

        existing = mappings.resolve(requested_id)
        if existing is None:
            mappings.record(requested_id, local_id)
        elif existing != local_id:
            self._log.warning(
                "Redirected id %s stays mapped to %s instead of %s",
                requested_id,
                existing,
                local_id,
            )

    def _advance(self, progress: _Progress, stage: ImportStage) -> None:
        progress.stage = stage
        self._log_stage(progress)

    def _fail(self, progress: _Progress, error: BaseException) -> None:
        self._log_stage(progress, outcome="failed", error=error, level=logging.WARNING)

    def _log_stage(
        self,
        progress: _Progress,
        *,
        outcome: str = "ok",
        error: BaseException | None = None,
        level: int = logging.DEBUG,
    ) -> None:
        stage = ImportStage.FAILED if outcome == "failed" else progress.stage
        self._log.log(
            level,
            "import %s stage=%s local_id=%s outcome=%s%s",
            progress.remote_id,
            stage,
            progress.local_id,
            outcome,
            f" error={error!r}" if error is not None else "",
            extra={
                "stage": stage.value,
                "remote_id": progress.remote_id,
                "local_id": progress.local_id,
                "outcome": outcome,
                "error": repr(error) if error is not None else None,
            },
        )


def _check_cancelled(cancel: CancellationToken | None, remote_id: RemoteEntityId) -> None:
    if cancel is not None and cancel.is_set():
        raise ImportCancelledError(f"Import of {remote_id} cancelled", remote_id=remote_id)
