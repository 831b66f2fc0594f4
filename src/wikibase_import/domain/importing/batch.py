"""Import many remote entities with a bounded worker pool."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from logging import Logger, getLogger
from typing import TYPE_CHECKING

from wikibase_import.domain.errors import EntityImportError, ImportCancelledError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wikibase_import.domain.importing.importer import EntityImporter, ImportResult
    from wikibase_import.domain.model import RemoteEntityId

log = getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True, slots=True)
class ImportRetryPolicy:
    """Caller-level retries for errors flagged ``retryable``."""

    attempts: int = 3
    backoff_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** (attempt - 1))


@dataclass(slots=True)
class BatchImportResult:
    imported: dict[RemoteEntityId, ImportResult] = field(
        default_factory=dict["RemoteEntityId", "ImportResult"]
    )
    failed: dict[RemoteEntityId, EntityImportError] = field(
        default_factory=dict["RemoteEntityId", EntityImportError]
    )
    cancelled: list[RemoteEntityId] = field(default_factory=list["RemoteEntityId"])

    @property
    def succeeded(self) -> bool:
        return not self.failed and not self.cancelled


class BatchImporter:
    """Run one import pipeline per distinct remote id on a thread pool.

    Failures of one id are collected and never stop the others. Setting the
    ``cancel`` event stops pending ids and interrupts retry waits; pipelines
    already running stop at their next stage boundary.
    """

    def __init__(
        self,
        importer: EntityImporter,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        retry: ImportRetryPolicy | None = None,
        timeout: float | None = None,
        logger: Logger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._importer = importer
        self._max_workers = max_workers
        self._retry = retry or ImportRetryPolicy()
        self._timeout = timeout
        self._log = logger or log

    def import_entities(
        self,
        remote_ids: Iterable[RemoteEntityId],
        *,
        cancel: threading.Event | None = None,
    ) -> BatchImportResult:
        # one pipeline per id keeps concurrent imports of the same entity out of the pool
        unique_ids = list(dict.fromkeys(remote_ids))
        token = cancel or threading.Event()
        result = BatchImportResult()
        cancelled: set[RemoteEntityId] = set()

        self._log.info(
            "Importing %s entities with %s workers", len(unique_ids), self._max_workers
        )
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="entity-import"
        ) as pool:
            futures = {
                pool.submit(self._import_with_retry, remote_id, token): remote_id
                for remote_id in unique_ids
            }
            for future in as_completed(futures):
                remote_id = futures[future]
                try:
                    result.imported[remote_id] = future.result()
                except ImportCancelledError:
                    cancelled.add(remote_id)
                except EntityImportError as exc:
                    result.failed[remote_id] = exc
                except Exception as exc:
                    self._log.exception("Unexpected error importing %s", remote_id)
                    result.failed[remote_id] = _unexpected_failure(remote_id, exc)

        result.cancelled = [remote_id for remote_id in unique_ids if remote_id in cancelled]
        self._log.info(
            "Batch finished: imported=%s, failed=%s, cancelled=%s",
            len(result.imported),
            len(result.failed),
            len(result.cancelled),
        )
        return result

    def _import_with_retry(
        self,
        remote_id: RemoteEntityId,
        cancel: threading.Event,
    ) -> ImportResult:
        attempt = 1
        while True:
            if cancel.is_set():
                raise ImportCancelledError(
                    f"Batch cancelled before importing {remote_id}", remote_id=remote_id
                )
            try:
                return self._importer.import_entity(remote_id, cancel=cancel, timeout=self._timeout)
            except EntityImportError as exc:
                if not exc.retryable or attempt >= self._retry.attempts:
                    raise
                delay = self._retry.delay(attempt)
                self._log.warning(
                    "Attempt %s for %s failed (%s), retrying in %.1fs",
                    attempt,
                    remote_id,
                    exc,
                    delay,
                )
                if cancel.wait(delay):
                    raise ImportCancelledError(
                        f"Batch cancelled while retrying {remote_id}", remote_id=remote_id
                    ) from exc
                attempt += 1


def _unexpected_failure(remote_id: RemoteEntityId, exc: Exception) -> EntityImportError:
    failure = EntityImportError(
        f"Unexpected failure importing {remote_id}: {type(exc).__name__}: {exc}",
        remote_id=remote_id,
    )
    failure.__cause__ = exc
    return failure
