"""Error taxonomy of the import pipeline.

``retryable`` tells batch callers whether repeating the whole import of the
same id may succeed.
"""

from __future__ import annotations

from typing import ClassVar


class EntityImportError(RuntimeError):
    """Base class for failures while importing one remote entity."""

    retryable: ClassVar[bool] = False

    def __init__(self, message: str, *, remote_id: str | None = None) -> None:
        super().__init__(message)
        self.remote_id = remote_id
        self.stage: str | None = None


class FetchError(EntityImportError):
    """The remote entity could not be retrieved."""


class NotFoundError(FetchError):
    """The remote API reports that the entity does not exist."""


class TransientFetchError(FetchError):
    """Network, timeout or overload condition; the caller may retry."""

    retryable = True


class MalformedResponseError(FetchError):
    """The payload could not be deserialized into an entity."""

    def __init__(
        self,
        message: str,
        *,
        remote_id: str | None = None,
        payload_excerpt: str | None = None,
    ) -> None:
        super().__init__(message, remote_id=remote_id)
        self.payload_excerpt = payload_excerpt


class DuplicateMappingError(EntityImportError):
    """The remote id is already mapped to a different local id."""

    def __init__(self, remote_id: str, *, existing_local_id: str, attempted_local_id: str) -> None:
        super().__init__(
            f"{remote_id} is already mapped to {existing_local_id}, "
            f"refusing to map it to {attempted_local_id}",
            remote_id=remote_id,
        )
        self.existing_local_id = existing_local_id
        self.attempted_local_id = attempted_local_id


class TranslationGapError(EntityImportError):
    """An embedded remote id has no local counterpart (yet)."""


class StatementTranslationError(EntityImportError):
    """A single statement could not be translated and is skipped."""


class PersistenceConflictError(EntityImportError):
    """The local store rejected the save; nothing of the attempt was committed."""

    retryable = True


class MissingLocalEntityError(EntityImportError):
    """A mapping points at a local entity the store cannot load."""


class ImportCancelledError(EntityImportError):
    """The import was cancelled between stages."""
