"""Ports for fetching entities from the remote repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from wikibase_import.domain.model import RemoteEntity, RemoteEntityId


@runtime_checkable
class EntityLookup(Protocol):
    """Fetch and deserialize one remote entity.

    Implementations raise ``NotFoundError``, ``TransientFetchError`` or
    ``MalformedResponseError`` and never cache.
    """

    def fetch(self, remote_id: RemoteEntityId, *, timeout: float | None = None) -> RemoteEntity:
        ...


__all__ = ["EntityLookup"]
