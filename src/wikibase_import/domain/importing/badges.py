"""Translate and merge badge items."""

from __future__ import annotations

from logging import Logger, getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wikibase_import.domain.model import Entity, RemoteEntityId
    from wikibase_import.domain.ports import ImportedEntityMappingStore

log = getLogger(__name__)


class BadgeItemUpdater:
    """Add the local counterparts of remote badge items to an entity.

    Badges without a local counterpart are omitted: unlike statement values they
    carry no data that a later import would need to recover.
    """

    def __init__(
        self,
        mapping_store: ImportedEntityMappingStore,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._mappings = mapping_store
        self._log = logger or log

    def update_badges(self, entity: Entity, remote_badge_ids: Iterable[RemoteEntityId]) -> int:
        added = 0
        for remote_id in remote_badge_ids:
            local_id = self._mappings.resolve(remote_id)
            if local_id is None:
                self._log.debug("Omitting badge %s on %s: not imported", remote_id, entity.id)
                continue
            if entity.add_badge(local_id):
                added += 1
        return added
