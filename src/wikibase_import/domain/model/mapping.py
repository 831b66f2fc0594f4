"""Remote-to-local identity records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from wikibase_import.domain.model.primitives import LocalEntityId, RemoteEntityId


@dataclass(frozen=True, slots=True)
class EntityMapping:
    """Durable correspondence between a remote entity and its local copy.

    A remote id has at most one local counterpart. Records are written once, on
    the first successful import, and never change afterwards.
    """

    remote_id: RemoteEntityId
    local_id: LocalEntityId
    created_at: datetime | None = None
