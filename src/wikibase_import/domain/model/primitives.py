"""Domain primitives: identifier aliases and entity references.

Remote and local ids share a textual shape (``Q42``, ``P31``), so they are
only told apart by the ``remote`` flag of the ``EntityRef`` that carries them.
"""

from __future__ import annotations

from dataclasses import dataclass

type RemoteEntityId = str
type LocalEntityId = str


@dataclass(frozen=True, slots=True)
class EntityRef:
    """An entity id embedded in a statement.

    ``remote=True`` means the id still belongs to the remote repository, either
    because the statement has not been translated yet or because its target had
    no local counterpart when it was.
    """

    id: str
    remote: bool = False

    @classmethod
    def to_remote(cls, entity_id: RemoteEntityId) -> EntityRef:
        return cls(id=entity_id, remote=True)

    @classmethod
    def to_local(cls, entity_id: LocalEntityId) -> EntityRef:
        return cls(id=entity_id, remote=False)
