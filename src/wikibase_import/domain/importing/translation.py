"""Translate remote entity references inside statements into local ones."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, fields, is_dataclass, replace
from typing import TYPE_CHECKING

from wikibase_import.domain.errors import StatementTranslationError, TranslationGapError
from wikibase_import.domain.model import MAX_VALUE_DEPTH, EntityRef

if TYPE_CHECKING:
    from collections.abc import Iterator

    from wikibase_import.domain.model import LocalEntityId, RemoteEntityId, Statement
    from wikibase_import.domain.ports import ImportedEntityMappingStore


@dataclass(frozen=True, slots=True)
class TranslatedStatement:
    statement: Statement
    gaps: tuple[RemoteEntityId, ...] = ()


class ReferenceTranslator:
    """Rewrite every remote ``EntityRef`` of a statement through the mapping store.

    References without a local counterpart are kept as they are (still flagged
    remote) and reported as gaps, so a later pass can fix them. The walk is
    bounded by ``max_depth`` and refuses cycles; either condition fails the
    statement with ``StatementTranslationError``.
    """

    def __init__(
        self,
        mapping_store: ImportedEntityMappingStore,
        *,
        max_depth: int = MAX_VALUE_DEPTH,
    ) -> None:
        self._mappings = mapping_store
        self._max_depth = max_depth

    def translate(self, statement: Statement) -> TranslatedStatement:
        walk = _Walk(self._mappings, max_depth=self._max_depth)
        translated = walk.rewrite(statement, depth=0)
        return TranslatedStatement(statement=translated, gaps=tuple(dict.fromkeys(walk.gaps)))


class _Walk:
    def __init__(self, mappings: ImportedEntityMappingStore, *, max_depth: int) -> None:
        self._mappings = mappings
        self._max_depth = max_depth
        self._resolved: dict[RemoteEntityId, LocalEntityId | None] = {}
        self._path: set[int] = set()
        self.gaps: list[RemoteEntityId] = []

    def rewrite[T](self, node: T, *, depth: int) -> T:
        if isinstance(node, EntityRef):
            try:
                return self._translate_ref(node)  # type: ignore[return-value]
            except TranslationGapError:
                self.gaps.append(node.id)
                return node
        if isinstance(node, (list, dict)):
            self._check_plain(node, depth=depth)
            return node
        if not isinstance(node, tuple) and not (is_dataclass(node) and not isinstance(node, type)):
            return node
        if depth >= self._max_depth:
            raise StatementTranslationError(f"Value tree deeper than {self._max_depth} levels")
        if is_dataclass(node) and not isinstance(node, type):
            with self._visiting(node):
                changes: dict[str, object] = {}
                for item in fields(node):
                    current = getattr(node, item.name)
                    updated = self.rewrite(current, depth=depth + 1)
                    if updated is not current:
                        changes[item.name] = updated
            return replace(node, **changes) if changes else node  # type: ignore[return-value]
        if isinstance(node, tuple):
            with self._visiting(node):
                items = tuple(self.rewrite(item, depth=depth + 1) for item in node)
            changed = any(new is not old for new, old in zip(items, node, strict=True))
            return items if changed else node  # type: ignore[return-value]
        return node

    def _translate_ref(self, ref: EntityRef) -> EntityRef:
        if not ref.remote:
            return ref
        if ref.id not in self._resolved:
            self._resolved[ref.id] = self._mappings.resolve(ref.id)
        local_id = self._resolved[ref.id]
        if local_id is None:
            raise TranslationGapError(f"No local counterpart for {ref.id}", remote_id=ref.id)
        return EntityRef.to_local(local_id)

    def _check_plain(self, node: object, *, depth: int) -> None:
        """Enforce the depth bound and acyclicity on verbatim JSON values."""

        if isinstance(node, dict):
            children = list(node.values())  # pyright: ignore[reportUnknownArgumentType]
        elif isinstance(node, list):
            children = list(node)  # pyright: ignore[reportUnknownArgumentType]
        else:
            return
        if depth >= self._max_depth:
            raise StatementTranslationError(f"Value tree deeper than {self._max_depth} levels")
        with self._visiting(node):
            for child in children:
                self._check_plain(child, depth=depth + 1)

    @contextmanager
    def _visiting(self, node: object) -> Iterator[None]:
        marker = id(node)
        if marker in self._path:
            raise StatementTranslationError("Cyclic value tree")
        self._path.add(marker)
        try:
            yield
        finally:
            self._path.discard(marker)
