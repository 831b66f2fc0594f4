"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError

from wikibase_import.adapters.sqlalchemy.mappings import (
    badge_table,
    entity_id_sequence_table,
    entity_table,
    imported_entity_mapping_table,
    statement_table,
)
from wikibase_import.domain.errors import (
    DuplicateMappingError,
    MissingLocalEntityError,
    PersistenceConflictError,
)
from wikibase_import.domain.importing import new_statement_guid
from wikibase_import.domain.model import Entity, EntityMapping, EntityType

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, scoped_session

    from wikibase_import.domain.model import LocalEntityId, RemoteEntityId, Statement

    type SessionLike = Session | scoped_session[Session]

log = getLogger(__name__)

ENTITY_ID_PREFIXES: dict[EntityType, str] = {
    EntityType.ITEM: "Q",
    EntityType.PROPERTY: "P",
}


class SqlAlchemyEntityStore:
    """Local entity store.

    Ids are allocated from ``entity_id_sequence`` when an entity is saved for
    the first time. Later saves are compare-and-set on ``revision`` and replace
    the statement and badge rows wholesale.
    """

    def __init__(self, session: SessionLike) -> None:
        self.session = session

    def new_entity(self, entity_type: EntityType, *, datatype: str | None = None) -> Entity:
        return Entity(entity_type=entity_type, datatype=datatype)

    def load_entity(self, local_id: LocalEntityId) -> Entity:
        try:
            return self._load(local_id)
        except DBAPIError as exc:
            raise PersistenceConflictError(f"Loading entity {local_id} failed: {exc}") from exc

    def _load(self, local_id: LocalEntityId) -> Entity:
        row = self.session.execute(
            select(entity_table).where(entity_table.c.id == local_id)
        ).one_or_none()
        if row is None:
            raise MissingLocalEntityError(f"Local entity {local_id} does not exist")

        entity = Entity(
            id=row.id,
            entity_type=row.entity_type,
            datatype=row.datatype,
            labels=dict(row.labels),
            descriptions=dict(row.descriptions),
            aliases={language: list(values) for language, values in row.aliases.items()},
            sitelinks=dict(row.sitelinks),
            revision=row.revision,
        )
        statements = self.session.execute(
            select(statement_table.c.payload)
            .where(statement_table.c.entity_id == local_id)
            .order_by(statement_table.c.position)
        ).scalars()
        for statement in statements:
            entity.add_statement(statement)
        badges = self.session.execute(
            select(badge_table.c.badge_id).where(badge_table.c.entity_id == local_id)
        ).scalars()
        for badge in badges:
            entity.add_badge(badge)
        return entity

    def save_entity(self, entity: Entity) -> None:
        try:
            if entity.id is None:
                self._insert(entity)
            else:
                self._update(entity)
            self._replace_children(entity)
        except DBAPIError as exc:
            raise PersistenceConflictError(f"Saving entity {entity.id} failed: {exc}") from exc

    def _insert(self, entity: Entity) -> None:
        entity.assign_id(self._allocate_id(entity.entity_type))
        self.session.execute(insert(entity_table).values(**self._row(entity), revision=1))
        entity.revision = 1

    def _update(self, entity: Entity) -> None:
        result = self.session.execute(
            update(entity_table)
            .where(entity_table.c.id == entity.id)
            .where(entity_table.c.revision == entity.revision)
            .values(**self._row(entity), revision=entity.revision + 1)
        )
        if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
            raise PersistenceConflictError(
                f"Entity {entity.id} changed since revision {entity.revision}"
            )
        entity.revision += 1

    def _replace_children(self, entity: Entity) -> None:
        for index, statement in enumerate(entity.statements):
            if statement.guid is None:
                entity.replace_statement(index, replace(statement, guid=new_statement_guid(entity)))

        self.session.execute(
            delete(statement_table).where(statement_table.c.entity_id == entity.id)
        )
        self.session.execute(delete(badge_table).where(badge_table.c.entity_id == entity.id))
        if entity.statements:
            self.session.execute(
                insert(statement_table),
                [
                    _statement_row(entity, position, statement)
                    for position, statement in enumerate(entity.statements)
                ],
            )
        if entity.badges:
            self.session.execute(
                insert(badge_table),
                [{"entity_id": entity.id, "badge_id": badge} for badge in sorted(entity.badges)],
            )

    def _allocate_id(self, entity_type: EntityType) -> LocalEntityId:
        result = self.session.execute(
            insert(entity_id_sequence_table).values(entity_type=entity_type.value)
        )
        (number,) = result.inserted_primary_key  # pyright: ignore[reportGeneralTypeIssues]
        return f"{ENTITY_ID_PREFIXES[entity_type]}{number}"

    @staticmethod
    def _row(entity: Entity) -> dict[str, object]:
        return {
            "id": entity.id,
            "entity_type": entity.entity_type,
            "datatype": entity.datatype,
            "labels": entity.labels,
            "descriptions": entity.descriptions,
            "aliases": entity.aliases,
            "sitelinks": entity.sitelinks,
        }


def _statement_row(entity: Entity, position: int, statement: Statement) -> dict[str, object]:
    return {
        "guid": statement.guid,
        "entity_id": entity.id,
        "position": position,
        "property_id": statement.property.id,
        "payload": statement,
    }


class SqlAlchemyImportedEntityMappingStore:
    def __init__(self, session: SessionLike) -> None:
        self.session = session

    def resolve(self, remote_id: RemoteEntityId) -> LocalEntityId | None:
        stmt = select(imported_entity_mapping_table.c.local_id).where(
            imported_entity_mapping_table.c.remote_id == remote_id
        )
        try:
            return self.session.execute(stmt).scalar_one_or_none()
        except DBAPIError as exc:
            raise PersistenceConflictError(
                f"Resolving mapping for {remote_id} failed: {exc}", remote_id=remote_id
            ) from exc

    def exists(self, remote_id: RemoteEntityId) -> bool:
        return self.resolve(remote_id) is not None

    def get(self, remote_id: RemoteEntityId) -> EntityMapping | None:
        stmt = select(imported_entity_mapping_table).where(
            imported_entity_mapping_table.c.remote_id == remote_id
        )
        try:
            row = self.session.execute(stmt).one_or_none()
        except DBAPIError as exc:
            raise PersistenceConflictError(
                f"Reading mapping for {remote_id} failed: {exc}", remote_id=remote_id
            ) from exc
        if row is None:
            return None
        return EntityMapping(
            remote_id=row.remote_id, local_id=row.local_id, created_at=row.created_at
        )

    def record(self, remote_id: RemoteEntityId, local_id: LocalEntityId) -> None:
        existing = self.resolve(remote_id)
        if existing is None:
            try:
                with self.session.begin_nested():
                    self.session.execute(
                        insert(imported_entity_mapping_table).values(
                            remote_id=remote_id,
                            local_id=local_id,
                            created_at=datetime.now(UTC),
                        )
                    )
            except IntegrityError as exc:
                # lost the race on the unique remote_id; the winner's row decides
                existing = self.resolve(remote_id)
                if existing is None:
                    raise PersistenceConflictError(
                        f"Recording mapping {remote_id} -> {local_id} failed: {exc}",
                        remote_id=remote_id,
                    ) from exc
            except DBAPIError as exc:
                raise PersistenceConflictError(
                    f"Recording mapping {remote_id} -> {local_id} failed: {exc}",
                    remote_id=remote_id,
                ) from exc
            else:
                log.debug("Recorded mapping %s -> %s", remote_id, local_id)
                return
        if existing != local_id:
            raise DuplicateMappingError(
                remote_id, existing_local_id=existing, attempted_local_id=local_id
            )


class SqlAlchemyStatementCountLookup:
    def __init__(self, session: SessionLike) -> None:
        self.session = session

    def statement_count(self, local_id: LocalEntityId) -> int:
        stmt = (
            select(func.count())
            .select_from(statement_table)
            .where(statement_table.c.entity_id == local_id)
        )
        try:
            return int(self.session.execute(stmt).scalar_one())
        except DBAPIError as exc:
            raise PersistenceConflictError(
                f"Counting statements of {local_id} failed: {exc}"
            ) from exc


__all__ = [
    "SqlAlchemyEntityStore",
    "SqlAlchemyImportedEntityMappingStore",
    "SqlAlchemyStatementCountLookup",
]
