"""SQLAlchemy table metadata for local entities and import bookkeeping."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from wikibase_import.domain.model import (
    EntityIdValue,
    EntityLink,
    EntityRef,
    EntityType,
    PlainValue,
    Rank,
    Reference,
    Snak,
    SnakType,
    Statement,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from wikibase_import.domain.model import DataValue


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONMapType(TypeDecorator[dict[str, Any]]):
    """Term maps (labels, descriptions, aliases, sitelinks) stored as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(value or {}, sort_keys=True, ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        return cast(dict[str, Any], loaded)


class StatementJSONType(TypeDecorator[Statement]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Statement | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(statement_to_json(value), ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Statement | None:
        _ = dialect
        if value is None:
            return None
        return statement_from_json(json.loads(value))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Local entities --------------------------------------------------------------

entity_table = Table(
    "entity",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column(
        "entity_type",
        Enum(EntityType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    ),
    Column("datatype", String, nullable=True),
    Column("labels", JSONMapType, nullable=False),
    Column("descriptions", JSONMapType, nullable=False),
    Column("aliases", JSONMapType, nullable=False),
    Column("sitelinks", JSONMapType, nullable=False),
    Column("revision", Integer, nullable=False, default=1),
)

statement_table = Table(
    "statement",
    mapper_registry.metadata,
    Column("guid", String, primary_key=True),
    Column("entity_id", String, ForeignKey("entity.id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("property_id", String, nullable=False),
    Column("payload", StatementJSONType, nullable=False),
    Index("ix_statement_entity_position", "entity_id", "position"),
)

badge_table = Table(
    "badge",
    mapper_registry.metadata,
    Column(
        "entity_id",
        String,
        ForeignKey("entity.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("badge_id", String, primary_key=True),
)

entity_id_sequence_table = Table(
    "entity_id_sequence",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_type", String, nullable=False),
    sqlite_autoincrement=True,
)

# Import bookkeeping ----------------------------------------------------------

imported_entity_mapping_table = Table(
    "imported_entity_mapping",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("remote_id", String, nullable=False),
    Column("local_id", String, nullable=False),
    Column("created_at", UTCDateTime, nullable=False, default=lambda: datetime.now(UTC)),
    UniqueConstraint("remote_id"),
    Index("ix_imported_entity_mapping_local_id", "local_id"),
)


def create_all_tables(engine: Engine) -> None:
    mapper_registry.metadata.create_all(engine)


# Statement payloads ----------------------------------------------------------


def statement_to_json(statement: Statement) -> dict[str, Any]:
    return {
        "mainsnak": _snak_to_json(statement.mainsnak),
        "qualifiers": [_snak_to_json(snak) for snak in statement.qualifiers],
        "references": [
            [_snak_to_json(snak) for snak in reference.snaks] for reference in statement.references
        ],
        "rank": statement.rank.value,
        "guid": statement.guid,
    }


def statement_from_json(payload: dict[str, Any]) -> Statement:
    return Statement(
        mainsnak=_snak_from_json(payload["mainsnak"]),
        qualifiers=tuple(_snak_from_json(snak) for snak in payload.get("qualifiers", ())),
        references=tuple(
            Reference(snaks=tuple(_snak_from_json(snak) for snak in snaks))
            for snaks in payload.get("references", ())
        ),
        rank=Rank(payload.get("rank", Rank.NORMAL.value)),
        guid=payload.get("guid"),
    )


def _ref_to_json(ref: EntityRef) -> dict[str, Any]:
    return {"id": ref.id, "remote": ref.remote}


def _ref_from_json(payload: dict[str, Any]) -> EntityRef:
    return EntityRef(id=payload["id"], remote=bool(payload.get("remote", False)))


def _link_from_json(payload: dict[str, Any]) -> EntityLink:
    return EntityLink(
        name=payload["name"], ref=_ref_from_json(payload["ref"]), base_uri=payload["base_uri"]
    )


def _snak_to_json(snak: Snak) -> dict[str, Any]:
    value: dict[str, Any] | None
    match snak.value:
        case EntityIdValue(ref=ref, entity_type=entity_type):
            value = {"kind": "entity", "ref": _ref_to_json(ref), "entity_type": entity_type}
        case PlainValue(value_type=value_type, value=raw, links=links):
            value = {"kind": "plain", "type": value_type, "value": raw}
            if links:
                value["links"] = [
                    {"name": link.name, "ref": _ref_to_json(link.ref), "base_uri": link.base_uri}
                    for link in links
                ]
        case _:
            value = None
    return {
        "property": _ref_to_json(snak.property),
        "snak_type": snak.snak_type.value,
        "datatype": snak.datatype,
        "value": value,
    }


def _snak_from_json(payload: dict[str, Any]) -> Snak:
    raw_value = payload.get("value")
    value: DataValue | None = None
    if raw_value is not None:
        if raw_value["kind"] == "entity":
            value = EntityIdValue(
                ref=_ref_from_json(raw_value["ref"]),
                entity_type=raw_value.get("entity_type", "item"),
            )
        else:
            value = PlainValue(
                value_type=raw_value["type"],
                value=raw_value["value"],
                links=tuple(_link_from_json(link) for link in raw_value.get("links", ())),
            )
    return Snak(
        property=_ref_from_json(payload["property"]),
        snak_type=SnakType(payload.get("snak_type", SnakType.VALUE.value)),
        datatype=payload.get("datatype"),
        value=value,
    )


__all__ = [
    "JSONMapType",
    "StatementJSONType",
    "UTCDateTime",
    "badge_table",
    "create_all_tables",
    "entity_id_sequence_table",
    "entity_table",
    "imported_entity_mapping_table",
    "mapper_registry",
    "statement_from_json",
    "statement_to_json",
    "statement_table",
]
