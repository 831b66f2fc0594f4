"""Translate Wikibase payloads into remote domain entities."""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING, cast

from wikibase_import.domain.model import (
    EntityIdValue,
    EntityLink,
    EntityRef,
    EntityType,
    PlainValue,
    Rank,
    Reference,
    RemoteEntity,
    Snak,
    SnakType,
    Statement,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from wikibase_import.domain.model import DataValue

    from .schema import (
        WikibaseDataValue,
        WikibaseEntity,
        WikibaseReference,
        WikibaseSnak,
        WikibaseStatement,
    )

log = getLogger(__name__)

ENTITY_ID_VALUE_TYPE = "wikibase-entityid"
# keys of plain values that hold a concept URI such as http://www.wikidata.org/entity/Q11573
ENTITY_URI_KEYS = frozenset({"unit", "globe", "calendarmodel"})

_ENTITY_URI = re.compile(r"^(?P<base>https?://\S+/entity/)(?P<id>[QPL][1-9][0-9]*)$")

_ENTITY_ID_PREFIXES: dict[str, str] = {
    "item": "Q",
    "property": "P",
    "lexeme": "L",
}


class WikibaseTranslationError(ValueError):
    """Raised when a payload is well-formed JSON but not a usable entity."""


def translate_entity(payload: WikibaseEntity) -> RemoteEntity:
    """Convert one ``wbgetentities`` entity; every embedded id is flagged remote."""

    return RemoteEntity(
        remote_id=payload.id,
        entity_type=_entity_type(payload),
        datatype=payload.datatype,
        labels={language: term.value for language, term in payload.labels.items()},
        descriptions={language: term.value for language, term in payload.descriptions.items()},
        aliases={
            language: [term.value for term in terms] for language, terms in payload.aliases.items()
        },
        sitelinks={site: link.title for site, link in payload.sitelinks.items()},
        statements=_translate_statements(payload),
        badges=tuple(
            dict.fromkeys(badge for link in payload.sitelinks.values() for badge in link.badges)
        ),
    )


def _translate_statements(payload: WikibaseEntity) -> tuple[Statement, ...]:
    translated: list[Statement] = []
    for property_id, statements in payload.claims.items():
        for statement in statements:
            try:
                translated.append(translate_statement(statement))
            except WikibaseTranslationError as exc:
                log.warning(
                    "Skipping statement %s on %s (%s): %s",
                    statement.id or "<no guid>",
                    payload.id,
                    property_id,
                    exc,
                )
    return tuple(translated)


def translate_statement(payload: WikibaseStatement) -> Statement:
    try:
        rank = Rank(payload.rank)
    except ValueError as exc:
        raise WikibaseTranslationError(f"Unknown rank {payload.rank!r}") from exc
    return Statement(
        mainsnak=translate_snak(payload.mainsnak),
        qualifiers=_ordered_snaks(payload.qualifiers, payload.qualifiers_order),
        references=tuple(_translate_reference(reference) for reference in payload.references),
        rank=rank,
        guid=payload.id,
    )


def translate_snak(payload: WikibaseSnak) -> Snak:
    try:
        snak_type = SnakType(payload.snaktype)
    except ValueError as exc:
        raise WikibaseTranslationError(f"Unknown snak type {payload.snaktype!r}") from exc
    value: DataValue | None = None
    if snak_type is SnakType.VALUE:
        if payload.datavalue is None:
            raise WikibaseTranslationError(f"Value snak on {payload.property} has no datavalue")
        value = translate_datavalue(payload.datavalue)
    return Snak(
        property=EntityRef.to_remote(payload.property),
        snak_type=snak_type,
        datatype=payload.datatype,
        value=value,
    )


def translate_datavalue(payload: WikibaseDataValue) -> DataValue:
    if payload.type != ENTITY_ID_VALUE_TYPE:
        return _plain_value(payload.type, payload.value)
    raw = payload.value
    if not isinstance(raw, dict):
        raise WikibaseTranslationError("wikibase-entityid value is not an object")
    entity_type = raw.get("entity-type", "item")  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
    entity_id = raw.get("id") or _id_from_numeric(entity_type, raw.get("numeric-id"))  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
    return EntityIdValue(ref=EntityRef.to_remote(str(entity_id)), entity_type=str(entity_type))  # pyright: ignore[reportUnknownArgumentType]


def _plain_value(value_type: str, raw: object) -> PlainValue:
    if not isinstance(raw, dict):
        return PlainValue(value_type=value_type, value=raw)
    value: dict[str, object] = {}
    links: list[EntityLink] = []
    for key, item in cast("dict[str, object]", raw).items():
        match = None
        if key in ENTITY_URI_KEYS and isinstance(item, str):
            match = _ENTITY_URI.match(item)
        if match is None:
            value[key] = item
            continue
        links.append(
            EntityLink(name=key, ref=EntityRef.to_remote(match["id"]), base_uri=match["base"])
        )
    return PlainValue(value_type=value_type, value=value, links=tuple(links))


def _translate_reference(payload: WikibaseReference) -> Reference:
    return Reference(snaks=_ordered_snaks(payload.snaks, payload.snaks_order))


def _ordered_snaks(
    snaks: Mapping[str, list[WikibaseSnak]],
    order: Iterable[str] | None,
) -> tuple[Snak, ...]:
    properties = list(dict.fromkeys([*(order or ()), *snaks]))
    return tuple(
        translate_snak(snak) for property_id in properties for snak in snaks.get(property_id, ())
    )


def _id_from_numeric(entity_type: object, numeric_id: object) -> str:
    prefix = _ENTITY_ID_PREFIXES.get(str(entity_type))
    if prefix is None or not isinstance(numeric_id, int):
        raise WikibaseTranslationError(
            f"Cannot build an id from entity-type={entity_type!r}, numeric-id={numeric_id!r}"
        )
    return f"{prefix}{numeric_id}"


def _entity_type(payload: WikibaseEntity) -> EntityType:
    if payload.type is not None:
        try:
            return EntityType(payload.type)
        except ValueError as exc:
            raise WikibaseTranslationError(f"Unsupported entity type {payload.type!r}") from exc
    if payload.id.startswith("P"):
        return EntityType.PROPERTY
    return EntityType.ITEM
