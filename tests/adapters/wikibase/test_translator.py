from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from wikibase_import.adapters.wikibase.schema import (
    WikibaseDataValue,
    WikibaseEntity,
    WikibaseStatement,
)
from wikibase_import.adapters.wikibase.translator import (
    WikibaseTranslationError,
    translate_datavalue,
    translate_entity,
    translate_statement,
)
from wikibase_import.domain.model import (
    EntityIdValue,
    EntityLink,
    EntityRef,
    EntityType,
    PlainValue,
    Rank,
    SnakType,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from wikibase_import.adapters.wikibase.schema import WikibaseEntitiesResponse


def test_item_is_translated_with_remote_references(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    entity = translate_entity(entities_response("Q42.json").entities["Q42"])

    assert entity.remote_id == "Q42"
    assert entity.entity_type is EntityType.ITEM
    assert entity.labels == {"en": "Douglas Adams", "de": "Douglas Adams"}
    assert entity.aliases == {"en": ["Douglas Noel Adams", "Douglas N. Adams"]}
    assert entity.sitelinks["dewiki"] == "Douglas Adams"
    assert len(entity.statements) == 3
    assert all(ref.remote for statement in entity.statements for ref in statement.entity_refs())


def test_badges_are_collected_from_all_sitelinks(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    entity = translate_entity(entities_response("Q42.json").entities["Q42"])

    assert entity.badges == ("Q17437796", "Q17437798")


def test_statement_details_follow_the_payload(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    entity = translate_entity(entities_response("Q42.json").entities["Q42"])
    instance_of, educated_at, name = entity.statements

    assert instance_of.mainsnak.value == EntityIdValue(ref=EntityRef("Q5", remote=True))
    (reference,) = instance_of.references
    assert [snak.property.id for snak in reference.snaks] == ["P813", "P248"]
    assert reference.snaks[1].value == EntityIdValue(ref=EntityRef("Q36578", remote=True))

    assert educated_at.rank is Rank.PREFERRED
    assert [q.property.id for q in educated_at.qualifiers] == ["P582", "P512"]
    assert educated_at.qualifiers[1].snak_type is SnakType.SOMEVALUE
    assert educated_at.qualifiers[1].value is None

    assert name.mainsnak.value == PlainValue(
        "monolingualtext", {"text": "Douglas Noël Adams", "language": "en"}
    )
    assert name.guid == "Q42$45E3E6D6-3E72-4E2B-8F8E-2E2B1F4F1A11"


def test_property_keeps_its_datatype(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    entity = translate_entity(entities_response("property_P31.json").entities["P31"])

    assert entity.entity_type is EntityType.PROPERTY
    assert entity.datatype == "wikibase-item"
    assert entity.aliases == {"en": ["is a"]}


def test_unknown_rank_is_rejected() -> None:
    payload = WikibaseStatement.model_validate(
        {"mainsnak": {"snaktype": "novalue", "property": "P1"}, "rank": "bogus"}
    )

    with pytest.raises(WikibaseTranslationError):
        translate_statement(payload)


def test_unusable_statement_is_dropped_and_the_rest_survive(
    caplog: pytest.LogCaptureFixture,
) -> None:
    payload = WikibaseEntity.model_validate(
        {
            "id": "Q1",
            "type": "item",
            "claims": {
                "P1": [_string_claim("P1", "kept")],
                "P2": [{"id": "Q1$broken", "mainsnak": {"snaktype": "value", "property": "P2"}}],
                "P3": [{"mainsnak": {"snaktype": "novalue", "property": "P3"}, "rank": "bogus"}],
                "P4": [{"mainsnak": {"snaktype": "unheard-of", "property": "P4"}}],
                "P5": [_string_claim("P5", "also kept")],
            },
        }
    )

    with caplog.at_level(logging.WARNING, logger="wikibase_import.adapters.wikibase.translator"):
        entity = translate_entity(payload)

    assert [statement.property.id for statement in entity.statements] == ["P1", "P5"]
    messages = [
        record.getMessage()
        for record in caplog.records
        if record.name == "wikibase_import.adapters.wikibase.translator"
    ]
    assert len(messages) == 3
    assert messages[0] == (
        "Skipping statement Q1$broken on Q1 (P2): Value snak on P2 has no datavalue"
    )


def test_quantity_unit_and_globe_become_remote_links() -> None:
    quantity = translate_datavalue(
        WikibaseDataValue(
            type="quantity",
            value={"amount": "+12", "unit": "http://www.wikidata.org/entity/Q11573"},
        )
    )
    coordinate = translate_datavalue(
        WikibaseDataValue(
            type="globecoordinate",
            value={
                "latitude": 52.5,
                "longitude": 13.4,
                "globe": "http://www.wikidata.org/entity/Q2",
            },
        )
    )

    assert quantity == PlainValue(
        "quantity",
        {"amount": "+12"},
        links=(
            EntityLink(
                name="unit",
                ref=EntityRef("Q11573", remote=True),
                base_uri="http://www.wikidata.org/entity/",
            ),
        ),
    )
    assert isinstance(coordinate, PlainValue)
    assert coordinate.value == {"latitude": 52.5, "longitude": 13.4}
    assert [(link.name, link.ref) for link in coordinate.links] == [
        ("globe", EntityRef("Q2", remote=True))
    ]


def test_dimensionless_unit_stays_in_the_value() -> None:
    value = translate_datavalue(
        WikibaseDataValue(type="quantity", value={"amount": "+3", "unit": "1"})
    )

    assert value == PlainValue("quantity", {"amount": "+3", "unit": "1"})


def test_calendar_model_of_times_is_flagged_remote(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    entity = translate_entity(entities_response("Q42.json").entities["Q42"])
    (reference,) = entity.statements[0].references
    retrieved = reference.snaks[0]

    assert isinstance(retrieved.value, PlainValue)
    assert "calendarmodel" not in retrieved.value.value  # type: ignore[operator]
    assert EntityRef("Q1985727", remote=True) in entity.statements[0].entity_refs()
    assert entity.statements[0].has_remote_refs


def _string_claim(property_id: str, text: str) -> dict[str, object]:
    return {
        "mainsnak": {
            "snaktype": "value",
            "property": property_id,
            "datavalue": {"type": "string", "value": text},
        }
    }


def test_unsupported_entity_type_is_rejected() -> None:
    with pytest.raises(WikibaseTranslationError):
        translate_entity(WikibaseEntity.model_validate({"id": "L1", "type": "lexeme"}))
