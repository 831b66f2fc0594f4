from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from wikibase_import.adapters.wikibase.client import WikibasePayloadError, parse_entities_response
from wikibase_import.adapters.wikibase.schema import WikibaseSnak

if TYPE_CHECKING:
    from collections.abc import Callable

    from wikibase_import.adapters.wikibase.schema import WikibaseEntitiesResponse


def test_entity_payload_parses(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    response = entities_response("Q42.json")

    entity = response.entities["Q42"]
    assert entity.type == "item"
    assert entity.labels["en"].value == "Douglas Adams"
    assert [term.value for term in entity.aliases["en"]] == [
        "Douglas Noel Adams",
        "Douglas N. Adams",
    ]
    assert entity.claims["P69"][0].qualifiers_order == ["P582", "P512"]
    assert entity.sitelinks["frwiki"].badges == ["Q17437796", "Q17437798"]
    assert not entity.is_missing


def test_missing_marker_is_detected(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    response = entities_response("missing.json")

    assert response.entities["Q999999999"].is_missing


def test_api_error_payload_parses(
    entities_response: Callable[[str], WikibaseEntitiesResponse],
) -> None:
    response = entities_response("no_such_entity.json")

    assert response.entities == {}
    assert response.error is not None
    assert response.error.code == "no-such-entity"


@pytest.mark.parametrize("body", ["<html>Service unavailable</html>", "[]", '{"entities": 5}'])
def test_unusable_bodies_raise_payload_error(body: str) -> None:
    with pytest.raises(WikibasePayloadError) as excinfo:
        parse_entities_response(body)

    assert excinfo.value.payload_excerpt == body


def test_unmodeled_keys_are_logged_once_per_model(caplog: pytest.LogCaptureFixture) -> None:
    payload = {"snaktype": "novalue", "property": "P1", "snak-flag-for-logging-test": 1}

    with caplog.at_level(logging.WARNING, logger="wikibase_import.adapters.wikibase.schema"):
        WikibaseSnak.model_validate(payload)
        WikibaseSnak.model_validate(payload)

    messages = [
        record.getMessage()
        for record in caplog.records
        if "snak-flag-for-logging-test" in record.getMessage()
    ]
    assert messages == ["Wikibase WikibaseSnak: unmodeled keys: snak-flag-for-logging-test"]
