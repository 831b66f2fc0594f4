from __future__ import annotations

import logging

import pytest

from tests.helpers.fakes import FakeUnitOfWork
from tests.helpers.statements import (
    item_snak,
    item_statement,
    nested_value,
    string_snak,
    string_statement,
)
from wikibase_import.domain.importing import StatementsImporter
from wikibase_import.domain.model import (
    Entity,
    EntityRef,
    PlainValue,
    Rank,
    Reference,
    Snak,
    Statement,
)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


def _importer(uow: FakeUnitOfWork, *, max_depth: int = 32) -> StatementsImporter:
    return StatementsImporter(
        uow.repositories.mappings,
        uow.repositories.statement_counts,
        max_depth=max_depth,
    )


def test_duplicates_within_the_batch_collapse(uow: FakeUnitOfWork) -> None:
    entity = Entity()
    statements = [
        string_statement("P1", "a"),
        string_statement("P1", "a"),
        string_statement("P1", "b"),
    ]

    with uow:
        added = _importer(uow).import_statements(entity, statements)

    assert added == 2
    assert [s.mainsnak.value for s in entity.statements] == [
        PlainValue("string", "a"),
        PlainValue("string", "b"),
    ]


def test_statements_already_present_are_not_added_again(uow: FakeUnitOfWork) -> None:
    uow.database.seed_mapping("P1", "P10")
    entity = Entity(id="Q3")
    entity.add_statement(string_statement("P10", "a", remote=False, guid="Q3$existing"))

    with uow:
        added = _importer(uow).import_statements(
            entity, [string_statement("P1", "a"), string_statement("P1", "c")]
        )

    assert added == 1
    assert [s.guid for s in entity.statements][0] == "Q3$existing"
    assert entity.statements[1].guid is not None
    assert entity.statements[1].guid.startswith("Q3$")


def test_qualifier_order_and_rank_do_not_distinguish(uow: FakeUnitOfWork) -> None:
    first = item_statement(
        "P1", "Q9", qualifiers=(string_snak("P2", "x"), string_snak("P3", "y"))
    )
    second = item_statement(
        "P1",
        "Q9",
        qualifiers=(string_snak("P3", "y"), string_snak("P2", "x")),
        rank=Rank.PREFERRED,
    )
    entity = Entity()

    with uow:
        added = _importer(uow).import_statements(entity, [first, second])

    assert added == 1


def test_different_qualifiers_are_distinct_statements(uow: FakeUnitOfWork) -> None:
    entity = Entity()
    statements = [
        item_statement("P1", "Q9", qualifiers=(string_snak("P2", "x"),)),
        item_statement("P1", "Q9", qualifiers=(string_snak("P2", "z"),)),
    ]

    with uow:
        added = _importer(uow).import_statements(entity, statements)

    assert added == 2


def test_matching_count_skips_translation(uow: FakeUnitOfWork) -> None:
    stored = uow.database.seed_entity(Entity())
    stored.add_statement(string_statement("P10", "a", remote=False, guid="x"))
    uow.database.seed_entity(stored)
    entity = uow.database.entities[stored.id]  # type: ignore[index]

    with uow:
        added = _importer(uow).import_statements(entity, [string_statement("P1", "other")])

    assert added == 0
    assert len(entity.statements) == 1
    assert uow.repositories.statement_counts.calls == [stored.id]  # type: ignore[attr-defined]


def test_matching_count_with_untranslated_references_still_repairs(uow: FakeUnitOfWork) -> None:
    uow.database.seed_mapping("Q5", "Q50")
    stored = uow.database.seed_entity(Entity())
    stored.add_statement(item_statement("P10", "Q5", guid="keep"))
    uow.database.seed_entity(stored)
    entity = uow.database.entities[stored.id]  # type: ignore[index]

    with uow:
        added = _importer(uow).import_statements(entity, [item_statement("P10", "Q5")])

    assert added == 0
    (statement,) = entity.statements
    assert statement.guid == "keep"
    assert statement.mainsnak.value.ref == EntityRef("Q50")  # type: ignore[union-attr]


def test_unresolved_references_are_kept_and_logged(
    uow: FakeUnitOfWork, caplog: pytest.LogCaptureFixture
) -> None:
    entity = Entity()

    with uow, caplog.at_level(logging.INFO):
        _importer(uow).import_statements(entity, [item_statement("P1", "Q404")])

    (statement,) = entity.statements
    assert statement.entity_refs() == (EntityRef("P1", remote=True), EntityRef("Q404", remote=True))
    assert "Q404" in caplog.text


def test_too_deep_statement_is_skipped_alone(
    uow: FakeUnitOfWork, caplog: pytest.LogCaptureFixture
) -> None:
    deep = Statement(
        mainsnak=Snak(
            property=EntityRef("P1", remote=True),
            datatype="external",
            value=PlainValue("complex", nested_value(10)),
        )
    )
    entity = Entity()

    with uow, caplog.at_level(logging.WARNING):
        added = _importer(uow, max_depth=6).import_statements(
            entity, [deep, string_statement("P2", "ok")]
        )

    assert added == 1
    assert entity.statements[0].property == EntityRef("P2", remote=True)
    assert "Skipping statement" in caplog.text


def test_references_are_translated(uow: FakeUnitOfWork) -> None:
    uow.database.seed_mapping("P248", "P7")
    uow.database.seed_mapping("Q36578", "Q8")
    entity = Entity()
    statement = item_statement(
        "P1", "Q2", references=(Reference(snaks=(item_snak("P248", "Q36578"),)),)
    )

    with uow:
        _importer(uow).import_statements(entity, [statement])

    (reference,) = entity.statements[0].references
    (snak,) = reference.snaks
    assert snak.property == EntityRef("P7")
    assert snak.value.ref == EntityRef("Q8")  # type: ignore[union-attr]
