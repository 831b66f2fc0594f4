from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import event, select

from tests.helpers.fakes import FakeEntityLookup
from tests.helpers.statements import item_statement, string_statement
from wikibase_import.adapters.sqlalchemy.mappings import imported_entity_mapping_table
from wikibase_import.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    StartupError,
    configured_engine,
    enable_sqlite_savepoints,
    is_started,
    shutdown,
    startup,
)
from wikibase_import.domain.errors import TransientFetchError
from wikibase_import.domain.importing import build_entity_importer
from wikibase_import.domain.model import (
    Entity,
    EntityIdValue,
    EntityRef,
    EntityType,
    RemoteEntity,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyImportUnitOfWork()


def test_startup_refuses_to_reconfigure_without_force(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    try:
        with pytest.raises(StartupError):
            startup(engine=sqlite_engine)
        assert configured_engine() is sqlite_engine
    finally:
        shutdown()


def test_sqlite_savepoint_listeners_are_installed_once(sqlite_engine: Engine) -> None:
    enable_sqlite_savepoints(sqlite_engine)
    enable_sqlite_savepoints(sqlite_engine)

    with sqlite_engine.connect() as connection:
        dbapi_connection = connection.connection.dbapi_connection

    assert dbapi_connection is not None
    assert dbapi_connection.isolation_level is None  # type: ignore[attr-defined]


def test_session_needs_an_entered_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.session


def test_unit_of_work_cannot_be_entered_twice_on_one_thread(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with uow, pytest.raises(StartupError), uow:
        pass


def test_exception_rolls_back_pending_writes(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    with pytest.raises(RuntimeError), sqlite_unit_of_work() as uow:
        uow.repositories.entities.save_entity(Entity())
        uow.repositories.mappings.record("Q42", "Q1")
        raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.mappings.resolve("Q42") is None
        assert uow.session.execute(select(imported_entity_mapping_table)).all() == []


def test_exit_without_commit_discards_writes(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.mappings.record("Q42", "Q1")

    with sqlite_unit_of_work() as uow:
        assert not uow.repositories.mappings.exists("Q42")


def test_importer_over_sql_repairs_references_on_reimport(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    lookup = FakeEntityLookup(
        {
            "P31": RemoteEntity(
                remote_id="P31", entity_type=EntityType.PROPERTY, datatype="wikibase-item"
            ),
            "Q42": RemoteEntity(
                remote_id="Q42",
                labels={"en": "Douglas Adams"},
                statements=(item_statement("P31", "Q5"), string_statement("P31", "x")),
                badges=("Q17437796",),
            ),
            "Q5": RemoteEntity(remote_id="Q5", labels={"en": "human"}),
        }
    )
    importer = build_entity_importer(entity_lookup=lookup, unit_of_work=sqlite_unit_of_work())

    prop = importer.import_entity("P31")
    first = importer.import_entity("Q42")
    human = importer.import_entity("Q5")
    again = importer.import_entity("Q42")

    assert prop.local_id == "P1"
    assert first.created is True
    assert first.badges_added == 0
    assert again.created is False
    assert again.local_id == first.local_id
    assert again.statements_added == 0

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.entities.load_entity(first.local_id)
        assert uow.repositories.mappings.resolve("Q5") == human.local_id

    assert stored.labels == {"en": "Douglas Adams"}
    assert len(stored.statements) == 2
    linked = stored.statements[0]
    assert linked.property == EntityRef("P1")
    assert linked.mainsnak.value == EntityIdValue(ref=EntityRef(human.local_id))
    assert not linked.has_remote_refs
    assert stored.revision == 2


def test_failed_fetch_writes_nothing_over_sql(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    lookup = FakeEntityLookup({"Q42": TransientFetchError("timed out")})
    importer = build_entity_importer(entity_lookup=lookup, unit_of_work=sqlite_unit_of_work())

    with pytest.raises(TransientFetchError):
        importer.import_entity("Q42")

    with sqlite_unit_of_work() as uow:
        assert not uow.repositories.mappings.exists("Q42")


def test_savepoints_nest_inside_the_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    engine = configured_engine()
    assert engine is not None
    statements: list[str] = []

    def record(conn: object, cursor: object, statement: str, *args: object) -> None:
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        with sqlite_unit_of_work() as uow:
            uow.repositories.mappings.record("Q42", "Q1")
            uow.commit()
    finally:
        event.remove(engine, "before_cursor_execute", record)

    assert any(statement.startswith("SAVEPOINT") for statement in statements)


def test_redirected_import_maps_both_ids_over_sql(
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> None:
    lookup = FakeEntityLookup({"Q1000": RemoteEntity(remote_id="Q2", labels={"en": "Earth"})})
    importer = build_entity_importer(entity_lookup=lookup, unit_of_work=sqlite_unit_of_work())

    result = importer.import_entity("Q1000")

    with sqlite_unit_of_work() as uow:
        mappings = uow.repositories.mappings
        assert mappings.resolve("Q1000") == result.local_id
        assert mappings.resolve("Q2") == result.local_id


def test_startup_builds_the_engine_from_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIKIBASE_IMPORT_SQL_ECHO", "1")

    startup(database_uri="sqlite+pysqlite:///:memory:", force=True)
    try:
        engine = configured_engine()
        assert engine is not None
        assert engine.echo is True
        assert str(engine.url) == "sqlite+pysqlite:///:memory:"
    finally:
        shutdown()
