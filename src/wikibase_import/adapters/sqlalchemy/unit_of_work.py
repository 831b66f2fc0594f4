"""SQLAlchemy-backed unit of work for the import pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from wikibase_import.adapters.sqlalchemy.mappings import create_all_tables
from wikibase_import.adapters.sqlalchemy.repositories import (
    SqlAlchemyEntityStore,
    SqlAlchemyImportedEntityMappingStore,
    SqlAlchemyStatementCountLookup,
)
from wikibase_import.config.storage import get_database_config
from wikibase_import.domain.errors import PersistenceConflictError
from wikibase_import.domain.ports.unit_of_work import ImportRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.pool import ConnectionPoolEntry


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call wikibase_import.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, create the tables and the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        config = get_database_config(uri=database_uri)
        engine = create_engine(config.uri, echo=config.echo)
    if engine.dialect.name == "sqlite":
        enable_sqlite_savepoints(engine)
    create_all_tables(engine)

    _STATE.engine = engine


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests inside the transaction.

    Only affects connections opened after the call.
    """

    if event.contains(engine, "connect", _disable_pysqlite_transactions):
        return
    event.listen(engine, "connect", _disable_pysqlite_transactions)
    event.listen(engine, "begin", _emit_begin)


def _disable_pysqlite_transactions(
    dbapi_connection: object,
    connection_record: ConnectionPoolEntry,
) -> None:
    _ = connection_record
    dbapi_connection.isolation_level = None  # type: ignore[attr-defined]


def _emit_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyImportUnitOfWork:
    """Unit of work shared by concurrent import pipelines.

    Sessions live in a ``scoped_session`` registry keyed by thread, so one
    instance can be entered from several worker threads at once; each thread
    gets its own session and transaction. The repositories are built once
    over the registry proxy, so they may be handed out before the unit of work
    is entered but must only be used inside it.
    """

    def __init__(self) -> None:
        self._sessions: scoped_session[Session] = scoped_session(_STATE.session_factory)
        self._repositories = ImportRepositories(
            entities=SqlAlchemyEntityStore(self._sessions),
            mappings=SqlAlchemyImportedEntityMappingStore(self._sessions),
            statement_counts=SqlAlchemyStatementCountLookup(self._sessions),
        )

    def __enter__(self) -> SqlAlchemyImportUnitOfWork:
        if self._sessions.registry.has():
            raise StartupError("Unit of work session already initialised")
        self._sessions()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self._sessions.remove()
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except DBAPIError as exc:
            self.session.rollback()
            raise PersistenceConflictError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> ImportRepositories:
        return self._repositories

    @property
    def session(self) -> Session:
        if not self._sessions.registry.has():
            raise StartupError("Unit of work session not initialised")
        return self._sessions()


if TYPE_CHECKING:
    from wikibase_import.domain.ports import ImportUnitOfWork

    _uow_check: ImportUnitOfWork = SqlAlchemyImportUnitOfWork()
