"""Location of the local repository database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_bool_env

DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DATA_DIR_ENV: Final[str] = "WIKIBASE_IMPORT_DATA_DIR"
SQL_ECHO_ENV: Final[str] = "WIKIBASE_IMPORT_SQL_ECHO"

APP_DIR_NAME: Final[str] = "wikibase-import"
DEFAULT_DB_FILENAME: Final[str] = "wikibase_import.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Directory holding the SQLite database used when no URI is configured."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def sqlite_uri(self, *, create_dir: bool = True) -> str:
        path = self.database_path
        if create_dir:
            path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def get_storage_config() -> StorageConfig:
    configured = os.getenv(DATA_DIR_ENV)
    return StorageConfig(data_dir=Path(configured) if configured else _platform_data_dir())


def get_database_config(
    *,
    uri: str | None = None,
    storage: StorageConfig | None = None,
) -> DatabaseConfig:
    """Use ``uri``, then ``DATABASE_URI``, then a SQLite file in the data directory."""

    echo = optional_bool_env(SQL_ECHO_ENV, default=False)
    uri = uri or os.getenv(DATABASE_URI_ENV)
    if not uri:
        uri = (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri, echo=echo)


def _platform_data_dir() -> Path:
    if os.name == "nt":
        home = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        home = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(home).expanduser().resolve() / APP_DIR_NAME
