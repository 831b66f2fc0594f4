"""Defaults for batch imports."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_float_env, optional_int_env

DEFAULT_IMPORT_WORKERS = 4
DEFAULT_IMPORT_ATTEMPTS = 3
DEFAULT_IMPORT_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class ImportConfig:
    workers: int = DEFAULT_IMPORT_WORKERS
    attempts: int = DEFAULT_IMPORT_ATTEMPTS
    backoff_seconds: float = DEFAULT_IMPORT_BACKOFF_SECONDS


def get_import_config() -> ImportConfig:
    return ImportConfig(
        workers=max(1, optional_int_env("WIKIBASE_IMPORT_WORKERS", DEFAULT_IMPORT_WORKERS)),
        attempts=max(1, optional_int_env("WIKIBASE_IMPORT_ATTEMPTS", DEFAULT_IMPORT_ATTEMPTS)),
        backoff_seconds=optional_float_env(
            "WIKIBASE_IMPORT_BACKOFF_SECONDS", DEFAULT_IMPORT_BACKOFF_SECONDS
        ),
    )
