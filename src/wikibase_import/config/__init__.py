"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .importing import ImportConfig, get_import_config
from .logging import configure_logging
from .remote import RemoteApiConfig, get_remote_api_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "RateLimit",
    "RemoteApiConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_import_config",
    "get_remote_api_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
