"""Remote Wikibase API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import optional_float_env, optional_int_env, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_USER_AGENT = "wikibase-import/0.1"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_HTTP_RETRIES = 2


@dataclass(frozen=True, slots=True)
class RemoteApiConfig:
    """Holds the remote ``api.php`` endpoint and its HTTP client settings."""

    api_url: str
    resilience: ResilienceConfig


def get_remote_api_config(*, ratelimit: RateLimit | None = None) -> RemoteApiConfig:
    values = require_env_vars(("WIKIBASE_IMPORT_API_URL",))
    api_url = values["WIKIBASE_IMPORT_API_URL"].strip()
    user_agent = os.getenv("WIKIBASE_IMPORT_USER_AGENT") or DEFAULT_USER_AGENT

    resilience = ResilienceConfig(
        name="wikibase",
        base_url=None,
        timeout_seconds=optional_float_env("WIKIBASE_IMPORT_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        retry=RetryPolicy(
            total=optional_int_env("WIKIBASE_IMPORT_HTTP_RETRIES", DEFAULT_HTTP_RETRIES)
        ),
        ratelimit=ratelimit,
        default_headers={"User-Agent": user_agent, "Accept": "application/json"},
    )
    return RemoteApiConfig(api_url=api_url, resilience=resilience)
