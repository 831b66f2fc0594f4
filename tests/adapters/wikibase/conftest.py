"""Shared fixtures for Wikibase adapter tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.helpers.wikibase import API_URL, load_fixture
from wikibase_import.adapters.wikibase.client import parse_entities_response
from wikibase_import.config.http_resilience import ResilienceConfig, RetryPolicy
from wikibase_import.config.remote import RemoteApiConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from wikibase_import.adapters.wikibase.schema import WikibaseEntitiesResponse


@pytest.fixture
def entities_response() -> Callable[[str], WikibaseEntitiesResponse]:
    def factory(name: str) -> WikibaseEntitiesResponse:
        return parse_entities_response(load_fixture(name))

    return factory


@pytest.fixture
def remote_api_config() -> RemoteApiConfig:
    return RemoteApiConfig(
        api_url=API_URL,
        resilience=ResilienceConfig(
            name="wikibase-test",
            timeout_seconds=5.0,
            retry=RetryPolicy(total=0),
            default_headers={"User-Agent": "wikibase-import-tests"},
        ),
    )
