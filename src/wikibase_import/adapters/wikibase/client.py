"""Wikibase action API client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from wikibase_import.adapters.http_resilience import ResilientClient

from .schema import WikibaseEntitiesResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from wikibase_import.config.http_resilience import ResilienceConfig
    from wikibase_import.config.remote import RemoteApiConfig

log = getLogger(__name__)

PAYLOAD_EXCERPT_LENGTH = 500
DEFAULT_PROPS = ("info", "datatype", "labels", "descriptions", "aliases", "claims", "sitelinks")


class WikibaseAPIError(RuntimeError):
    """Raised when the Wikibase API returns an unexpected response."""


class WikibasePayloadError(WikibaseAPIError):
    """The response body is not a valid ``wbgetentities`` payload."""

    def __init__(self, message: str, *, payload_excerpt: str) -> None:
        super().__init__(message)
        self.payload_excerpt = payload_excerpt


class WikibaseClient:
    """Low-level HTTP client for ``wbgetentities``.

    HTTP status errors and transport errors from ``httpx`` propagate unchanged;
    bodies that cannot be parsed raise ``WikibasePayloadError``.
    """

    def __init__(
        self,
        *,
        config: RemoteApiConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def get_entities(
        self,
        ids: Sequence[str],
        *,
        timeout: float | None = None,
        props: Sequence[str] = DEFAULT_PROPS,
    ) -> WikibaseEntitiesResponse:
        return asyncio.run(self._get_entities_async(ids, timeout=timeout, props=props))

    async def _get_entities_async(
        self,
        ids: Sequence[str],
        *,
        timeout: float | None,
        props: Sequence[str],
    ) -> WikibaseEntitiesResponse:
        params = {
            "action": "wbgetentities",
            "ids": "|".join(ids),
            "props": "|".join(props),
            "format": "json",
        }
        async with self._client_factory(self._resilience) as client:
            if timeout is None:
                response = await client.get(self._config.api_url, params=params)
            else:
                response = await client.get(self._config.api_url, params=params, timeout=timeout)
        response.raise_for_status()
        return parse_entities_response(response.text)


def parse_entities_response(body: str) -> WikibaseEntitiesResponse:
    excerpt = body[:PAYLOAD_EXCERPT_LENGTH]
    try:
        return WikibaseEntitiesResponse.model_validate_json(body)
    except ValidationError as exc:
        raise WikibasePayloadError(
            f"Invalid wbgetentities payload: {exc.error_count()} validation errors",
            payload_excerpt=excerpt,
        ) from exc
