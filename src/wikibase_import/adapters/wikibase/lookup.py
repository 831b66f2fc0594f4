"""``EntityLookup`` backed by the Wikibase action API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

import httpx

from wikibase_import.domain.errors import (
    FetchError,
    MalformedResponseError,
    NotFoundError,
    TransientFetchError,
)

from .client import WikibaseClient, WikibasePayloadError
from .translator import WikibaseTranslationError, translate_entity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wikibase_import.config.remote import RemoteApiConfig
    from wikibase_import.domain.model import RemoteEntity, RemoteEntityId

    from .schema import WikibaseEntitiesResponse, WikibaseEntity

log = getLogger(__name__)

NOT_FOUND_CODES = frozenset({"no-such-entity", "missingtitle"})
TRANSIENT_CODES = frozenset(
    {"maxlag", "readonly", "ratelimited", "internal_api_error_DBQueryError"}
)
TRANSIENT_STATUS = frozenset({408, 429})


class EntitiesClient(Protocol):
    def get_entities(
        self,
        ids: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> WikibaseEntitiesResponse: ...


class WikibaseEntityLookup:
    """Fetch one entity per call; nothing is cached between calls."""

    def __init__(
        self,
        *,
        config: RemoteApiConfig | None = None,
        client: EntitiesClient | None = None,
    ) -> None:
        if client is None:
            if config is None:
                raise ValueError("Either config or client is required")
            client = WikibaseClient(config=config)
        self._client = client

    def fetch(self, remote_id: RemoteEntityId, *, timeout: float | None = None) -> RemoteEntity:
        response = self._request(remote_id, timeout=timeout)
        if response.error is not None:
            raise _api_error(remote_id, response.error.code, response.error.info)

        payload = _select_entity(remote_id, response)
        if payload.is_missing:
            raise NotFoundError(f"Remote entity {remote_id} does not exist", remote_id=remote_id)
        try:
            return translate_entity(payload)
        except WikibaseTranslationError as exc:
            log.warning("Cannot translate remote entity %s: %s", remote_id, exc)
            raise MalformedResponseError(
                f"Remote entity {remote_id} has an unusable shape: {exc}",
                remote_id=remote_id,
            ) from exc

    def _request(
        self,
        remote_id: RemoteEntityId,
        *,
        timeout: float | None,
    ) -> WikibaseEntitiesResponse:
        try:
            return self._client.get_entities((remote_id,), timeout=timeout)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == httpx.codes.NOT_FOUND:
                raise NotFoundError(
                    f"Remote entity {remote_id} not found (HTTP {status})", remote_id=remote_id
                ) from exc
            if status in TRANSIENT_STATUS or status >= httpx.codes.INTERNAL_SERVER_ERROR:
                raise TransientFetchError(
                    f"Remote API unavailable for {remote_id} (HTTP {status})", remote_id=remote_id
                ) from exc
            raise FetchError(
                f"Remote API rejected request for {remote_id} (HTTP {status})", remote_id=remote_id
            ) from exc
        except httpx.TransportError as exc:
            raise TransientFetchError(
                f"Fetching {remote_id} failed: {type(exc).__name__}: {exc}", remote_id=remote_id
            ) from exc
        except WikibasePayloadError as exc:
            log.warning(
                "Malformed response for %s: %s; payload starts with %r",
                remote_id,
                exc,
                exc.payload_excerpt,
            )
            raise MalformedResponseError(
                f"Malformed response for {remote_id}: {exc}",
                remote_id=remote_id,
                payload_excerpt=exc.payload_excerpt,
            ) from exc
        except httpx.HTTPError as exc:
            # undecodable bodies, redirect loops and other non-transport failures
            raise FetchError(
                f"Fetching {remote_id} failed: {type(exc).__name__}: {exc}", remote_id=remote_id
            ) from exc


def _select_entity(remote_id: RemoteEntityId, response: WikibaseEntitiesResponse) -> WikibaseEntity:
    payload = response.entities.get(remote_id)
    if payload is not None:
        return payload
    # a redirected id comes back keyed by its target
    if len(response.entities) == 1:
        (payload,) = response.entities.values()
        log.info("Remote entity %s was redirected to %s", remote_id, payload.id)
        return payload
    raise MalformedResponseError(
        f"Response does not contain {remote_id}",
        remote_id=remote_id,
        payload_excerpt=", ".join(sorted(response.entities)) or None,
    )


def _api_error(remote_id: RemoteEntityId, code: str, info: str | None) -> FetchError:
    message = f"Remote API error for {remote_id}: {code}" + (f" ({info})" if info else "")
    if code in NOT_FOUND_CODES:
        return NotFoundError(message, remote_id=remote_id)
    if code in TRANSIENT_CODES:
        return TransientFetchError(message, remote_id=remote_id)
    return FetchError(message, remote_id=remote_id)
