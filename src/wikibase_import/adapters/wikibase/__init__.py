"""Remote Wikibase adapter."""

from __future__ import annotations

from .client import WikibaseAPIError, WikibaseClient, WikibasePayloadError
from .lookup import WikibaseEntityLookup
from .translator import WikibaseTranslationError, translate_entity

__all__ = [
    "WikibaseAPIError",
    "WikibaseClient",
    "WikibaseEntityLookup",
    "WikibasePayloadError",
    "WikibaseTranslationError",
    "translate_entity",
]
