"""Wikibase ``wbgetentities`` response schemas."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

type WikibaseId = str
type LanguageCode = str
type SiteId = str


class WikibaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[tuple[str, str]]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        name = type(self).__name__
        new_keys = {(name, key) for key in extras}.difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Wikibase %s: unmodeled keys: %s",
            name,
            ", ".join(sorted(key for _, key in new_keys)),
        )


class WikibaseTerm(WikibaseBaseModel):
    language: LanguageCode
    value: str
    for_language: LanguageCode | None = Field(default=None, alias="for-language")


class WikibaseDataValue(WikibaseBaseModel):
    type: str
    value: Any


class WikibaseSnak(WikibaseBaseModel):
    snaktype: str
    property: WikibaseId
    hash: str | None = None
    datatype: str | None = None
    datavalue: WikibaseDataValue | None = None


class WikibaseReference(WikibaseBaseModel):
    hash: str | None = None
    snaks: dict[WikibaseId, list[WikibaseSnak]] = Field(default_factory=dict)
    snaks_order: list[WikibaseId] | None = Field(default=None, alias="snaks-order")


class WikibaseStatement(WikibaseBaseModel):
    mainsnak: WikibaseSnak
    type: str = "statement"
    id: str | None = None
    rank: str = "normal"
    qualifiers: dict[WikibaseId, list[WikibaseSnak]] = Field(default_factory=dict)
    qualifiers_order: list[WikibaseId] | None = Field(default=None, alias="qualifiers-order")
    references: list[WikibaseReference] = Field(default_factory=list)


class WikibaseSitelink(WikibaseBaseModel):
    site: SiteId
    title: str
    badges: list[WikibaseId] = Field(default_factory=list)
    url: str | None = None


class WikibaseRedirect(WikibaseBaseModel):
    from_id: WikibaseId = Field(alias="from")
    to_id: WikibaseId = Field(alias="to")


class WikibaseEntity(WikibaseBaseModel):
    id: WikibaseId
    type: str | None = None
    missing: str | bool | None = None
    datatype: str | None = None
    labels: dict[LanguageCode, WikibaseTerm] = Field(default_factory=dict)
    descriptions: dict[LanguageCode, WikibaseTerm] = Field(default_factory=dict)
    aliases: dict[LanguageCode, list[WikibaseTerm]] = Field(default_factory=dict)
    claims: dict[WikibaseId, list[WikibaseStatement]] = Field(default_factory=dict)
    sitelinks: dict[SiteId, WikibaseSitelink] = Field(default_factory=dict)
    redirects: WikibaseRedirect | None = None
    lastrevid: int | None = None
    modified: str | None = None
    pageid: int | None = None
    ns: int | None = None
    title: str | None = None

    @property
    def is_missing(self) -> bool:
        return self.missing is not None and self.missing is not False


class WikibaseApiError(WikibaseBaseModel):
    code: str
    info: str | None = None


class WikibaseEntitiesResponse(WikibaseBaseModel):
    entities: dict[WikibaseId, WikibaseEntity] = Field(default_factory=dict)
    success: int | None = None
    error: WikibaseApiError | None = None
    servedby: str | None = None
