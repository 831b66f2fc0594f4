"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    ITEM = "item"
    PROPERTY = "property"


class SnakType(StrEnum):
    VALUE = "value"
    SOMEVALUE = "somevalue"
    NOVALUE = "novalue"


class Rank(StrEnum):
    PREFERRED = "preferred"
    NORMAL = "normal"
    DEPRECATED = "deprecated"
