"""Enumerations used across the engine."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class FormationType(str, Enum):
    """Category of a word-formation rule.

    Member order is significant: the exporter sorts rules by it.
    """

    DERIVATION = "derivation"
    INFLECTION = "inflection"
    NONMORPHOLOGICAL = "nonmorphological"

    @property
    def rank(self) -> int:
        return _FORMATION_ORDER.index(self)


_FORMATION_ORDER = list(FormationType)


class SortField(Enum):
    INDEX = "index"
    ORIGINAL = "original"
    # LENGTH and COUNT are aliases; both sort by token count.
    LENGTH = "length"
    COUNT = "count"
    # Segment-level 0/1 indicator of a non-empty translation.
    TRANSLATED_RATIO = "translated_ratio"
    TRANSLATED_COUNT = "translated_count"


class SortDirection(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


_DISPLAY_TEXT = {
    (SortField.INDEX, SortDirection.ASCENDING): "Index (Asc)",
    (SortField.INDEX, SortDirection.DESCENDING): "Index (Desc)",
    (SortField.ORIGINAL, SortDirection.ASCENDING): "Original (Asc)",
    (SortField.ORIGINAL, SortDirection.DESCENDING): "Original (Desc)",
    (SortField.LENGTH, SortDirection.ASCENDING): "Length (Shortest First)",
    (SortField.LENGTH, SortDirection.DESCENDING): "Length (Longest First)",
    (SortField.COUNT, SortDirection.ASCENDING): "Token Count (Asc)",
    (SortField.COUNT, SortDirection.DESCENDING): "Token Count (Desc)",
    (SortField.TRANSLATED_RATIO, SortDirection.ASCENDING): "Translated Ratio (Asc)",
    (SortField.TRANSLATED_RATIO, SortDirection.DESCENDING): "Translated Ratio (Desc)",
    (SortField.TRANSLATED_COUNT, SortDirection.ASCENDING): "Translated Token Count (Asc)",
    (SortField.TRANSLATED_COUNT, SortDirection.DESCENDING): "Translated Token Count (Desc)",
}


@dataclass(frozen=True)
class SortMode:
    """Sort mode combining a field and a direction."""

    field: SortField = SortField.INDEX
    direction: SortDirection = SortDirection.ASCENDING

    DEFAULT: ClassVar["SortMode"]

    @classmethod
    def all(cls) -> list["SortMode"]:
        """Every field/direction combination, in menu order."""
        return [cls(field, direction) for field in SortField for direction in SortDirection]

    def display_text(self) -> str:
        return _DISPLAY_TEXT[(self.field, self.direction)]

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESCENDING


SortMode.DEFAULT = SortMode()


class FileType(Enum):
    """File kinds handed to a file picker."""

    TEXT = "text"
    JSON = "json"
    FONT = "font"
    TYPST = "typst"

    @property
    def filter_name(self) -> str:
        return _FILE_FILTERS[self][0]

    @property
    def extensions(self) -> tuple[str, ...]:
        return _FILE_FILTERS[self][1]


_FILE_FILTERS = {
    FileType.TEXT: ("Text", ("txt",)),
    FileType.JSON: ("JSON", ("json",)),
    FileType.FONT: ("Font", ("ttf", "otf", "ttc")),
    FileType.TYPST: ("Typst", ("typ",)),
}


__all__ = [
    "FileType",
    "FormationType",
    "SortDirection",
    "SortField",
    "SortMode",
]
