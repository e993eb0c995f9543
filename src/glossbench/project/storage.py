"""Wire models for saved projects (format version 2, and version 1 for migration).

Base words live in ``vocabulary.orignal`` (legacy spelling kept on the
wire), derived words in ``vocabulary.formatted`` as
``[base_index, rule_index, ...]``. Sentence words are signed references:
``n >= 0`` is a base word, ``n < 0`` is formatted word ``-n - 1``.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, StrictInt, ValidationError, field_validator

from ..common.config import PROJECT_VERSION
from ..common.enums import FormationType
from ..common.errors import InvalidProjectFormat
from ..common.types import WordRef


class VocabEntry(BaseModel):
    word: str
    meaning: str = ""
    comment: str = ""


class FormattedWordEntry(BaseModel):
    word: list[StrictInt] = Field(min_length=1)
    comment: str = ""

    @field_validator("word", mode="after")
    def check_indices(cls, v: list[int]) -> list[int]:
        if any(index < 0 for index in v):
            raise ValueError("formatted word indices must be non-negative")
        return v

    @property
    def base_index(self) -> int:
        return self.word[0]

    @property
    def rule_indices(self) -> list[int]:
        return self.word[1:]


class SavedFormationRule(BaseModel):
    description: str
    type: FormationType
    command: str


class SavedVocabularyV2(BaseModel):
    original: list[VocabEntry] = Field(alias="orignal")
    formatted: list[FormattedWordEntry] = Field(default_factory=list)


class SavedSentenceV2(BaseModel):
    words: list[StrictInt] = Field(default_factory=list)
    meaning: str = ""
    comment: str = ""


class SavedProjectV2(BaseModel):
    version: StrictInt = PROJECT_VERSION
    project_name: str = ""
    formation: list[SavedFormationRule] = Field(default_factory=list)
    vocabulary: SavedVocabularyV2
    sentences: list[SavedSentenceV2] = Field(default_factory=list)

    @field_validator("version", mode="after")
    def check_version(cls, v: int) -> int:
        if v != PROJECT_VERSION:
            raise ValueError(f"expected version {PROJECT_VERSION}, got {v}")
        return v

    def to_json_value(self) -> dict[str, Any]:
        """Plain JSON-compatible dict with wire field names."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_json_value(cls, value: Any) -> "SavedProjectV2":
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise InvalidProjectFormat(_summarize(exc)) from exc


class SavedSentenceV1(BaseModel):
    """Version 1 sentence; derived words are inline ``[base, rule, ...]`` lists."""

    words: list[StrictInt | list[StrictInt]]
    meaning: str = ""
    comment: str = ""

    @field_validator("words", mode="after")
    def check_words(cls, v: list[int | list[int]]) -> list[int | list[int]]:
        for word in v:
            indices = word if isinstance(word, list) else [word]
            if not indices:
                raise ValueError("inline derived word needs a base index")
            if any(index < 0 for index in indices):
                raise ValueError("word indices must be non-negative")
        return v


class SavedProjectV1(BaseModel):
    version: StrictInt
    project_name: str = ""
    formation: list[SavedFormationRule] = Field(default_factory=list)
    vocabulary: list[VocabEntry]
    formatted_word: list[FormattedWordEntry] = Field(default_factory=list)
    sentences: list[SavedSentenceV1]

    @field_validator("version", mode="after")
    def check_version(cls, v: int) -> int:
        if v != 1:
            raise ValueError(f"expected version 1, got {v}")
        return v

    @classmethod
    def from_json_value(cls, value: Any) -> "SavedProjectV1":
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise InvalidProjectFormat(_summarize(exc)) from exc


def encode_word_ref(*, base_index: int | None = None, formatted_index: int | None = None) -> WordRef:
    if (base_index is None) == (formatted_index is None):
        raise ValueError("exactly one of base_index or formatted_index is required")
    if base_index is not None:
        return base_index
    return -(formatted_index + 1)  # type: ignore[operator]


def decode_word_ref(ref: WordRef) -> tuple[bool, int]:
    """Return ``(is_formatted, index)`` for a signed reference."""
    if ref >= 0:
        return False, ref
    return True, -ref - 1


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    extra = exc.error_count() - 1
    suffix = f" (+{extra} more)" if extra else ""
    return f"{location}: {message}{suffix}" if location else f"{message}{suffix}"


__all__ = [
    "FormattedWordEntry",
    "SavedFormationRule",
    "SavedProjectV1",
    "SavedProjectV2",
    "SavedSentenceV1",
    "SavedSentenceV2",
    "SavedVocabularyV2",
    "VocabEntry",
    "decode_word_ref",
    "encode_word_ref",
]
