"""Forward migration of saved project documents.

Version 1 stored the vocabulary as a flat array, derived words in a
top-level ``formatted_word`` array and derived sentence words inline as
``[vocab_idx, rule_idx, ...]`` arrays. Version 2 moves every derived word
into ``vocabulary.formatted`` and replaces inline arrays with signed
references.
"""
from __future__ import annotations

import logging
from typing import Any

from ..common.config import PROJECT_VERSION, SUPPORTED_VERSIONS
from ..common.errors import InvalidProjectFormat
from .storage import SavedProjectV1, SavedProjectV2

logger = logging.getLogger(__name__)


def read_version(value: Any) -> int:
    """Return the document's ``version``; raise if missing or unsupported."""

    if not isinstance(value, dict):
        raise InvalidProjectFormat("Invalid project root")
    version = value.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise InvalidProjectFormat("Missing or invalid version field")
    if version not in SUPPORTED_VERSIONS:
        raise InvalidProjectFormat(f"Unsupported project version: {version}")
    return version


def migrate_v1_to_v2(value: Any) -> dict[str, Any]:
    """Return a version 2 document equivalent to the version 1 ``value``.

    The input is validated against the version 1 model and left untouched.
    Existing ``formatted_word`` entries keep their positions; inline derived
    words not already listed are appended in order of first appearance.
    """

    saved = SavedProjectV1.from_json_value(value)

    formatted = [entry.model_dump(mode="json") for entry in saved.formatted_word]
    index_of: dict[tuple[int, ...], int] = {}
    for idx, entry in enumerate(saved.formatted_word):
        index_of.setdefault(tuple(entry.word), idx)

    appended = 0
    sentences = []
    for sentence in saved.sentences:
        words: list[int] = []
        for word in sentence.words:
            if not isinstance(word, list):
                words.append(word)
                continue
            key = tuple(word)
            if key not in index_of:
                index_of[key] = len(formatted)
                formatted.append({"word": list(key), "comment": ""})
                appended += 1
            words.append(-(index_of[key] + 1))
        sentences.append({"words": words, "meaning": sentence.meaning, "comment": sentence.comment})

    logger.info(
        "Migrated project from version 1",
        extra={"sentences": len(sentences), "formatted_added": appended},
    )
    return {
        "version": 2,
        "project_name": saved.project_name,
        "formation": [rule.model_dump(mode="json") for rule in saved.formation],
        "vocabulary": {
            "orignal": [entry.model_dump(mode="json") for entry in saved.vocabulary],
            "formatted": formatted,
        },
        "sentences": sentences,
    }


_MIGRATIONS = {1: migrate_v1_to_v2}


def migrate_to_latest_value(value: Any) -> dict[str, Any]:
    """Upgrade a raw JSON document to the current version, step by step."""

    version = read_version(value)
    doc = value
    while version < PROJECT_VERSION:
        doc = _MIGRATIONS[version](doc)
        version = read_version(doc)
    return doc


def migrate_to_latest(value: Any) -> SavedProjectV2:
    """Upgrade and validate a raw JSON document."""
    return SavedProjectV2.from_json_value(migrate_to_latest_value(value))


__all__ = [
    "migrate_to_latest",
    "migrate_to_latest_value",
    "migrate_v1_to_v2",
    "read_version",
]
