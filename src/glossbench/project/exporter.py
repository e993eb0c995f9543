"""Runtime project -> saved (version 2) project."""
from __future__ import annotations

import logging

from ..common.config import PROJECT_VERSION
from ..common.errors import InvalidProjectFormat
from ..common.types import WordRef
from .models import Project, Token
from .storage import (
    FormattedWordEntry,
    SavedFormationRule,
    SavedProjectV2,
    SavedSentenceV2,
    SavedVocabularyV2,
    VocabEntry,
    encode_word_ref,
)

logger = logging.getLogger(__name__)


def collect_base_words(project: Project) -> list[str]:
    """Vocabulary keys plus surfaces of underived tokens, sorted."""

    words = set(project.vocabulary)
    words.update(token.surface for token in project.iter_tokens() if not token.is_derived)
    return sorted(words)


def rule_permutation(project: Project) -> tuple[list[int], dict[int, int]]:
    """Order rules by (type, description); return new order and old->new map."""

    order = sorted(
        range(len(project.formation_rules)),
        key=lambda idx: (
            project.formation_rules[idx].rule_type.rank,
            project.formation_rules[idx].description,
        ),
    )
    return order, {old: new for new, old in enumerate(order)}


def _derived_key(
    token: Token,
    word_to_idx: dict[str, int],
    old_to_new: dict[int, int],
) -> tuple[int, ...]:
    base = token.base if token.base is not None else token.surface
    if base not in word_to_idx:
        raise InvalidProjectFormat(
            f"base word '{base}' of token '{token.surface}' missing from vocabulary"
        )
    mapped = []
    for rule_idx in token.rule_chain:
        if rule_idx not in old_to_new:
            raise InvalidProjectFormat(
                f"token '{token.surface}' references unknown formation rule {rule_idx}"
            )
        mapped.append(old_to_new[rule_idx])
    return (word_to_idx[base], *mapped)


def convert_to_saved_project(project: Project) -> SavedProjectV2:
    """Build the deduplicated storage form of ``project``.

    Output depends only on the project contents, so repeated exports of the
    same project serialize to identical bytes.
    """

    base_words = collect_base_words(project)
    word_to_idx = {word: idx for idx, word in enumerate(base_words)}
    original = [
        VocabEntry(
            word=word,
            meaning=project.vocabulary.get(word, ""),
            comment=project.vocabulary_comments.get(word, ""),
        )
        for word in base_words
    ]

    order, old_to_new = rule_permutation(project)
    formation = [
        SavedFormationRule(
            description=project.formation_rules[old].description,
            type=project.formation_rules[old].rule_type,
            command=project.formation_rules[old].command,
        )
        for old in order
    ]

    comments: dict[tuple[int, ...], str] = {}
    token_keys: list[list[tuple[int, ...] | None]] = []
    for segment in project.segments:
        keys: list[tuple[int, ...] | None] = []
        for token in segment.tokens:
            if not token.is_derived:
                keys.append(None)
                continue
            key = _derived_key(token, word_to_idx, old_to_new)
            if key not in comments:
                comments[key] = project.formatted_word_comments.get(token.surface, "")
            keys.append(key)
        token_keys.append(keys)

    ordered_keys = sorted(comments)
    formatted_index = {key: idx for idx, key in enumerate(ordered_keys)}
    formatted = [
        FormattedWordEntry(word=list(key), comment=comments[key]) for key in ordered_keys
    ]

    sentences = []
    for segment, keys in zip(project.segments, token_keys):
        words: list[WordRef] = []
        for token, key in zip(segment.tokens, keys):
            if key is None:
                words.append(encode_word_ref(base_index=word_to_idx[token.surface]))
            else:
                words.append(encode_word_ref(formatted_index=formatted_index[key]))
        sentences.append(
            SavedSentenceV2(words=words, meaning=segment.translation, comment=segment.comment)
        )

    logger.debug(
        "Exported project",
        extra={
            "project": project.project_name,
            "base_words": len(original),
            "formatted_words": len(formatted),
            "sentences": len(sentences),
        },
    )
    return SavedProjectV2(
        version=PROJECT_VERSION,
        project_name=project.project_name,
        formation=formation,
        vocabulary=SavedVocabularyV2(orignal=original, formatted=formatted),
        sentences=sentences,
    )


__all__ = ["collect_base_words", "convert_to_saved_project", "rule_permutation"]
