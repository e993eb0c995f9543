"""Saved project -> runtime project.

Derived surfaces are not stored; they are rebuilt by replaying each
formatted word's rule chain on its base word. A rule that fails during
replay is skipped (treated as the identity) so that one broken script does
not make the whole project unloadable; every skipped step is recorded in
an :class:`ImportReport`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..common.errors import InvalidProjectFormat, ScriptExecutionError
from ..common.types import ScriptHost
from ..scripting.formation import FormationRule
from .migrate import migrate_to_latest
from .models import Project, Segment, Token
from .storage import FormattedWordEntry, SavedProjectV2, decode_word_ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayWarning:
    rule_index: int
    word: str
    message: str


@dataclass
class ImportReport:
    warnings: list[ReplayWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


def _replay(
    entry: FormattedWordEntry,
    base_word: str,
    rules: list[FormationRule],
    report: ImportReport,
    engine: ScriptHost | None,
) -> str:
    word = base_word
    for rule_idx in entry.rule_indices:
        try:
            word = rules[rule_idx].apply(word, engine=engine)
        except ScriptExecutionError as exc:
            report.warnings.append(ReplayWarning(rule_idx, word, str(exc)))
            logger.warning(
                "Formation rule failed during import; keeping word unchanged",
                extra={"rule_index": rule_idx, "word": word},
            )
    return word


def convert_from_saved_project(
    saved: SavedProjectV2,
    *,
    report: ImportReport | None = None,
    engine: ScriptHost | None = None,
) -> Project:
    """Resolve references in ``saved`` and rebuild the runtime project."""

    report = report if report is not None else ImportReport()
    original = saved.vocabulary.original
    formatted = saved.vocabulary.formatted

    rules = [
        FormationRule(description=rule.description, rule_type=rule.type, command=rule.command)
        for rule in saved.formation
    ]

    for position, entry in enumerate(formatted):
        if entry.base_index >= len(original):
            raise InvalidProjectFormat(
                f"formatted word {position} references missing vocabulary entry {entry.base_index}"
            )
        for rule_idx in entry.rule_indices:
            if rule_idx >= len(rules):
                raise InvalidProjectFormat(
                    f"formatted word {position} references missing formation rule {rule_idx}"
                )

    # Each formatted entry is replayed once; sentences reuse the surface.
    surfaces: list[str] = []
    formatted_word_comments: dict[str, str] = {}
    for entry in formatted:
        base_word = original[entry.base_index].word
        if entry.rule_indices:
            surface = _replay(entry, base_word, rules, report, engine)
            formatted_word_comments[surface] = entry.comment
        else:
            surface = base_word
        surfaces.append(surface)

    segments: list[Segment] = []
    for sentence_idx, sentence in enumerate(saved.sentences):
        tokens: list[Token] = []
        for ref in sentence.words:
            is_formatted, idx = decode_word_ref(ref)
            if is_formatted:
                if idx >= len(formatted):
                    raise InvalidProjectFormat(
                        f"sentence {sentence_idx} references missing formatted word {idx}"
                    )
                entry = formatted[idx]
                if entry.rule_indices:
                    tokens.append(
                        Token(
                            surface=surfaces[idx],
                            base=original[entry.base_index].word,
                            rule_chain=list(entry.rule_indices),
                        )
                    )
                else:
                    tokens.append(Token(surface=surfaces[idx]))
            else:
                if idx >= len(original):
                    raise InvalidProjectFormat(
                        f"sentence {sentence_idx} references missing vocabulary entry {idx}"
                    )
                tokens.append(Token(surface=original[idx].word))
        segments.append(
            Segment(tokens=tokens, translation=sentence.meaning, comment=sentence.comment)
        )

    project = Project(
        project_name=saved.project_name,
        font_path=None,
        vocabulary={entry.word: entry.meaning for entry in original},
        vocabulary_comments={entry.word: entry.comment for entry in original if entry.comment},
        formatted_word_comments={
            surface: comment for surface, comment in formatted_word_comments.items() if comment
        },
        segments=segments,
        formation_rules=rules,
    )
    project.cache.mark_loaded()

    logger.info(
        "Imported project",
        extra={
            "project": project.project_name,
            "segments": len(segments),
            "rules": len(rules),
            "replay_warnings": len(report.warnings),
        },
    )
    return project


def load_project_from_json(
    value: Any,
    *,
    report: ImportReport | None = None,
    engine: ScriptHost | None = None,
) -> Project:
    """Migrate, validate and import a parsed JSON document."""

    saved = migrate_to_latest(value)
    return convert_from_saved_project(saved, report=report, engine=engine)


__all__ = [
    "ImportReport",
    "ReplayWarning",
    "convert_from_saved_project",
    "load_project_from_json",
]
