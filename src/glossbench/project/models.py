"""In-memory project model.

The project owns its segments, vocabulary maps and formation rules. All
edits go through :class:`Project` methods so that the cache orchestrator
sees every mutation; query code only reads.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from ..common.types import RuleChain, RuleIndex, ScriptHost, SegmentIndex
from ..scripting.formation import FormationRule
from ..workspace.cache import CacheOrchestrator, Mutation

logger = logging.getLogger(__name__)


@dataclass
class Token:
    """A word as it appears in a segment.

    ``base`` and ``rule_chain`` are set together: a derived token names the
    vocabulary word it was formed from and the rules applied, in order.
    """

    surface: str
    base: str | None = None
    rule_chain: RuleChain = field(default_factory=list)

    @property
    def is_derived(self) -> bool:
        return bool(self.rule_chain)

    @property
    def vocabulary_key(self) -> str:
        """Vocabulary word whose gloss describes this token."""
        if self.is_derived and self.base is not None:
            return self.base
        return self.surface


@dataclass
class Segment:
    tokens: list[Token] = field(default_factory=list)
    translation: str = ""
    comment: str = ""

    @classmethod
    def from_words(cls, words: Iterable[str]) -> "Segment":
        return cls(tokens=[Token(surface=word) for word in words])

    @property
    def surfaces(self) -> list[str]:
        return [token.surface for token in self.tokens]

    @property
    def text(self) -> str:
        return " ".join(self.surfaces)


@dataclass
class Project:
    project_name: str = ""
    font_path: str | None = None
    vocabulary: dict[str, str] = field(default_factory=dict)
    vocabulary_comments: dict[str, str] = field(default_factory=dict)
    formatted_word_comments: dict[str, str] = field(default_factory=dict)
    segments: list[Segment] = field(default_factory=list)
    formation_rules: list[FormationRule] = field(default_factory=list)
    cache: CacheOrchestrator = field(
        default_factory=CacheOrchestrator, compare=False, repr=False
    )

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------
    def iter_tokens(self) -> Iterator[Token]:
        for segment in self.segments:
            yield from segment.tokens

    def gloss(self, word: str) -> str:
        return self.vocabulary.get(word, "")

    def comment_for(self, token: Token) -> str:
        if token.is_derived:
            return self.formatted_word_comments.get(token.surface, "")
        return self.vocabulary_comments.get(token.surface, "")

    def segment(self, idx: SegmentIndex) -> Segment:
        if not 0 <= idx < len(self.segments):
            raise IndexError(f"segment index {idx} out of range")
        return self.segments[idx]

    def rule(self, idx: RuleIndex) -> FormationRule:
        if not 0 <= idx < len(self.formation_rules):
            raise IndexError(f"formation rule index {idx} out of range")
        return self.formation_rules[idx]

    def translation_ratio(self, segment: Segment) -> float:
        """1.0 when the segment carries a translation, else 0.0."""
        if not segment.tokens:
            return 0.0
        return 1.0 if segment.translation else 0.0

    def count_translated_tokens(self, segment: Segment) -> int:
        return sum(
            1
            for token in segment.tokens
            if self.vocabulary.get(token.vocabulary_key, "").strip()
        )

    def find_related_words(self, prefix: str, limit: int = 5) -> list[str]:
        """Vocabulary words containing ``prefix``, prefix matches first."""

        if not prefix:
            return []
        needle = prefix.lower()
        matches = [word for word in self.vocabulary if needle in word.lower()]
        matches.sort(key=lambda word: (not word.lower().startswith(needle), word.lower(), word))
        return matches[:limit]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def set_gloss(self, word: str, gloss: str) -> None:
        self.vocabulary[word] = gloss
        self.cache.record(Mutation.GLOSS)

    def set_vocabulary_comment(self, word: str, comment: str) -> None:
        if comment:
            self.vocabulary_comments[word] = comment
        else:
            self.vocabulary_comments.pop(word, None)
        self.cache.record(Mutation.COMMENT)

    def set_formatted_comment(self, surface: str, comment: str) -> None:
        if comment:
            self.formatted_word_comments[surface] = comment
        else:
            self.formatted_word_comments.pop(surface, None)
        self.cache.record(Mutation.COMMENT)

    def set_translation(self, idx: SegmentIndex, text: str) -> None:
        self.segment(idx).translation = text
        self.cache.record(Mutation.TRANSLATION)

    def set_segment_comment(self, idx: SegmentIndex, text: str) -> None:
        self.segment(idx).comment = text
        self.cache.record(Mutation.COMMENT)

    def append_segments(self, segments: Iterable[Segment]) -> int:
        """Append segments; return how many were added."""
        added = list(segments)
        self.segments.extend(added)
        self.cache.record(Mutation.SEGMENTS)
        return len(added)

    def delete_segment(self, idx: SegmentIndex) -> Segment:
        self.segment(idx)
        removed = self.segments.pop(idx)
        self.cache.record(Mutation.SEGMENTS)
        return removed

    def add_formation_rule(self, rule: FormationRule) -> RuleIndex:
        self.formation_rules.append(rule)
        self.cache.record(Mutation.RULE_ADDED)
        logger.info(
            "Added formation rule",
            extra={"rule": rule.description, "type": rule.rule_type.value},
        )
        return len(self.formation_rules) - 1

    def set_token_surface(self, seg_idx: SegmentIndex, tok_idx: int, surface: str) -> None:
        """Raw edit of a token; the token becomes a base word again."""

        token = self._token(seg_idx, tok_idx)
        token.surface = surface
        token.base = None
        token.rule_chain = []
        self.cache.record(Mutation.SURFACE)

    def preview_rule(
        self, rule_idx: RuleIndex, word: str, *, engine: ScriptHost | None = None
    ) -> str:
        return self.rule(rule_idx).preview(word, engine=engine)

    def apply_rule_to_token(
        self,
        seg_idx: SegmentIndex,
        tok_idx: int,
        rule_idx: RuleIndex,
        *,
        engine: ScriptHost | None = None,
    ) -> Token:
        """Derive one token by applying a rule to its current surface.

        The rule runs before anything is touched, so a failing script leaves
        the project unchanged.
        """

        token = self._token(seg_idx, tok_idx)
        new_surface = self.rule(rule_idx).apply(token.surface, engine=engine)

        base = token.base if token.is_derived and token.base is not None else token.surface
        token.base = base
        token.rule_chain = [*token.rule_chain, rule_idx]
        token.surface = new_surface
        self.vocabulary.setdefault(base, "")
        self.cache.record(Mutation.SURFACE)
        return token

    def derive_word(
        self,
        selected_word: str,
        base_word: str,
        rule_idx: RuleIndex,
        *,
        engine: ScriptHost | None = None,
    ) -> int:
        """Mark every occurrence of ``selected_word`` as derived from ``base_word``.

        Parameters
        ----------
        selected_word:
            Surface form found in the text.
        base_word:
            A vocabulary word, a base-word token, or the surface of an
            already-derived token whose base and rule chain are inherited.
        rule_idx:
            Rule that must turn ``base_word`` into ``selected_word``.

        Returns
        -------
        int
            Number of tokens rewritten.

        Raises
        ------
        ScriptExecutionError
            The rule failed on ``base_word``.
        ValueError
            The rule output differs from ``selected_word``, ``base_word``
            is unknown or ``selected_word`` would become its own base.
        """

        preview = self.rule(rule_idx).apply(base_word, engine=engine)
        if preview != selected_word:
            raise ValueError(
                f"preview '{preview}' does not match selected word '{selected_word}'"
            )

        resolved_base, inherited_chain = self._resolve_base(base_word)
        if resolved_base == selected_word:
            raise ValueError(f"'{selected_word}' cannot be derived from itself")

        self.vocabulary.pop(selected_word, None)
        self.vocabulary_comments.pop(selected_word, None)
        self.vocabulary.setdefault(resolved_base, "")

        rewritten = 0
        for token in self.iter_tokens():
            if token.surface == selected_word:
                token.base = resolved_base
                token.rule_chain = [*inherited_chain, rule_idx]
                token.surface = preview
                rewritten += 1

        self.cache.record(Mutation.SURFACE)
        logger.info(
            "Derived word",
            extra={"word": selected_word, "base": resolved_base, "tokens": rewritten},
        )
        return rewritten

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _resolve_base(self, base_word: str) -> tuple[str, RuleChain]:
        if base_word in self.vocabulary:
            return base_word, []
        underived = False
        for token in self.iter_tokens():
            if token.surface != base_word:
                continue
            if token.is_derived and token.base is not None:
                return token.base, list(token.rule_chain)
            underived = True
        if underived:
            return base_word, []
        raise ValueError(f"base word '{base_word}' not found in vocabulary or derived words")

    def _token(self, seg_idx: SegmentIndex, tok_idx: int) -> Token:
        tokens: Sequence[Token] = self.segment(seg_idx).tokens
        if not 0 <= tok_idx < len(tokens):
            raise IndexError(f"token index {tok_idx} out of range in segment {seg_idx}")
        return tokens[tok_idx]


__all__ = ["Project", "Segment", "Token"]
