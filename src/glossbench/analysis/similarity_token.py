from __future__ import annotations

import heapq
from dataclasses import dataclass
from difflib import SequenceMatcher

from Levenshtein import distance as levenshtein_distance

from ..common.config import MAX_SIMILAR_TOKENS_RESULTS
from ..project.models import Project


@dataclass(frozen=True)
class SimilarToken:
    word: str
    distance: int
    lcs_length: int


def longest_common_substring(a: str, b: str) -> int:
    """Length of the longest contiguous run shared by ``a`` and ``b``."""
    if not a or not b:
        return 0
    match = SequenceMatcher(None, a, b, autojunk=False).find_longest_match(0, len(a), 0, len(b))
    return match.size


def find_similar_tokens(
    project: Project,
    word: str,
    limit: int = MAX_SIMILAR_TOKENS_RESULTS,
) -> list[SimilarToken]:
    """Unique corpus surfaces closest to ``word``.

    Ranked by Levenshtein distance, then by longer common substring, then
    alphabetically so equal candidates come out in a stable order.
    """

    candidates = {token.surface for token in project.iter_tokens()}
    candidates.discard(word)

    scored = [
        SimilarToken(
            word=candidate,
            distance=levenshtein_distance(word, candidate),
            lcs_length=longest_common_substring(word, candidate),
        )
        for candidate in candidates
    ]

    def rank(item: SimilarToken) -> tuple[int, int, str]:
        return item.distance, -item.lcs_length, item.word

    if len(scored) > limit:
        return heapq.nsmallest(limit, scored, key=rank)
    return sorted(scored, key=rank)


__all__ = ["SimilarToken", "find_similar_tokens", "longest_common_substring"]
