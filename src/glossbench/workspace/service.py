"""Cache-aware queries over a project.

Each query checks the relevant dirty flag on ``project.cache``, rebuilds
that view only when the flag is set and then clears it. Sorting is cheap
and applied on every call, so the filter cache only holds the matching
indices for the last query string.
"""
from __future__ import annotations

import logging

from ..analysis.filtering import filter_segments
from ..analysis.lookup import build_lookups
from ..analysis.similarity_sentence import TfidfIndex, build_tfidf_index, find_similar_segments
from ..analysis.similarity_token import SimilarToken, find_similar_tokens
from ..analysis.sorting import sort_indices
from ..common.config import Settings, load_settings
from ..common.enums import SortMode
from ..common.types import SimilarityHit
from ..project.models import Project

logger = logging.getLogger(__name__)


class WorkbenchService:
    def __init__(self, project: Project, settings: Settings | None = None) -> None:
        self.project = project
        self.settings = settings or load_settings()

    @property
    def cache(self):
        return self.project.cache

    def filtered_indices(self, query: str = "", sort_mode: SortMode = SortMode.DEFAULT) -> list[int]:
        cache = self.cache
        if cache.filter_dirty or cache.filter_query != query:
            cache.filtered = filter_segments(self.project, query)
            cache.filter_query = query
            cache.filter_dirty = False
            logger.debug(
                "Rebuilt filter cache",
                extra={"query": query, "matches": len(cache.filtered)},
            )
        return sort_indices(self.project, cache.filtered, sort_mode)

    def _ensure_lookups(self) -> None:
        cache = self.cache
        if cache.lookups_dirty:
            cache.headword_lookup, cache.usage_lookup = build_lookups(self.project)
            cache.lookups_dirty = False

    def headword_segments(self, word: str) -> list[int]:
        self._ensure_lookups()
        return list(self.cache.headword_lookup.get(word, []))

    def usage_segments(self, word: str) -> list[int]:
        self._ensure_lookups()
        return list(self.cache.usage_lookup.get(word, []))

    def tfidf_index(self) -> TfidfIndex:
        cache = self.cache
        if cache.tfidf_dirty or cache.tfidf is None:
            cache.tfidf = build_tfidf_index(self.project)
            cache.tfidf_dirty = False
        return cache.tfidf

    def similar_segments(self, target_idx: int, k: int | None = None) -> list[SimilarityHit]:
        if not self.project.segments:
            return []
        count = self.settings.similar_results if k is None else k
        return find_similar_segments(self.tfidf_index(), target_idx, count)

    def similar_tokens(self, word: str) -> list[SimilarToken]:
        return find_similar_tokens(self.project, word, self.settings.similar_tokens_limit)

    def related_words(self, prefix: str) -> list[str]:
        return self.project.find_related_words(prefix, self.settings.related_words_count)


__all__ = ["WorkbenchService"]
