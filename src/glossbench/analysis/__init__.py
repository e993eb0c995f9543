"""Read-only queries over a project: filter, sort, lookup, similarity."""

from __future__ import annotations

from .filtering import filter_segments
from .lookup import build_headword_index, build_lookups, build_usage_index
from .similarity_sentence import TfidfIndex, build_tfidf_index, find_similar_segments
from .similarity_token import SimilarToken, find_similar_tokens
from .sorting import sort_indices

__all__ = [
    "SimilarToken",
    "TfidfIndex",
    "build_headword_index",
    "build_lookups",
    "build_tfidf_index",
    "build_usage_index",
    "filter_segments",
    "find_similar_segments",
    "find_similar_tokens",
    "sort_indices",
]
