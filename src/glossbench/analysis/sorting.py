"""Ordering of segment indices by the sort modes offered to the user.

The primary key is computed once per index and ties break on ascending
index. Descending modes reverse the ascending result, so ties there come
out in descending index order.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

from ..common.enums import SortField, SortMode
from ..project.models import Project, Segment

KeyFn = Callable[[Project, Segment], object]


def _original_key(project: Project, segment: Segment) -> str:
    return "".join(token.surface for token in segment.tokens)


def _token_count_key(project: Project, segment: Segment) -> int:
    return len(segment.tokens)


def _translated_ratio_key(project: Project, segment: Segment) -> float:
    return project.translation_ratio(segment)


def _translated_count_key(project: Project, segment: Segment) -> int:
    return project.count_translated_tokens(segment)


_KEYS: dict[SortField, KeyFn] = {
    SortField.ORIGINAL: _original_key,
    SortField.LENGTH: _token_count_key,
    SortField.COUNT: _token_count_key,
    SortField.TRANSLATED_RATIO: _translated_ratio_key,
    SortField.TRANSLATED_COUNT: _translated_count_key,
}


def sort_indices(project: Project, indices: Iterable[int], mode: SortMode) -> list[int]:
    ordered = sorted(indices)
    key_fn = _KEYS.get(mode.field)
    if key_fn is not None:
        keys = {idx: key_fn(project, project.segments[idx]) for idx in ordered}
        ordered.sort(key=lambda idx: (keys[idx], idx))
    if mode.descending:
        ordered.reverse()
    return ordered


__all__ = ["sort_indices"]
