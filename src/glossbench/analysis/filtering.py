from __future__ import annotations

from ..project.models import Project, Segment


def segment_matches(segment: Segment, needle: str) -> bool:
    """Case-folded substring match on the translation or any token surface.

    ``needle`` must already be case-folded.
    """

    if needle in segment.translation.casefold():
        return True
    return any(needle in token.surface.casefold() for token in segment.tokens)


def filter_segments(project: Project, query: str) -> list[int]:
    """Indices of segments matching ``query``, ascending; all for an empty query."""

    if not query:
        return list(range(len(project.segments)))
    needle = query.casefold()
    return [
        idx for idx, segment in enumerate(project.segments) if segment_matches(segment, needle)
    ]


__all__ = ["filter_segments", "segment_matches"]
