from __future__ import annotations

import logging
from collections import defaultdict

from ..project.models import Project

logger = logging.getLogger(__name__)


def build_headword_index(project: Project) -> dict[str, list[int]]:
    """First-token surface -> ascending segment indices."""

    index: defaultdict[str, list[int]] = defaultdict(list)
    for idx, segment in enumerate(project.segments):
        if segment.tokens:
            index[segment.tokens[0].surface].append(idx)
    return dict(index)


def build_usage_index(project: Project) -> dict[str, list[int]]:
    """Surface -> ascending segment indices, each segment listed once per surface."""

    index: defaultdict[str, list[int]] = defaultdict(list)
    for idx, segment in enumerate(project.segments):
        for surface in dict.fromkeys(token.surface for token in segment.tokens):
            index[surface].append(idx)
    return dict(index)


def build_lookups(project: Project) -> tuple[dict[str, list[int]], dict[str, list[int]]]:
    headword = build_headword_index(project)
    usage = build_usage_index(project)
    logger.debug(
        "Rebuilt lookup indices",
        extra={"headwords": len(headword), "surfaces": len(usage)},
    )
    return headword, usage


__all__ = ["build_headword_index", "build_lookups", "build_usage_index"]
