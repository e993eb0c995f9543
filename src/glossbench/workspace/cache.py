"""Dirty-flag bookkeeping for the derived views of a project.

Every project mutation is reported as a :class:`Mutation`; the table below
decides which cached views it invalidates. Queries in
:mod:`glossbench.workspace.service` rebuild a view only when its flag is
set and clear the flag afterwards.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Mutation(Enum):
    GLOSS = "gloss"
    COMMENT = "comment"
    TRANSLATION = "translation"
    SEGMENTS = "segments"
    SURFACE = "surface"
    RULE_ADDED = "rule_added"


# (filter, lookups, tfidf); every mutation also marks the project dirty.
_INVALIDATES: dict[Mutation, tuple[bool, bool, bool]] = {
    Mutation.GLOSS: (False, False, False),
    Mutation.COMMENT: (False, False, False),
    Mutation.TRANSLATION: (True, False, False),
    Mutation.SEGMENTS: (True, True, True),
    Mutation.SURFACE: (True, True, True),
    Mutation.RULE_ADDED: (False, False, False),
}

# Identity handles are unique for the lifetime of the process.
_POPUP_IDS = itertools.count(1)


@dataclass
class CacheOrchestrator:
    project_dirty: bool = False
    filter_dirty: bool = True
    lookups_dirty: bool = True
    tfidf_dirty: bool = True
    next_popup_id: int = 1

    filter_query: str | None = field(default=None, repr=False)
    filtered: list[int] = field(default_factory=list, repr=False)
    headword_lookup: dict[str, list[int]] = field(default_factory=dict, repr=False)
    usage_lookup: dict[str, list[int]] = field(default_factory=dict, repr=False)
    tfidf: Any = field(default=None, repr=False)

    def record(self, mutation: Mutation) -> None:
        filter_hit, lookups_hit, tfidf_hit = _INVALIDATES[mutation]
        self.project_dirty = True
        self.filter_dirty = self.filter_dirty or filter_hit
        self.lookups_dirty = self.lookups_dirty or lookups_hit
        self.tfidf_dirty = self.tfidf_dirty or tfidf_hit
        logger.debug("Recorded mutation", extra={"mutation": mutation.value})

    def mark_loaded(self) -> None:
        self.project_dirty = False
        self.filter_dirty = True
        self.lookups_dirty = True
        self.tfidf_dirty = True

    def mark_saved(self) -> None:
        self.project_dirty = False

    @property
    def all_clean(self) -> bool:
        return not (self.filter_dirty or self.lookups_dirty or self.tfidf_dirty)

    def issue_popup_id(self) -> int:
        """Return a fresh identity handle, never reused in this process."""
        issued = next(_POPUP_IDS)
        self.next_popup_id = issued + 1
        return issued


__all__ = ["CacheOrchestrator", "Mutation"]
