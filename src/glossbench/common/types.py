"""Shared type definitions for the glossing engine.

Aliases keep index-heavy signatures readable; the protocol describes the
script host that rules run on so tests can inject their own sandbox.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, TypeAlias, runtime_checkable

# Index into Project.segments.
SegmentIndex: TypeAlias = int

# Index into Project.formation_rules.
RuleIndex: TypeAlias = int

# Signed reference stored in a saved sentence: n >= 0 is a base word,
# n < 0 is formatted word -n - 1.
WordRef: TypeAlias = int

# Ordered formation-rule indices applied to a base word.
RuleChain: TypeAlias = list[int]

# (segment index, cosine score)
SimilarityHit: TypeAlias = tuple[int, float]


@runtime_checkable
class ScriptHost(Protocol):
    """Minimal interface of a script sandbox."""

    def compile(self, script: str) -> Any:
        """Validate and compile ``script``; raise ScriptExecutionError on failure."""
        ...

    def call(self, compiled: Any, fn_name: str, args: Sequence[object]) -> object:
        """Run ``fn_name`` from a compiled script with ``args``."""
        ...


__all__ = [
    "RuleChain",
    "RuleIndex",
    "ScriptHost",
    "SegmentIndex",
    "SimilarityHit",
    "WordRef",
]
