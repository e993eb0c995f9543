"""Shared infrastructure for the glossing engine."""

from __future__ import annotations

from .enums import FileType, FormationType, SortDirection, SortField, SortMode
from .errors import (
    GlossbenchError,
    InvalidProjectFormat,
    OperationCancelled,
    ProjectIOError,
    ScriptExecutionError,
)
from .types import RuleChain, RuleIndex, ScriptHost, SegmentIndex, SimilarityHit, WordRef

__all__ = [
    "FileType",
    "FormationType",
    "GlossbenchError",
    "InvalidProjectFormat",
    "OperationCancelled",
    "ProjectIOError",
    "RuleChain",
    "RuleIndex",
    "ScriptExecutionError",
    "ScriptHost",
    "SegmentIndex",
    "SimilarityHit",
    "SortDirection",
    "SortField",
    "SortMode",
    "WordRef",
]
