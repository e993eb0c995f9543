"""Error taxonomy shared by every layer of the engine.

Four kinds of failure reach callers. Each carries a short message and
renders a user-facing string through ``str()``; no exception type from a
third-party library escapes the public API.
"""
from __future__ import annotations


class GlossbenchError(Exception):
    """Base class for all errors raised by the engine."""

    prefix = "Error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}" if self.message else self.prefix


class ProjectIOError(GlossbenchError):
    """Underlying storage failure while reading or writing a file."""

    prefix = "File I/O error"


class InvalidProjectFormat(GlossbenchError):
    """Missing field, dangling reference, unsupported version or corrupt data."""

    prefix = "Invalid project format"


class ScriptExecutionError(GlossbenchError):
    """A user script failed to compile, raised, or exhausted its limits."""

    prefix = "Script error"


class OperationCancelled(GlossbenchError):
    """The user dismissed a file dialog."""

    prefix = "Operation cancelled by user"

    def __str__(self) -> str:
        return self.prefix


__all__ = [
    "GlossbenchError",
    "InvalidProjectFormat",
    "OperationCancelled",
    "ProjectIOError",
    "ScriptExecutionError",
]
