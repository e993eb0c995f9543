"""Narrow interfaces the engine calls out to for dialogs, tasks and fonts.

A desktop or browser front end supplies its own implementations; the
defaults here are enough for the command line and for tests.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeVar, runtime_checkable

from ..common.enums import FileType
from ..common.errors import OperationCancelled, ProjectIOError

T = TypeVar("T")


@dataclass(frozen=True)
class PickedFile:
    data: bytes
    name: str
    path: Path | None = None


@runtime_checkable
class FilePicker(Protocol):
    def pick(self, kind: FileType) -> PickedFile:
        """Return the chosen file or raise OperationCancelled."""
        ...

    def save(self, kind: FileType, data: bytes, default_name: str) -> Path | None:
        """Write ``data`` where the user chose or raise OperationCancelled."""
        ...


@runtime_checkable
class Spawner(Protocol):
    def spawn(self, fn: Callable[[], T]) -> T | None:
        ...


@runtime_checkable
class FontRegistrar(Protocol):
    def register(self, name: str, data: bytes) -> None:
        ...


@dataclass
class PathFilePicker:
    """Picker backed by paths chosen up front, e.g. from the command line.

    Paths are consumed in order; when none is left the picker behaves like
    a dismissed dialog.
    """

    open_paths: list[Path] = field(default_factory=list)
    save_paths: list[Path] = field(default_factory=list)

    def pick(self, kind: FileType) -> PickedFile:
        if not self.open_paths:
            raise OperationCancelled()
        path = Path(self.open_paths.pop(0))
        if path.suffix.lstrip(".").lower() not in kind.extensions:
            raise ProjectIOError(f"{path.name} is not a {kind.filter_name} file")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ProjectIOError(f"Failed to read {path}: {exc}") from exc
        return PickedFile(data=data, name=path.name, path=path)

    def save(self, kind: FileType, data: bytes, default_name: str) -> Path | None:
        if not self.save_paths:
            raise OperationCancelled()
        target = Path(self.save_paths.pop(0))
        if target.is_dir():
            target = target / default_name
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise ProjectIOError(f"Failed to save {target}: {exc}") from exc
        return target


class InlineSpawner:
    """Runs work to completion on the calling thread."""

    def spawn(self, fn: Callable[[], T]) -> T | None:
        return fn()


@dataclass
class MemoryFontRegistrar:
    fonts: dict[str, bytes] = field(default_factory=dict)

    def register(self, name: str, data: bytes) -> None:
        self.fonts[name] = data

    @property
    def names(self) -> Sequence[str]:
        return list(self.fonts)


__all__ = [
    "FilePicker",
    "FontRegistrar",
    "InlineSpawner",
    "MemoryFontRegistrar",
    "PathFilePicker",
    "PickedFile",
    "Spawner",
]
