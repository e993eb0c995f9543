"""Loading and saving projects, text imports and Typst exports.

Path-based functions raise :class:`ProjectIOError` or
:class:`InvalidProjectFormat`; :class:`FileOperations` wraps them around
the injectable collaborators and treats a dismissed dialog as a no-op.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from ..common.enums import FileType
from ..common.errors import InvalidProjectFormat, OperationCancelled, ProjectIOError
from ..common.types import ScriptHost
from ..project.exporter import convert_to_saved_project
from ..project.importer import ImportReport, load_project_from_json
from ..project.models import Project, Segment
from ..scripting.tokenization import TokenizationRule, tokenize_text
from .collaborators import FilePicker, FontRegistrar, InlineSpawner, Spawner
from .json_format import dumps_compact_arrays
from .typst import generate_typst

logger = logging.getLogger(__name__)

FONT_EXTENSIONS = FileType.FONT.extensions


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with NamedTemporaryFile("w", delete=False, dir=str(path.parent), encoding="utf-8", newline="") as tmp:
        tmp.write(content)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def detect_font_in_dir(directory: Path, stem: str) -> Path | None:
    """Return ``<directory>/<stem>.<ttf|otf|ttc>`` if one exists."""

    if not stem:
        return None
    for ext in FONT_EXTENSIONS:
        candidate = directory / f"{stem}.{ext}"
        if candidate.exists():
            return candidate
    return None


def read_text_content(path: Path) -> tuple[str, str, Path | None]:
    """Read a UTF-8 text file; return ``(content, project_name, font_path)``."""

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProjectIOError(f"Failed to read {path}: {exc}") from exc
    return content, path.stem, detect_font_in_dir(path.parent, path.stem)


def import_text(
    content: str,
    rule: TokenizationRule | None = None,
    *,
    project_name: str = "",
    font_path: str | None = None,
    engine: ScriptHost | None = None,
    progress: bool = False,
) -> Project:
    """Build a new project from plain text, one segment per non-blank line."""

    active_rule = rule or TokenizationRule.whitespace()
    segments = [
        Segment.from_words(words)
        for words in tokenize_text(content, active_rule, engine=engine, progress=progress)
    ]
    project = Project(project_name=project_name, font_path=font_path, segments=segments)
    project.cache.mark_loaded()
    return project


def import_text_file(
    path: Path,
    rule: TokenizationRule | None = None,
    *,
    engine: ScriptHost | None = None,
    progress: bool = False,
) -> Project:
    content, name, font = read_text_content(path)
    project = import_text(
        content,
        rule,
        project_name=name,
        font_path=str(font) if font else None,
        engine=engine,
        progress=progress,
    )
    logger.info(
        "Imported text file",
        extra={"path": str(path), "segments": len(project.segments)},
    )
    return project


def parse_project_bytes(data: bytes, *, report: ImportReport | None = None) -> Project:
    try:
        value: Any = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidProjectFormat(f"Failed to parse project JSON: {exc}") from exc
    return load_project_from_json(value, report=report)


def load_project_file(path: Path, *, report: ImportReport | None = None) -> Project:
    """Load a saved project; a font named after the project is picked up."""

    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ProjectIOError(f"Failed to read {path}: {exc}") from exc

    project = parse_project_bytes(data, report=report)
    font = detect_font_in_dir(path.parent, project.project_name)
    project.font_path = str(font) if font else None
    logger.info(
        "Loaded project",
        extra={"path": str(path), "segments": len(project.segments)},
    )
    return project


def serialize_project(project: Project) -> str:
    return dumps_compact_arrays(convert_to_saved_project(project).to_json_value())


def save_project_file(project: Project, path: Path) -> None:
    """Export and atomically write ``project``; the old file survives a failure."""

    path = Path(path)
    content = serialize_project(project)
    try:
        atomic_write_text(path, content)
    except OSError as exc:
        raise ProjectIOError(f"Failed to write {path}: {exc}") from exc
    project.cache.mark_saved()
    logger.info("Saved project", extra={"path": str(path)})


def save_typst_file(project: Project, path: Path) -> None:
    path = Path(path)
    try:
        atomic_write_text(path, generate_typst(project))
    except OSError as exc:
        raise ProjectIOError(f"Failed to export {path}: {exc}") from exc
    logger.info("Exported Typst", extra={"path": str(path)})


class FileOperations:
    """Dialog-driven file actions.

    Every method returns ``None`` when the user dismisses the picker.
    """

    def __init__(
        self,
        picker: FilePicker,
        spawner: Spawner | None = None,
        fonts: FontRegistrar | None = None,
    ) -> None:
        self.picker = picker
        self.spawner = spawner or InlineSpawner()
        self.fonts = fonts

    def _run(self, fn):
        try:
            return self.spawner.spawn(fn)
        except OperationCancelled:
            logger.debug("File operation cancelled")
            return None

    def open_text(self, rule: TokenizationRule | None = None) -> Project | None:
        def work() -> Project:
            picked = self.picker.pick(FileType.TEXT)
            try:
                content = picked.data.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ProjectIOError(f"{picked.name} is not valid UTF-8") from exc
            stem = Path(picked.name).stem
            font = detect_font_in_dir(picked.path.parent, stem) if picked.path else None
            return import_text(
                content,
                rule,
                project_name=stem,
                font_path=str(font) if font else None,
            )

        return self._run(work)

    def open_project(self, report: ImportReport | None = None) -> Project | None:
        def work() -> Project:
            picked = self.picker.pick(FileType.JSON)
            project = parse_project_bytes(picked.data, report=report)
            if picked.path is not None:
                font = detect_font_in_dir(picked.path.parent, project.project_name)
                project.font_path = str(font) if font else None
            if project.font_path:
                self.load_font(Path(project.font_path))
            return project

        return self._run(work)

    def save_project(self, project: Project) -> Path | None:
        def work() -> Path | None:
            data = serialize_project(project).encode("utf-8")
            default_name = f"{project.project_name or 'project'}.json"
            saved = self.picker.save(FileType.JSON, data, default_name)
            project.cache.mark_saved()
            return saved

        return self._run(work)

    def export_typst(self, project: Project) -> Path | None:
        def work() -> Path | None:
            data = generate_typst(project).encode("utf-8")
            default_name = f"{project.project_name or 'project'}.typ"
            return self.picker.save(FileType.TYPST, data, default_name)

        return self._run(work)

    def pick_font(self, project: Project) -> Path | None:
        def work() -> Path | None:
            picked = self.picker.pick(FileType.FONT)
            if self.fonts is not None:
                self.fonts.register(picked.name, picked.data)
            if picked.path is not None:
                project.font_path = str(picked.path)
            return picked.path

        return self._run(work)

    def load_font(self, path: Path) -> None:
        if self.fonts is None:
            return
        try:
            self.fonts.register(path.name, path.read_bytes())
        except OSError as exc:
            raise ProjectIOError(f"Failed to read font {path}: {exc}") from exc


__all__ = [
    "FileOperations",
    "atomic_write_text",
    "detect_font_in_dir",
    "import_text",
    "import_text_file",
    "load_project_file",
    "parse_project_bytes",
    "read_text_content",
    "save_project_file",
    "save_typst_file",
    "serialize_project",
]
