"""File formats and file operations."""

from __future__ import annotations

from .files import (
    FileOperations,
    import_text,
    import_text_file,
    load_project_file,
    read_text_content,
    save_project_file,
    save_typst_file,
)
from .json_format import dumps_compact_arrays
from .typst import escape_typst, generate_typst

__all__ = [
    "FileOperations",
    "dumps_compact_arrays",
    "escape_typst",
    "generate_typst",
    "import_text",
    "import_text_file",
    "load_project_file",
    "read_text_content",
    "save_project_file",
    "save_typst_file",
]
