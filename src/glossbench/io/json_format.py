"""Diff-friendly JSON rendering for project files.

Objects put each key on its own line, indented two spaces per level of
object nesting; arrays stay on one line with ``", "`` separators, so a
sentence's word references or a formatted word's index chain never spread
over several lines.
"""
from __future__ import annotations

import json
from typing import Any

INDENT = "  "


def _render(value: Any, depth: int) -> str:
    if isinstance(value, dict):
        if not value:
            return "{}"
        inner = depth + 1
        items = [
            f"\n{INDENT * inner}{json.dumps(str(key), ensure_ascii=False)}: {_render(item, inner)}"
            for key, item in value.items()
        ]
        return "{" + ",".join(items) + f"\n{INDENT * depth}}}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render(item, depth) for item in value) + "]"
    return json.dumps(value, ensure_ascii=False)


def dumps_compact_arrays(value: Any) -> str:
    """Serialize ``value``; the result ends with a newline."""
    return _render(value, 0) + "\n"


__all__ = ["dumps_compact_arrays"]
