"""Typst markup for interlinear glossed text.

Every segment becomes a block with one box per token (gloss above, surface
below) followed by the translation line. The output depends only on the
project contents.
"""
from __future__ import annotations

from ..project.models import Project

_SPECIAL = '[]#*_`$\\@<>{}"~=&'
_ESCAPES = {ord(ch): "\\" + ch for ch in _SPECIAL}
_ESCAPES.update({ord("\r"): None, ord("\n"): None})

PREAMBLE = '#set page(paper: "a4")\n#set text(size: 12pt)\n'
TOKEN_TEMPLATE = (
    "#box(stack(dir: ttb, align(center, text(size: 8pt)[{gloss}]), "
    "v(0.5em), align(center)[{original}])) #h(5pt) "
)


def escape_typst(text: str) -> str:
    """Backslash-escape markup characters and drop line breaks."""
    return text.translate(_ESCAPES)


def generate_typst(project: Project) -> str:
    parts = [PREAMBLE, f"= {escape_typst(project.project_name)}\n\n"]
    for segment in project.segments:
        parts.append("#block(inset: 10pt, stroke: none)[\n  ")
        for token in segment.tokens:
            parts.append(
                TOKEN_TEMPLATE.format(
                    gloss=escape_typst(project.gloss(token.surface)),
                    original=escape_typst(token.surface),
                )
            )
        parts.append("\n\n")
        parts.append(f"  *trans:* {escape_typst(segment.translation)}\n]\n#v(1em)\n")
    return "".join(parts)


__all__ = ["escape_typst", "generate_typst"]
