"""Tokenization rules and the text-import pipeline.

A tokenization rule is a script defining ``tokenize(line)`` that returns a
list of strings. The two built-in tokenizers are ordinary scripts too, so
user rules and built-ins go through the same sandbox.
"""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from tqdm import tqdm

from ..common.errors import ScriptExecutionError
from ..common.types import ScriptHost
from .engine import get_engine
from .formation import CompiledCell

logger = logging.getLogger(__name__)

TOKENIZE_FN = "tokenize"

WHITESPACE_SCRIPT = """\
def tokenize(line):
    return line.split()
"""

CHARACTER_SCRIPT = """\
def tokenize(line):
    return [ch for ch in line]
"""


@dataclass
class TokenizationRule:
    description: str
    command: str
    cached_ast: CompiledCell = field(
        default_factory=CompiledCell, compare=False, repr=False
    )

    @classmethod
    def whitespace(cls) -> "TokenizationRule":
        """Split a line on runs of whitespace."""
        return cls(description="Split by whitespace", command=WHITESPACE_SCRIPT)

    @classmethod
    def characters(cls) -> "TokenizationRule":
        """One token per character, spaces included."""
        return cls(description="Split by character", command=CHARACTER_SCRIPT)

    def tokenize(self, line: str, *, engine: ScriptHost | None = None) -> list[str]:
        host = engine or get_engine()
        compiled = self.cached_ast.get_or_compile(host, self.command)
        result = host.call(compiled, TOKENIZE_FN, (line,))
        if not isinstance(result, (list, tuple)):
            raise ScriptExecutionError(
                f"{TOKENIZE_FN}: type mismatch, expected list but got {type(result).__name__}"
            )
        return [item for item in result if isinstance(item, str)]

    def clone(self) -> "TokenizationRule":
        return dataclasses.replace(self)


def tokenize_text(
    content: str,
    rule: TokenizationRule,
    *,
    engine: ScriptHost | None = None,
    progress: bool = False,
) -> list[list[str]]:
    """Split ``content`` into lines and tokenize each one.

    Whitespace-only lines are skipped, as are lines the rule turns into no
    tokens. Returns one token list per surviving line.
    """

    lines: Iterable[str] = [line for line in content.splitlines() if line.strip()]
    if progress:
        lines = tqdm(lines, desc="Tokenizing", unit="line")

    segments: list[list[str]] = []
    for line in lines:
        tokens = rule.tokenize(line, engine=engine)
        if tokens:
            segments.append(tokens)

    logger.info(
        "Tokenized text",
        extra={"rule": rule.description, "segments": len(segments)},
    )
    return segments


__all__ = [
    "CHARACTER_SCRIPT",
    "TOKENIZE_FN",
    "TokenizationRule",
    "WHITESPACE_SCRIPT",
    "tokenize_text",
]
