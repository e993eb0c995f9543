from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass, field

from ..common.enums import FormationType
from ..common.errors import ScriptExecutionError
from ..common.types import ScriptHost
from .engine import CompiledScript, get_engine

logger = logging.getLogger(__name__)

TRANSFORM_FN = "transform"


class CompiledCell:
    """One-shot slot holding a compiled script.

    Clones of a rule share the same cell, so a script compiled through one
    clone is reused by all of them. The slot is filled at most once.
    """

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value: CompiledScript | None = None
        self._lock = threading.Lock()

    def get(self) -> CompiledScript | None:
        return self._value

    def set(self, value: CompiledScript) -> bool:
        """Store ``value`` if the cell is empty; return whether it was stored."""
        with self._lock:
            if self._value is not None:
                return False
            self._value = value
            return True

    def get_or_compile(self, engine: ScriptHost, script: str) -> CompiledScript:
        compiled = self._value
        if compiled is None:
            compiled = engine.compile(script)
            if not self.set(compiled):
                compiled = self._value  # type: ignore[assignment]
        return compiled  # type: ignore[return-value]

    def __repr__(self) -> str:
        state = "compiled" if self._value is not None else "empty"
        return f"CompiledCell({state})"


@dataclass
class FormationRule:
    """A user-authored word-formation rule.

    ``command`` is a script defining ``transform(word)``; the rule never
    keeps any state besides the compiled script.
    """

    description: str
    rule_type: FormationType
    command: str
    cached_ast: CompiledCell = field(
        default_factory=CompiledCell, compare=False, repr=False
    )

    def apply(self, word: str, *, engine: ScriptHost | None = None) -> str:
        """Run ``transform(word)`` and return the derived form."""

        host = engine or get_engine()
        compiled = self.cached_ast.get_or_compile(host, self.command)
        result = host.call(compiled, TRANSFORM_FN, (word,))
        if not isinstance(result, str):
            raise ScriptExecutionError(
                f"{TRANSFORM_FN}: type mismatch, expected str but got {type(result).__name__}"
            )
        return result

    def preview(self, word: str, *, engine: ScriptHost | None = None) -> str:
        """Like :meth:`apply` but falls back to ``word`` on failure."""

        try:
            return self.apply(word, engine=engine)
        except ScriptExecutionError as exc:
            logger.debug(
                "Rule preview failed",
                extra={"rule": self.description, "word": word, "error": str(exc)},
            )
            return word

    def clone(self) -> "FormationRule":
        """Copy the rule, sharing its compiled-script cell."""
        return dataclasses.replace(self)


__all__ = ["CompiledCell", "FormationRule", "TRANSFORM_FN"]
