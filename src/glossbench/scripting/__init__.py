"""Script sandbox and the rule types that run on it."""

from __future__ import annotations

from .engine import CompiledScript, ScriptSandbox, get_engine, set_engine, with_engine
from .formation import CompiledCell, FormationRule
from .tokenization import TokenizationRule, tokenize_text

__all__ = [
    "CompiledCell",
    "CompiledScript",
    "FormationRule",
    "ScriptSandbox",
    "TokenizationRule",
    "get_engine",
    "set_engine",
    "tokenize_text",
    "with_engine",
]
