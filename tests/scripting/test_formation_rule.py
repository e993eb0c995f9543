from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import pytest

from glossbench.common.enums import FormationType
from glossbench.common.errors import ScriptExecutionError
from glossbench.scripting.engine import ScriptSandbox
from glossbench.scripting.formation import CompiledCell, FormationRule

PLURAL = "def transform(word):\n    return word + 's'\n"


class CountingSandbox(ScriptSandbox):
    def __init__(self) -> None:
        super().__init__(max_depth=64, max_operations=10_000)
        self.compiles = 0

    def compile(self, script):
        self.compiles += 1
        return super().compile(script)


def test_apply_compiles_once_and_reuses_cached_script():
    engine = CountingSandbox()
    rule = FormationRule("plural", FormationType.INFLECTION, PLURAL)

    assert rule.apply("world", engine=engine) == "worlds"
    assert rule.apply("cat", engine=engine) == "cats"
    assert engine.compiles == 1
    assert rule.cached_ast.get() is not None


def test_clones_share_the_compiled_cell():
    engine = CountingSandbox()
    rule = FormationRule("plural", FormationType.INFLECTION, PLURAL)
    twin = rule.clone()

    assert twin.cached_ast is rule.cached_ast
    twin.apply("dog", engine=engine)
    rule.apply("cat", engine=engine)
    assert engine.compiles == 1


def test_cell_is_set_at_most_once():
    engine = ScriptSandbox(max_depth=64, max_operations=1_000)
    cell = CompiledCell()
    first = engine.compile(PLURAL)
    second = engine.compile(PLURAL)

    assert cell.set(first) is True
    assert cell.set(second) is False
    assert cell.get() is first


def test_non_string_result_is_a_type_mismatch():
    engine = ScriptSandbox(max_depth=64, max_operations=1_000)
    rule = FormationRule("length", FormationType.DERIVATION, "def transform(word):\n    return len(word)\n")

    with pytest.raises(ScriptExecutionError) as excinfo:
        rule.apply("abc", engine=engine)
    assert "type mismatch" in str(excinfo.value)


def test_preview_falls_back_to_input_on_failure():
    engine = ScriptSandbox(max_depth=64, max_operations=1_000)
    broken = FormationRule("broken", FormationType.NONMORPHOLOGICAL, "def transform(word):\n    return word +\n")

    assert broken.preview("abc", engine=engine) == "abc"
    with pytest.raises(ScriptExecutionError):
        broken.apply("abc", engine=engine)


def test_rule_equality_ignores_cache():
    engine = ScriptSandbox(max_depth=64, max_operations=1_000)
    a = FormationRule("plural", FormationType.INFLECTION, PLURAL)
    b = FormationRule("plural", FormationType.INFLECTION, PLURAL)
    a.apply("x", engine=engine)

    assert a == b
    assert "cached_ast" not in repr(a)
