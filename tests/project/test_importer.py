from __future__ import annotations

import copy
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import pytest

from glossbench.common.errors import InvalidProjectFormat
from glossbench.project.importer import ImportReport, load_project_from_json
from glossbench.project.models import Token
from glossbench.scripting.engine import ScriptSandbox

PLURAL = "def transform(word):\n    return word + 's'\n"

BASE_DOC = {
    "version": 2,
    "project_name": "demo",
    "formation": [{"description": "plural", "type": "inflection", "command": PLURAL}],
    "vocabulary": {
        "orignal": [
            {"word": "cat", "meaning": "feline", "comment": "pet"},
            {"word": "dog", "meaning": "", "comment": ""},
        ],
        "formatted": [{"word": [0, 0], "comment": "more than one"}],
    },
    "sentences": [{"words": [0, -1, 1], "meaning": "cat cats dog", "comment": "note"}],
}


class CountingSandbox(ScriptSandbox):
    def __init__(self) -> None:
        super().__init__(max_depth=64, max_operations=10_000)
        self.calls = 0

    def call(self, compiled, fn_name, args):
        self.calls += 1
        return super().call(compiled, fn_name, args)


def _doc(**changes):
    doc = copy.deepcopy(BASE_DOC)
    doc.update(changes)
    return doc


def test_import_rebuilds_derived_surfaces():
    project = load_project_from_json(_doc())

    assert project.project_name == "demo"
    assert project.font_path is None
    assert project.segments[0].tokens == [
        Token("cat"),
        Token("cats", "cat", [0]),
        Token("dog"),
    ]
    assert project.segments[0].translation == "cat cats dog"
    assert project.segments[0].comment == "note"
    assert project.vocabulary == {"cat": "feline", "dog": ""}
    assert project.vocabulary_comments == {"cat": "pet"}
    assert project.formatted_word_comments == {"cats": "more than one"}
    assert project.formation_rules[0].description == "plural"


def test_import_marks_project_loaded():
    cache = load_project_from_json(_doc()).cache
    assert not cache.project_dirty
    assert cache.filter_dirty and cache.lookups_dirty and cache.tfidf_dirty


def test_each_formatted_entry_is_replayed_once():
    engine = CountingSandbox()
    doc = _doc(sentences=[{"words": [-1, -1, -1], "meaning": ""}])

    project = load_project_from_json(doc, engine=engine)

    assert engine.calls == 1
    assert [token.surface for token in project.segments[0].tokens] == ["cats"] * 3


def test_failing_rule_degrades_to_identity_with_warning():
    doc = _doc(
        formation=[
            {"description": "broken", "type": "derivation", "command": "def transform(word):\n    return word[99]\n"}
        ]
    )
    report = ImportReport()

    project = load_project_from_json(doc, report=report)

    assert project.segments[0].tokens[1] == Token("cat", "cat", [0])
    assert report.degraded
    assert report.warnings[0].rule_index == 0
    assert report.warnings[0].word == "cat"
    assert "IndexError" in report.warnings[0].message


@pytest.mark.parametrize(
    "changes",
    [
        {"sentences": [{"words": [5], "meaning": ""}]},
        {"sentences": [{"words": [-3], "meaning": ""}]},
        {"vocabulary": {"orignal": [{"word": "cat", "meaning": ""}], "formatted": [{"word": [4, 0]}]}},
        {"vocabulary": {"orignal": [{"word": "cat", "meaning": ""}], "formatted": [{"word": [0, 9]}]}},
    ],
)
def test_out_of_range_references_are_rejected(changes):
    with pytest.raises(InvalidProjectFormat):
        load_project_from_json(_doc(**changes))


@pytest.mark.parametrize("version", [0, 3, "2", True, None])
def test_unsupported_versions_are_rejected(version):
    with pytest.raises(InvalidProjectFormat):
        load_project_from_json(_doc(version=version))


def test_structural_errors_are_invalid_format():
    doc = _doc()
    del doc["vocabulary"]
    with pytest.raises(InvalidProjectFormat) as excinfo:
        load_project_from_json(doc)
    assert "vocabulary" in str(excinfo.value)

    with pytest.raises(InvalidProjectFormat):
        load_project_from_json(_doc(formation=[{"description": "x", "type": "bogus", "command": ""}]))

    with pytest.raises(InvalidProjectFormat):
        load_project_from_json([1, 2, 3])
