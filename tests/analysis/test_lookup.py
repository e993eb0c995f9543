from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from glossbench.analysis.lookup import build_headword_index, build_lookups, build_usage_index
from glossbench.project.models import Project, Segment, Token


def _project() -> Project:
    return Project(
        segments=[
            Segment.from_words("the cat the hat".split()),
            Segment(),
            Segment(tokens=[Token("cats", "cat", [0]), Token("run")]),
            Segment.from_words("the end".split()),
        ]
    )


def test_headword_index_uses_first_token():
    assert build_headword_index(_project()) == {"the": [0, 3], "cats": [2]}


def test_usage_index_lists_each_segment_once():
    usage = build_usage_index(_project())

    assert usage["the"] == [0, 3]
    assert usage["cat"] == [0]
    assert usage["cats"] == [2]
    assert usage["end"] == [3]
    assert set(usage) == {"the", "cat", "hat", "cats", "run", "end"}


def test_usage_lists_are_ascending_and_cover_every_token():
    project = _project()
    _, usage = build_lookups(project)

    for indices in usage.values():
        assert indices == sorted(set(indices))
    for idx, segment in enumerate(project.segments):
        for token in segment.tokens:
            assert idx in usage[token.surface]


def test_empty_project_has_empty_indices():
    assert build_lookups(Project()) == ({}, {})
