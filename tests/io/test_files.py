from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import pytest

from glossbench.common.enums import FileType
from glossbench.common.errors import InvalidProjectFormat, ProjectIOError
from glossbench.io.collaborators import MemoryFontRegistrar, PathFilePicker
from glossbench.io.files import (
    FileOperations,
    detect_font_in_dir,
    import_text,
    import_text_file,
    load_project_file,
    save_project_file,
    save_typst_file,
    serialize_project,
)
from glossbench.project.models import Token
from glossbench.scripting.tokenization import TokenizationRule


def test_s1_whitespace_import():
    project = import_text("hello world\n\nfoo bar baz\n")

    assert [segment.surfaces for segment in project.segments] == [
        ["hello", "world"],
        ["foo", "bar", "baz"],
    ]
    assert all(segment.translation == "" for segment in project.segments)
    assert not project.cache.project_dirty


def test_character_import_keeps_inner_spaces():
    project = import_text("ab c\n", TokenizationRule.characters())
    assert project.segments[0].surfaces == ["a", "b", " ", "c"]


def test_text_file_import_picks_up_font(tmp_path):
    (tmp_path / "notes.txt").write_text("a b\n", encoding="utf-8")
    (tmp_path / "notes.otf").write_bytes(b"font")

    project = import_text_file(tmp_path / "notes.txt")

    assert project.project_name == "notes"
    assert project.font_path == str(tmp_path / "notes.otf")


def test_detect_font_prefers_ttf(tmp_path):
    (tmp_path / "script.ttc").write_bytes(b"")
    (tmp_path / "script.ttf").write_bytes(b"")
    assert detect_font_in_dir(tmp_path, "script") == tmp_path / "script.ttf"
    assert detect_font_in_dir(tmp_path, "other") is None
    assert detect_font_in_dir(tmp_path, "") is None


def test_save_and_load_project(tmp_path):
    project = import_text("a b\n", project_name="demo")
    project.set_gloss("a", "first")
    assert project.cache.project_dirty
    (tmp_path / "demo.ttf").write_bytes(b"")

    save_project_file(project, tmp_path / "demo.json")
    loaded = load_project_file(tmp_path / "demo.json")

    assert not project.cache.project_dirty
    assert loaded.vocabulary == {"a": "first", "b": ""}
    assert loaded.font_path == str(tmp_path / "demo.ttf")
    assert (tmp_path / "demo.json").read_text(encoding="utf-8") == serialize_project(project)


def test_failed_export_keeps_previous_file(tmp_path):
    target = tmp_path / "demo.json"
    target.write_text("previous", encoding="utf-8")
    project = import_text("a b\n", project_name="demo")
    project.segments[0].tokens.append(Token("ghosts", "ghost", [0]))
    project.set_gloss("a", "x")

    with pytest.raises(InvalidProjectFormat):
        save_project_file(project, target)

    assert target.read_text(encoding="utf-8") == "previous"
    assert project.cache.project_dirty
    assert [path.name for path in tmp_path.iterdir()] == ["demo.json"]


def test_load_errors(tmp_path):
    with pytest.raises(ProjectIOError):
        load_project_file(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidProjectFormat):
        load_project_file(broken)


def test_typst_file_written(tmp_path):
    project = import_text("a\n", project_name="demo")
    save_typst_file(project, tmp_path / "out" / "demo.typ")
    assert (tmp_path / "out" / "demo.typ").read_text(encoding="utf-8").startswith("#set page")


def test_file_operations_return_none_when_cancelled():
    ops = FileOperations(PathFilePicker())
    project = import_text("a\n", project_name="demo")
    project.set_gloss("a", "x")

    assert ops.open_text() is None
    assert ops.open_project() is None
    assert ops.save_project(project) is None
    assert ops.export_typst(project) is None
    assert ops.pick_font(project) is None
    assert project.cache.project_dirty


def test_file_operations_round_trip(tmp_path):
    (tmp_path / "story.txt").write_text("one two\nthree\n", encoding="utf-8")
    (tmp_path / "story.ttf").write_bytes(b"glyphs")
    fonts = MemoryFontRegistrar()
    picker = PathFilePicker(
        open_paths=[tmp_path / "story.txt", tmp_path / "story.json"],
        save_paths=[tmp_path, tmp_path / "story.typ"],
    )
    ops = FileOperations(picker, fonts=fonts)

    project = ops.open_text()
    assert project.project_name == "story"
    assert project.font_path == str(tmp_path / "story.ttf")

    project.set_gloss("one", "1")
    assert ops.save_project(project) == tmp_path / "story.json"
    assert not project.cache.project_dirty
    assert ops.export_typst(project) == tmp_path / "story.typ"

    reopened = ops.open_project()
    assert reopened.vocabulary["one"] == "1"
    assert fonts.fonts == {"story.ttf": b"glyphs"}


def test_pick_font_registers_and_sets_path(tmp_path):
    font = tmp_path / "glyphs.otf"
    font.write_bytes(b"data")
    fonts = MemoryFontRegistrar()
    ops = FileOperations(PathFilePicker(open_paths=[font]), fonts=fonts)
    project = import_text("a\n")

    assert ops.pick_font(project) == font
    assert project.font_path == str(font)
    assert fonts.names == ["glyphs.otf"]
    assert FileType.FONT.extensions == ("ttf", "otf", "ttc")


def test_picker_rejects_wrong_file_kind(tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("a\n", encoding="utf-8")
    ops = FileOperations(PathFilePicker(open_paths=[notes]))

    with pytest.raises(ProjectIOError) as excinfo:
        ops.open_project()
    assert "not a JSON file" in str(excinfo.value)
