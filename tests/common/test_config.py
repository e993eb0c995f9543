from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from glossbench.common.config import (
    DEFAULT_SIMILARITY_RESULTS,
    MAX_SCRIPT_OPERATIONS,
    get_config_paths,
    load_settings,
)
from glossbench.common.errors import InvalidProjectFormat, OperationCancelled, ProjectIOError


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GLOSSBENCH_SIMILAR_RESULTS", "9")
    monkeypatch.setenv("GLOSSBENCH_MAX_SCRIPT_OPERATIONS", "not-a-number")
    monkeypatch.setenv("GLOSSBENCH_SIMILAR_TOKENS_LIMIT", "-3")

    settings = load_settings(dotenv=False)

    assert settings.similar_results == 9
    assert settings.max_script_operations == MAX_SCRIPT_OPERATIONS
    assert settings.similar_tokens_limit == 20


def test_dotenv_does_not_override_environment(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text(
        "GLOSSBENCH_SIMILAR_RESULTS=3\nGLOSSBENCH_MAX_SCRIPT_DEPTH=64\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    # setenv first so the value loaded from .env is removed on teardown
    monkeypatch.setenv("GLOSSBENCH_SIMILAR_RESULTS", "0")
    monkeypatch.delenv("GLOSSBENCH_SIMILAR_RESULTS")
    monkeypatch.setenv("GLOSSBENCH_MAX_SCRIPT_DEPTH", "128")

    settings = load_settings()

    assert settings.similar_results == 3
    assert settings.max_script_depth == 128


def test_defaults_without_environment(monkeypatch):
    monkeypatch.delenv("GLOSSBENCH_SIMILAR_RESULTS", raising=False)
    assert load_settings(dotenv=False).similar_results == DEFAULT_SIMILARITY_RESULTS


def test_config_paths_follow_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    paths = get_config_paths()
    assert paths["projects"] == tmp_path / "glossbench" / "projects"
    assert paths["exports"] == tmp_path / "glossbench" / "exports"


def test_error_messages():
    assert str(ProjectIOError("disk full")) == "File I/O error: disk full"
    assert str(InvalidProjectFormat("bad")) == "Invalid project format: bad"
    assert str(OperationCancelled()) == "Operation cancelled by user"
