from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import pytest

from glossbench.common.enums import FormationType
from glossbench.common.errors import ScriptExecutionError
from glossbench.project.models import Project, Segment, Token
from glossbench.scripting.formation import FormationRule

PLURAL = "def transform(word):\n    return word + 's'\n"
PAST = "def transform(word):\n    return word + 'ed'\n"


def _project(*lines: str) -> Project:
    project = Project(project_name="demo", segments=[Segment.from_words(line.split()) for line in lines])
    project.cache.mark_loaded()
    return project


def _clean(project: Project) -> None:
    cache = project.cache
    cache.project_dirty = cache.filter_dirty = cache.lookups_dirty = cache.tfidf_dirty = False


def test_apply_rule_to_token_derives_single_token():
    project = _project("hello world", "foo bar baz")
    idx = project.add_formation_rule(FormationRule("plural", FormationType.INFLECTION, PLURAL))

    token = project.apply_rule_to_token(0, 1, idx)

    assert project.segments[0].surfaces == ["hello", "worlds"]
    assert token.base == "world"
    assert token.rule_chain == [idx]
    assert "world" in project.vocabulary
    assert "worlds" not in project.vocabulary


def test_apply_rule_twice_extends_chain_and_keeps_base():
    project = _project("cat")
    plural = project.add_formation_rule(FormationRule("plural", FormationType.INFLECTION, PLURAL))
    past = project.add_formation_rule(FormationRule("past", FormationType.INFLECTION, PAST))

    project.apply_rule_to_token(0, 0, plural)
    token = project.apply_rule_to_token(0, 0, past)

    assert token == Token(surface="catsed", base="cat", rule_chain=[plural, past])


def test_failed_rule_leaves_token_untouched():
    project = _project("cat")
    idx = project.add_formation_rule(
        FormationRule("broken", FormationType.DERIVATION, "def transform(word):\n    return word - 1\n")
    )
    _clean(project)

    with pytest.raises(ScriptExecutionError):
        project.apply_rule_to_token(0, 0, idx)

    assert project.segments[0].tokens[0] == Token(surface="cat")
    assert not project.cache.project_dirty


def test_derive_word_rewrites_every_occurrence():
    project = _project("walk walked", "walked away")
    project.vocabulary.update({"walk": "go", "walked": "went"})
    project.vocabulary_comments["walked"] = "irregular?"
    idx = project.add_formation_rule(FormationRule("past", FormationType.INFLECTION, PAST))

    rewritten = project.derive_word("walked", "walk", idx)

    assert rewritten == 2
    derived = [token for token in project.iter_tokens() if token.is_derived]
    assert [token.surface for token in derived] == ["walked", "walked"]
    assert all(token.base == "walk" and token.rule_chain == [idx] for token in derived)
    assert "walked" not in project.vocabulary
    assert "walked" not in project.vocabulary_comments
    assert project.vocabulary["walk"] == "go"


def test_derive_word_inherits_chain_from_derived_base():
    project = _project("walk walks walksed")
    project.vocabulary["walk"] = "go"
    plural = project.add_formation_rule(FormationRule("plural", FormationType.INFLECTION, PLURAL))
    past = project.add_formation_rule(FormationRule("past", FormationType.INFLECTION, PAST))
    project.derive_word("walks", "walk", plural)

    project.derive_word("walksed", "walks", past)

    token = project.segments[0].tokens[2]
    assert token.base == "walk"
    assert token.rule_chain == [plural, past]


def test_derive_word_rejects_mismatch_without_mutating():
    project = _project("walk jumped")
    project.vocabulary["walk"] = "go"
    idx = project.add_formation_rule(FormationRule("past", FormationType.INFLECTION, PAST))
    _clean(project)

    with pytest.raises(ValueError):
        project.derive_word("jumped", "walk", idx)
    with pytest.raises(ValueError):
        project.derive_word("runed", "run", idx)

    assert not any(token.is_derived for token in project.iter_tokens())
    assert not project.cache.project_dirty


def test_derive_word_refuses_identity_on_own_base():
    project = _project("walk walk")
    project.vocabulary["walk"] = "go"
    project.vocabulary_comments["walk"] = "motion"
    idx = project.add_formation_rule(
        FormationRule("same", FormationType.DERIVATION, "def transform(word):\n    return word\n")
    )
    _clean(project)

    with pytest.raises(ValueError, match="derived from itself"):
        project.derive_word("walk", "walk", idx)

    assert project.vocabulary == {"walk": "go"}
    assert project.vocabulary_comments == {"walk": "motion"}
    assert not any(token.is_derived for token in project.iter_tokens())
    assert not project.cache.project_dirty


def test_mutations_raise_documented_flags():
    project = _project("a b", "c")
    _clean(project)
    project.set_gloss("a", "x")
    assert project.cache.project_dirty
    assert project.cache.all_clean

    _clean(project)
    project.set_translation(0, "hello")
    assert project.cache.filter_dirty
    assert not project.cache.lookups_dirty and not project.cache.tfidf_dirty

    _clean(project)
    project.add_formation_rule(FormationRule("plural", FormationType.INFLECTION, PLURAL))
    assert project.cache.project_dirty and project.cache.all_clean

    _clean(project)
    project.delete_segment(1)
    assert project.cache.filter_dirty and project.cache.lookups_dirty and project.cache.tfidf_dirty
    assert len(project.segments) == 1

    _clean(project)
    project.set_token_surface(0, 0, "z")
    assert project.cache.tfidf_dirty
    assert project.segments[0].tokens[0] == Token(surface="z")


def test_find_related_words_orders_prefix_matches_first():
    project = _project()
    project.vocabulary.update({"unbar": "", "Barn": "", "bark": "", "crowbar": "", "cat": ""})

    assert project.find_related_words("bar") == ["bark", "Barn", "crowbar", "unbar"]
    assert project.find_related_words("bar", limit=2) == ["bark", "Barn"]
    assert project.find_related_words("") == []


def test_segment_metrics():
    project = _project("a b c", "")
    project.vocabulary.update({"a": "one", "b": "  "})
    project.segments[0].translation = "abc"

    assert project.count_translated_tokens(project.segments[0]) == 1
    assert project.translation_ratio(project.segments[0]) == 1.0
    assert project.translation_ratio(project.segments[1]) == 0.0


def test_preview_rule_is_identity_on_failure():
    project = _project("a")
    good = project.add_formation_rule(FormationRule("plural", FormationType.INFLECTION, PLURAL))
    bad = project.add_formation_rule(FormationRule("bad", FormationType.INFLECTION, "def transform(w):\n    return 1\n"))

    assert project.preview_rule(good, "cat") == "cats"
    assert project.preview_rule(bad, "cat") == "cat"


def test_comments_follow_token_kind():
    project = _project("cat cats")
    project.set_vocabulary_comment("cat", "pet")
    project.set_vocabulary_comment("cats", "base note")
    project.set_formatted_comment("cats", "plural")
    project.segments[0].tokens[1] = Token("cats", "cat", [0])

    base, derived = project.segments[0].tokens
    assert project.comment_for(base) == "pet"
    assert project.comment_for(derived) == "plural"
    assert project.gloss("cat") == ""

    project.set_formatted_comment("cats", "")
    assert project.comment_for(derived) == ""
    assert "cats" not in project.formatted_word_comments
