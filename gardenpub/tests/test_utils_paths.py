"""Tests for garden path and slug helpers."""
from __future__ import annotations

from gardenpub.utils.paths import (
    PathRewriteRule,
    generate_url_path,
    get_garden_path_for_note,
    get_rewrite_rules,
    normalize_path,
    slugify,
    slugify_note_path,
)


def test_get_rewrite_rules_ignores_malformed_lines() -> None:
    rules = get_rewrite_rules("Personal/Garden:\n broken line \nDrafts : Notes\na:b:c")

    assert rules == [
        PathRewriteRule(source="Personal/Garden", target=""),
        PathRewriteRule(source="Drafts", target="Notes"),
    ]


def test_garden_path_applies_first_matching_rule_and_strips_leading_slash() -> None:
    rules = get_rewrite_rules("Personal/Garden:\nPersonal:Private")

    assert get_garden_path_for_note("Personal/Garden/Plants.md", rules) == "Plants.md"
    assert get_garden_path_for_note("Personal/Diary.md", rules) == "Private/Diary.md"
    assert get_garden_path_for_note("Other/Note.md", rules) == "Other/Note.md"


def test_normalize_path_strips_a_single_leading_separator() -> None:
    assert normalize_path("/img/user/a.png") == "img/user/a.png"
    assert normalize_path("img/user/a.png") == "img/user/a.png"


def test_slugify_transliterates_and_collapses_separators() -> None:
    assert slugify("Café à Paris!") == "cafe-a-paris"
    assert slugify("???") == "note"


def test_generate_url_path_slugifies_each_segment() -> None:
    assert generate_url_path("Garden Notes/My First Note.md") == "/garden-notes/my-first-note/"
    assert generate_url_path("Garden Notes/My First Note.md", slugify_path=False) == "Garden Notes/My First Note/"
    assert generate_url_path("") == ""


def test_slugify_note_path_keeps_markdown_suffix() -> None:
    assert slugify_note_path("/Garden Notes/My First Note.md") == "garden-notes/my-first-note.md"
