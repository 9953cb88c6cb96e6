"""
Rules loader tests.

Verifies that rules.yaml parses into the Rules model and that malformed
files are rejected with a clear error.
"""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from linkbio.rules.loader import RULES_PATH_ENV, load_rules, parse_rules


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_project_rules_load(rules_path: Path) -> None:
    rules = load_rules(rules_path)

    assert rules.project.slug == "linkbio"
    assert rules.themes.dedupe_policy in ("content_hash", "single_per_user")
    assert {p.key for p in rules.themes.presets} >= {"theme_a", "theme_b"}
    assert rules.themes.default_preset_key in {p.key for p in rules.themes.presets}


def test_defaults_fill_missing_sections(tmp_path: Path) -> None:
    rules = load_rules(_write(tmp_path, "project:\n  slug: x\n  rules_version: '1'\n"))

    assert rules.publish.etag_length == 32
    assert rules.pages.allowed_block_types == ["text", "link_group"]
    assert rules.themes.presets == []
    assert rules.themes.fallback_background["kind"] == "color"


def test_fallback_defaults_are_independent_copies(tmp_path: Path) -> None:
    path = _write(tmp_path, "project:\n  slug: x\n  rules_version: '1'\n")
    first = load_rules(path)
    first.themes.fallback_page["layout"]["pagePadding"] = 99

    assert load_rules(path).themes.fallback_page["layout"]["pagePadding"] == 16


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "missing.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="invalid YAML"):
        load_rules(_write(tmp_path, "project: [unclosed\n"))


def test_schema_violation(tmp_path: Path) -> None:
    content = (
        "project:\n  slug: x\n  rules_version: '1'\n"
        "themes:\n  dedupe_policy: global\n"
    )
    with pytest.raises(ValueError, match="validation failed"):
        load_rules(_write(tmp_path, content))


def test_etag_length_bounds(tmp_path: Path) -> None:
    content = "project:\n  slug: x\n  rules_version: '1'\npublish:\n  etag_length: 4\n"
    with pytest.raises(ValueError):
        load_rules(_write(tmp_path, content))


def test_parse_rules_from_text() -> None:
    rules = parse_rules("project:\n  slug: inline\n  rules_version: '3'\n")

    assert rules.project.slug == "inline"
    assert rules.project.rules_version == "3"


def test_non_mapping_document_rejected() -> None:
    with pytest.raises(ValueError, match="must be a YAML mapping"):
        parse_rules("- just\n- a list\n", source="list.yaml")


def test_empty_file_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "")
    with pytest.raises(ValueError, match=re.escape(str(path))):
        load_rules(path)


def test_markdown_fence_is_not_unwrapped(tmp_path: Path) -> None:
    content = "```yaml\nproject:\n  slug: fenced\n  rules_version: '2'\n```\n"
    with pytest.raises(ValueError):
        load_rules(_write(tmp_path, content))


def test_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "custom-rules.yaml"
    path.write_text("project:\n  slug: from-env\n  rules_version: '1'\n", encoding="utf-8")
    monkeypatch.setenv(RULES_PATH_ENV, str(path))

    assert load_rules().project.slug == "from-env"


def test_default_path_is_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RULES_PATH_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
    _write(tmp_path, "project:\n  slug: cwd\n  rules_version: '1'\n")

    assert load_rules().project.slug == "cwd"
