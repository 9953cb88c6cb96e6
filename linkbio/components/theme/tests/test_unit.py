"""
Theme component unit tests.

Tests for deep merge, content hashing, custom theme deduplication and
page theme resolution.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from linkbio.components.theme import (
    ThemeConfigError,
    ThemeService,
    ThemeServiceConfig,
    canonical_json,
    deep_merge,
    parse_json_object,
    resolve_theme_config,
    shallow_merge,
    theme_hash,
)
from linkbio.domain.entities import Page, PageTheme, ThemeCustom, ThemePreset, ThemeTier

# --- Mock Implementations ---


class MockThemeRepo:
    """In-memory theme repository for testing."""

    def __init__(self) -> None:
        self.presets: dict[int, ThemePreset] = {}
        self.customs: dict[int, ThemeCustom] = {}
        self._next_id = 100

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def list_presets(self, tier: ThemeTier | None = None) -> list[ThemePreset]:
        presets = [
            p
            for p in self.presets.values()
            if p.visibility == "public" and (tier is None or p.tier == tier)
        ]
        return sorted(presets, key=lambda p: p.name)

    def get_preset_by_key(self, key: str) -> ThemePreset | None:
        return next((p for p in self.presets.values() if p.key == key), None)

    def get_preset_by_id(self, preset_id: int) -> ThemePreset | None:
        return self.presets.get(preset_id)

    def save_preset(self, preset: ThemePreset) -> ThemePreset:
        if preset.id is None:
            preset = preset.model_copy(update={"id": self._new_id()})
        assert preset.id is not None
        self.presets[preset.id] = preset
        return preset

    def get_custom_by_id(self, custom_id: int) -> ThemeCustom | None:
        return self.customs.get(custom_id)

    def get_custom_by_hash(self, user_id: int, theme_hash: str) -> ThemeCustom | None:
        return next(
            (c for c in self.customs.values() if c.user_id == user_id and c.hash == theme_hash),
            None,
        )

    def get_latest_custom_for_user(self, user_id: int) -> ThemeCustom | None:
        owned = [c for c in self.customs.values() if c.user_id == user_id]
        return max(owned, key=lambda c: (c.updated_at, c.id or 0), default=None)

    def save_custom(self, custom: ThemeCustom) -> ThemeCustom:
        if custom.id is None:
            custom = custom.model_copy(update={"id": self._new_id()})
        assert custom.id is not None
        self.customs[custom.id] = custom
        return custom

    def delete_custom(self, custom_id: int) -> None:
        self.customs.pop(custom_id, None)


class MockClock:
    """Mock clock for deterministic testing."""

    def __init__(self) -> None:
        self._time = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._time


# --- Fixtures ---

PRESET_CONFIG = {
    "page": {
        "layout": {"textAlign": "center", "pagePadding": 16},
        "defaults": {"linkGroup": {"radius": 16, "fontSize": "M"}},
    },
    "background": {"kind": "color", "color": "#000000"},
    "palette": ["#111", "#222"],
}


@pytest.fixture
def repo() -> MockThemeRepo:
    r = MockThemeRepo()
    r.save_preset(ThemePreset(key="theme_a", name="Midnight", config=PRESET_CONFIG))
    r.save_preset(ThemePreset(key="theme_b", name="Paper", config={"page": {}}))
    r.save_preset(ThemePreset(key="theme_pro", name="Sunset", tier="pro", config={}))
    r.save_preset(
        ThemePreset(key="theme_hidden", name="Hidden", visibility="private", config={})
    )
    return r


@pytest.fixture
def service(repo: MockThemeRepo) -> ThemeService:
    return ThemeService(repo, MockClock())


# --- Merge Tests ---


class TestDeepMerge:
    """Test the recursive merge."""

    def test_nested_objects_merge(self) -> None:
        patch = {"page": {"defaults": {"linkGroup": {"radius": 24}}}}
        merged = deep_merge(PRESET_CONFIG, patch)

        assert merged["page"]["defaults"]["linkGroup"] == {"radius": 24, "fontSize": "M"}
        assert merged["page"]["layout"] == PRESET_CONFIG["page"]["layout"]

    def test_arrays_are_replaced(self) -> None:
        merged = deep_merge(PRESET_CONFIG, {"palette": ["#fff"]})
        assert merged["palette"] == ["#fff"]

    def test_type_mismatch_patch_wins(self) -> None:
        merged = deep_merge(PRESET_CONFIG, {"background": "none"})
        assert merged["background"] == "none"

        merged = deep_merge({"a": 1}, {"a": {"b": 2}})
        assert merged["a"] == {"b": 2}

    def test_new_keys_added(self) -> None:
        merged = deep_merge({"a": 1}, {"b": 2})
        assert merged == {"a": 1, "b": 2}

    def test_empty_patch_is_identity(self) -> None:
        assert deep_merge(PRESET_CONFIG, {}) == PRESET_CONFIG

    def test_patch_merged_twice_is_idempotent(self) -> None:
        patch = {"page": {"layout": {"pagePadding": 24}}, "x": [1]}
        once = deep_merge(PRESET_CONFIG, patch)
        assert deep_merge(once, patch) == once

    def test_inputs_not_mutated(self) -> None:
        base = {"a": {"b": [1, 2]}}
        patch = {"a": {"c": 3}}
        merged = deep_merge(base, patch)
        merged["a"]["b"].append(3)

        assert base == {"a": {"b": [1, 2]}}
        assert patch == {"a": {"c": 3}}

    def test_non_object_patch_rejected(self) -> None:
        with pytest.raises(ThemeConfigError):
            deep_merge(PRESET_CONFIG, ["not", "an", "object"])  # type: ignore[arg-type]


class TestShallowMerge:
    def test_override_replaces_top_level(self) -> None:
        merged = shallow_merge({"radius": 16, "shadow": {"y": 1}}, {"shadow": {"x": 2}})
        assert merged == {"radius": 16, "shadow": {"x": 2}}

    def test_none_inputs(self) -> None:
        assert shallow_merge(None, None) == {}
        assert shallow_merge({"a": 1}, None) == {"a": 1}


# --- Hash / JSON Tests ---


class TestHashing:
    def test_key_order_does_not_matter(self) -> None:
        a = theme_hash(1, {"x": 1, "y": {"b": 2, "a": 1}})
        b = theme_hash(1, {"y": {"a": 1, "b": 2}, "x": 1})
        assert a == b

    def test_preset_participates(self) -> None:
        assert theme_hash(1, {"x": 1}) != theme_hash(2, {"x": 1})

    def test_hex_digest(self) -> None:
        digest = theme_hash(1, {})
        assert len(digest) == 64
        int(digest, 16)

    def test_canonical_json(self) -> None:
        assert canonical_json({"b": 1, "a": "é"}) == '{"a":"é","b":1}'


class TestParseJsonObject:
    def test_empty_values(self) -> None:
        assert parse_json_object(None, "config") == {}
        assert parse_json_object("", "config") == {}

    def test_valid_object(self) -> None:
        assert parse_json_object('{"a": 1}', "config") == {"a": 1}

    def test_malformed_json_propagates(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            parse_json_object("{not json", "config")

    def test_non_object_rejected(self) -> None:
        with pytest.raises(ThemeConfigError):
            parse_json_object("[1, 2]", "config")


class TestResolveThemeConfig:
    def test_preset_only(self, repo: MockThemeRepo) -> None:
        preset = repo.get_preset_by_key("theme_a")
        assert preset is not None
        assert resolve_theme_config(preset) == PRESET_CONFIG

    def test_custom_without_cache_merges(self, repo: MockThemeRepo) -> None:
        preset = repo.get_preset_by_key("theme_a")
        assert preset is not None and preset.id is not None
        custom = ThemeCustom(
            user_id=1,
            based_on_preset_id=preset.id,
            patch={"background": {"color": "#FFFFFF"}},
            hash="h",
        )

        resolved = resolve_theme_config(preset, custom)

        assert resolved["background"] == {"kind": "color", "color": "#FFFFFF"}


# --- Service Tests ---


class TestPresets:
    def test_list_public_presets_by_name(self, service: ThemeService) -> None:
        names = [p.name for p in service.list_presets()]
        assert names == ["Midnight", "Paper", "Sunset"]

    def test_list_by_tier(self, service: ThemeService) -> None:
        assert [p.key for p in service.list_presets("pro")] == ["theme_pro"]

    def test_upsert_preset_keeps_id(self, service: ThemeService) -> None:
        before = service.get_preset("theme_b")
        assert before is not None

        after = service.upsert_preset("theme_b", "Paper 2", {"background": {"kind": "color"}})

        assert after.id == before.id
        assert after.name == "Paper 2"
        assert after.is_official

    def test_upsert_new_preset(self, service: ThemeService) -> None:
        created = service.upsert_preset("theme_c", "Forest", {}, tier="pro")

        assert created.id is not None
        assert service.get_preset("theme_c") is not None


class TestSaveCustom:
    def test_stores_compiled_config(self, service: ThemeService) -> None:
        patch = {"page": {"defaults": {"linkGroup": {"radius": 24}}}}
        custom, errors = service.save_custom(1, "theme_a", patch, name="Mine")

        assert errors == []
        assert custom is not None
        assert custom.compiled_config == deep_merge(PRESET_CONFIG, patch)
        assert custom.patch == patch

    def test_identical_patch_reuses_row(self, service: ThemeService, repo: MockThemeRepo) -> None:
        first, _ = service.save_custom(1, "theme_a", {"x": 1, "y": 2})
        second, _ = service.save_custom(1, "theme_a", {"y": 2, "x": 1})

        assert first is not None and second is not None
        assert first.id == second.id
        assert len(repo.customs) == 1

    def test_other_user_gets_own_row(self, service: ThemeService, repo: MockThemeRepo) -> None:
        service.save_custom(1, "theme_a", {"x": 1})
        service.save_custom(2, "theme_a", {"x": 1})

        assert len(repo.customs) == 2

    def test_different_patch_adds_row(self, service: ThemeService, repo: MockThemeRepo) -> None:
        service.save_custom(1, "theme_a", {"x": 1})
        service.save_custom(1, "theme_a", {"x": 2})

        assert len(repo.customs) == 2

    def test_single_per_user_updates_in_place(self, repo: MockThemeRepo) -> None:
        service = ThemeService(
            repo, MockClock(), ThemeServiceConfig(dedupe_policy="single_per_user")
        )
        first, _ = service.save_custom(1, "theme_a", {"x": 1}, name="Mine")
        second, _ = service.save_custom(1, "theme_b", {"x": 2})

        assert first is not None and second is not None
        assert second.id == first.id
        assert second.name == "Mine"
        assert second.patch == {"x": 2}
        assert len(repo.customs) == 1

    def test_unknown_preset(self, service: ThemeService) -> None:
        custom, errors = service.save_custom(1, "nope", {})

        assert custom is None
        assert errors[0].code == "PRESET_NOT_FOUND"

    def test_non_object_patch(self, service: ThemeService) -> None:
        custom, errors = service.save_custom(1, "theme_a", [1, 2])

        assert custom is None
        assert errors[0].code == "INVALID_PATCH"


class TestDeleteCustom:
    def test_owner_can_delete(self, service: ThemeService, repo: MockThemeRepo) -> None:
        custom, _ = service.save_custom(1, "theme_a", {"x": 1})
        assert custom is not None and custom.id is not None

        deleted, errors = service.delete_custom(1, custom.id)

        assert deleted and errors == []
        assert repo.customs == {}

    def test_other_user_forbidden(self, service: ThemeService) -> None:
        custom, _ = service.save_custom(1, "theme_a", {"x": 1})
        assert custom is not None and custom.id is not None

        deleted, errors = service.delete_custom(2, custom.id)

        assert not deleted
        assert errors[0].code == "FORBIDDEN"

    def test_missing(self, service: ThemeService) -> None:
        deleted, errors = service.delete_custom(1, 999)

        assert not deleted
        assert errors[0].code == "CUSTOM_NOT_FOUND"


class TestSelectForPage:
    def _page(self, preset_key: str = "theme_a", custom_id: int | None = None) -> Page:
        return Page(
            id=1, user_id=1, theme=PageTheme(preset_key=preset_key, custom_id=custom_id)
        )

    def test_preset_only(self, service: ThemeService) -> None:
        selection = service.select_for_page(self._page())

        assert selection is not None
        assert selection.preset.key == "theme_a"
        assert selection.custom is None

    def test_custom_wins(self, service: ThemeService) -> None:
        custom, _ = service.save_custom(1, "theme_b", {"x": 1})
        assert custom is not None

        selection = service.select_for_page(self._page(custom_id=custom.id))

        assert selection is not None
        assert selection.custom == custom
        assert selection.preset.key == "theme_b"

    def test_foreign_custom_ignored(self, service: ThemeService) -> None:
        custom, _ = service.save_custom(2, "theme_b", {"x": 1})
        assert custom is not None

        selection = service.select_for_page(self._page(custom_id=custom.id))

        assert selection is not None
        assert selection.custom is None
        assert selection.preset.key == "theme_a"

    def test_unknown_preset_falls_back_to_default(self, service: ThemeService) -> None:
        selection = service.select_for_page(self._page(preset_key="gone"))

        assert selection is not None
        assert selection.preset.key == "theme_a"

    def test_no_presets(self) -> None:
        service = ThemeService(MockThemeRepo(), MockClock())
        assert service.select_for_page(self._page()) is None

    def test_effective_config(self, service: ThemeService) -> None:
        custom, _ = service.save_custom(1, "theme_a", {"background": {"color": "#FFF"}})
        assert custom is not None

        config = service.effective_config(self._page(custom_id=custom.id))

        assert config is not None
        assert config["background"] == {"kind": "color", "color": "#FFF"}
