"""
ThemeMerger - effective theme configuration from a preset plus a patch.

Key behaviors:
- deep_merge(base, patch): nested objects merge key by key, patch wins on
  every other conflict (arrays, scalars, type mismatches)
- shallow_merge(base, override): top-level keys only, used for per-group
  style overrides
- theme_hash(preset_id, patch): stable content hash used to look up and
  deduplicate custom themes
- Pure functions: same inputs always produce structurally identical outputs

Functional Core - no I/O.
"""

from __future__ import annotations

import copy
import hashlib
import json
from typing import Any

from linkbio.domain.entities import JSONObject, ThemeCustom, ThemePreset


class ThemeConfigError(ValueError):
    """Raised when a theme config or patch is not a JSON object."""


# --- Serialization ---


def canonical_json(value: Any) -> str:
    """Deterministic JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_json_object(raw: str | bytes | JSONObject | None, field: str) -> JSONObject:
    """
    Parse a stored JSON column into an object.

    None and empty values become {}. Malformed JSON raises
    json.JSONDecodeError unchanged; valid JSON that is not an object raises
    ThemeConfigError.
    """
    if raw is None or raw == "" or raw == b"":
        return {}
    value = json.loads(raw) if isinstance(raw, str | bytes) else raw
    if not isinstance(value, dict):
        raise ThemeConfigError(f"{field} must be a JSON object, got {type(value).__name__}")
    return value


# --- Merging ---


def deep_merge(base: JSONObject, patch: JSONObject) -> JSONObject:
    """Recursively merge `patch` onto `base`, returning a new tree."""
    if not isinstance(base, dict):
        raise ThemeConfigError("Theme base config must be a JSON object")
    if not isinstance(patch, dict):
        raise ThemeConfigError("Theme patch must be a JSON object")

    merged: JSONObject = {}
    for key, value in base.items():
        if key in patch:
            override = patch[key]
            if isinstance(value, dict) and isinstance(override, dict):
                merged[key] = deep_merge(value, override)
            else:
                merged[key] = copy.deepcopy(override)
        else:
            merged[key] = copy.deepcopy(value)

    for key, value in patch.items():
        if key not in base:
            merged[key] = copy.deepcopy(value)

    return merged


def shallow_merge(base: JSONObject | None, override: JSONObject | None) -> JSONObject:
    """Top-level merge: keys of `override` replace keys of `base` wholesale."""
    merged = copy.deepcopy(base) if base else {}
    for key, value in (override or {}).items():
        merged[key] = copy.deepcopy(value)
    return merged


# --- Identity ---


def theme_hash(preset_id: int, patch: JSONObject) -> str:
    """SHA-256 hex digest over the serialized (preset_id, patch) pair."""
    payload = f"{preset_id}:{canonical_json(patch)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# --- Resolution ---


def compile_custom_config(preset: ThemePreset, patch: JSONObject) -> JSONObject:
    return deep_merge(preset.config, patch)


def resolve_theme_config(preset: ThemePreset, custom: ThemeCustom | None = None) -> JSONObject:
    """
    Effective configuration for a page.

    A custom theme wins over its preset: its cached compiled config is used
    when present, otherwise the patch is merged onto the preset on the fly.
    """
    if custom is None:
        return copy.deepcopy(preset.config)
    if custom.compiled_config is not None:
        return copy.deepcopy(custom.compiled_config)
    return compile_custom_config(preset, custom.patch)
