"""
Theme component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from linkbio.domain.entities import ThemeCustom, ThemePreset

DedupePolicy = Literal["content_hash", "single_per_user"]


@dataclass(frozen=True)
class ThemeValidationError:
    """Theme operation error."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ThemeServiceConfig:
    """Theme service configuration."""

    # content_hash: reuse the user's row with an identical (preset, patch) hash
    # single_per_user: keep one custom theme per user, updated in place
    dedupe_policy: DedupePolicy = "content_hash"
    default_preset_key: str = "theme_a"


DEFAULT_CONFIG = ThemeServiceConfig()


@dataclass(frozen=True)
class ThemeSelection:
    """The preset a page references and, when set, the custom theme derived from it."""

    preset: ThemePreset
    custom: ThemeCustom | None = None
