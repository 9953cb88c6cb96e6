"""
Theme component - Port interfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from linkbio.domain.entities import ThemeCustom, ThemePreset, ThemeTier


class ThemeRepoPort(Protocol):
    """Repository interface for theme presets and custom themes."""

    def list_presets(self, tier: ThemeTier | None = None) -> list[ThemePreset]:
        """List public presets, optionally filtered by tier, ordered by name."""
        ...

    def get_preset_by_key(self, key: str) -> ThemePreset | None:
        ...

    def get_preset_by_id(self, preset_id: int) -> ThemePreset | None:
        ...

    def save_preset(self, preset: ThemePreset) -> ThemePreset:
        """Insert or update a preset (administrative seeding only)."""
        ...

    def get_custom_by_id(self, custom_id: int) -> ThemeCustom | None:
        ...

    def get_custom_by_hash(self, user_id: int, theme_hash: str) -> ThemeCustom | None:
        ...

    def get_latest_custom_for_user(self, user_id: int) -> ThemeCustom | None:
        ...

    def save_custom(self, custom: ThemeCustom) -> ThemeCustom:
        """Insert (id None) or update a custom theme; returns the stored row."""
        ...

    def delete_custom(self, custom_id: int) -> None:
        ...


class ClockPort(Protocol):
    def now(self) -> datetime:
        """Return current UTC time."""
        ...
