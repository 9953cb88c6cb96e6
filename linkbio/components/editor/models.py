"""
Editor component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Validation Errors ---


@dataclass(frozen=True)
class EditorValidationError:
    """Draft editing error."""

    code: str
    message: str
    field: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class EditorConfig:
    """Limits and defaults applied to draft edits."""

    allowed_block_types: tuple[str, ...] = ("text", "link_group")
    max_blocks: int = 100
    max_links_per_group: int = 50
    max_title_length: int = 200
    default_layout_type: str = "list"
    default_locale: str = "vi"
    default_preset_key: str = "theme_a"
    default_mode: str = "light"


DEFAULT_CONFIG = EditorConfig()
