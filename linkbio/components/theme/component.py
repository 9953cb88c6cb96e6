"""
Theme component - preset catalogue and user custom themes.

Custom themes are a JSON patch over exactly one preset. The compiled
config is recomputed whenever the patch changes, so pages can be compiled
without re-merging.

Shell Layer - talks to the theme repository.
"""

from __future__ import annotations

import logging
from typing import Any

from linkbio.domain.entities import (
    JSONObject,
    Page,
    ThemeCustom,
    ThemePreset,
    ThemeTier,
    ThemeVisibility,
)

from ._impl import ThemeConfigError, compile_custom_config, resolve_theme_config, theme_hash
from .models import DEFAULT_CONFIG, ThemeSelection, ThemeServiceConfig, ThemeValidationError
from .ports import ClockPort, ThemeRepoPort

logger = logging.getLogger(__name__)


class ThemeService:
    """
    Theme service.

    Lists presets and manages a user's custom themes according to the
    configured deduplication policy.
    """

    def __init__(
        self,
        repo: ThemeRepoPort,
        clock: ClockPort,
        config: ThemeServiceConfig = DEFAULT_CONFIG,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._config = config

    # --- Presets ---

    def list_presets(self, tier: ThemeTier | None = None) -> list[ThemePreset]:
        """List public presets."""
        return self._repo.list_presets(tier)

    def get_preset(self, key: str) -> ThemePreset | None:
        return self._repo.get_preset_by_key(key)

    def upsert_preset(
        self,
        key: str,
        name: str,
        config: JSONObject,
        tier: ThemeTier = "free",
        visibility: ThemeVisibility = "public",
    ) -> ThemePreset:
        """Create or replace an official preset (administrative seeding)."""
        now = self._clock.now()
        existing = self._repo.get_preset_by_key(key)
        preset = ThemePreset(
            id=existing.id if existing else None,
            key=key,
            name=name,
            tier=tier,
            visibility=visibility,
            is_official=True,
            config=config,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        saved = self._repo.save_preset(preset)
        logger.info("Upserted theme preset %s", key)
        return saved

    # --- Custom themes ---

    def get_custom(self, user_id: int, custom_id: int) -> ThemeCustom | None:
        custom = self._repo.get_custom_by_id(custom_id)
        if custom is None or custom.user_id != user_id:
            return None
        return custom

    def save_custom(
        self,
        user_id: int,
        preset_key: str,
        patch: Any,
        name: str | None = None,
    ) -> tuple[ThemeCustom | None, list[ThemeValidationError]]:
        """
        Create or update a custom theme for `user_id`.

        Returns:
            Tuple of (custom, errors). Custom is None if validation fails.
        """
        if not isinstance(patch, dict):
            return None, [
                ThemeValidationError(
                    code="INVALID_PATCH",
                    message="Theme patch must be a JSON object",
                    field="patch",
                )
            ]

        preset = self._repo.get_preset_by_key(preset_key)
        if preset is None or preset.id is None:
            return None, [
                ThemeValidationError(
                    code="PRESET_NOT_FOUND",
                    message=f"Theme preset '{preset_key}' not found",
                    field="preset_key",
                )
            ]

        try:
            compiled = compile_custom_config(preset, patch)
        except ThemeConfigError as e:
            return None, [ThemeValidationError(code="INVALID_PATCH", message=str(e), field="patch")]

        digest = theme_hash(preset.id, patch)
        now = self._clock.now()

        if self._config.dedupe_policy == "content_hash":
            existing = self._repo.get_custom_by_hash(user_id, digest)
            if existing is not None:
                logger.info("Reusing custom theme %s for user %s", existing.id, user_id)
                return existing, []
            custom = ThemeCustom(
                user_id=user_id,
                based_on_preset_id=preset.id,
                name=name,
                patch=patch,
                compiled_config=compiled,
                hash=digest,
                created_at=now,
                updated_at=now,
            )
        else:
            existing = self._repo.get_latest_custom_for_user(user_id)
            if existing is not None:
                custom = existing.model_copy(
                    update={
                        "based_on_preset_id": preset.id,
                        "name": name if name is not None else existing.name,
                        "patch": patch,
                        "compiled_config": compiled,
                        "hash": digest,
                        "updated_at": now,
                    }
                )
            else:
                custom = ThemeCustom(
                    user_id=user_id,
                    based_on_preset_id=preset.id,
                    name=name,
                    patch=patch,
                    compiled_config=compiled,
                    hash=digest,
                    created_at=now,
                    updated_at=now,
                )

        saved = self._repo.save_custom(custom)
        logger.info("Saved custom theme %s for user %s (preset %s)", saved.id, user_id, preset_key)
        return saved, []

    def delete_custom(
        self, user_id: int, custom_id: int
    ) -> tuple[bool, list[ThemeValidationError]]:
        custom = self._repo.get_custom_by_id(custom_id)
        if custom is None:
            return False, [
                ThemeValidationError(
                    code="CUSTOM_NOT_FOUND",
                    message=f"Custom theme {custom_id} not found",
                    field="custom_id",
                )
            ]
        if custom.user_id != user_id:
            return False, [
                ThemeValidationError(
                    code="FORBIDDEN",
                    message="Custom theme belongs to another user",
                    field="user_id",
                )
            ]
        self._repo.delete_custom(custom_id)
        return True, []

    # --- Page resolution ---

    def select_for_page(self, page: Page) -> ThemeSelection | None:
        """
        Preset and custom theme referenced by a page.

        A custom theme that is missing, owned by someone else, or based on a
        missing preset is ignored in favour of the page's preset.
        """
        if page.theme.custom_id is not None:
            custom = self._repo.get_custom_by_id(page.theme.custom_id)
            if custom is not None and custom.user_id == page.user_id:
                preset = self._repo.get_preset_by_id(custom.based_on_preset_id)
                if preset is not None:
                    return ThemeSelection(preset=preset, custom=custom)
            logger.warning(
                "Page %s references unusable custom theme %s", page.id, page.theme.custom_id
            )

        preset = self._repo.get_preset_by_key(page.theme.preset_key)
        if preset is None:
            preset = self._repo.get_preset_by_key(self._config.default_preset_key)
        if preset is None:
            return None
        return ThemeSelection(preset=preset)

    def effective_config(self, page: Page) -> JSONObject | None:
        selection = self.select_for_page(page)
        if selection is None:
            return None
        return resolve_theme_config(selection.preset, selection.custom)
