from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from linkbio.adapters.clock import SystemClock
from linkbio.adapters.memory import InMemoryBioStore
from linkbio.adapters.sqlite.repos import (
    SQLiteDraftRepo,
    SQLitePublishCacheRepo,
    SQLiteThemeRepo,
)
from linkbio.components.compiler import CompilerConfig
from linkbio.components.editor import DraftStorePort, EditorConfig, EditorService
from linkbio.components.publish import PublishCacheRepoPort, PublishComponent
from linkbio.components.theme import ThemeRepoPort, ThemeService, ThemeServiceConfig
from linkbio.core.locks import PageLocks
from linkbio.rules.models import Rules


@dataclass
class ServiceContext:
    theme_service: ThemeService
    editor_service: EditorService
    publish_component: PublishComponent
    draft_repo: DraftStorePort
    theme_repo: ThemeRepoPort
    cache_repo: PublishCacheRepoPort
    locks: PageLocks
    rules: Rules
    clock: Any = None  # For testing/injection

    @classmethod
    def create(cls, db_path: str, rules: Rules, clock: Any = None) -> ServiceContext:
        """SQLite-backed context. The schema must already be migrated."""
        return cls._build(
            draft_repo=SQLiteDraftRepo(db_path),
            theme_repo=SQLiteThemeRepo(db_path),
            cache_repo=SQLitePublishCacheRepo(db_path),
            rules=rules,
            clock=clock,
        )

    @classmethod
    def create_in_memory(cls, rules: Rules, clock: Any = None) -> ServiceContext:
        store = InMemoryBioStore()
        return cls._build(
            draft_repo=store,
            theme_repo=store,
            cache_repo=store,
            rules=rules,
            clock=clock,
        )

    @classmethod
    def _build(
        cls,
        draft_repo: Any,
        theme_repo: Any,
        cache_repo: Any,
        rules: Rules,
        clock: Any,
    ) -> ServiceContext:
        clock = clock or SystemClock()
        # Editor and publish share one lock table so a publish never reads a half-saved draft
        locks = PageLocks()

        theme_service = ThemeService(
            theme_repo,
            clock,
            ThemeServiceConfig(
                dedupe_policy=rules.themes.dedupe_policy,
                default_preset_key=rules.themes.default_preset_key,
            ),
        )

        editor_service = EditorService(
            store=draft_repo,
            clock=clock,
            locks=locks,
            config=EditorConfig(
                allowed_block_types=tuple(rules.pages.allowed_block_types),
                max_blocks=rules.pages.max_blocks,
                max_links_per_group=rules.pages.max_links_per_group,
                max_title_length=rules.pages.max_title_length,
                default_layout_type=rules.pages.default_layout_type,
                default_locale=rules.pages.default_locale,
                default_preset_key=rules.themes.default_preset_key,
                default_mode=rules.themes.default_mode,
            ),
            publish_cache=cache_repo,
        )

        publish_component = PublishComponent(
            draft_repo=draft_repo,
            cache_repo=cache_repo,
            themes=theme_service,
            clock=clock,
            locks=locks,
            compiler_config=CompilerConfig(
                version=rules.publish.compiled_version,
                fallback_page=rules.themes.fallback_page,
                fallback_background=rules.themes.fallback_background,
            ),
            etag_length=rules.publish.etag_length,
        )

        return cls(
            theme_service=theme_service,
            editor_service=editor_service,
            publish_component=publish_component,
            draft_repo=draft_repo,
            theme_repo=theme_repo,
            cache_repo=cache_repo,
            locks=locks,
            rules=rules,
            clock=clock,
        )

    def seed_presets(self) -> int:
        """Upsert every preset listed in the rules. Returns the number seeded."""
        for seed in self.rules.themes.presets:
            self.theme_service.upsert_preset(
                key=seed.key,
                name=seed.name,
                config=seed.config,
                tier=seed.tier,
                visibility=seed.visibility,
            )
        return len(self.rules.themes.presets)
