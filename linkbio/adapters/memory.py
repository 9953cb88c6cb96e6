"""
In-memory storage adapter.

Implements the draft, theme and publish-cache ports over plain dicts. Used
by tests and by CLI dry runs; every read hands out copies so callers can
mutate what they load without touching stored state.
"""

from __future__ import annotations

import threading
from itertools import count

from linkbio.domain.entities import (
    Block,
    Draft,
    Link,
    LinkGroup,
    Page,
    PublishCacheEntry,
    ThemeCustom,
    ThemePreset,
    ThemeTier,
)


class InMemoryBioStore:
    """Pages, drafts, themes and the publish cache held in process memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = count(1)

        self._presets: dict[int, ThemePreset] = {}
        self._customs: dict[int, ThemeCustom] = {}
        self._pages: dict[int, Page] = {}
        self._blocks: dict[int, list[Block]] = {}
        self._groups: dict[int, list[LinkGroup]] = {}
        self._links: dict[int, list[Link]] = {}
        self._cache: dict[int, PublishCacheEntry] = {}

    def _next_id(self) -> int:
        return next(self._ids)

    # --- Pages / drafts ---

    def get_page(self, page_id: int) -> Page | None:
        with self._lock:
            page = self._pages.get(page_id)
            return page.model_copy(deep=True) if page else None

    def list_pages(self, user_id: int) -> list[Page]:
        with self._lock:
            return [
                page.model_copy(deep=True)
                for _, page in sorted(self._pages.items())
                if page.user_id == user_id
            ]

    def save_page(self, page: Page) -> Page:
        """Insert (id None) or update page metadata. Children are untouched."""
        with self._lock:
            if page.id is None:
                page = page.model_copy(update={"id": self._next_id()})
            assert page.id is not None
            self._pages[page.id] = page.model_copy(deep=True)
            self._blocks.setdefault(page.id, [])
            self._groups.setdefault(page.id, [])
            self._links.setdefault(page.id, [])
            return page

    def delete_page(self, page_id: int) -> bool:
        with self._lock:
            if self._pages.pop(page_id, None) is None:
                return False
            self._blocks.pop(page_id, None)
            self._groups.pop(page_id, None)
            self._links.pop(page_id, None)
            self._cache.pop(page_id, None)
            return True

    def load_draft(self, page_id: int) -> Draft | None:
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                return None
            return Draft(
                page=page,
                blocks=sorted(self._blocks[page_id], key=lambda b: (b.sort_key, b.id or 0)),
                groups=list(self._groups[page_id]),
                links=sorted(self._links[page_id], key=lambda x: (x.sort_key, x.id or 0)),
            ).model_copy(deep=True)

    def save_draft(self, draft: Draft) -> Draft:
        """
        Replace the stored draft and bump the page version.

        Rows whose id is unset, non-positive or not owned by this page are
        inserted with fresh ids; references to placeholder group ids are
        rewritten to the inserted group.
        """
        page_id = draft.page.id
        if page_id is None:
            raise ValueError("Draft page has no id")

        with self._lock:
            if page_id not in self._pages:
                raise KeyError(f"Page {page_id} not found")

            owned_groups = {g.id for g in self._groups[page_id]}
            owned_blocks = {b.id for b in self._blocks[page_id]}
            owned_links = {link.id for link in self._links[page_id]}

            remap: dict[int, int] = {}
            groups: list[LinkGroup] = []
            for group in draft.groups:
                if group.id is None or group.id not in owned_groups:
                    new_id = self._next_id()
                    if group.id is not None:
                        remap[group.id] = new_id
                    group = group.model_copy(update={"id": new_id})
                groups.append(group)

            blocks: list[Block] = []
            for block in draft.blocks:
                block_updates: dict[str, int | None] = {}
                if block.id is None or block.id not in owned_blocks:
                    block_updates["id"] = self._next_id()
                if block.ref_id is not None and block.ref_id in remap:
                    block_updates["ref_id"] = remap[block.ref_id]
                blocks.append(block.model_copy(update=block_updates))

            links: list[Link] = []
            for link in draft.links:
                link_updates: dict[str, int] = {}
                if link.id is None or link.id not in owned_links:
                    link_updates["id"] = self._next_id()
                if link.group_id in remap:
                    link_updates["group_id"] = remap[link.group_id]
                links.append(link.model_copy(update=link_updates))

            stored_page = self._pages[page_id]
            page = draft.page.model_copy(update={"version": stored_page.version + 1})

            self._pages[page_id] = page.model_copy(deep=True)
            self._groups[page_id] = [g.model_copy(deep=True) for g in groups]
            self._blocks[page_id] = [b.model_copy(deep=True) for b in blocks]
            self._links[page_id] = [x.model_copy(deep=True) for x in links]

            return Draft(page=page, blocks=blocks, groups=groups, links=links).model_copy(
                deep=True
            )

    def page_id_for_block(self, block_id: int) -> int | None:
        with self._lock:
            for page_id, blocks in self._blocks.items():
                if any(b.id == block_id for b in blocks):
                    return page_id
            return None

    def page_id_for_group(self, group_id: int) -> int | None:
        with self._lock:
            for page_id, groups in self._groups.items():
                if any(g.id == group_id for g in groups):
                    return page_id
            return None

    def page_id_for_link(self, link_id: int) -> int | None:
        with self._lock:
            for page_id, links in self._links.items():
                if any(link.id == link_id for link in links):
                    return page_id
            return None

    # --- Themes ---

    def list_presets(self, tier: ThemeTier | None = None) -> list[ThemePreset]:
        with self._lock:
            presets = [
                p
                for p in self._presets.values()
                if p.visibility == "public" and (tier is None or p.tier == tier)
            ]
            return [p.model_copy(deep=True) for p in sorted(presets, key=lambda p: p.name)]

    def get_preset_by_key(self, key: str) -> ThemePreset | None:
        with self._lock:
            for preset in self._presets.values():
                if preset.key == key:
                    return preset.model_copy(deep=True)
            return None

    def get_preset_by_id(self, preset_id: int) -> ThemePreset | None:
        with self._lock:
            preset = self._presets.get(preset_id)
            return preset.model_copy(deep=True) if preset else None

    def save_preset(self, preset: ThemePreset) -> ThemePreset:
        """Insert or update; an existing preset with the same key is updated in place."""
        with self._lock:
            if preset.id is None:
                existing = self.get_preset_by_key(preset.key)
                new_id = existing.id if existing else self._next_id()
                preset = preset.model_copy(update={"id": new_id})
            assert preset.id is not None
            self._presets[preset.id] = preset.model_copy(deep=True)
            return preset

    def get_custom_by_id(self, custom_id: int) -> ThemeCustom | None:
        with self._lock:
            custom = self._customs.get(custom_id)
            return custom.model_copy(deep=True) if custom else None

    def get_custom_by_hash(self, user_id: int, theme_hash: str) -> ThemeCustom | None:
        with self._lock:
            for custom in self._customs.values():
                if custom.user_id == user_id and custom.hash == theme_hash:
                    return custom.model_copy(deep=True)
            return None

    def get_latest_custom_for_user(self, user_id: int) -> ThemeCustom | None:
        with self._lock:
            owned = [c for c in self._customs.values() if c.user_id == user_id]
            if not owned:
                return None
            latest = max(owned, key=lambda c: (c.updated_at, c.id or 0))
            return latest.model_copy(deep=True)

    def save_custom(self, custom: ThemeCustom) -> ThemeCustom:
        with self._lock:
            if custom.id is None:
                custom = custom.model_copy(update={"id": self._next_id()})
            assert custom.id is not None
            self._customs[custom.id] = custom.model_copy(deep=True)
            return custom

    def delete_custom(self, custom_id: int) -> None:
        with self._lock:
            self._customs.pop(custom_id, None)
            # Pages fall back to their preset
            for page_id, page in self._pages.items():
                if page.theme.custom_id == custom_id:
                    theme = page.theme.model_copy(update={"custom_id": None})
                    self._pages[page_id] = page.model_copy(update={"theme": theme})

    # --- Publish cache ---

    def upsert_publish_cache(self, entry: PublishCacheEntry) -> PublishCacheEntry:
        with self._lock:
            self._cache[entry.page_id] = entry.model_copy()
            return entry

    def get_publish_cache(self, page_id: int) -> PublishCacheEntry | None:
        with self._lock:
            entry = self._cache.get(page_id)
            return entry.model_copy() if entry else None

    def delete_publish_cache(self, page_id: int) -> None:
        with self._lock:
            self._cache.pop(page_id, None)
