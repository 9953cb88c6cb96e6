"""
Editor component - draft editing for link-in-bio pages.

Every operation takes the acting user explicitly and checks page
ownership. Edits load the draft, change it and write it back while holding
the page lock, so they serialize with each other and with publishing.

Shell Layer - talks to the draft store.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from linkbio.components.sortkey import generate, keys_for_sequence
from linkbio.core.locks import PageLocks
from linkbio.domain.entities import (
    BLOCK_LINK_GROUP,
    Block,
    Draft,
    JSONObject,
    Link,
    LinkGroup,
    Page,
    PageTheme,
)

from ._impl import (
    SiblingT,
    fits_between,
    is_permutation,
    last_key,
    neighbour_keys,
    order_after_move,
    validate_block_type,
    validate_draft,
    validate_link_data,
)
from .models import DEFAULT_CONFIG, EditorConfig, EditorValidationError
from .ports import ClockPort, DraftStorePort, PublishCacheEvictPort

logger = logging.getLogger(__name__)

# Placeholder id for a group created in the same save as the block that references it
NEW_GROUP_ID = -1


def _not_found(kind: str, item_id: int | None) -> EditorValidationError:
    return EditorValidationError(
        code=f"{kind.upper()}_NOT_FOUND",
        message=f"{kind.capitalize()} {item_id} not found",
        field=f"{kind}_id",
    )


def _index_of(items: Sequence[Block | LinkGroup | Link], item_id: int) -> int | None:
    return next((i for i, item in enumerate(items) if item.id == item_id), None)


def _renumbered(items: list[SiblingT], order: Sequence[int | None]) -> list[SiblingT]:
    """Fresh evenly spread keys for the items named in `order`; others keep theirs."""
    keys = dict(zip(order, keys_for_sequence(len(order)), strict=True))
    return [
        item.model_copy(update={"sort_key": keys[item.id]}) if item.id in keys else item
        for item in items
    ]


def _invalid_position() -> EditorValidationError:
    return EditorValidationError(
        code="INVALID_POSITION",
        message="Neighbours are not in order",
        field="position",
    )


class EditorService:
    """
    Draft editing service.

    Blocks and links are ordered by sort key. Appends and moves write a
    single new key unless the neighbours leave no room between them, in
    which case the sibling list is renumbered.
    """

    def __init__(
        self,
        store: DraftStorePort,
        clock: ClockPort,
        locks: PageLocks | None = None,
        config: EditorConfig = DEFAULT_CONFIG,
        publish_cache: PublishCacheEvictPort | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._locks = locks if locks is not None else PageLocks()
        self._config = config
        self._publish_cache = publish_cache

    # --- Helpers ---

    def _load_owned(
        self, user_id: int, page_id: int
    ) -> tuple[Draft | None, list[EditorValidationError]]:
        draft = self._store.load_draft(page_id)
        if draft is None:
            return None, [_not_found("page", page_id)]
        if draft.page.user_id != user_id:
            return None, [
                EditorValidationError(
                    code="FORBIDDEN",
                    message="Page belongs to another user",
                    field="user_id",
                )
            ]
        return draft, []

    def _save(self, draft: Draft) -> Draft:
        draft.page = draft.page.model_copy(update={"updated_at": self._clock.now()})
        return self._store.save_draft(draft)

    # --- Pages ---

    def create_page(
        self,
        user_id: int,
        title: str | None = None,
        locale: str | None = None,
        preset_key: str | None = None,
    ) -> Page:
        """Create an empty draft page owned by `user_id`."""
        now = self._clock.now()
        page = self._store.save_page(
            Page(
                user_id=user_id,
                title=title,
                locale=locale or self._config.default_locale,
                theme=PageTheme(
                    preset_key=preset_key or self._config.default_preset_key,
                    mode=self._config.default_mode,
                ),
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Created page %s for user %s", page.id, user_id)
        return page

    def update_page(
        self,
        user_id: int,
        page_id: int,
        title: str | None = None,
        locale: str | None = None,
        settings: JSONObject | None = None,
        preset_key: str | None = None,
        custom_id: int | None = None,
        clear_custom: bool = False,
        mode: str | None = None,
    ) -> tuple[Page | None, list[EditorValidationError]]:
        """Update page metadata and theme reference. Counts as a draft edit."""
        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            theme_updates: dict[str, Any] = {}
            if preset_key is not None:
                theme_updates["preset_key"] = preset_key
            if custom_id is not None:
                theme_updates["custom_id"] = custom_id
            elif clear_custom:
                theme_updates["custom_id"] = None
            if mode is not None:
                theme_updates["mode"] = mode

            updates: dict[str, Any] = {"theme": draft.page.theme.model_copy(update=theme_updates)}
            if title is not None:
                updates["title"] = title.strip()
            if locale is not None:
                updates["locale"] = locale
            if settings is not None:
                updates["settings"] = settings

            draft.page = draft.page.model_copy(update=updates)
            saved = self._save(draft)

        return saved.page, []

    def list_pages(self, user_id: int) -> list[Page]:
        return self._store.list_pages(user_id)

    def delete_page(self, user_id: int, page_id: int) -> tuple[bool, list[EditorValidationError]]:
        """Delete a page, its content and its published artifact."""
        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return False, errors

            self._store.delete_page(page_id)
            if self._publish_cache is not None:
                self._publish_cache.delete_publish_cache(page_id)

        logger.info("Deleted page %s of user %s", page_id, user_id)
        return True, []

    # --- Drafts ---

    def get_draft(
        self, user_id: int, page_id: int
    ) -> tuple[Draft | None, list[EditorValidationError]]:
        return self._load_owned(user_id, page_id)

    def save_draft(
        self,
        user_id: int,
        draft: Draft,
        expected_version: int | None = None,
    ) -> tuple[Draft | None, list[EditorValidationError]]:
        """
        Replace a page's whole draft.

        When `expected_version` is given and the stored draft has moved on,
        nothing is written and VERSION_CONFLICT is returned.

        Returns:
            Tuple of (draft, errors). Draft is None if the save was rejected.
        """
        page_id = draft.page.id
        if page_id is None:
            return None, [
                EditorValidationError(
                    code="PAGE_NOT_FOUND",
                    message="Draft page has no id",
                    field="page_id",
                )
            ]

        errors = validate_draft(draft, self._config)
        if errors:
            return None, errors

        with self._locks.hold(page_id):
            current, errors = self._load_owned(user_id, page_id)
            if current is None:
                return None, errors

            if expected_version is not None and current.page.version != expected_version:
                return None, [
                    EditorValidationError(
                        code="VERSION_CONFLICT",
                        message=(
                            f"Draft is at version {current.page.version}, "
                            f"expected {expected_version}"
                        ),
                        field="version",
                    )
                ]

            # Ownership and version are store-controlled
            draft = draft.model_copy(
                update={
                    "page": draft.page.model_copy(
                        update={"user_id": current.page.user_id, "version": current.page.version}
                    )
                }
            )
            saved = self._save(draft)

        logger.info("Saved draft of page %s (version %s)", page_id, saved.page.version)
        return saved, []

    # --- Blocks ---

    def add_block(
        self,
        user_id: int,
        page_id: int,
        block_type: str,
        content: JSONObject | None = None,
        group_title: str | None = None,
    ) -> tuple[Block | None, list[EditorValidationError]]:
        """
        Append a block after the current last block.

        A link_group block gets a new empty group of the default layout.
        """
        errors = validate_block_type(block_type, self._config)
        if errors:
            return None, errors

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            if len(draft.blocks) >= self._config.max_blocks:
                return None, [
                    EditorValidationError(
                        code="LIMIT_EXCEEDED",
                        message=f"A page holds at most {self._config.max_blocks} blocks",
                        field="blocks",
                    )
                ]

            ref_id = None
            if block_type == BLOCK_LINK_GROUP:
                draft.groups.append(
                    LinkGroup(
                        id=NEW_GROUP_ID,
                        title=group_title,
                        layout_type=self._config.default_layout_type,
                    )
                )
                ref_id = NEW_GROUP_ID

            draft.blocks.append(
                Block(
                    type=block_type,
                    sort_key=generate(last_key(draft.blocks), None),
                    ref_id=ref_id,
                    content=content or {},
                )
            )
            saved = self._save(draft)

        block = saved.blocks[-1]
        logger.info("Added %s block %s to page %s", block_type, block.id, page_id)
        return block, []

    def update_block(
        self,
        user_id: int,
        block_id: int,
        content: JSONObject | None = None,
        is_visible: bool | None = None,
    ) -> tuple[Block | None, list[EditorValidationError]]:
        page_id = self._store.page_id_for_block(block_id)
        if page_id is None:
            return None, [_not_found("block", block_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            index = _index_of(draft.blocks, block_id)
            if index is None:
                return None, [_not_found("block", block_id)]
            updates: dict[str, Any] = {}
            if content is not None:
                updates["content"] = content
            if is_visible is not None:
                updates["is_visible"] = is_visible
            draft.blocks[index] = draft.blocks[index].model_copy(update=updates)
            saved = self._save(draft)

        return saved.blocks[index], []

    def delete_block(
        self, user_id: int, block_id: int
    ) -> tuple[bool, list[EditorValidationError]]:
        """Delete a block. A link_group block takes its group and links with it."""
        page_id = self._store.page_id_for_block(block_id)
        if page_id is None:
            return False, [_not_found("block", block_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return False, errors

            index = _index_of(draft.blocks, block_id)
            if index is None:
                return False, [_not_found("block", block_id)]
            block = draft.blocks[index]
            draft.blocks = [b for b in draft.blocks if b.id != block_id]
            if block.type == BLOCK_LINK_GROUP and block.ref_id is not None:
                draft.groups = [g for g in draft.groups if g.id != block.ref_id]
                draft.links = [link for link in draft.links if link.group_id != block.ref_id]
            self._save(draft)

        logger.info("Deleted block %s from page %s", block_id, page_id)
        return True, []

    def move_block(
        self,
        user_id: int,
        block_id: int,
        before_id: int | None = None,
        after_id: int | None = None,
    ) -> tuple[Block | None, list[EditorValidationError]]:
        """
        Move a block next to its new neighbours.

        Only the moved block gets a new key.
        """
        page_id = self._store.page_id_for_block(block_id)
        if page_id is None:
            return None, [_not_found("block", block_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            keys = neighbour_keys(draft.blocks, block_id, before_id=before_id, after_id=after_id)
            if keys is None:
                return None, [_not_found("block", after_id if after_id is not None else before_id)]
            prev_key, next_key = keys
            if prev_key is not None and next_key is not None and prev_key >= next_key:
                return None, [_invalid_position()]

            index = _index_of(draft.blocks, block_id)
            if index is None:
                return None, [_not_found("block", block_id)]
            key = generate(prev_key, next_key)
            if fits_between(key, prev_key, next_key):
                draft.blocks[index] = draft.blocks[index].model_copy(update={"sort_key": key})
            else:
                order = order_after_move(draft.blocks, block_id, before_id, after_id)
                draft.blocks = _renumbered(draft.blocks, order)
                logger.info("Renumbered %d blocks of page %s", len(order), page_id)
            saved = self._save(draft)

        return saved.blocks[index], []

    def reorder_blocks(
        self, user_id: int, page_id: int, block_ids: list[int]
    ) -> tuple[list[Block], list[EditorValidationError]]:
        """Renumber every block of the page in the given order."""
        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return [], errors

            if not is_permutation(block_ids, [b.id for b in draft.blocks]):
                return [], [
                    EditorValidationError(
                        code="INVALID_ORDER",
                        message="Reorder must list every block of the page exactly once",
                        field="block_ids",
                    )
                ]

            by_id = {b.id: b for b in draft.blocks}
            draft.blocks = [
                by_id[block_id].model_copy(update={"sort_key": key})
                for block_id, key in zip(block_ids, keys_for_sequence(len(block_ids)), strict=True)
            ]
            saved = self._save(draft)

        logger.info("Reordered %d blocks of page %s", len(block_ids), page_id)
        return saved.blocks, []

    # --- Groups ---

    def update_group(
        self,
        user_id: int,
        group_id: int,
        title: str | None = None,
        layout_type: str | None = None,
        layout_config: JSONObject | None = None,
        style_override: JSONObject | None = None,
    ) -> tuple[LinkGroup | None, list[EditorValidationError]]:
        page_id = self._store.page_id_for_group(group_id)
        if page_id is None:
            return None, [_not_found("group", group_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            updates: dict[str, Any] = {}
            if title is not None:
                updates["title"] = title.strip()
            if layout_type is not None:
                updates["layout_type"] = layout_type
            if layout_config is not None:
                updates["layout_config"] = layout_config
            if style_override is not None:
                updates["style_override"] = style_override

            index = _index_of(draft.groups, group_id)
            if index is None:
                return None, [_not_found("group", group_id)]
            draft.groups[index] = draft.groups[index].model_copy(update=updates)
            saved = self._save(draft)

        return saved.groups[index], []

    # --- Links ---

    def add_link(
        self,
        user_id: int,
        group_id: int,
        title: str,
        url: str,
    ) -> tuple[Link | None, list[EditorValidationError]]:
        """Append a link after the group's current last link."""
        errors = validate_link_data(title, url, max_title_length=self._config.max_title_length)
        if errors:
            return None, errors

        page_id = self._store.page_id_for_group(group_id)
        if page_id is None:
            return None, [_not_found("group", group_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            siblings = draft.links_for_group(group_id)
            if len(siblings) >= self._config.max_links_per_group:
                return None, [
                    EditorValidationError(
                        code="LIMIT_EXCEEDED",
                        message=(
                            f"A group holds at most {self._config.max_links_per_group} links"
                        ),
                        field="links",
                    )
                ]

            draft.links.append(
                Link(
                    group_id=group_id,
                    title=title.strip(),
                    url=url.strip(),
                    sort_key=generate(last_key(siblings), None),
                )
            )
            saved = self._save(draft)

        link = saved.links[-1]
        logger.info("Added link %s to group %s", link.id, group_id)
        return link, []

    def update_link(
        self,
        user_id: int,
        link_id: int,
        title: str | None = None,
        url: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[Link | None, list[EditorValidationError]]:
        errors = validate_link_data(title, url, max_title_length=self._config.max_title_length)
        if errors:
            return None, errors

        page_id = self._store.page_id_for_link(link_id)
        if page_id is None:
            return None, [_not_found("link", link_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            updates: dict[str, Any] = {}
            if title is not None:
                updates["title"] = title.strip()
            if url is not None:
                updates["url"] = url.strip()
            if is_active is not None:
                updates["is_active"] = is_active

            index = _index_of(draft.links, link_id)
            if index is None:
                return None, [_not_found("link", link_id)]
            draft.links[index] = draft.links[index].model_copy(update=updates)
            saved = self._save(draft)

        return saved.links[index], []

    def delete_link(self, user_id: int, link_id: int) -> tuple[bool, list[EditorValidationError]]:
        page_id = self._store.page_id_for_link(link_id)
        if page_id is None:
            return False, [_not_found("link", link_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return False, errors

            draft.links = [link for link in draft.links if link.id != link_id]
            self._save(draft)

        return True, []

    def move_link(
        self,
        user_id: int,
        link_id: int,
        before_id: int | None = None,
        after_id: int | None = None,
    ) -> tuple[Link | None, list[EditorValidationError]]:
        """Move a link within its group. Only the moved link gets a new key."""
        page_id = self._store.page_id_for_link(link_id)
        if page_id is None:
            return None, [_not_found("link", link_id)]

        with self._locks.hold(page_id):
            draft, errors = self._load_owned(user_id, page_id)
            if draft is None:
                return None, errors

            index = _index_of(draft.links, link_id)
            if index is None:
                return None, [_not_found("link", link_id)]
            siblings = draft.links_for_group(draft.links[index].group_id)

            keys = neighbour_keys(siblings, link_id, before_id=before_id, after_id=after_id)
            if keys is None:
                return None, [_not_found("link", after_id if after_id is not None else before_id)]
            prev_key, next_key = keys
            if prev_key is not None and next_key is not None and prev_key >= next_key:
                return None, [_invalid_position()]

            key = generate(prev_key, next_key)
            if fits_between(key, prev_key, next_key):
                draft.links[index] = draft.links[index].model_copy(update={"sort_key": key})
            else:
                order = order_after_move(siblings, link_id, before_id, after_id)
                draft.links = _renumbered(draft.links, order)
                logger.info("Renumbered %d links of group %s", len(order), siblings[0].group_id)
            saved = self._save(draft)

        return saved.links[index], []
