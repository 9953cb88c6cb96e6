"""
DraftCompiler - transforms a page draft into the publish-ready document.

Key behaviors:
- Blocks ordered by sort key (stable), invisible blocks dropped
- `text` blocks emitted verbatim
- `link_group` blocks resolve their group; a missing or dangling reference
  drops the block without error
- Links ordered by sort key, inactive links dropped
- final_style = theme linkGroup defaults shallow-merged with the group's
  style override
- Pure function: no I/O, same inputs always produce the same document

Functional Core - no I/O.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Sequence
from typing import TypeVar

from linkbio.components.theme import ThemeSelection, resolve_theme_config, shallow_merge
from linkbio.domain.entities import (
    BLOCK_LINK_GROUP,
    BLOCK_TEXT,
    Block,
    Draft,
    JSONObject,
    Link,
    LinkGroup,
    Page,
)

from .models import (
    DEFAULT_CONFIG,
    CompiledBlock,
    CompiledLink,
    CompiledLinkGroup,
    CompiledPage,
    CompiledTheme,
    CompilerConfig,
)

logger = logging.getLogger(__name__)

SortedT = TypeVar("SortedT", Block, Link)


# --- Theme ---


def build_compiled_theme(
    theme_config: JSONObject,
    config: CompilerConfig = DEFAULT_CONFIG,
) -> JSONObject:
    """The `page` and `background` sections of the effective theme, with fallbacks."""
    page_section = theme_config.get("page")
    if not isinstance(page_section, dict):
        page_section = config.fallback_page

    background = theme_config.get("background")
    if not isinstance(background, dict):
        background = config.fallback_background

    return {"page": copy.deepcopy(page_section), "background": copy.deepcopy(background)}


def link_group_defaults(compiled_theme: JSONObject) -> JSONObject:
    """Default style for link-group blocks: theme page.defaults.linkGroup."""
    defaults = compiled_theme.get("page", {}).get("defaults")
    if not isinstance(defaults, dict):
        return {}
    link_group = defaults.get("linkGroup")
    return link_group if isinstance(link_group, dict) else {}


# --- Blocks ---


def sort_by_key(items: Iterable[SortedT]) -> list[SortedT]:
    # sorted() is stable: equal keys keep insertion order
    return sorted(items, key=lambda item: item.sort_key)


def compile_links(links: Iterable[Link]) -> tuple[CompiledLink, ...]:
    return tuple(
        CompiledLink(title=link.title, url=link.url, is_active=True)
        for link in sort_by_key(links)
        if link.is_active
    )


def compile_group(
    group: LinkGroup,
    links: Iterable[Link],
    default_style: JSONObject,
) -> CompiledLinkGroup:
    if group.id is None:
        raise ValueError("Link group must be persisted before compiling")
    return CompiledLinkGroup(
        id=group.id,
        title=group.title,
        layout_type=group.layout_type,
        layout_config=copy.deepcopy(group.layout_config),
        final_style=shallow_merge(default_style, group.style_override),
        links=compile_links(links),
    )


def compile_blocks(
    blocks: Iterable[Block],
    groups: Sequence[LinkGroup],
    links: Sequence[Link],
    default_style: JSONObject,
) -> tuple[CompiledBlock, ...]:
    group_index = {g.id: g for g in groups if g.id is not None}
    links_by_group: dict[int, list[Link]] = {}
    for link in links:
        links_by_group.setdefault(link.group_id, []).append(link)

    compiled: list[CompiledBlock] = []
    for block in sort_by_key(blocks):
        if not block.is_visible:
            continue

        if block.type == BLOCK_TEXT:
            compiled.append(CompiledBlock(type=BLOCK_TEXT, content=copy.deepcopy(block.content)))
        elif block.type == BLOCK_LINK_GROUP:
            group = group_index.get(block.ref_id) if block.ref_id is not None else None
            if group is None:
                logger.debug(
                    "Dropping link_group block %s: group %s missing", block.id, block.ref_id
                )
                continue
            compiled.append(
                CompiledBlock(
                    type=BLOCK_LINK_GROUP,
                    group=compile_group(group, links_by_group.get(group.id, []), default_style),
                )
            )
        else:
            logger.debug("Dropping block %s of unknown type %r", block.id, block.type)

    return tuple(compiled)


# --- Page ---


def compile_page(
    page: Page,
    blocks: Iterable[Block],
    groups: Sequence[LinkGroup],
    links: Sequence[Link],
    theme: ThemeSelection,
    config: CompilerConfig = DEFAULT_CONFIG,
) -> CompiledPage:
    """Compile a page draft into its publish-ready form."""
    if page.id is None:
        raise ValueError("Page must be persisted before compiling")

    theme_config = resolve_theme_config(theme.preset, theme.custom)
    compiled_theme = build_compiled_theme(theme_config, config)
    default_style = link_group_defaults(compiled_theme)

    return CompiledPage(
        version=config.version,
        page_id=page.id,
        locale=page.locale,
        settings=copy.deepcopy(page.settings),
        theme=CompiledTheme(
            preset_key=theme.preset.key,
            mode=page.theme.mode,
            compiled=compiled_theme,
        ),
        blocks=compile_blocks(blocks, groups, links, default_style),
    )


def compile_draft(
    draft: Draft,
    theme: ThemeSelection,
    config: CompilerConfig = DEFAULT_CONFIG,
) -> CompiledPage:
    return compile_page(draft.page, draft.blocks, draft.groups, draft.links, theme, config)
