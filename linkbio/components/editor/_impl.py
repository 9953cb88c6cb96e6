"""
Draft editing rules - validation and placement of blocks and links.

Key behaviors:
- Link titles are required and bounded, URLs must be http(s)
- Block types must be in the configured allow-list
- A move regenerates only the moved item's key from its new neighbours;
  siblings keep their keys unless no key fits between the neighbours, in
  which case the whole sibling list is renumbered
- A bulk reorder must name every sibling exactly once

Functional Core - pure business logic.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from linkbio.components.compiler import sort_by_key
from linkbio.components.sortkey import SortKeyError, validate_key
from linkbio.domain.entities import Block, Draft, Link

from .models import EditorConfig, EditorValidationError

SiblingT = TypeVar("SiblingT", Block, Link)


# --- Validation Functions ---


def validate_link_data(
    title: str | None = None,
    url: str | None = None,
    max_title_length: int = 200,
) -> list[EditorValidationError]:
    """Validate link fields that are being set."""
    errors: list[EditorValidationError] = []

    if title is not None:
        if not title.strip():
            errors.append(
                EditorValidationError(
                    code="TITLE_REQUIRED",
                    message="Title is required",
                    field="title",
                )
            )
        elif len(title) > max_title_length:
            errors.append(
                EditorValidationError(
                    code="TITLE_TOO_LONG",
                    message=f"Title must be {max_title_length} characters or less",
                    field="title",
                )
            )

    if url is not None and not url.strip().startswith(("http://", "https://")):
        errors.append(
            EditorValidationError(
                code="INVALID_URL",
                message="URL must start with http:// or https://",
                field="url",
            )
        )

    return errors


def validate_block_type(block_type: str, config: EditorConfig) -> list[EditorValidationError]:
    if block_type in config.allowed_block_types:
        return []
    return [
        EditorValidationError(
            code="INVALID_BLOCK_TYPE",
            message=f"Block type '{block_type}' is not supported",
            field="type",
        )
    ]


def validate_draft(draft: Draft, config: EditorConfig) -> list[EditorValidationError]:
    """Validate a whole draft submitted for replacement."""
    errors: list[EditorValidationError] = []

    if len(draft.blocks) > config.max_blocks:
        errors.append(
            EditorValidationError(
                code="LIMIT_EXCEEDED",
                message=f"A page holds at most {config.max_blocks} blocks",
                field="blocks",
            )
        )

    for block in draft.blocks:
        errors.extend(validate_block_type(block.type, config))
        errors.extend(_validate_sort_key(block.sort_key))

    group_ids = {g.id for g in draft.groups}
    group_sizes: dict[int, int] = {}
    for link in draft.links:
        if link.group_id not in group_ids:
            errors.append(
                EditorValidationError(
                    code="GROUP_NOT_FOUND",
                    message=f"Link '{link.title}' references unknown group {link.group_id}",
                    field="group_id",
                )
            )
        group_sizes[link.group_id] = group_sizes.get(link.group_id, 0) + 1
        errors.extend(
            validate_link_data(link.title, link.url, max_title_length=config.max_title_length)
        )
        errors.extend(_validate_sort_key(link.sort_key))

    for group_id, size in group_sizes.items():
        if size > config.max_links_per_group:
            errors.append(
                EditorValidationError(
                    code="LIMIT_EXCEEDED",
                    message=(
                        f"Group {group_id} holds {size} links, "
                        f"at most {config.max_links_per_group} allowed"
                    ),
                    field="links",
                )
            )

    return errors


def _validate_sort_key(key: str) -> list[EditorValidationError]:
    try:
        validate_key(key)
    except SortKeyError as e:
        return [EditorValidationError(code="INVALID_SORT_KEY", message=str(e), field="sort_key")]
    return []


# --- Placement ---


def last_key(siblings: Sequence[SiblingT]) -> str | None:
    ordered = sort_by_key(siblings)
    return ordered[-1].sort_key if ordered else None


def neighbour_keys(
    siblings: Sequence[SiblingT],
    moving_id: int,
    before_id: int | None = None,
    after_id: int | None = None,
) -> tuple[str | None, str | None] | None:
    """
    Keys surrounding the new position of `moving_id`.

    `after_id` names the sibling the item should follow, `before_id` the one
    it should precede. With neither, the item moves to the end. Returns
    None when a named sibling does not exist.
    """
    others = [s for s in sort_by_key(siblings) if s.id != moving_id]
    ids = [s.id for s in others]

    if after_id is not None:
        if after_id not in ids:
            return None
        index = ids.index(after_id)
        prev_key: str | None = others[index].sort_key
        next_key = others[index + 1].sort_key if index + 1 < len(others) else None
        if before_id is not None:
            if before_id not in ids:
                return None
            next_key = others[ids.index(before_id)].sort_key
        return prev_key, next_key

    if before_id is not None:
        if before_id not in ids:
            return None
        index = ids.index(before_id)
        prev_key = others[index - 1].sort_key if index > 0 else None
        return prev_key, others[index].sort_key

    return (others[-1].sort_key if others else None), None


def fits_between(key: str, prev_key: str | None, next_key: str | None) -> bool:
    """Whether `key` sorts strictly between its neighbours (None means open)."""
    return (prev_key is None or prev_key < key) and (next_key is None or key < next_key)


def order_after_move(
    siblings: Sequence[SiblingT],
    moving_id: int,
    before_id: int | None = None,
    after_id: int | None = None,
) -> list[int | None]:
    """
    Sibling ids in display order with `moving_id` at its new position.

    Uses the same placement rules as neighbour_keys; the named siblings must
    exist.
    """
    ids = [s.id for s in sort_by_key(siblings) if s.id != moving_id]
    if after_id is not None:
        position = ids.index(after_id) + 1
    elif before_id is not None:
        position = ids.index(before_id)
    else:
        position = len(ids)
    ids.insert(position, moving_id)
    return ids


def is_permutation(requested: Sequence[int], existing: Sequence[int | None]) -> bool:
    return len(requested) == len(existing) and set(requested) == set(existing)
