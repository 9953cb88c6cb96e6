"""
Editor component - Port interfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from linkbio.domain.entities import Draft, Page


class DraftStorePort(Protocol):
    """Repository interface for page drafts."""

    def get_page(self, page_id: int) -> Page | None:
        ...

    def list_pages(self, user_id: int) -> list[Page]:
        """Pages owned by `user_id`, oldest first."""
        ...

    def save_page(self, page: Page) -> Page:
        """Insert (id None) or update page metadata."""
        ...

    def delete_page(self, page_id: int) -> bool:
        """
        Delete a page with its blocks, groups, links and publish cache entry.
        Returns False if the page did not exist.
        """
        ...

    def load_draft(self, page_id: int) -> Draft | None:
        """Load page metadata with all blocks, groups and links."""
        ...

    def save_draft(self, draft: Draft) -> Draft:
        """
        Replace the stored draft of draft.page.id.

        Rows with id None are inserted. Groups with a non-positive id are
        placeholders: they are inserted and every block ref_id and link
        group_id pointing at the placeholder is rewritten to the new id.
        The page version is incremented. List order is preserved in the
        returned draft.
        """
        ...

    def page_id_for_block(self, block_id: int) -> int | None:
        ...

    def page_id_for_group(self, group_id: int) -> int | None:
        ...

    def page_id_for_link(self, link_id: int) -> int | None:
        ...


class PublishCacheEvictPort(Protocol):
    """The part of the publish cache the editor needs."""

    def delete_publish_cache(self, page_id: int) -> None:
        ...


class ClockPort(Protocol):
    def now(self) -> datetime:
        """Return current UTC time."""
        ...
