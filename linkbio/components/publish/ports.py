"""Publish component port definitions - protocols for dependencies."""

from datetime import datetime
from typing import Protocol

from linkbio.components.theme import ThemeSelection
from linkbio.domain.entities import Draft, Page, PublishCacheEntry


class DraftRepoPort(Protocol):
    """Protocol for reading page drafts."""

    def get_page(self, page_id: int) -> Page | None:
        """Retrieve a page by ID."""
        ...

    def save_page(self, page: Page) -> Page:
        """Save page metadata (status, theme, settings)."""
        ...

    def load_draft(self, page_id: int) -> Draft | None:
        """Load page metadata with all blocks, groups and links."""
        ...


class PublishCacheRepoPort(Protocol):
    """Protocol for the per-page compiled artifact store."""

    def upsert_publish_cache(self, entry: PublishCacheEntry) -> PublishCacheEntry:
        """Insert or overwrite the entry for entry.page_id."""
        ...

    def get_publish_cache(self, page_id: int) -> PublishCacheEntry | None:
        """Retrieve the latest entry for a page."""
        ...

    def delete_publish_cache(self, page_id: int) -> None:
        """Remove the entry for a page, if any."""
        ...


class ThemeResolverPort(Protocol):
    """Protocol for resolving the theme a page references."""

    def select_for_page(self, page: Page) -> ThemeSelection | None:
        ...


class ClockPort(Protocol):
    """Protocol for time operations."""

    def now(self) -> datetime:
        """Return current UTC time."""
        ...
