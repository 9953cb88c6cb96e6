"""Publish component - compiles page drafts into the served artifact."""

from __future__ import annotations

import logging

from linkbio.components.compiler import DEFAULT_CONFIG as DEFAULT_COMPILER_CONFIG
from linkbio.components.compiler import CompiledPage, CompilerConfig, compile_draft
from linkbio.components.publish._impl import DEFAULT_ETAG_LENGTH, PublishCache, etag_matches
from linkbio.components.publish.models import (
    GetPublishedInput,
    GetPublishedOutput,
    PreviewInput,
    PreviewOutput,
    PublishNowInput,
    PublishNowOutput,
    PublishValidationError,
    UnpublishInput,
    UnpublishOutput,
)
from linkbio.components.publish.ports import (
    ClockPort,
    DraftRepoPort,
    PublishCacheRepoPort,
    ThemeResolverPort,
)
from linkbio.core.locks import PageLocks
from linkbio.domain.entities import Draft, Page

logger = logging.getLogger(__name__)

# Type alias for all supported inputs
PublishInput = PublishNowInput | GetPublishedInput | UnpublishInput | PreviewInput
PublishOutput = PublishNowOutput | GetPublishedOutput | UnpublishOutput | PreviewOutput


def _page_not_found(page_id: int) -> PublishValidationError:
    return PublishValidationError(
        code="PAGE_NOT_FOUND",
        message=f"Page {page_id} not found",
        field="page_id",
    )


def _forbidden() -> PublishValidationError:
    return PublishValidationError(
        code="FORBIDDEN",
        message="Page belongs to another user",
        field="user_id",
    )


class PublishComponent:
    """Component for the page publish lifecycle."""

    def __init__(
        self,
        draft_repo: DraftRepoPort,
        cache_repo: PublishCacheRepoPort,
        themes: ThemeResolverPort,
        clock: ClockPort,
        locks: PageLocks | None = None,
        compiler_config: CompilerConfig = DEFAULT_COMPILER_CONFIG,
        etag_length: int = DEFAULT_ETAG_LENGTH,
    ) -> None:
        self._draft_repo = draft_repo
        self._themes = themes
        self._clock = clock
        self._locks = locks if locks is not None else PageLocks()
        self._compiler_config = compiler_config
        self._cache = PublishCache(cache_repo, clock, etag_length)

    @property
    def locks(self) -> PageLocks:
        return self._locks

    def run(self, input_data: PublishInput) -> PublishOutput:
        """Main dispatcher - routes to appropriate handler based on input type."""
        if isinstance(input_data, PublishNowInput):
            return self.run_publish_now(input_data)
        elif isinstance(input_data, GetPublishedInput):
            return self.run_get_published(input_data)
        elif isinstance(input_data, UnpublishInput):
            return self.run_unpublish(input_data)
        elif isinstance(input_data, PreviewInput):
            return self.run_preview(input_data)
        else:
            raise TypeError(f"Unknown input type: {type(input_data)}")

    # --- Helpers ---

    def _compile(self, draft: Draft) -> tuple[CompiledPage | None, list[PublishValidationError]]:
        selection = self._themes.select_for_page(draft.page)
        if selection is None:
            return None, [
                PublishValidationError(
                    code="THEME_NOT_FOUND",
                    message=f"Theme '{draft.page.theme.preset_key}' not found",
                    field="theme",
                )
            ]
        return compile_draft(draft, selection, self._compiler_config), []

    def _owned_page(
        self, page_id: int, user_id: int | None
    ) -> tuple[Page | None, list[PublishValidationError]]:
        page = self._draft_repo.get_page(page_id)
        if page is None:
            return None, [_page_not_found(page_id)]
        if user_id is not None and page.user_id != user_id:
            return None, [_forbidden()]
        return page, []

    # --- Handlers ---

    def run_publish_now(self, input_data: PublishNowInput) -> PublishNowOutput:
        """
        Compile the page's current draft and overwrite its cache entry.

        The page lock is held from loading the draft until the cache row and
        page status are written, so a concurrent draft save lands either
        entirely before or entirely after this publish.
        """
        with self._locks.hold(input_data.page_id):
            page, errors = self._owned_page(input_data.page_id, input_data.user_id)
            if page is None:
                return PublishNowOutput(errors=errors, success=False)

            draft = self._draft_repo.load_draft(input_data.page_id)
            if draft is None:
                return PublishNowOutput(errors=[_page_not_found(input_data.page_id)], success=False)

            compiled, errors = self._compile(draft)
            if compiled is None:
                return PublishNowOutput(errors=errors, success=False)

            data, etag = self._cache.publish(
                input_data.page_id, compiled, draft_version=draft.page.version
            )

            if draft.page.status != "published":
                self._draft_repo.save_page(
                    draft.page.model_copy(
                        update={"status": "published", "updated_at": self._clock.now()}
                    )
                )

        logger.info(
            "Published page %s (version %s, etag %s)",
            input_data.page_id,
            draft.page.version,
            etag,
        )
        return PublishNowOutput(
            errors=[],
            success=True,
            etag=etag,
            compiled_json=data,
            draft_version=draft.page.version,
        )

    def run_get_published(self, input_data: GetPublishedInput) -> GetPublishedOutput:
        """Return the cached artifact, or a not-modified result on ETag match."""
        entry = self._cache.read(input_data.page_id)
        if entry is None:
            return GetPublishedOutput(
                errors=[
                    PublishValidationError(
                        code="PAGE_NOT_PUBLISHED",
                        message=f"Page {input_data.page_id} has not been published",
                        field="page_id",
                    )
                ],
                success=False,
            )

        if etag_matches(input_data.if_none_match, entry.etag):
            return GetPublishedOutput(errors=[], success=True, not_modified=True, etag=entry.etag)

        return GetPublishedOutput(
            errors=[],
            success=True,
            etag=entry.etag,
            compiled_json=entry.compiled_json,
        )

    def run_unpublish(self, input_data: UnpublishInput) -> UnpublishOutput:
        """Remove the cache entry and return the page to draft."""
        with self._locks.hold(input_data.page_id):
            page, errors = self._owned_page(input_data.page_id, input_data.user_id)
            if page is None:
                return UnpublishOutput(errors=errors, success=False)

            self._cache.evict(input_data.page_id)
            if page.status != "draft":
                self._draft_repo.save_page(
                    page.model_copy(update={"status": "draft", "updated_at": self._clock.now()})
                )

        logger.info("Unpublished page %s", input_data.page_id)
        return UnpublishOutput(errors=[], success=True)

    def run_preview(self, input_data: PreviewInput) -> PreviewOutput:
        """Compile the current draft without touching the cache."""
        page, errors = self._owned_page(input_data.page_id, input_data.user_id)
        if page is None:
            return PreviewOutput(errors=errors, success=False)

        draft = self._draft_repo.load_draft(input_data.page_id)
        if draft is None:
            return PreviewOutput(errors=[_page_not_found(input_data.page_id)], success=False)

        compiled, errors = self._compile(draft)
        if compiled is None:
            return PreviewOutput(errors=errors, success=False)

        return PreviewOutput(errors=[], success=True, document=compiled.to_document())
