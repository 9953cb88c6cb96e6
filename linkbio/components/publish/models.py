"""Publish component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PublishValidationError:
    """Validation error details for publish operations."""

    code: str
    message: str
    field: str


@dataclass(frozen=True)
class PublishNowInput:
    """Input for immediate publish operation."""

    user_id: int
    page_id: int


@dataclass(frozen=True)
class PublishNowOutput:
    """Output for immediate publish operation."""

    errors: list[PublishValidationError]
    success: bool
    etag: str | None = None
    compiled_json: bytes | None = None
    draft_version: int | None = None


@dataclass(frozen=True)
class GetPublishedInput:
    """Input for reading the published artifact of a page."""

    page_id: int
    if_none_match: str | None = None


@dataclass(frozen=True)
class GetPublishedOutput:
    """Output for reading the published artifact of a page."""

    errors: list[PublishValidationError]
    success: bool
    not_modified: bool = False
    etag: str | None = None
    compiled_json: bytes | None = None


@dataclass(frozen=True)
class UnpublishInput:
    """Input for unpublish operation."""

    user_id: int
    page_id: int


@dataclass(frozen=True)
class UnpublishOutput:
    """Output for unpublish operation."""

    errors: list[PublishValidationError]
    success: bool


@dataclass(frozen=True)
class PreviewInput:
    """Input for compiling the current draft without publishing it."""

    page_id: int
    user_id: int | None = None  # when set, must own the page


@dataclass(frozen=True)
class PreviewOutput:
    """Output for preview operation."""

    errors: list[PublishValidationError]
    success: bool
    document: dict[str, Any] = field(default_factory=dict)
