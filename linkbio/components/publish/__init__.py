"""Publish component - compiled artifact cache and page publish lifecycle."""

from linkbio.components.publish._impl import (
    DEFAULT_ETAG_LENGTH,
    PublishCache,
    compute_etag,
    etag_matches,
    serialize_compiled,
)
from linkbio.components.publish.component import PublishComponent
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

__all__ = [
    # Component
    "PublishComponent",
    # Cache
    "PublishCache",
    "serialize_compiled",
    "compute_etag",
    "etag_matches",
    "DEFAULT_ETAG_LENGTH",
    # Models
    "PublishNowInput",
    "PublishNowOutput",
    "GetPublishedInput",
    "GetPublishedOutput",
    "UnpublishInput",
    "UnpublishOutput",
    "PreviewInput",
    "PreviewOutput",
    "PublishValidationError",
    # Ports
    "DraftRepoPort",
    "PublishCacheRepoPort",
    "ThemeResolverPort",
    "ClockPort",
]
