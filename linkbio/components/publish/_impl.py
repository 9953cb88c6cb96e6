"""
PublishCache - canonical serialization and content ETags.

Key behaviors:
- The compiled document is serialized to canonical JSON bytes
- ETag is a fixed-length hex prefix of the SHA-256 digest of those bytes
- Entries are keyed by page id and overwritten on every publish; identical
  content yields an identical ETag
- A read after publish returns byte-identical content
"""

from __future__ import annotations

import hashlib
import json

from linkbio.components.compiler import CompiledPage
from linkbio.domain.entities import PublishCacheEntry

from .ports import ClockPort, PublishCacheRepoPort

DEFAULT_ETAG_LENGTH = 32


def serialize_compiled(compiled: CompiledPage) -> bytes:
    """Canonical UTF-8 JSON: sorted keys, compact separators."""
    return json.dumps(
        compiled.to_document(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def compute_etag(data: bytes, length: int = DEFAULT_ETAG_LENGTH) -> str:
    """Hex prefix of the SHA-256 digest of `data`."""
    if not 8 <= length <= 64:
        raise ValueError("ETag length must be between 8 and 64 hex characters")
    return hashlib.sha256(data).hexdigest()[:length]


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """
    Whether an If-None-Match value matches `etag`.

    Accepts "*", comma-separated lists, quoted tags and weak (W/) tags.
    """
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        tag = candidate.strip()
        if tag == "*":
            return True
        if tag.startswith("W/"):
            tag = tag[2:]
        if tag.strip('"') == etag:
            return True
    return False


class PublishCache:
    """Per-page store of the latest compiled artifact."""

    def __init__(
        self,
        repo: PublishCacheRepoPort,
        clock: ClockPort,
        etag_length: int = DEFAULT_ETAG_LENGTH,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._etag_length = etag_length

    def publish(
        self,
        page_id: int,
        compiled: CompiledPage,
        draft_version: int = 0,
    ) -> tuple[bytes, str]:
        """Serialize, hash and overwrite the page's cache entry."""
        data = serialize_compiled(compiled)
        etag = compute_etag(data, self._etag_length)

        now = self._clock.now()
        self._repo.upsert_publish_cache(
            PublishCacheEntry(
                page_id=page_id,
                compiled_json=data,
                etag=etag,
                draft_version=draft_version,
                published_at=now,
                updated_at=now,
            )
        )
        return data, etag

    def read(self, page_id: int) -> PublishCacheEntry | None:
        return self._repo.get_publish_cache(page_id)

    def evict(self, page_id: int) -> None:
        self._repo.delete_publish_cache(page_id)
