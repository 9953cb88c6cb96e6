"""
Per-page mutual exclusion.

Publishing reads the whole draft, compiles it and writes the cache row. A
draft save running between the read and the write would produce a publish
that mixes old and new state, so both operations hold the page's lock for
their full read-modify-write span.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0


class PageLocks:
    """
    Registry of one re-entrant lock per page id.

    An entry lives only while some thread holds or waits for it, so the
    registry does not grow with the number of pages ever touched.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[int, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, page_id: int) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(page_id, _Entry())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[page_id]
