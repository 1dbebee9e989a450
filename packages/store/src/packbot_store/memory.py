"""In-memory store: the default when no store is configured.

Records live for the lifetime of one server process. A completion that
arrives after a restart finds no record and is ignored.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Callable

from packbot_store.base import BaseStore

if TYPE_CHECKING:
    from packbot_store.models import PackInfo


class MemoryStore(BaseStore):
    """Process-local dict with per-entry deadlines on a monotonic clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[PackInfo, float]] = {}
        # Handlers reach the store through worker threads.
        self._lock = threading.Lock()

    def put(self, key: str, record: PackInfo, ttl: int) -> None:
        with self._lock:
            self._purge()
            self._entries[key] = (record, self._clock() + ttl)

    def get(self, key: str) -> PackInfo | None:
        with self._lock:
            return self._live(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def take(self, key: str) -> PackInfo | None:
        with self._lock:
            record = self._live(key)
            self._entries.pop(key, None)
            return record

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)

    def _live(self, key: str) -> PackInfo | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        record, deadline = entry
        if deadline <= self._clock():
            del self._entries[key]
            return None
        return record

    def _purge(self) -> None:
        now = self._clock()
        for key in [k for k, (_, deadline) in self._entries.items() if deadline <= now]:
            del self._entries[key]
