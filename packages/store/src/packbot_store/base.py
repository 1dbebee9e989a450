"""Abstract correlation store interface.

The comment handler writes a record when it dispatches a pack workflow and
the workflow-run handler consumes it when the run completes. Both handlers
depend on BaseStore, not on a concrete backend, so the memory, SQLite and
Gist backends are swappable without touching handler code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from packbot_store.models import PackInfo


class BaseStore(ABC):
    """Key/value store with expiring entries.

    Semantics are last-writer-wins with no transactions. Expired entries read
    as absent. I/O failures raise; a missing key is never an error.
    """

    @abstractmethod
    def put(self, key: str, record: PackInfo, ttl: int) -> None:
        """Write a record that expires ``ttl`` seconds from now."""

    @abstractmethod
    def get(self, key: str) -> PackInfo | None:
        """Return the live record for ``key``, or None."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is a no-op."""

    def take(self, key: str) -> PackInfo | None:
        """Read and remove ``key`` in one call.

        The default is get() followed by delete(), which is best-effort single
        consumption: two concurrent callers may both see the record. Backends
        with an atomic primitive override this.
        """
        record = self.get(key)
        if record is not None:
            self.delete(key)
        return record

    def close(self) -> None:
        """Release connections held by the store. Safe to call on every backend."""
