"""SQLiteStore: file-backed store that survives server restarts.

``take`` uses ``DELETE ... RETURNING`` (SQLite 3.35+), so a completion event
delivered twice at the same moment is consumed once.

Schema:
  records: one row per live correlation record, keyed by ``pack-<runId>``.
           ``expires_at`` is a Unix timestamp; expired rows are ignored on
           read and purged on write.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from typing import Callable

from packbot_store.base import BaseStore
from packbot_store.models import PackInfo, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    expires_at  REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_records_expires ON records (expires_at);
"""


class SQLiteStore(BaseStore):
    """Stores correlation records in a local SQLite database file.

    The database file path defaults to `.packbot.db` in the current working
    directory. Configure via `PACKBOT_STORE_PATH`.
    """

    def __init__(self, db_path: str = ".packbot.db", clock: Callable[[], float] = time.time):
        self._clock = clock
        # One connection shared by the worker threads that run store calls.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        self._lock = threading.Lock()

    def put(self, key: str, record: PackInfo, ttl: int) -> None:
        now = self._clock()
        with self._lock:
            self._conn.execute("DELETE FROM records WHERE expires_at <= ?", (now,))
            self._conn.execute(
                "INSERT OR REPLACE INTO records (key, value, expires_at) VALUES (?, ?, ?)",
                (key, json.dumps(record_to_dict(record)), now + ttl),
            )
            self._conn.commit()

    def get(self, key: str) -> PackInfo | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM records WHERE key=? AND expires_at > ?",
                (key, self._clock()),
            ).fetchone()
        return self._row_to_record(row)

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM records WHERE key=?", (key,))
            self._conn.commit()

    def take(self, key: str) -> PackInfo | None:
        with self._lock:
            rows = self._conn.execute(
                "DELETE FROM records WHERE key=? RETURNING value, expires_at",
                (key,),
            ).fetchall()
            self._conn.commit()
        row = rows[0] if rows else None
        if row is None or row["expires_at"] <= self._clock():
            return None
        return self._row_to_record(row)

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row | None) -> PackInfo | None:
        if row is None:
            return None
        try:
            return record_from_dict(json.loads(row["value"]))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable correlation record: %s", e)
            return None
