"""GistStore: shared store kept in a GitHub Gist.

Several bot replicas can share records without running a database. Writes
are read-modify-write on one JSON document, so the last writer wins.

Data format: a single JSON file named `packbot_records.json` inside the Gist.
The file holds an object mapping record keys to
``{"value": <PackInfo JSON>, "expires_at": <unix seconds>}``.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable

from github import Auth, Github, InputFileContent

from packbot_store.base import BaseStore
from packbot_store.models import PackInfo, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)

_GIST_FILENAME = "packbot_records.json"


class GistStore(BaseStore):
    """Stores correlation records in one JSON document inside a GitHub Gist.

    Every write rewrites the whole document and drops expired entries on the
    way. Concurrent writers can overwrite each other; with one record per pack
    attempt and a one-hour lifetime, the document stays small.

    API failures propagate to the caller.
    """

    def __init__(self, gist_id: str, token: str, clock: Callable[[], float] = time.time):
        self._gist_id = gist_id
        self._gh = Github(auth=Auth.Token(token))
        self._clock = clock

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def put(self, key: str, record: PackInfo, ttl: int) -> None:
        gist = self._get_gist()
        now = self._clock()
        entries = self._live_entries(self._read_entries(gist), now)
        entries[key] = {"value": record_to_dict(record), "expires_at": now + ttl}
        self._write_entries(gist, entries)

    def get(self, key: str) -> PackInfo | None:
        entries = self._live_entries(self._read_entries(self._get_gist()), self._clock())
        entry = entries.get(key)
        if entry is None:
            return None
        try:
            return record_from_dict(entry["value"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable correlation record %s: %s", key, e)
            return None

    def delete(self, key: str) -> None:
        gist = self._get_gist()
        entries = self._read_entries(gist)
        if key not in entries:
            return
        del entries[key]
        self._write_entries(gist, self._live_entries(entries, self._clock()))

    def _read_entries(self, gist) -> dict:
        """Read the current JSON object from the Gist file, or return {}."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            data = json.loads(file_obj.content)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Gist %s holds unreadable JSON; treating it as empty", self._gist_id)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_entries(self, gist, entries: dict) -> None:
        gist.edit(files={_GIST_FILENAME: InputFileContent(json.dumps(entries, indent=2, sort_keys=True))})

    @staticmethod
    def _live_entries(entries: dict, now: float) -> dict:
        live = {}
        for key, entry in entries.items():
            if not isinstance(entry, dict):
                logger.warning("Dropping malformed gist entry %s", key)
                continue
            try:
                expires_at = float(entry.get("expires_at", 0))
            except (TypeError, ValueError):
                logger.warning("Dropping gist entry %s with unreadable expires_at %r", key, entry.get("expires_at"))
                continue
            if expires_at > now:
                live[key] = entry
        return live
