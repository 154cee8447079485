# SPDX-License-Identifier: Apache-2.0
"""Best-effort local caching of the tag index using SQLite."""

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional, Tuple

from .errors import PersistenceError
from .store import TagEntry, TagIndex, TagIndexMeta

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1
DEFAULT_CACHE_KEY = "editorTagIndex"
DEFAULT_MAX_AGE_MS = 24 * 60 * 60 * 1000


class KeyValueStore:
    """String key/value storage in a single SQLite table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self):
        """Initialize the SQLite database schema.

        An unusable database file is logged and left in place; every later
        read or write then raises ``sqlite3.Error`` for the caller to handle.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at REAL NOT NULL
                    )
                    """
                )
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Cache database {self.db_path} is unusable: {e}")

    def get(self, key: str) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, time.time()),
            )

    def delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


def _string_list_map(raw, name: str) -> dict:
    if not isinstance(raw, dict):
        raise PersistenceError(f"'{name}' is not a mapping")
    for key, values in raw.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise PersistenceError(f"'{name}[{key}]' is not a list of strings")
    return {key: list(values) for key, values in raw.items()}


def encode_index(index: TagIndex, meta: TagIndexMeta) -> str:
    return json.dumps({
        "version": CACHE_FORMAT_VERSION,
        "last_indexed": meta.last_indexed,
        "files": index.files_to_tags,
        "tags": index.tags_to_files,
        "vocabulary": [{"label": e.label, "count": e.count} for e in index.vocabulary],
    })


def decode_index(payload: str) -> Tuple[TagIndex, TagIndexMeta]:
    """Rebuild an index from a cache payload.

    Raises:
        PersistenceError: If the payload is not a well-formed, consistent index.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"cached index is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PersistenceError("cached index is not an object")
    if data.get("version") != CACHE_FORMAT_VERSION:
        raise PersistenceError(f"unsupported cache version {data.get('version')!r}")
    last_indexed = data.get("last_indexed")
    if not isinstance(last_indexed, int) or isinstance(last_indexed, bool):
        raise PersistenceError("cached index has no timestamp")

    index = TagIndex(
        files_to_tags=_string_list_map(data.get("files"), "files"),
        tags_to_files=_string_list_map(data.get("tags"), "tags"),
    )
    if not index.is_consistent():
        raise PersistenceError("cached index is not bidirectionally consistent")
    # Counts are derived, so the stored vocabulary is not trusted
    index.vocabulary = [
        TagEntry(label=label, count=len(paths))
        for label, paths in index.tags_to_files.items()
    ]
    meta = TagIndexMeta(
        file_count=len(index.files_to_tags),
        tag_count=len(index.tags_to_files),
        last_indexed=last_indexed,
    )
    return index, meta


class TagIndexCache:
    """Saves and restores the tag index under a single key."""

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_CACHE_KEY):
        self.kv = kv
        self.key = key

    def save(self, index: TagIndex, meta: TagIndexMeta) -> bool:
        """Persist the index. Returns False if the write failed."""
        try:
            self.kv.set(self.key, encode_index(index, meta))
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to save tag index: {e}")
            return False

    def _read(self) -> str:
        try:
            payload = self.kv.get(self.key)
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read cache: {e}") from e
        if payload is None:
            raise PersistenceError("no cached tag index")
        return payload

    def load(self) -> Optional[Tuple[TagIndex, TagIndexMeta]]:
        """Restore the cached index, or None when missing or corrupt."""
        try:
            return decode_index(self._read())
        except PersistenceError as e:
            logger.warning(f"Tag index cache unavailable: {e}")
            return None

    def last_indexed(self) -> Optional[int]:
        try:
            data = json.loads(self._read())
        except (PersistenceError, TypeError, ValueError):
            return None
        value = data.get("last_indexed") if isinstance(data, dict) else None
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        return value

    def is_stale(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> bool:
        """True when nothing usable is stored or it is older than ``max_age_ms``."""
        last = self.last_indexed()
        if not last:
            return True
        return int(time.time() * 1000) - last > max_age_ms

    def clear(self) -> None:
        try:
            self.kv.delete(self.key)
        except sqlite3.Error as e:
            logger.error(f"Failed to clear tag index cache: {e}")
