# SPDX-License-Identifier: Apache-2.0
"""
Tag engine: the single entry point the editor talks to.

Opening a vault restores the cached index when it is fresh and scans the
tree otherwise. File events are applied incrementally; events that arrive
while a scan is running are queued and replayed, in order, once it finishes.
The matcher and the cache are refreshed after every change.
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .cfgload import load_config
from .journal import JournalScanner
from .maintainer import IncrementalMaintainer
from .matcher import FuzzyTagMatcher, TagMatch, TagMatcher
from .persistence import KeyValueStore, TagIndexCache
from .scanner import DocumentTree, TagScanner
from .store import TagEntry, TagIndexStore

logger = logging.getLogger(__name__)

CACHE_DB_NAME = "tag_cache.db"


def cache_key_for(base_key: str, vault_root: Path | str) -> str:
    return f"{base_key}:{Path(vault_root).resolve()}"


class TagEngine:
    def __init__(
        self,
        store: Optional[TagIndexStore] = None,
        matcher: Optional[TagMatcher] = None,
        cache: Optional[TagIndexCache] = None,
        config: Optional[dict[str, Any]] = None,
    ):
        self.config = config or load_config()
        vault_cfg = self.config["vault"]
        search_cfg = self.config["search"]

        self.store = store or TagIndexStore()
        self.matcher = matcher or FuzzyTagMatcher(
            score_cutoff=float(search_cfg["score_cutoff"]),
            limit=search_cfg.get("limit"),
        )
        self.cache = cache
        self.max_age_ms = int(self.config["storage"]["max_age_ms"])

        journal = None
        if vault_cfg.get("scan_journal", True):
            journal = JournalScanner(vault_cfg["daily_notes_folder"])
        self.scanner = TagScanner(
            self.store,
            prefix_chars=int(vault_cfg["prefix_chars"]),
            extensions=vault_cfg["extensions"],
            hidden_prefix=vault_cfg["hidden_prefix"],
            tag_key=vault_cfg["tag_key"],
            journal_scanner=journal,
        )
        self.maintainer = IncrementalMaintainer(self.store, tag_key=vault_cfg["tag_key"])
        self._pending: List[Tuple[str, tuple]] = []
        # Bumped by close() so an in-flight scan knows its vault is gone
        self._generation = 0

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]] = None) -> "TagEngine":
        """Create an engine whose cache lives in the configured storage dir.

        Each vault root gets its own cache entry.
        """
        config = config or load_config()
        storage = config["storage"]
        kv = KeyValueStore(Path(storage["storage_dir"]) / CACHE_DB_NAME)
        key = cache_key_for(storage["cache_key"], config["vault"]["root"])
        return cls(cache=TagIndexCache(kv, key=key), config=config)

    # ---------------- Opening a vault ----------------

    def _restore_from_cache(self) -> bool:
        if self.cache is None or self.cache.is_stale(self.max_age_ms):
            return False
        restored = self.cache.load()
        if restored is None:
            return False
        index, meta = restored
        self.store.replace_all(index, meta)
        logger.info(f"Restored tag index from cache ({meta.file_count} documents)")
        return True

    async def open(self, tree: DocumentTree, force: bool = False) -> str:
        """Populate the index for a vault.

        Returns:
            ``"cache"`` if a fresh cached index was restored, ``"scan"`` if the
            tree was scanned, ``"closed"`` if :meth:`close` was called while
            the scan was running (its result is discarded).
        """
        if not force and self._restore_from_cache():
            self._rebuild_matcher()
            return "cache"

        if self.store.is_indexing:
            raise RuntimeError("A tag index build is already in progress")
        generation = self._generation
        try:
            index = await self.scanner.scan(tree)
            if generation != self._generation:
                logger.info("Vault closed while indexing; discarding the scan")
                return "closed"
            self.store.replace_all(index)
            self._rebuild_matcher()
            self._save()
        finally:
            if generation == self._generation:
                self._drain_pending()
            else:
                self._pending.clear()
        return "scan"

    def close(self) -> None:
        """Discard the index when the vault is closed."""
        self._generation += 1
        self.store.reset()
        self.matcher.build([])
        self._pending.clear()

    # ---------------- File events ----------------

    def on_save(self, path: str, content: str) -> None:
        self._dispatch("update", (path, content))

    def on_delete(self, path: str) -> None:
        self._dispatch("remove", (path,))

    def on_rename(self, old_path: str, new_path: str) -> None:
        self._dispatch("rename", (old_path, new_path))

    def on_journal_entry(self, date: str, entry_id: str, tags: List[str]) -> None:
        self._dispatch("update_journal_entry", (date, entry_id, tags))

    def on_journal_entry_deleted(self, date: str, entry_id: str) -> None:
        self._dispatch("remove_journal_entry", (date, entry_id))

    def _dispatch(self, operation: str, args: tuple) -> None:
        if self.store.is_indexing:
            logger.debug(f"Queueing {operation}{args[:1]} until the build finishes")
            self._pending.append((operation, args))
            return
        self._apply(operation, args)
        self._rebuild_matcher()
        self._save()

    def _apply(self, operation: str, args: tuple) -> None:
        getattr(self.maintainer, operation)(*args)

    def _drain_pending(self) -> None:
        if not self._pending:
            return
        pending, self._pending = self._pending, []
        logger.info(f"Replaying {len(pending)} file events queued during indexing")
        for operation, args in pending:
            self._apply(operation, args)
        self._rebuild_matcher()
        self._save()

    # ---------------- Queries ----------------

    def search(self, query: str) -> List[TagMatch]:
        return self.matcher.search(query)

    def all_tags(self) -> List[TagEntry]:
        return self.store.all_tags()

    def files_for_tag(self, label: str) -> List[str]:
        return self.store.files_for_tag(label)

    def select_tag(self, label: Optional[str]) -> None:
        self.store.select_tag(label)

    def selected_files(self) -> List[str]:
        """Documents bearing the selected tag; [] when nothing is selected."""
        return self.store.selected_files()

    def is_built(self) -> bool:
        return self.store.is_built()

    def is_indexing(self) -> bool:
        return self.store.is_indexing

    @property
    def pending_events(self) -> int:
        return len(self._pending)

    # ---------------- Internals ----------------

    def _rebuild_matcher(self) -> None:
        self.matcher.build(self.store.index.vocabulary)

    def _save(self) -> None:
        if self.cache is not None:
            self.cache.save(self.store.index, self.store.meta)
