# SPDX-License-Identifier: Apache-2.0
"""Incremental maintenance of the tag index.

Applies save, delete and rename notifications to the store without a rescan.
Any sequence of these calls leaves the index equal, as a set of associations,
to a full scan of the resulting documents.
"""

import logging
from typing import List

from .frontmatter import DEFAULT_TAG_KEY, extract_tags
from .journal import create_journal_source_key
from .store import ReindexEvent, TagIndexStore

logger = logging.getLogger(__name__)


class IncrementalMaintainer:
    """Routes per-document changes into a :class:`TagIndexStore`.

    Methods run to completion without suspending, so calls apply in the
    order they are made.
    """

    def __init__(self, store: TagIndexStore, tag_key: str = DEFAULT_TAG_KEY):
        self.store = store
        self.tag_key = tag_key

    def _warn_if_indexing(self, operation: str, path: str) -> None:
        if self.store.is_indexing:
            logger.warning(
                f"{operation}({path}) while a full build is running; "
                "the build will overwrite this change"
            )

    def update(self, path: str, new_content: str) -> ReindexEvent:
        """Re-index a saved document from its full content."""
        self._warn_if_indexing("update", path)
        return self.set_tags(path, extract_tags(new_content, self.tag_key))

    def set_tags(self, path: str, new_tags: List[str]) -> ReindexEvent:
        """Replace the labels recorded for ``path``."""
        had_tags = path in self.store.index.files_to_tags
        removed = self.store.remove_references(path)

        added: List[str] = []
        if new_tags:
            added = self.store.add_references(path, new_tags)
        else:
            self.store.drop_file(path)

        # A label dropped and re-added in the same call is neither
        tags_removed = [t for t in removed if t not in added]
        tags_added = [t for t in added if t not in removed]

        return self.store.commit(
            "update",
            files_added=[path] if new_tags else None,
            files_removed=[path] if had_tags and not new_tags else None,
            tags_added=tags_added,
            tags_removed=tags_removed,
        )

    def remove(self, path: str) -> ReindexEvent | None:
        """Forget a deleted document. Unknown paths are a no-op."""
        if path not in self.store.index.files_to_tags:
            return None
        self._warn_if_indexing("remove", path)
        removed = self.store.remove_references(path)
        self.store.drop_file(path)
        return self.store.commit(
            "remove",
            files_removed=[path],
            tags_removed=removed,
        )

    def rename(self, old_path: str, new_path: str) -> ReindexEvent | None:
        """Re-key a moved document. Unknown ``old_path`` is a no-op."""
        if old_path not in self.store.index.files_to_tags or old_path == new_path:
            return None
        self._warn_if_indexing("rename", old_path)

        tags_removed: List[str] = []
        if new_path in self.store.index.files_to_tags:
            # The rename overwrote a tagged document
            tags_removed = self.store.remove_references(new_path)
            self.store.drop_file(new_path)

        self.store.move_references(old_path, new_path)
        return self.store.commit(
            "rename",
            files_added=[new_path],
            files_removed=[old_path],
            tags_removed=tags_removed,
            vocabulary_changed=bool(tags_removed),
        )

    def update_journal_entry(self, date: str, entry_id: str, tags: List[str]) -> ReindexEvent:
        """Replace the tags of one journal entry (tags are taken as given)."""
        labels = list(dict.fromkeys(t.strip().lower() for t in tags if t and t.strip()))
        return self.set_tags(create_journal_source_key(date, entry_id), labels)

    def remove_journal_entry(self, date: str, entry_id: str) -> ReindexEvent | None:
        return self.remove(create_journal_source_key(date, entry_id))
