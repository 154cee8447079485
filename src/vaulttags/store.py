# SPDX-License-Identifier: Apache-2.0
"""In-memory tag index and its owning store.

The store is the only holder of the :class:`TagIndex`. The scanner installs
whole indexes through :meth:`TagIndexStore.replace_all`; the incremental
maintainer uses the reference helpers and then :meth:`TagIndexStore.commit`.
Subscribers are notified with a :class:`ReindexEvent` after every change.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


@dataclass
class TagEntry:
    """A vocabulary entry: a label and the number of documents bearing it."""

    label: str
    count: int


@dataclass
class TagIndex:
    """Bidirectional document/label index.

    Invariants:
        - ``t in files_to_tags[p]`` if and only if ``p in tags_to_files[t]``
        - ``tags_to_files`` never maps a label to an empty list
    """

    files_to_tags: Dict[str, List[str]] = field(default_factory=dict)
    tags_to_files: Dict[str, List[str]] = field(default_factory=dict)
    vocabulary: List[TagEntry] = field(default_factory=list)

    def rebuild_vocabulary(self) -> None:
        self.vocabulary = [
            TagEntry(label=label, count=len(paths))
            for label, paths in self.tags_to_files.items()
        ]

    def associations(self) -> Set[Tuple[str, str]]:
        """Return the index as a set of ``(path, label)`` pairs."""
        return {
            (path, label)
            for path, labels in self.files_to_tags.items()
            for label in labels
        }

    def is_consistent(self) -> bool:
        """Check both index invariants."""
        reverse = {
            (path, label)
            for label, paths in self.tags_to_files.items()
            for path in paths
        }
        if any(not paths for paths in self.tags_to_files.values()):
            return False
        return reverse == self.associations()

    @classmethod
    def from_files(cls, files_to_tags: Dict[str, List[str]]) -> "TagIndex":
        """Build a complete index from a path -> labels mapping."""
        index = cls()
        for path, labels in files_to_tags.items():
            if not labels:
                continue
            index.files_to_tags[path] = list(labels)
            for label in labels:
                index.tags_to_files.setdefault(label, []).append(path)
        index.rebuild_vocabulary()
        return index


@dataclass
class TagIndexMeta:
    """Summary of the current index; ``last_indexed`` is epoch milliseconds."""

    file_count: int = 0
    tag_count: int = 0
    last_indexed: int = 0


@dataclass
class ReindexEvent:
    """Change notification published after every index mutation."""

    type: str  # "full", "update", "remove" or "rename"
    meta: TagIndexMeta
    files_added: List[str] = field(default_factory=list)
    files_removed: List[str] = field(default_factory=list)
    tags_added: List[str] = field(default_factory=list)
    tags_removed: List[str] = field(default_factory=list)


Listener = Callable[[ReindexEvent], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class TagIndexStore:
    """Owns the tag index, its metadata and the in-flight build flag.

    Not internally synchronized: callers must not issue incremental mutations
    while :attr:`is_indexing` is true.
    """

    def __init__(self):
        self.index = TagIndex()
        self.meta = TagIndexMeta()
        self.is_indexing = False
        self.selected_tag: Optional[str] = None
        self._listeners: List[Listener] = []

    # ---------------- Read accessors ----------------

    def is_built(self) -> bool:
        return bool(self.index.vocabulary) or bool(self.index.files_to_tags)

    def files_for_tag(self, label: str) -> List[str]:
        return list(self.index.tags_to_files.get(label, []))

    def tags_for_file(self, path: str) -> List[str]:
        return list(self.index.files_to_tags.get(path, []))

    def all_tags(self) -> List[TagEntry]:
        """Vocabulary sorted by count descending, then label."""
        return sorted(self.index.vocabulary, key=lambda e: (-e.count, e.label))

    # ---------------- Selection ----------------

    def select_tag(self, label: Optional[str]) -> None:
        """Remember the tag the user is browsing; None clears it."""
        label = label.strip().lower() if label else ""
        self.selected_tag = label or None

    def selected_files(self) -> List[str]:
        if self.selected_tag is None:
            return []
        return self.files_for_tag(self.selected_tag)

    def _drop_stale_selection(self) -> None:
        if self.selected_tag is not None and self.selected_tag not in self.index.tags_to_files:
            self.selected_tag = None

    # ---------------- Lifecycle ----------------

    def reset(self) -> None:
        self.index = TagIndex()
        self.meta = TagIndexMeta()
        self.selected_tag = None

    def set_indexing(self, value: bool) -> None:
        self.is_indexing = value

    def replace_all(self, index: TagIndex, meta: Optional[TagIndexMeta] = None) -> None:
        """Install a complete index built by the scanner or loaded from cache.

        When ``meta`` is given (cache restore) its timestamp is kept;
        otherwise the index counts as freshly built.
        """
        self.index = index
        self.index.rebuild_vocabulary()
        if meta is not None:
            self.meta = TagIndexMeta(
                file_count=len(index.files_to_tags),
                tag_count=len(index.tags_to_files),
                last_indexed=meta.last_indexed,
            )
        else:
            self._refresh_meta()
        self._drop_stale_selection()
        self._publish(ReindexEvent(
            type="full",
            meta=self.meta,
            files_added=list(index.files_to_tags),
            tags_added=list(index.tags_to_files),
        ))

    # ---------------- Change notification ----------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: ReindexEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Reindex listener failed: {e}", exc_info=True)

    def _refresh_meta(self) -> None:
        self.meta = TagIndexMeta(
            file_count=len(self.index.files_to_tags),
            tag_count=len(self.index.tags_to_files),
            last_indexed=_now_ms(),
        )

    # ---------------- Mutation helpers (incremental maintainer only) ----------------

    def remove_references(self, path: str) -> List[str]:
        """Strip ``path`` from the reverse index.

        Returns the labels whose entries were deleted because no document
        bears them any more. ``files_to_tags`` is left untouched.
        """
        removed: List[str] = []
        for label in self.index.files_to_tags.get(path, []):
            paths = self.index.tags_to_files.get(label)
            if paths is None:
                continue
            remaining = [p for p in paths if p != path]
            if remaining:
                self.index.tags_to_files[label] = remaining
            else:
                del self.index.tags_to_files[label]
                removed.append(label)
        return removed

    def add_references(self, path: str, labels: List[str]) -> List[str]:
        """Record ``path`` under each label; returns labels that are new."""
        added: List[str] = []
        self.index.files_to_tags[path] = list(labels)
        for label in labels:
            if label not in self.index.tags_to_files:
                self.index.tags_to_files[label] = []
                added.append(label)
            self.index.tags_to_files[label].append(path)
        return added

    def drop_file(self, path: str) -> None:
        self.index.files_to_tags.pop(path, None)

    def move_references(self, old_path: str, new_path: str) -> bool:
        """Re-key a document, keeping its position in every label's list."""
        labels = self.index.files_to_tags.pop(old_path, None)
        if labels is None:
            return False
        self.index.files_to_tags[new_path] = labels
        for label in labels:
            paths = self.index.tags_to_files.get(label)
            if paths is None:
                continue
            try:
                paths[paths.index(old_path)] = new_path
            except ValueError:
                paths.append(new_path)
        return True

    def commit(
        self,
        event_type: str,
        *,
        files_added: Optional[List[str]] = None,
        files_removed: Optional[List[str]] = None,
        tags_added: Optional[List[str]] = None,
        tags_removed: Optional[List[str]] = None,
        vocabulary_changed: bool = True,
    ) -> ReindexEvent:
        """Finish an incremental mutation: recompute, refresh meta, publish."""
        if vocabulary_changed:
            self.index.rebuild_vocabulary()
        self._refresh_meta()
        self._drop_stale_selection()
        event = ReindexEvent(
            type=event_type,
            meta=self.meta,
            files_added=files_added or [],
            files_removed=files_removed or [],
            tags_added=tags_added or [],
            tags_removed=tags_removed or [],
        )
        self._publish(event)
        return event
