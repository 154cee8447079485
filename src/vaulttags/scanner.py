# SPDX-License-Identifier: Apache-2.0
"""
Full tag index builds over a document tree.

The scanner walks a vault, reads only the leading prefix of every note (the
header block always sits at the top), extracts its tags, and installs the
resulting index in the store in one step.
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import DocumentReadError
from .frontmatter import DEFAULT_TAG_KEY, extract_tags
from .store import TagIndex, TagIndexStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX_CHARS = 2048
DEFAULT_EXTENSIONS = (".md",)
HIDDEN_PREFIX = "."


@dataclass(frozen=True)
class TreeEntry:
    """One child of a directory in a document tree."""

    name: str
    kind: str  # "file" or "directory"

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"


def join_path(base: str, name: str) -> str:
    return f"{base}/{name}" if base else name


class DocumentTree(ABC):
    """Read-only view of a document hierarchy, addressed by relative POSIX paths."""

    @abstractmethod
    async def list_directory(self, rel_path: str = "") -> List[TreeEntry]:
        """List the children of a directory (``""`` is the root)."""

    @abstractmethod
    async def read_prefix(self, rel_path: str, limit: int) -> str:
        """Read at most ``limit`` characters from the start of a document.

        Raises:
            DocumentReadError: If the document cannot be read.
        """

    @abstractmethod
    async def read_text(self, rel_path: str) -> str:
        """Read a whole document.

        Raises:
            DocumentReadError: If the document cannot be read.
        """

    @abstractmethod
    async def exists(self, rel_path: str) -> bool:
        """Check whether a file or directory exists."""


class LocalVault(DocumentTree):
    """DocumentTree backed by a directory on the local file system.

    Blocking file system calls run in a worker thread so the event loop is
    only suspended at reads.
    """

    def __init__(self, root: Path | str, encoding: str = "utf-8"):
        self.root = Path(root)
        self.encoding = encoding

    def is_available(self) -> bool:
        """Check if the directory is available and accessible."""
        try:
            if not self.root.is_dir():
                return False
            next(self.root.iterdir(), None)
            return True
        except (OSError, PermissionError):
            return False

    def resolve(self, rel_path: str) -> Path:
        return self.root / rel_path if rel_path else self.root

    def _list_sync(self, rel_path: str) -> List[TreeEntry]:
        entries = []
        with os.scandir(self.resolve(rel_path)) as it:
            for entry in it:
                kind = "directory" if entry.is_dir(follow_symlinks=False) else "file"
                entries.append(TreeEntry(name=entry.name, kind=kind))
        return entries

    def _read_sync(self, rel_path: str, limit: Optional[int]) -> str:
        with open(self.resolve(rel_path), "r", encoding=self.encoding) as f:
            return f.read(limit) if limit is not None else f.read()

    async def list_directory(self, rel_path: str = "") -> List[TreeEntry]:
        return await asyncio.to_thread(self._list_sync, rel_path)

    async def read_prefix(self, rel_path: str, limit: int) -> str:
        try:
            return await asyncio.to_thread(self._read_sync, rel_path, limit)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(rel_path, str(e)) from e

    async def read_text(self, rel_path: str) -> str:
        try:
            return await asyncio.to_thread(self._read_sync, rel_path, None)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(rel_path, str(e)) from e

    async def exists(self, rel_path: str) -> bool:
        return await asyncio.to_thread(self.resolve(rel_path).exists)


class TagScanner:
    """Builds a complete tag index from a document tree.

    The store's ``is_indexing`` flag is raised for the whole walk so callers
    can hold back incremental updates; a build cannot be cancelled once
    started.
    """

    def __init__(
        self,
        store: TagIndexStore,
        prefix_chars: int = DEFAULT_PREFIX_CHARS,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        hidden_prefix: str = HIDDEN_PREFIX,
        tag_key: str = DEFAULT_TAG_KEY,
        journal_scanner=None,
    ):
        self.store = store
        self.prefix_chars = prefix_chars
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.hidden_prefix = hidden_prefix
        self.tag_key = tag_key
        self.journal_scanner = journal_scanner
        self.skipped: List[str] = []

    def _is_hidden(self, name: str) -> bool:
        return bool(self.hidden_prefix) and name.startswith(self.hidden_prefix)

    def _is_document(self, name: str) -> bool:
        return name.lower().endswith(self.extensions)

    async def _collect(self, tree: DocumentTree) -> Dict[str, List[str]]:
        files_to_tags: Dict[str, List[str]] = {}
        # Explicit work-stack keeps call depth flat on deep trees
        pending = [""]
        while pending:
            dir_path = pending.pop()
            try:
                entries = await tree.list_directory(dir_path)
            except OSError as e:
                logger.warning(f"Could not list directory {dir_path or '.'}: {e}")
                continue

            for entry in entries:
                if self._is_hidden(entry.name):
                    continue
                entry_path = join_path(dir_path, entry.name)
                if entry.is_dir:
                    pending.append(entry_path)
                    continue
                if not self._is_document(entry.name):
                    continue
                try:
                    prefix = await tree.read_prefix(entry_path, self.prefix_chars)
                except DocumentReadError as e:
                    logger.warning(f"Skipping unreadable document: {e}")
                    self.skipped.append(entry_path)
                    continue
                tags = extract_tags(prefix, self.tag_key)
                if tags:
                    files_to_tags[entry_path] = tags
        return files_to_tags

    async def scan(self, tree: DocumentTree) -> TagIndex:
        """Walk the tree and return a fresh index without installing it.

        Raises:
            RuntimeError: If another build is already running on this store.
        """
        if self.store.is_indexing:
            raise RuntimeError("A tag index build is already in progress")

        self.store.set_indexing(True)
        self.skipped = []
        try:
            files_to_tags = await self._collect(tree)
            if self.journal_scanner is not None:
                files_to_tags.update(await self.journal_scanner.collect(tree))
            index = TagIndex.from_files(files_to_tags)
            logger.info(
                f"Indexed {len(index.files_to_tags)} documents with "
                f"{len(index.tags_to_files)} tags"
                + (f" ({len(self.skipped)} skipped)" if self.skipped else "")
            )
            return index
        finally:
            self.store.set_indexing(False)

    async def build(self, tree: DocumentTree) -> TagIndex:
        """Walk the tree and install the fresh index in the store."""
        index = await self.scan(tree)
        self.store.replace_all(index)
        return index
