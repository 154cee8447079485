# SPDX-License-Identifier: Apache-2.0
"""Tag indexing and fuzzy tag search for a notes vault."""

from vaulttags.engine import TagEngine
from vaulttags.errors import (
    DocumentReadError,
    HeaderParseError,
    PersistenceError,
    VaultTagsError,
)
from vaulttags.frontmatter import extract_tags, parse_frontmatter, split_frontmatter
from vaulttags.maintainer import IncrementalMaintainer
from vaulttags.matcher import FuzzyTagMatcher, TagMatch, TagMatcher
from vaulttags.persistence import KeyValueStore, TagIndexCache
from vaulttags.scanner import DocumentTree, LocalVault, TagScanner, TreeEntry
from vaulttags.store import ReindexEvent, TagEntry, TagIndex, TagIndexMeta, TagIndexStore

__version__ = "0.1.0"

__all__ = [
    "TagEngine",
    "DocumentReadError",
    "HeaderParseError",
    "PersistenceError",
    "VaultTagsError",
    "extract_tags",
    "parse_frontmatter",
    "split_frontmatter",
    "IncrementalMaintainer",
    "FuzzyTagMatcher",
    "TagMatch",
    "TagMatcher",
    "KeyValueStore",
    "TagIndexCache",
    "DocumentTree",
    "LocalVault",
    "TagScanner",
    "TreeEntry",
    "ReindexEvent",
    "TagEntry",
    "TagIndex",
    "TagIndexMeta",
    "TagIndexStore",
]
