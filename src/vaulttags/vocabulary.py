# SPDX-License-Identifier: Apache-2.0
"""Tag vocabulary for autocomplete, stored as ``.editor-tags.yaml`` in the vault.

The file looks like::

    version: 1
    tags:
      - name: project
        count: 5

It is seeded from the tag index when missing or unreadable.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from .store import TagIndex

logger = logging.getLogger(__name__)

VOCABULARY_FILENAME = ".editor-tags.yaml"
VOCABULARY_VERSION = 1


@dataclass
class VocabularyTag:
    name: str
    count: int


class TagVocabulary:
    """Known tags with usage counts, kept sorted by count then name."""

    def __init__(self, vault_root: Path):
        self.path = Path(vault_root) / VOCABULARY_FILENAME
        self._tags: List[VocabularyTag] = []

    def tags(self) -> List[VocabularyTag]:
        return list(self._tags)

    def get(self, name: str) -> Optional[VocabularyTag]:
        return next((t for t in self._tags if t.name == name), None)

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def _sort(self) -> None:
        self._tags.sort(key=lambda t: (-t.count, t.name))

    def add(self, name: str) -> None:
        """Add a tag, or bump its count if it is already known."""
        normalized = name.strip().lower()
        if not normalized:
            return
        existing = self.get(normalized)
        if existing:
            existing.count += 1
        else:
            self._tags.append(VocabularyTag(name=normalized, count=1))
        self._sort()

    def increment(self, name: str) -> None:
        tag = self.get(name)
        if tag:
            tag.count += 1
            self._sort()

    def decrement(self, name: str) -> None:
        """Lower a tag's count, dropping it when the count reaches zero."""
        tag = self.get(name)
        if tag is None:
            return
        tag.count -= 1
        if tag.count <= 0:
            self._tags.remove(tag)
        else:
            self._sort()

    def build_from_index(self, index: TagIndex) -> None:
        self._tags = [
            VocabularyTag(name=label, count=len(paths))
            for label, paths in index.tags_to_files.items()
        ]
        self._sort()

    def merge_from_index(self, index: TagIndex) -> None:
        """Add index tags and refresh counts, keeping tags the index lacks."""
        for label, paths in index.tags_to_files.items():
            existing = self.get(label)
            if existing:
                existing.count = len(paths)
            else:
                self._tags.append(VocabularyTag(name=label, count=len(paths)))
        self._sort()

    def _parse(self, data) -> Optional[List[VocabularyTag]]:
        if not isinstance(data, dict) or not isinstance(data.get("tags"), list):
            return None
        parsed = []
        for item in data["tags"]:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                continue
            count = item.get("count", 0)
            parsed.append(VocabularyTag(name=item["name"], count=count if isinstance(count, int) else 0))
        return parsed

    def load(self, index: TagIndex) -> None:
        """Load the vocabulary file, falling back to the index contents.

        A missing file is created from the index.
        """
        if not self.path.exists():
            self.build_from_index(index)
            self.save()
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                parsed = self._parse(yaml.safe_load(f))
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Error reading tag vocabulary: {e}")
            parsed = None

        if parsed is None:
            self.build_from_index(index)
        else:
            self._tags = parsed
            self._sort()

    def save(self) -> bool:
        data = {
            "version": VOCABULARY_VERSION,
            "tags": [asdict(t) for t in self._tags],
        }
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
            return True
        except OSError as e:
            logger.error(f"Error saving tag vocabulary: {e}")
            return False

    def reset(self) -> None:
        self._tags = []
