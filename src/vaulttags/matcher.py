# SPDX-License-Identifier: Apache-2.0
"""Approximate search over the tag vocabulary.

The engine only talks to :class:`TagMatcher`; the rapidfuzz-backed
implementation can be swapped for any other similarity measure.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from rapidfuzz import fuzz, process

from .store import TagEntry

logger = logging.getLogger(__name__)

# Similarity in [0, 100] below which a label is not a match. Loose enough for
# small typos ("projcet") and prefixes ("pro" -> "project").
DEFAULT_SCORE_CUTOFF = 60.0


@dataclass
class TagMatch:
    label: str
    count: int
    score: float


class TagMatcher(ABC):
    """Point-in-time search structure over a vocabulary snapshot."""

    @abstractmethod
    def build(self, vocabulary: Iterable[TagEntry]) -> None:
        """Replace the searchable vocabulary."""

    @abstractmethod
    def search(self, query: str) -> List[TagMatch]:
        """Return matches ranked best first; empty query returns []."""


class FuzzyTagMatcher(TagMatcher):
    """Token-similarity matcher using rapidfuzz's weighted ratio."""

    def __init__(self, score_cutoff: float = DEFAULT_SCORE_CUTOFF, limit: Optional[int] = None):
        self.score_cutoff = score_cutoff
        self.limit = limit
        self._labels: List[str] = []
        self._counts: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._labels)

    def build(self, vocabulary: Iterable[TagEntry]) -> None:
        self._counts = {entry.label: entry.count for entry in vocabulary}
        self._labels = list(self._counts)
        logger.debug(f"Tag matcher built over {len(self._labels)} labels")

    def search(self, query: str) -> List[TagMatch]:
        if not query or not query.strip() or not self._labels:
            return []

        # Labels are already normalized; punctuation ("c++", "c#") is significant
        hits = process.extract(
            query.strip().lower(),
            self._labels,
            scorer=fuzz.WRatio,
            processor=None,
            score_cutoff=self.score_cutoff,
            limit=None,
        )
        matches = [
            TagMatch(label=label, count=self._counts[label], score=float(score))
            for label, score, _ in hits
        ]
        matches.sort(key=lambda m: (-m.score, -m.count, m.label))
        if self.limit is not None:
            matches = matches[: self.limit]
        return matches
