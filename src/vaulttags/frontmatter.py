# SPDX-License-Identifier: Apache-2.0
"""Front matter parsing and tag extraction.

A note's header block is the YAML between a leading ``---`` line and the next
``---`` line. The ``tags`` field inside it can take three shapes::

    tags: project                 # scalar (commas split it: "a, b")
    tags: [project, ideas]        # inline list
    tags:                         # block list
      - project
      - ideas

Each shape is classified into a :class:`LabelField` and normalized by a single
function into an ordered list of lower-cased, trimmed labels.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Tuple

import yaml
from frontmatter.default_handlers import YAMLHandler

from .errors import HeaderParseError

logger = logging.getLogger(__name__)

DEFAULT_TAG_KEY = "tags"

_BOM = "\ufeff"
_YAML_HANDLER = YAMLHandler()
_SCALAR_ITEM_TYPES = (str, int, float, date)


class LabelKind(enum.Enum):
    MISSING = "missing"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    OTHER = "other"


@dataclass(frozen=True)
class LabelField:
    """The label field of a header, tagged with the shape it was written in."""

    kind: LabelKind
    value: Any = None


def _drop_line_break(text: str) -> str:
    return text[1:] if text.startswith("\n") else text


def find_frontmatter(content: Optional[str]) -> Optional[Tuple[str, str]]:
    """Locate the header block.

    Returns:
        ``(raw_header, body)`` or None when the text does not open with a
        header delimiter.

    Raises:
        HeaderParseError: If the opening delimiter has no closing delimiter.
    """
    if not content:
        return None
    if content.startswith(_BOM):
        content = content[1:]

    if not _YAML_HANDLER.detect(content):
        return None
    try:
        raw, body = _YAML_HANDLER.split(content)
    except ValueError as e:
        raise HeaderParseError("header block has no closing delimiter") from e
    return _drop_line_break(raw), _drop_line_break(body)


def split_frontmatter(content: Optional[str]) -> Tuple[Optional[str], str]:
    """Split content into raw header text and body.

    A missing or unterminated header yields ``(None, content)``.
    """
    try:
        found = find_frontmatter(content)
    except HeaderParseError:
        found = None
    if found is None:
        return None, content or ""
    raw, body = found
    return raw.strip(), body.lstrip()


def parse_frontmatter(content: Optional[str]) -> dict:
    """Parse the header block into a mapping.

    Returns an empty dict when there is no header.

    Raises:
        HeaderParseError: If the header is unterminated, is not valid YAML,
            or does not hold a mapping.
    """
    found = find_frontmatter(content)
    if found is None:
        return {}
    raw, _ = found
    if not raw.strip():
        return {}

    try:
        parsed = _YAML_HANDLER.load(raw)
    except (yaml.YAMLError, ValueError, TypeError, RecursionError) as e:
        raise HeaderParseError(f"invalid YAML in header: {e}") from e

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise HeaderParseError(f"header is a {type(parsed).__name__}, not a mapping")
    return parsed


def classify_label_field(value: Any) -> LabelField:
    """Tag a raw header value with its shape."""
    if value is None:
        return LabelField(LabelKind.MISSING)
    if isinstance(value, str):
        return LabelField(LabelKind.SCALAR, value)
    if isinstance(value, (list, tuple)):
        return LabelField(LabelKind.SEQUENCE, list(value))
    # Numbers, booleans, dates and mappings do not name tags
    return LabelField(LabelKind.OTHER, value)


def _normalize_label(label: str) -> str:
    return label.strip().lower()


def normalize_label_field(field: LabelField) -> List[str]:
    """Map every label field shape to the canonical ordered list of labels."""
    if field.kind is LabelKind.SCALAR:
        raw_labels = field.value.split(",")
    elif field.kind is LabelKind.SEQUENCE:
        raw_labels = [
            str(item)
            for item in field.value
            if isinstance(item, _SCALAR_ITEM_TYPES) and not isinstance(item, bool)
        ]
    else:
        return []

    labels = [_normalize_label(label) for label in raw_labels]
    # Duplicates collapse onto their first occurrence
    return list(dict.fromkeys(label for label in labels if label))


def extract_tags(content: Optional[str], tag_key: str = DEFAULT_TAG_KEY) -> List[str]:
    """Extract the normalized tags from a note's header.

    Never raises: malformed headers produce an empty list.
    """
    try:
        header = parse_frontmatter(content)
    except HeaderParseError as e:
        logger.debug(f"Ignoring malformed header: {e}")
        return []

    return normalize_label_field(classify_label_field(header.get(tag_key)))
