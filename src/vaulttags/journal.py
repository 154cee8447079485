# SPDX-License-Identifier: Apache-2.0
"""Tags carried by daily journal entries.

Journal files live at ``<daily notes folder>/YYYY/MM/YYYY-MM-DD.yaml`` and hold
a list of entries, each with an ``id`` and optional ``tags``. Every tagged entry
is indexed under a source key of the form ``journal:YYYY-MM-DD#<entry id>``.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

import yaml

from .errors import DocumentReadError
from .frontmatter import classify_label_field, normalize_label_field

logger = logging.getLogger(__name__)

JOURNAL_PREFIX = "journal:"
DEFAULT_DAILY_NOTES_FOLDER = "zzz_Daily Notes"

_SOURCE_KEY_RE = re.compile(r"^journal:(\d{4}-\d{2}-\d{2})#(.+)$")
_YEAR_RE = re.compile(r"^\d{4}$")
_MONTH_RE = re.compile(r"^\d{2}$")
_FILE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.yaml$")


def is_journal_source(key: str) -> bool:
    return key.startswith(JOURNAL_PREFIX)


def create_journal_source_key(date: str, entry_id: str) -> str:
    return f"{JOURNAL_PREFIX}{date}#{entry_id}"


def parse_journal_source(key: str) -> Optional[Tuple[str, str]]:
    """Split a journal source key into ``(date, entry_id)``, or None."""
    match = _SOURCE_KEY_RE.match(key)
    if not match:
        return None
    return match.group(1), match.group(2)


def entry_tags(entry: dict) -> List[str]:
    return normalize_label_field(classify_label_field(entry.get("tags")))


def parse_journal_file(date: str, text: str) -> Dict[str, List[str]]:
    """Map the tagged entries of one journal file to their source keys.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
    """
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        return {}
    entries = data.get("entries")
    if not isinstance(entries, list):
        return {}

    result: Dict[str, List[str]] = {}
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("id") is None:
            continue
        tags = entry_tags(entry)
        if tags:
            result[create_journal_source_key(date, str(entry["id"]))] = tags
    return result


class JournalScanner:
    """Collects journal entry tags during a full build."""

    def __init__(self, daily_notes_folder: str = DEFAULT_DAILY_NOTES_FOLDER):
        self.daily_notes_folder = daily_notes_folder

    async def collect(self, tree) -> Dict[str, List[str]]:
        found: Dict[str, List[str]] = {}
        folder = self.daily_notes_folder
        try:
            if not await tree.exists(folder):
                return found
            years = await tree.list_directory(folder)
        except OSError as e:
            logger.warning(f"Error scanning journal for tags: {e}")
            return found

        for year in years:
            if not year.is_dir or not _YEAR_RE.match(year.name):
                continue
            year_path = f"{folder}/{year.name}"
            try:
                months = await tree.list_directory(year_path)
            except OSError as e:
                logger.warning(f"Could not list {year_path}: {e}")
                continue

            for month in months:
                if not month.is_dir or not _MONTH_RE.match(month.name):
                    continue
                month_path = f"{year_path}/{month.name}"
                try:
                    files = await tree.list_directory(month_path)
                except OSError as e:
                    logger.warning(f"Could not list {month_path}: {e}")
                    continue

                for entry in files:
                    match = _FILE_RE.match(entry.name)
                    if entry.is_dir or not match:
                        continue
                    file_path = f"{month_path}/{entry.name}"
                    try:
                        text = await tree.read_text(file_path)
                        found.update(parse_journal_file(match.group(1), text))
                    except (DocumentReadError, yaml.YAMLError, ValueError) as e:
                        logger.warning(f"Error reading journal file {entry.name}: {e}")
        return found
