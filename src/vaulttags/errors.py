# SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for the tag index engine.

None of these conditions is fatal; each is handled next to where it is raised.
"""


class VaultTagsError(Exception):
    """Base class for all vaulttags errors."""


class HeaderParseError(VaultTagsError):
    """A metadata header is malformed or unterminated."""


class DocumentReadError(VaultTagsError):
    """A single document could not be read from the document tree."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Could not read {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PersistenceError(VaultTagsError):
    """The cached index is missing or its payload is corrupt."""
