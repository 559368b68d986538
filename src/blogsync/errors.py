"""Error taxonomy shared by sources, the parser and the synchronizer."""

from __future__ import annotations


class BlogSyncError(Exception):
    """Base class for blogsync errors."""


class SourceUnreachable(BlogSyncError):
    """The source of truth could not be reached (transport failure or timeout)."""


class MalformedDocument(BlogSyncError, ValueError):
    """A content file could not be turned into a document."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class InvalidFormat(BlogSyncError, ValueError):
    """A metadata block is not a valid key/value mapping."""


class NotFound(BlogSyncError, LookupError):
    """A file does not exist in the source of truth."""


class ConfigError(BlogSyncError, ValueError):
    """Invalid configuration value."""
