"""Source-of-truth interface and provider selection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Protocol, runtime_checkable

from blogsync.config import AppConfig
from blogsync.models import CommitInfo


class DiffStatus(str, Enum):
    UNREACHABLE = "unreachable"
    NONE = "none"
    CHANGED = "changed"


@dataclass(frozen=True, slots=True)
class SourceDiff:
    """Changes between a marker and the newest state of the source.

    Paths are relative to the repository root.
    """

    status: DiffStatus
    changed: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()
    marker: str | None = None

    @classmethod
    def unreachable(cls, marker: str | None) -> "SourceDiff":
        return cls(DiffStatus.UNREACHABLE, marker=marker)

    @classmethod
    def none(cls, marker: str | None) -> "SourceDiff":
        return cls(DiffStatus.NONE, marker=marker)

    @property
    def paths(self) -> FrozenSet[str]:
        return self.changed | self.removed


@runtime_checkable
class Source(Protocol):
    """What the synchronizer needs from a source of truth."""

    def prepare(self) -> str | None:
        """Make the source ready and return the marker of its current state."""

    def list_files(self, folder: str) -> List[str]:
        """Names of all files below ``folder``, relative to it."""

    def read_file(self, path: str) -> bytes:
        """Raises ``NotFound`` when ``path`` does not exist."""

    def diff_since(self, marker: str | None) -> SourceDiff:
        ...

    def commit_info(self, path: str) -> CommitInfo | None:
        ...


def create_source(config: AppConfig, base_dir: Path | None = None) -> Source:
    """Instantiate the provider named by ``config.repository_provider``."""
    if config.repository_provider == "memory":
        from blogsync.sources.memory import MemorySource

        location = Path(config.source_location)
        if base_dir is not None and not location.is_absolute():
            location = base_dir / location
        if location.is_dir():
            return MemorySource.from_directory(location)
        return MemorySource()

    from blogsync.sources.git import GitSource

    return GitSource(
        config.source_location,
        config.resolve_checkout_dir(base_dir),
        branch=config.branch,
        timeout=config.source_timeout,
    )
