"""Published index state."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from blogsync.index.partition import LanguagePartition

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable view of every language partition at one point in time."""

    partitions: Mapping[str, LanguagePartition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    version: int = 0
    marker: str | None = None
    published_at: datetime = field(default_factory=_utcnow)

    def partition(self, language: str) -> LanguagePartition | None:
        return self.partitions.get(language)

    def successor(
        self, partitions: Mapping[str, LanguagePartition], marker: str | None
    ) -> "Snapshot":
        return Snapshot(
            partitions=MappingProxyType(dict(partitions)),
            version=self.version + 1,
            marker=marker,
        )


class IndexStore:
    """Single-writer holder of the currently published snapshot.

    ``current()`` takes no lock: it reads one attribute, and snapshots are
    never modified after publication.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._snapshot = initial if initial is not None else Snapshot()
        self._write_lock = threading.Lock()

    def current(self) -> Snapshot:
        return self._snapshot

    def publish(self, snapshot: Snapshot) -> None:
        with self._write_lock:
            if snapshot.version <= self._snapshot.version and self._snapshot.version:
                raise ValueError(
                    f"Snapshot version {snapshot.version} is not newer than "
                    f"{self._snapshot.version}"
                )
            self._snapshot = snapshot
        LOGGER.debug("Published snapshot %d (marker %s)", snapshot.version, snapshot.marker)
