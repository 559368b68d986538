"""Repository synchronization.

One :class:`Synchronizer` owns every write to the :class:`IndexStore`. A cycle
asks the source for changes since the last marker, re-parses only affected
files, builds the complete next snapshot off to the side and publishes it
with one reference swap. Any failure leaves the previous snapshot in place.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Set

from blogsync.config import AppConfig
from blogsync.errors import NotFound, SourceUnreachable
from blogsync.index.collection import build_collection
from blogsync.index.partition import LanguagePartition
from blogsync.index.query import IndexQuery
from blogsync.index.store import IndexStore
from blogsync.ingestion.markdown_loader import parse_site_settings
from blogsync.models import SiteSettings
from blogsync.sources.base import DiffStatus, Source, SourceDiff, create_source
from blogsync.utils.files import identity_of, join_path, relative_to_folder

LOGGER = logging.getLogger(__name__)

META_SUFFIX = ".yml"


class SyncState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    REBUILDING = "rebuilding"
    PUBLISHING = "publishing"


class CycleOutcome(str, Enum):
    SKIPPED = "skipped"
    NO_CHANGES = "no_changes"
    UNREACHABLE = "unreachable"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass(slots=True)
class LanguageStats:
    rebuilt: int = 0
    removed: int = 0
    failed: int = 0


@dataclass(slots=True)
class CycleStats:
    outcome: CycleOutcome
    marker: str | None = None
    languages: Dict[str, LanguageStats] = field(default_factory=dict)


@dataclass(slots=True)
class _LanguagePlan:
    rebuild: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)
    settings_changed: bool = False

    def __bool__(self) -> bool:
        return bool(self.rebuild or self.removed or self.settings_changed)


class Synchronizer:
    """Builds and refreshes the published index from a source of truth."""

    def __init__(self, config: AppConfig, source: Source, store: IndexStore) -> None:
        self.config = config
        self.source = source
        self.store = store
        self.consecutive_failures = 0
        self.last_stats: CycleStats | None = None
        self._marker: str | None = None
        self._ready = False
        self._state = SyncState.IDLE
        self._cycle_lock = threading.Lock()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def marker(self) -> str | None:
        return self._marker

    @property
    def ready(self) -> bool:
        """Whether an initial build has been published."""
        return self._ready

    # Language layout

    def _relative(self, language: str, path: str, folder: str) -> str | None:
        rel = relative_to_folder(path, folder)
        if rel is None or language != self.config.default_language:
            return rel
        if rel.split("/", 1)[0] in self.config.languages[1:]:
            return None
        return rel

    def _meta_folder(self, language: str) -> str:
        if language == self.config.default_language:
            return self.config.meta_folder
        return join_path(self.config.meta_folder, language)

    def _is_content(self, name: str) -> bool:
        return name.lower().endswith(self.config.extension.lower())

    def _fetch(self, language: str):
        folder = self.config.language_folder(language)

        def fetch(name: str) -> tuple[bytes, bytes | None]:
            raw = self.source.read_file(join_path(folder, name))
            try:
                meta = self.source.read_file(self.config.meta_path(language, identity_of(name)))
            except NotFound:
                meta = None
            return raw, meta

        return fetch

    def _read_settings(self, language: str) -> SiteSettings:
        try:
            data = self.source.read_file(self.config.settings_path(language))
        except NotFound:
            data = None
        return parse_site_settings(data)

    # Building

    def _build_language(self, language: str) -> tuple[LanguagePartition, LanguageStats]:
        folder = self.config.language_folder(language)
        names = [
            name
            for name in self.source.list_files(folder)
            if self._relative(language, join_path(folder, name), folder) is not None
        ]
        result = build_collection(
            names,
            self._fetch(language),
            self.source.commit_info,
            folder=folder,
            extension=self.config.extension,
        )
        partition = LanguagePartition.build(
            language, result.documents, self._read_settings(language)
        )
        stats = LanguageStats(rebuilt=len(result.documents), failed=len(result.failed))
        return partition, stats

    def _plan(self, language: str, diff: SourceDiff) -> _LanguagePlan:
        plan = _LanguagePlan()
        folder = self.config.language_folder(language)
        meta_folder = self._meta_folder(language)
        for path in diff.paths:
            rel = self._relative(language, path, folder)
            if rel == self.config.settings_file:
                plan.settings_changed = True
            elif rel is not None and self._is_content(rel):
                (plan.removed if path in diff.removed else plan.rebuild).add(rel)
                continue
            meta_rel = self._relative(language, path, meta_folder)
            if meta_rel is not None and meta_rel.endswith(META_SUFFIX):
                plan.rebuild.add(meta_rel[: -len(META_SUFFIX)] + self.config.extension)
        plan.rebuild -= plan.removed
        return plan

    def _rebuild_language(
        self, partition: LanguagePartition, plan: _LanguagePlan
    ) -> tuple[LanguagePartition, LanguageStats]:
        language = partition.language
        result = build_collection(
            sorted(plan.rebuild),
            self._fetch(language),
            self.source.commit_info,
            folder=self.config.language_folder(language),
            extension=self.config.extension,
        )
        removed = {identity_of(name) for name in plan.removed} | result.excluded_identities
        changed = {identity_of(name) for name in plan.rebuild}
        settings = self._read_settings(language) if plan.settings_changed else None
        stats = LanguageStats(
            rebuilt=len(result.documents),
            removed=len(removed & set(partition.documents)),
            failed=len(result.failed),
        )
        return partition.updated(changed, removed, result.documents, settings), stats

    # Cycles

    def initial_build(self) -> CycleOutcome:
        """Build every language from scratch and publish the result."""
        with self._cycle_lock:
            try:
                return self._full_build()
            finally:
                self._state = SyncState.IDLE

    def _full_build(self) -> CycleOutcome:
        self._state = SyncState.CHECKING
        try:
            marker = self.source.prepare()
        except SourceUnreachable as exc:
            return self._unreachable(exc)
        self.consecutive_failures = 0
        try:
            self._state = SyncState.REBUILDING
            partitions: Dict[str, LanguagePartition] = {}
            stats: Dict[str, LanguageStats] = {}
            for language in self.config.languages:
                partitions[language], stats[language] = self._build_language(language)
            self._state = SyncState.PUBLISHING
            self.store.publish(self.store.current().successor(partitions, marker))
        except Exception:
            return self._failed()
        self._marker = marker
        self._ready = True
        self.last_stats = CycleStats(CycleOutcome.PUBLISHED, marker, stats)
        LOGGER.info(
            "Initial build published: %s",
            ", ".join(f"{lang}={len(p.documents)}" for lang, p in partitions.items()),
        )
        return CycleOutcome.PUBLISHED

    def tick(self) -> CycleOutcome:
        """Run one cycle unless another one is still in progress."""
        if not self._cycle_lock.acquire(blocking=False):
            LOGGER.warning("Skipping tick: a synchronization cycle is still running")
            return CycleOutcome.SKIPPED
        try:
            if not self._ready:
                return self._full_build()
            return self._incremental()
        finally:
            self._state = SyncState.IDLE
            self._cycle_lock.release()

    def _unreachable(self, exc: Exception | None = None) -> CycleOutcome:
        self.consecutive_failures += 1
        LOGGER.warning(
            "Source unreachable (%d consecutive), keeping current index%s",
            self.consecutive_failures,
            f": {exc}" if exc else "",
        )
        self.last_stats = CycleStats(CycleOutcome.UNREACHABLE, self._marker)
        return CycleOutcome.UNREACHABLE

    def _failed(self) -> CycleOutcome:
        self.consecutive_failures += 1
        LOGGER.exception(
            "Synchronization cycle aborted, keeping snapshot %d", self.store.current().version
        )
        self.last_stats = CycleStats(CycleOutcome.FAILED, self._marker)
        return CycleOutcome.FAILED

    def _incremental(self) -> CycleOutcome:
        self._state = SyncState.CHECKING
        try:
            diff = self.source.diff_since(self._marker)
        except SourceUnreachable as exc:
            return self._unreachable(exc)
        if diff.status is DiffStatus.UNREACHABLE:
            return self._unreachable()
        self.consecutive_failures = 0
        if diff.status is DiffStatus.NONE:
            if diff.marker is not None:
                self._marker = diff.marker
            self.last_stats = CycleStats(CycleOutcome.NO_CHANGES, self._marker)
            return CycleOutcome.NO_CHANGES

        try:
            self._state = SyncState.REBUILDING
            previous = self.store.current()
            partitions = dict(previous.partitions)
            stats: Dict[str, LanguageStats] = {}
            for language in self.config.languages:
                partition = partitions.get(language)
                if partition is None:
                    partitions[language], stats[language] = self._build_language(language)
                    continue
                plan = self._plan(language, diff)
                if plan:
                    partitions[language], stats[language] = self._rebuild_language(partition, plan)
            self._state = SyncState.PUBLISHING
            self.store.publish(previous.successor(partitions, diff.marker))
        except Exception:
            return self._failed()

        self._marker = diff.marker
        self.last_stats = CycleStats(CycleOutcome.PUBLISHED, diff.marker, stats)
        LOGGER.info(
            "Published snapshot %d: %s",
            self.store.current().version,
            ", ".join(
                f"{lang} rebuilt={s.rebuilt} removed={s.removed} failed={s.failed}"
                for lang, s in stats.items()
            )
            or "no content changes",
        )
        return CycleOutcome.PUBLISHED


class Poller(threading.Thread):
    """Thread that ticks the synchronizer every poll interval."""

    def __init__(self, synchronizer: Synchronizer, config: AppConfig) -> None:
        super().__init__(daemon=True, name="blogsync-poller")
        self.synchronizer = synchronizer
        self.config = config
        self._stop_event = threading.Event()

    def next_delay(self) -> float:
        """Poll interval, stretched by backoff after consecutive failures."""
        interval = self.config.poll_interval
        failures = self.synchronizer.consecutive_failures
        if not failures:
            return interval
        ceiling = max(self.config.max_poll_interval, interval)
        return min(interval * self.config.backoff_factor ** failures, ceiling)

    def run(self) -> None:
        while not self._stop_event.wait(self.next_delay()):
            try:
                self.synchronizer.tick()
            except Exception:  # pragma: no cover - tick handles its own failures
                LOGGER.exception("Unexpected error in poller")

    def stop(self, timeout: float | None = None) -> None:
        """Signal the poller to stop and wait for it."""
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)


@dataclass
class BlogIndex:
    """Handle bundling the published index with the components that feed it."""

    config: AppConfig
    source: Source
    store: IndexStore
    query: IndexQuery
    synchronizer: Synchronizer
    poller: Poller | None = None

    def close(self) -> None:
        if self.poller is not None:
            self.poller.stop()
            self.poller = None

    def __enter__(self) -> "BlogIndex":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def start_index(
    config: AppConfig,
    source: Source | None = None,
    *,
    base_dir: Path | None = None,
    start_polling: bool | None = None,
) -> BlogIndex:
    """Build the index once and start polling when enabled."""
    if source is None:
        source = create_source(config, base_dir)
    store = IndexStore()
    synchronizer = Synchronizer(config, source, store)
    synchronizer.initial_build()
    index = BlogIndex(config, source, store, IndexQuery(store), synchronizer)
    if config.polling_enabled if start_polling is None else start_polling:
        index.poller = Poller(synchronizer, config)
        index.poller.start()
    return index
