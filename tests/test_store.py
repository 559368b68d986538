"""Tests for the published index store."""

from __future__ import annotations

import threading

import pytest

from blogsync.index.partition import LanguagePartition
from blogsync.index.store import IndexStore, Snapshot


class TestSnapshot:
    """Test Snapshot dataclass."""

    def test_empty_default(self) -> None:
        """Should start without partitions at version zero."""
        snapshot = Snapshot()

        assert snapshot.version == 0
        assert snapshot.partition("en") is None
        assert dict(snapshot.partitions) == {}

    def test_successor(self) -> None:
        """Should bump the version and freeze the partitions."""
        partition = LanguagePartition.build("en", {})
        partitions = {"en": partition}

        successor = Snapshot().successor(partitions, "abc")
        partitions["bg"] = partition

        assert successor.version == 1
        assert successor.marker == "abc"
        assert successor.partition("en") is partition
        assert "bg" not in successor.partitions
        with pytest.raises(TypeError):
            successor.partitions["bg"] = partition  # type: ignore[index]


class TestIndexStore:
    """Test IndexStore class."""

    def test_current_before_publish(self) -> None:
        """Should expose a fully formed empty snapshot."""
        store = IndexStore()

        assert store.current().version == 0

    def test_publish_replaces_reference(self) -> None:
        """Should make the new snapshot visible while old readers keep theirs."""
        store = IndexStore()
        held = store.current()
        new = held.successor({"en": LanguagePartition.build("en", {})}, None)

        store.publish(new)

        assert store.current() is new
        assert held.partition("en") is None

    def test_publish_rejects_stale_snapshot(self) -> None:
        """Should refuse to go back to an older version."""
        store = IndexStore()
        first = store.current().successor({}, None)
        store.publish(first)
        store.publish(first.successor({}, None))

        with pytest.raises(ValueError):
            store.publish(first)

    def test_concurrent_readers(self) -> None:
        """Readers should only ever see whole snapshots, in publish order."""
        store = IndexStore()
        stop = threading.Event()
        errors: list[str] = []

        def reader() -> None:
            last = 0
            while not stop.is_set():
                snapshot = store.current()
                if snapshot.version and snapshot.marker != str(snapshot.version):
                    errors.append(f"torn snapshot {snapshot.version}")
                if snapshot.version < last:
                    errors.append(f"went back from {last} to {snapshot.version}")
                last = snapshot.version

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        try:
            for version in range(1, 201):
                store.publish(store.current().successor({}, str(version)))
        finally:
            stop.set()
            for thread in readers:
                thread.join()

        assert errors == []
        assert store.current().version == 200
