"""In-memory source of truth, used for tests and offline previews."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

from blogsync.errors import NotFound, SourceUnreachable
from blogsync.models import CommitInfo
from blogsync.sources.base import DiffStatus, SourceDiff
from blogsync.utils.files import relative_to_folder

LOGGER = logging.getLogger(__name__)


class MemorySource:
    """File tree kept in a dict; every write or delete bumps the version marker."""

    def __init__(
        self,
        files: Mapping[str, bytes | str] | None = None,
        commits: Mapping[str, CommitInfo] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._files: Dict[str, bytes] = {}
        self._commits: Dict[str, CommitInfo] = dict(commits or {})
        self._log: List[Tuple[int, str]] = []
        self._version = 0
        self._reachable = True
        for path, data in (files or {}).items():
            self._files[path.strip("/")] = data.encode("utf-8") if isinstance(data, str) else data

    @classmethod
    def from_directory(cls, root: Path) -> "MemorySource":
        root = Path(root)
        files = {
            path.relative_to(root).as_posix(): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file() and ".git" not in path.relative_to(root).parts
        }
        LOGGER.info("Loaded %d files from %s", len(files), root)
        return cls(files)

    @property
    def version(self) -> int:
        return self._version

    def write(self, path: str, data: bytes | str, commit: CommitInfo | None = None) -> None:
        path = path.strip("/")
        with self._lock:
            self._files[path] = data.encode("utf-8") if isinstance(data, str) else data
            if commit is not None:
                self._commits[path] = commit
            self._bump(path)

    def delete(self, path: str) -> None:
        path = path.strip("/")
        with self._lock:
            if self._files.pop(path, None) is None:
                raise NotFound(path)
            self._commits.pop(path, None)
            self._bump(path)

    def set_commit_info(self, path: str, commit: CommitInfo | None) -> None:
        with self._lock:
            if commit is None:
                self._commits.pop(path.strip("/"), None)
            else:
                self._commits[path.strip("/")] = commit

    def set_reachable(self, reachable: bool) -> None:
        self._reachable = reachable

    def _bump(self, path: str) -> None:
        self._version += 1
        self._log.append((self._version, path))

    def _check_reachable(self) -> None:
        if not self._reachable:
            raise SourceUnreachable("memory source is marked unreachable")

    def prepare(self) -> str | None:
        self._check_reachable()
        return str(self._version)

    def list_files(self, folder: str) -> List[str]:
        self._check_reachable()
        with self._lock:
            paths = list(self._files)
        names = (relative_to_folder(path, folder) for path in paths)
        return sorted(name for name in names if name)

    def read_file(self, path: str) -> bytes:
        self._check_reachable()
        try:
            return self._files[path.strip("/")]
        except KeyError:
            raise NotFound(path) from None

    def diff_since(self, marker: str | None) -> SourceDiff:
        if not self._reachable:
            return SourceDiff.unreachable(marker)
        since = int(marker) if marker else 0
        with self._lock:
            touched = {path for version, path in self._log if version > since}
            current = str(self._version)
            present = set(self._files)
        if not touched:
            return SourceDiff.none(current)
        return SourceDiff(
            DiffStatus.CHANGED,
            changed=frozenset(touched & present),
            removed=frozenset(touched - present),
            marker=current,
        )

    def commit_info(self, path: str) -> CommitInfo | None:
        return self._commits.get(path.strip("/"))
