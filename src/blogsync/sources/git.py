"""Git-backed source of truth.

Works on a local checkout of ``url``. If the remote cannot be reached the
existing checkout is used as is and not updated. The author of a file is
the author of its first commit; ``created_at``/``updated_at`` are the dates
of its first and last commit.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List

from blogsync.errors import NotFound, SourceUnreachable
from blogsync.models import CommitInfo
from blogsync.sources.base import DiffStatus, SourceDiff

LOGGER = logging.getLogger(__name__)


class GitSource:
    def __init__(
        self,
        url: str,
        checkout_dir: Path,
        *,
        branch: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.checkout_dir = Path(checkout_dir)
        self.branch = branch
        self.timeout = timeout

    @property
    def upstream(self) -> str:
        return f"origin/{self.branch}" if self.branch else "@{u}"

    def _git(self, *args: str, cwd: Path | None = None) -> str:
        command = ["git", *args]
        try:
            completed = subprocess.run(
                command,
                cwd=cwd or self.checkout_dir,
                capture_output=True,
                encoding="utf-8",
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as exc:
            raise SourceUnreachable(f"git {args[0]} timed out after {self.timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            raise SourceUnreachable(f"git {args[0]} failed: {exc.stderr.strip()}") from exc
        except OSError as exc:
            raise SourceUnreachable(f"Unable to run git: {exc}") from exc
        return completed.stdout

    def _head(self) -> str:
        return self._git("rev-parse", "HEAD").strip()

    def prepare(self) -> str | None:
        """Clone the repository, or pull when a checkout already exists."""
        if not (self.checkout_dir / ".git").exists():
            LOGGER.info("Cloning repository %s into %s", self.url, self.checkout_dir)
            self.checkout_dir.parent.mkdir(parents=True, exist_ok=True)
            args = ["clone", self.url, str(self.checkout_dir)]
            if self.branch:
                args[1:1] = ["--branch", self.branch]
            self._git(*args, cwd=Path.cwd())
        else:
            try:
                output = self._git("pull", "--ff-only")
                LOGGER.info("Pulling from git repository: %s", output.strip() or "done")
            except SourceUnreachable as exc:
                LOGGER.error("Error while pulling from git repository: %s", exc)
        return self._head()

    def list_files(self, folder: str) -> List[str]:
        root = self.checkout_dir / folder
        if not root.is_dir():
            return []
        return sorted(
            path.relative_to(root).as_posix()
            for path in root.rglob("*")
            if path.is_file() and ".git" not in path.relative_to(self.checkout_dir).parts
        )

    def read_file(self, path: str) -> bytes:
        try:
            return (self.checkout_dir / path).read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise NotFound(path) from None

    def diff_since(self, marker: str | None) -> SourceDiff:
        LOGGER.info("Fetching data from %s", self.url)
        try:
            self._git("fetch", "--quiet", "origin")
            target = self._git("rev-parse", self.upstream).strip()
            since = marker or self._head()
        except SourceUnreachable as exc:
            LOGGER.warning("Source unreachable: %s", exc)
            return SourceDiff.unreachable(marker)

        if target == since:
            return SourceDiff.none(since)

        try:
            output = self._git("diff", "--name-status", "-z", "--no-renames", since, target)
            self._git("merge", "--ff-only", "--quiet", target)
        except SourceUnreachable as exc:
            LOGGER.warning("Unable to apply updates from %s: %s", self.url, exc)
            return SourceDiff.unreachable(marker)

        changed: set[str] = set()
        removed: set[str] = set()
        fields = output.split("\0")
        for status, path in zip(fields[::2], fields[1::2]):
            (removed if status.startswith("D") else changed).add(path)
        if not changed and not removed:
            return SourceDiff.none(target)
        LOGGER.info("There are %d new updates", len(changed) + len(removed))
        return SourceDiff(
            DiffStatus.CHANGED,
            changed=frozenset(changed),
            removed=frozenset(removed),
            marker=target,
        )

    def commit_info(self, path: str) -> CommitInfo | None:
        try:
            history = self._git("log", "--reverse", "--format=%an%x09%cI", "--", path)
            latest = self._git("log", "-1", "--format=%cI", "--", path).strip()
        except SourceUnreachable as exc:
            LOGGER.debug("No history for %s: %s", path, exc)
            return None
        lines = [line for line in history.splitlines() if line.strip()]
        if not lines or not latest:
            return None
        author, _, created = lines[0].partition("\t")
        return CommitInfo(
            created_at=datetime.fromisoformat(created.strip()),
            updated_at=datetime.fromisoformat(latest),
            author=author.strip(),
        )
