"""Utility helpers for working with repository file names."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable, Iterator


def iter_content_names(names: Iterable[str], extension: str = ".md") -> Iterator[str]:
    """Yield names carrying the content extension, ignoring everything else."""
    suffix = extension.lower()
    for name in names:
        if PurePosixPath(name).suffix.lower() == suffix:
            yield name


def identity_of(name: str) -> str:
    """Document identity for a name relative to its language folder."""
    return PurePosixPath(name).with_suffix("").as_posix()


def relative_to_folder(path: str, folder: str) -> str | None:
    """Return ``path`` relative to ``folder``, or ``None`` when it lies outside."""
    prefix = folder.strip("/") + "/" if folder.strip("/") else ""
    if not path.startswith(prefix):
        return None
    return path[len(prefix) :]


def join_path(folder: str, name: str) -> str:
    """Join repository path segments, ignoring an empty folder."""
    folder = folder.strip("/")
    return f"{folder}/{name}" if folder else name
