"""Collection building: many content files into a document mapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List

from blogsync.errors import MalformedDocument, NotFound
from blogsync.ingestion.markdown_loader import CommitInfoFn, parse_document
from blogsync.models import Document
from blogsync.utils.files import identity_of, iter_content_names, join_path

LOGGER = logging.getLogger(__name__)

FetchFn = Callable[[str], "tuple[bytes, bytes | None]"]


@dataclass(slots=True)
class CollectionResult:
    documents: Dict[str, Document] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def excluded_identities(self) -> set[str]:
        """Identities that must not stay in the index after this build."""
        return {identity_of(name) for name in [*self.failed, *self.missing]}


def _parse_one(
    name: str,
    fetch: FetchFn,
    commit_info_of: CommitInfoFn,
    folder: str,
    now: datetime | None,
) -> Document | MalformedDocument | NotFound:
    try:
        raw, meta_bytes = fetch(name)
    except NotFound as exc:
        return exc
    try:
        return parse_document(
            name, raw, meta_bytes, commit_info_of, path=join_path(folder, name), now=now
        )
    except MalformedDocument as exc:
        return exc


def build_collection(
    names: Iterable[str],
    fetch: FetchFn,
    commit_info_of: CommitInfoFn,
    *,
    folder: str = "",
    extension: str = ".md",
    now: datetime | None = None,
) -> CollectionResult:
    """Parse every content file in ``names``.

    Files without the content extension are ignored. A file that cannot be read
    or parsed is left out of the result and reported in ``failed``/``missing``.
    """
    result = CollectionResult()
    for name in iter_content_names(names, extension):
        outcome = _parse_one(name, fetch, commit_info_of, folder, now)
        if isinstance(outcome, MalformedDocument):
            LOGGER.warning("Skipping malformed document %s", outcome)
            result.failed.append(name)
        elif isinstance(outcome, NotFound):
            LOGGER.warning("Skipping %s: file no longer exists", join_path(folder, name))
            result.missing.append(name)
        else:
            result.documents[outcome.identity] = outcome
    return result
