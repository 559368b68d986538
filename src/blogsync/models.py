"""Core blogsync data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """History of one file as reported by the source of truth."""

    created_at: datetime
    updated_at: datetime
    author: str = ""


@dataclass(frozen=True, slots=True)
class DocumentMeta:
    """Resolved metadata of a document."""

    title: str
    author: str
    created_at: datetime
    updated_at: datetime
    category: str | None = None
    tags: frozenset[str] = frozenset()
    published: bool = True
    title_image_path: str | None = None

    @property
    def year_month(self) -> str:
        return self.created_at.strftime("%Y-%m")


@dataclass(frozen=True, slots=True)
class Document:
    """One parsed blog post.

    Documents are never mutated; a changed file produces a new instance.
    """

    identity: str
    path: str
    raw: bytes
    rendered: str
    meta: DocumentMeta
    # lowercased title and source text for substring queries
    search_text: str = ""


@dataclass(frozen=True, slots=True)
class SiteSettings:
    """Per-language blog settings read from the settings file."""

    title: str = "Blog"
    sub_title: str | None = None
    logo_path: str | None = None
    background_image_path: str | None = None
    styles_path: str | None = None
    social: Mapping[str, Any] = field(default_factory=dict)
