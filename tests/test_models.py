"""Tests for core data models."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from blogsync.models import CommitInfo, Document, DocumentMeta, SiteSettings

WHEN = datetime(2017, 1, 20, 8, 35, 21, tzinfo=timezone.utc)


def make_meta(**overrides) -> DocumentMeta:
    values = dict(title="Title", author="meddle", created_at=WHEN, updated_at=WHEN)
    values.update(overrides)
    return DocumentMeta(**values)


class TestDocumentMeta:
    """Test DocumentMeta dataclass."""

    def test_defaults(self) -> None:
        """Should default to published, no category, no tags."""
        meta = make_meta()

        assert meta.published is True
        assert meta.category is None
        assert meta.tags == frozenset()
        assert meta.title_image_path is None

    def test_year_month(self) -> None:
        """Should bucket by creation month."""
        assert make_meta().year_month == "2017-01"

    def test_immutable(self) -> None:
        """Should reject field mutation."""
        meta = make_meta()
        with pytest.raises(dataclasses.FrozenInstanceError):
            meta.title = "Other"  # type: ignore[misc]


class TestDocument:
    """Test Document dataclass."""

    def test_equality(self) -> None:
        """Should compare documents by value."""
        first = Document("a", "posts/a.md", b"raw", "<p>raw</p>", make_meta())
        second = Document("a", "posts/a.md", b"raw", "<p>raw</p>", make_meta())

        assert first == second

    def test_inequality(self) -> None:
        """Should differ when the raw content differs."""
        first = Document("a", "posts/a.md", b"raw", "<p>raw</p>", make_meta())
        second = Document("a", "posts/a.md", b"other", "<p>other</p>", make_meta())

        assert first != second


class TestCommitInfo:
    """Test CommitInfo dataclass."""

    def test_default_author(self) -> None:
        """Should default to an empty author."""
        info = CommitInfo(created_at=WHEN, updated_at=WHEN)
        assert info.author == ""


class TestSiteSettings:
    """Test SiteSettings dataclass."""

    def test_defaults(self) -> None:
        """Should provide a generic title and empty social links."""
        settings = SiteSettings()
        assert settings.title == "Blog"
        assert settings.social == {}
