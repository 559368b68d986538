"""Tests for text utility functions."""

from __future__ import annotations

import pytest

from blogsync.utils.text import (
    INLINE_META_MARKER,
    humanize_name,
    split_inline_meta,
    split_leading_heading,
)


class TestHumanizeName:
    """Test humanize_name function."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("my-post.md", "My Post"),
            ("test_with_no_title.md", "Test With No Title"),
            ("already Spaced", "Already Spaced"),
            ("nested/dir/deep-post.md", "Deep Post"),
        ],
    )
    def test_humanize(self, name: str, expected: str) -> None:
        """Should replace separators and title-case every word."""
        assert humanize_name(name) == expected

    def test_collapses_repeated_separators(self) -> None:
        """Should not produce empty words."""
        assert humanize_name("a--b__c.md") == "A B C"


class TestSplitLeadingHeading:
    """Test split_leading_heading function."""

    def test_heading_extracted(self) -> None:
        """Should return the heading text and the rest."""
        heading, rest = split_leading_heading("# My Special title\n\nBody here\n")
        assert heading == "My Special title"
        assert rest == "Body here\n"

    def test_leading_blank_lines(self) -> None:
        """Should accept whitespace before the heading."""
        heading, rest = split_leading_heading("\n\n  # Title\nText")
        assert heading == "Title"
        assert rest == "Text"

    def test_no_heading(self) -> None:
        """Should leave text without heading untouched."""
        text = "Just a paragraph\n# Late heading"
        assert split_leading_heading(text) == (None, text)

    def test_second_level_heading_ignored(self) -> None:
        """Should only treat level one headings as titles."""
        text = "## Subsection\nText"
        assert split_leading_heading(text) == (None, text)

    def test_closing_hashes_removed(self) -> None:
        """Should strip ATX closing hashes."""
        heading, _ = split_leading_heading("# Title ##\n")
        assert heading == "Title"


class TestSplitInlineMeta:
    """Test split_inline_meta function."""

    def test_no_marker(self) -> None:
        """Should return no block when the marker is absent."""
        assert split_inline_meta("# Title\nBody") == (None, "# Title\nBody")

    def test_block_before_marker(self) -> None:
        """Should split block and body on the marker."""
        text = f"title: Hi\npublished: false\n{INLINE_META_MARKER}\n# Heading\nBody"
        block, body = split_inline_meta(text)
        assert block == "title: Hi\npublished: false\n"
        assert body == "# Heading\nBody"

    def test_opening_marker_ignored(self) -> None:
        """Should accept a block wrapped between two markers."""
        text = f"{INLINE_META_MARKER}\ncategory: games\n{INLINE_META_MARKER}\nBody"
        block, body = split_inline_meta(text)
        assert block.strip() == "category: games"
        assert body == "Body"
