"""Text helpers for titles, headings and inline metadata blocks."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

INLINE_META_MARKER = "<><><><><><><><>"

_HEADING_RE = re.compile(r"\A\s*#(?!#)[ \t]*(\S[^\n]*)")
_SEPARATORS_RE = re.compile(r"[-_\s]+")


def humanize_name(name: str) -> str:
    """Turn a file name such as ``my-first_post.md`` into ``My First Post``."""
    stem = PurePosixPath(name).stem
    words = [word for word in _SEPARATORS_RE.split(stem) if word]
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def split_leading_heading(text: str) -> tuple[str | None, str]:
    """Return ``(heading, rest)`` when the text starts with a level one heading.

    Only a single ``#`` counts; a leading ``## Subtitle`` stays in the body
    and is not used as the title.
    """
    match = _HEADING_RE.match(text)
    if match is None:
        return None, text
    heading = match.group(1).strip().rstrip("#").strip()
    if not heading:
        return None, text
    return heading, text[match.end() :].lstrip("\r\n")


def split_inline_meta(text: str) -> tuple[str | None, str]:
    """Split ``text`` into ``(meta_block, body)``.

    The block is everything before the marker line; an optional opening marker
    at the very top is ignored.
    """
    if INLINE_META_MARKER not in text:
        return None, text
    stripped = text.lstrip()
    if stripped.startswith(INLINE_META_MARKER):
        stripped = stripped[len(INLINE_META_MARKER) :]
        if INLINE_META_MARKER not in stripped:
            return None, text
    block, _, body = stripped.partition(INLINE_META_MARKER)
    return block, body.lstrip("\r\n")
