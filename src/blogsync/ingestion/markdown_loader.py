"""Markdown post parsing.

Turns the bytes of one post (plus an optional sibling metadata file) into a
:class:`~blogsync.models.Document`. Rendering uses Python-Markdown, metadata
blocks are YAML read with PyYAML.

Title resolution, first match wins:

1. ``title`` from the metadata file or the inline metadata block,
2. a leading ``# Heading`` line,
3. the humanized file name.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Mapping

import markdown
import yaml

from blogsync.errors import InvalidFormat, MalformedDocument
from blogsync.models import CommitInfo, Document, DocumentMeta, SiteSettings
from blogsync.utils.files import identity_of
from blogsync.utils.text import humanize_name, split_inline_meta, split_leading_heading

LOGGER = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]

_FALSE_STRINGS = {"false", "no", "off", "0"}
_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d")

CommitInfoFn = Callable[[str], "CommitInfo | None"]


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS, output_format="html")


def parse_metadata(data: bytes | str) -> Dict[str, Any]:
    """Parse a YAML metadata block into a mapping.

    Raises:
        InvalidFormat: if the block is not valid YAML or not a mapping.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidFormat(f"Metadata is not UTF-8: {exc}") from exc
    try:
        loaded = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise InvalidFormat(f"Invalid YAML metadata: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise InvalidFormat(f"Metadata must be a mapping, got {type(loaded).__name__}")
    return {str(key): value for key, value in loaded.items()}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _coerce_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            pass
        for fmt in _TIMESTAMP_FORMATS:
            try:
                return _as_utc(datetime.strptime(text, fmt))
            except ValueError:
                continue
    return None


def _coerce_tags(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [str(item) for item in value if item is not None]
    else:
        items = [str(value)]
    return frozenset(item.strip() for item in items if item.strip())


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _split_inline_metadata(name: str, text: str) -> tuple[Dict[str, Any], str]:
    """Return the inline metadata and the body.

    An invalid block is ignored and the text is kept whole.
    """
    block, body = split_inline_meta(text)
    if block is None:
        return {}, text
    try:
        meta = parse_metadata(block)
    except InvalidFormat as exc:
        LOGGER.warning("Ignoring inline block of %s: %s", name, exc)
        return {}, text
    if block.strip() and not meta:
        return {}, text
    return meta, body


def _collect_metadata(
    name: str, inline_meta: Mapping[str, Any], meta_bytes: bytes | None
) -> Dict[str, Any]:
    """Merge inline and file metadata; the file wins on conflicting keys."""
    merged: Dict[str, Any] = dict(inline_meta)
    if meta_bytes is not None:
        try:
            merged.update(parse_metadata(meta_bytes))
        except InvalidFormat as exc:
            LOGGER.warning("Ignoring metadata file of %s: %s", name, exc)
    return merged


def _timestamp_field(name: str, meta: Mapping[str, Any], key: str) -> datetime | None:
    if meta.get(key) is None:
        return None
    value = _coerce_timestamp(meta[key])
    if value is None:
        LOGGER.warning("Ignoring unreadable %s %r in %s", key, meta[key], name)
    return value


def parse_document(
    name: str,
    raw: bytes,
    meta_bytes: bytes | None,
    commit_info_of: CommitInfoFn,
    *,
    path: str | None = None,
    now: datetime | None = None,
) -> Document:
    """Build a document from already fetched bytes.

    ``name`` is relative to the language folder and determines the identity,
    ``path`` is the repository path handed to ``commit_info_of``.

    Raises:
        MalformedDocument: if ``raw`` is not UTF-8 text.
    """
    path = path or name
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedDocument(name, f"not valid UTF-8 ({exc.reason})") from exc

    inline_meta, body = _split_inline_metadata(name, text)
    meta = _collect_metadata(name, inline_meta, meta_bytes)
    heading, body = split_leading_heading(body)

    title = _optional_str(meta.get("title")) or heading or humanize_name(name)

    commit = commit_info_of(path)
    fallback = now or datetime.now(timezone.utc)
    created_at = _timestamp_field(name, meta, "created_at") or (
        commit.created_at if commit else fallback
    )
    updated_at = _timestamp_field(name, meta, "updated_at") or (
        commit.updated_at if commit else fallback
    )
    author = _optional_str(meta.get("author")) or (commit.author if commit else "")

    document_meta = DocumentMeta(
        title=title,
        author=author,
        created_at=_as_utc(created_at),
        updated_at=_as_utc(updated_at),
        category=_optional_str(meta.get("category")),
        tags=_coerce_tags(meta.get("tags")),
        published=_coerce_bool(meta["published"]) if meta.get("published") is not None else True,
        title_image_path=_optional_str(meta.get("title_image_path")),
    )
    return Document(
        identity=identity_of(name),
        path=path,
        raw=raw,
        rendered=render_markdown(body),
        meta=document_meta,
        search_text=f"{title}\n{text}".lower(),
    )


def parse_site_settings(data: bytes | None) -> SiteSettings:
    """Read blog settings; missing or invalid files give the defaults."""
    if data is None:
        return SiteSettings()
    try:
        values = parse_metadata(data)
    except InvalidFormat as exc:
        LOGGER.warning("Ignoring invalid blog settings: %s", exc)
        return SiteSettings()
    social = values.get("social")
    return SiteSettings(
        title=_optional_str(values.get("title")) or SiteSettings().title,
        sub_title=_optional_str(values.get("sub_title")),
        logo_path=_optional_str(values.get("logo_path")),
        background_image_path=_optional_str(values.get("background_image_path")),
        styles_path=_optional_str(values.get("styles_path")),
        social=dict(social) if isinstance(social, dict) else {},
    )
