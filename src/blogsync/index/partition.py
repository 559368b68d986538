"""Per-language document mapping and its derived aggregate views."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import AbstractSet, Dict, Iterable, List, Mapping, Tuple

from blogsync.models import Document, SiteSettings

Identities = Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Aggregates:
    """Views over a document mapping, all holding identities in date order."""

    by_date: Identities = ()
    by_category: Mapping[str, Identities] = field(default_factory=dict)
    by_tag: Mapping[str, Identities] = field(default_factory=dict)
    by_date_bucket: Mapping[str, Identities] = field(default_factory=dict)


def merge(
    previous: Mapping[str, Document],
    changed: AbstractSet[str],
    removed: AbstractSet[str],
    rebuilt: Mapping[str, Document],
) -> Mapping[str, Document]:
    """Return ``previous`` with ``removed`` dropped and ``rebuilt`` written over it.

    A changed identity missing from ``rebuilt`` could not be parsed and is
    dropped too. Untouched documents are carried over as the same objects.
    """
    if not changed and not removed and not rebuilt:
        return previous
    merged: Dict[str, Document] = dict(previous)
    for identity in set(removed) | (set(changed) - set(rebuilt)):
        merged.pop(identity, None)
    merged.update(rebuilt)
    return MappingProxyType(merged)


def _sorted_by_date(documents: Iterable[Document]) -> List[Document]:
    by_identity = sorted(documents, key=lambda document: document.identity)
    return sorted(by_identity, key=lambda document: document.meta.created_at, reverse=True)


def _freeze(groups: Dict[str, List[str]]) -> Mapping[str, Identities]:
    return MappingProxyType({key: tuple(value) for key, value in sorted(groups.items())})


def derive_aggregates(documents: Mapping[str, Document]) -> Aggregates:
    """Recompute every aggregate from scratch.

    ``by_date`` is newest first; equal timestamps are ordered by identity.
    """
    ordered = _sorted_by_date(documents.values())
    by_category: Dict[str, List[str]] = {}
    by_tag: Dict[str, List[str]] = {}
    by_date_bucket: Dict[str, List[str]] = {}
    for document in ordered:
        meta = document.meta
        if meta.category is not None:
            by_category.setdefault(meta.category, []).append(document.identity)
        for tag in sorted(meta.tags):
            by_tag.setdefault(tag, []).append(document.identity)
        by_date_bucket.setdefault(meta.year_month, []).append(document.identity)
    return Aggregates(
        by_date=tuple(document.identity for document in ordered),
        by_category=_freeze(by_category),
        by_tag=_freeze(by_tag),
        by_date_bucket=_freeze(by_date_bucket),
    )


@dataclass(frozen=True, slots=True)
class LanguagePartition:
    language: str
    documents: Mapping[str, Document]
    aggregates: Aggregates
    public: Aggregates
    settings: SiteSettings = field(default_factory=SiteSettings)

    @classmethod
    def build(
        cls,
        language: str,
        documents: Mapping[str, Document],
        settings: SiteSettings | None = None,
    ) -> "LanguagePartition":
        frozen = documents if isinstance(documents, MappingProxyType) else MappingProxyType(dict(documents))
        published = {key: doc for key, doc in frozen.items() if doc.meta.published}
        return cls(
            language=language,
            documents=frozen,
            aggregates=derive_aggregates(frozen),
            public=derive_aggregates(published),
            settings=settings if settings is not None else SiteSettings(),
        )

    def updated(
        self,
        changed: AbstractSet[str],
        removed: AbstractSet[str],
        rebuilt: Mapping[str, Document],
        settings: SiteSettings | None = None,
    ) -> "LanguagePartition":
        """New partition with the changes merged in and aggregates recomputed."""
        documents = merge(self.documents, changed, removed, rebuilt)
        return LanguagePartition.build(
            self.language, documents, settings if settings is not None else self.settings
        )

    def views(self, published_only: bool) -> Aggregates:
        return self.public if published_only else self.aggregates
