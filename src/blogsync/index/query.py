"""Read-side query interface over the published snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from blogsync.index.partition import Aggregates
from blogsync.index.store import IndexStore
from blogsync.models import Document, SiteSettings


@dataclass(slots=True)
class ListOptions:
    published_only: bool = True
    category: str | None = None
    tag: str | None = None
    year_month: str | None = None
    author: str | None = None
    query: str | None = None
    limit: int | None = None
    offset: int = 0

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must not be negative")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must not be negative")

    def candidates(self, views: Aggregates) -> Tuple[str, ...]:
        """Narrowest precomputed view for these filters, in date order."""
        if self.category is not None:
            return views.by_category.get(self.category, ())
        if self.tag is not None:
            return views.by_tag.get(self.tag, ())
        if self.year_month is not None:
            return views.by_date_bucket.get(self.year_month, ())
        return views.by_date

    def matches(self, document: Document) -> bool:
        meta = document.meta
        if self.published_only and not meta.published:
            return False
        if self.category is not None and meta.category != self.category:
            return False
        if self.tag is not None and self.tag not in meta.tags:
            return False
        if self.year_month is not None and meta.year_month != self.year_month:
            return False
        if self.author is not None and meta.author != self.author:
            return False
        if self.query:
            needle = self.query.lower()
            if needle not in document.search_text:
                return False
        return True


class IndexQuery:
    """High-level API to query the published index.

    Each call reads exactly one snapshot, so results never mix two publishes.
    """

    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def languages(self) -> Tuple[str, ...]:
        return tuple(self.store.current().partitions)

    def get(self, language: str, identity: str) -> Document | None:
        """Look up a document by identity, published or not."""
        partition = self.store.current().partition(language)
        if partition is None:
            return None
        return partition.documents.get(identity)

    def list(self, language: str, options: ListOptions | None = None, **filters) -> List[Document]:
        if options is None:
            options = ListOptions(**filters)
        elif filters:
            raise TypeError("Pass either options or keyword filters, not both")
        partition = self.store.current().partition(language)
        if partition is None:
            return []
        documents = partition.documents
        selected = [
            documents[identity]
            for identity in options.candidates(partition.views(options.published_only))
            if options.matches(documents[identity])
        ]
        end = None if options.limit is None else options.offset + options.limit
        return selected[options.offset : end]

    def date_buckets(self, language: str, published_only: bool = True) -> List[Tuple[str, int]]:
        """``(YYYY-MM, count)`` pairs, newest month first."""
        partition = self.store.current().partition(language)
        if partition is None:
            return []
        buckets = partition.views(published_only).by_date_bucket
        return [(bucket, len(buckets[bucket])) for bucket in sorted(buckets, reverse=True)]

    def settings(self, language: str) -> SiteSettings | None:
        partition = self.store.current().partition(language)
        return None if partition is None else partition.settings
