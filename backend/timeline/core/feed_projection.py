"""Feed Projection — maps raw store records to FeedEntry and keeps them ordered.

Invariants:
    - Ordering: createdAt descending, ties broken by id ascending (lexical)
    - A missing / empty asset field projects to NoAsset, never an error
    - FeedProjector holds only the latest snapshot; iterating it restarts from
      the first entry every time
    - FeedScope only selects records; the caller supplies the page limit

Design Decisions:
    - Sort in Python even when the store already ordered the query: the store
      contract does not promise the id tie-break, the projector does
    - Tuple snapshot: replaced wholesale on every delivery, never mutated in place
"""

from collections.abc import Iterator
from dataclasses import dataclass

from timeline.core.assets import AssetState, Attached, asset_state_from_field
from timeline.core.domain_types import (
    FeedScopeKind, POSTS_COLLECTION, ANONYMOUS_DISPLAY_NAME,
)
from timeline.core.repository_protocols import StoreQuery


@dataclass(frozen=True)
class FeedScope:
    """Selects the records a feed view shows."""
    kind: FeedScopeKind = FeedScopeKind.GLOBAL
    author_id: str | None = None

    @classmethod
    def global_feed(cls) -> "FeedScope":
        return cls(FeedScopeKind.GLOBAL)

    @classmethod
    def by_author(cls, author_id: str) -> "FeedScope":
        return cls(FeedScopeKind.BY_AUTHOR, author_id)

    def to_query(
        self, limit: int | None, collection: str = POSTS_COLLECTION,
    ) -> StoreQuery:
        where = None
        if self.kind == FeedScopeKind.BY_AUTHOR:
            where = ("authorId", self.author_id)
        return StoreQuery(
            collection=collection, order_by="createdAt",
            descending=True, limit=limit, where=where,
        )


@dataclass(frozen=True)
class FeedEntry:
    """UI-agnostic view of a post."""
    id: str
    body: str
    author_id: str
    username: str
    created_at: int
    updated_at: int | None
    asset: AssetState

    @property
    def has_asset(self) -> bool:
        return isinstance(self.asset, Attached)


def project_record(record: dict) -> FeedEntry:
    """Map one raw record to a FeedEntry."""
    return FeedEntry(
        id=str(record["id"]),
        body=record.get("body", ""),
        author_id=record.get("authorId", ""),
        username=record.get("username") or ANONYMOUS_DISPLAY_NAME,
        created_at=int(record.get("createdAt", 0)),
        updated_at=record.get("updatedAt"),
        asset=asset_state_from_field(record.get("asset")),
    )


def feed_order_key(entry: FeedEntry) -> tuple[int, str]:
    return (-entry.created_at, entry.id)


def order_entries(
    entries: list[FeedEntry], limit: int | None = None,
) -> tuple[FeedEntry, ...]:
    ordered = sorted(entries, key=feed_order_key)
    if limit is not None:
        ordered = ordered[:limit]
    return tuple(ordered)


class FeedProjector:
    """Latest ordered snapshot of a feed. Pure: no IO, no callbacks."""

    def __init__(self, limit: int | None = None):
        self.limit = limit
        self._entries: tuple[FeedEntry, ...] = ()

    def apply_snapshot(self, records: list[dict]) -> tuple[FeedEntry, ...]:
        self._entries = order_entries(
            [project_record(r) for r in records], self.limit,
        )
        return self._entries

    def __iter__(self) -> Iterator[FeedEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, post_id: str) -> FeedEntry | None:
        return next((e for e in self._entries if e.id == post_id), None)
