"""Subscription Manager — live, ordered feed snapshots pushed from the document store.

Invariants:
    - Every delivery is the FULL ordered snapshot (createdAt desc, id asc), capped at limit
    - Global feeds default to page_size entries; by-author feeds are unbounded
    - At most one live subscription per view key; opening a second cancels the first
    - cancel() is idempotent; after it returns no further snapshot reaches the consumer,
      including a change already in flight (its result is dropped on arrival)
    - Registering/unregistering with the document store is the only side effect

Design Decisions:
    - Drop-on-arrival over abort: the store is not assumed to be able to cancel a
      query it already started, so the disposed flag is checked after every await
    - Consumer callbacks may be sync or async; they run on the caller's event loop
    - fetch_feed is the non-live read used by profile pages
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from timeline.core.domain_types import FEED_PAGE_SIZE, FeedScopeKind, POSTS_COLLECTION
from timeline.core.feed_projection import (
    FeedEntry, FeedProjector, FeedScope, order_entries, project_record,
)
from timeline.core.repository_protocols import DocumentStore, Unsubscribe

logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[tuple[FeedEntry, ...]], Awaitable[None] | None]
ErrorConsumer = Callable[[Exception], Awaitable[None] | None]


async def _call(callback: Callable, value) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """Handle for one live feed view. Dispose with cancel()."""

    def __init__(
        self,
        manager: "SubscriptionManager",
        view_key: str,
        scope: FeedScope,
        limit: int | None,
        on_snapshot: SnapshotConsumer,
        on_error: ErrorConsumer | None = None,
    ):
        self.view_key = view_key
        self.scope = scope
        self.projector = FeedProjector(limit)
        self.deliveries = 0
        self._manager = manager
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._unsubscribe: Unsubscribe | None = None
        self._disposed = False

    @property
    def active(self) -> bool:
        return not self._disposed

    @property
    def latest(self) -> tuple[FeedEntry, ...]:
        return tuple(self.projector)

    def _attach(self, unsubscribe: Unsubscribe) -> None:
        self._unsubscribe = unsubscribe

    async def _deliver(self, records: list[dict]) -> None:
        if self._disposed:
            logger.debug(
                "Dropped snapshot for cancelled subscription",
                extra={"view_key": self.view_key},
            )
            return
        entries = self.projector.apply_snapshot(records)
        self.deliveries += 1
        await _call(self._on_snapshot, entries)

    async def _fail(self, exc: Exception) -> None:
        if self._disposed:
            return
        logger.error(
            f"Feed subscription error: {exc}", extra={"view_key": self.view_key},
        )
        if self._on_error is not None:
            await _call(self._on_error, exc)

    def cancel(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        self._manager._forget(self)
        logger.debug("Subscription cancelled", extra={"view_key": self.view_key})


class SubscriptionManager:
    """Read path: document store subscription → FeedProjector → consumer."""

    def __init__(
        self,
        documents: DocumentStore,
        collection: str = POSTS_COLLECTION,
        page_size: int = FEED_PAGE_SIZE,
    ):
        self.documents = documents
        self.collection = collection
        self.page_size = page_size
        self._active: dict[str, Subscription] = {}

    @property
    def active_views(self) -> list[str]:
        return list(self._active)

    def open_feed(
        self,
        view_key: str,
        scope: FeedScope,
        on_snapshot: SnapshotConsumer,
        limit: int | None = None,
        on_error: ErrorConsumer | None = None,
    ) -> Subscription:
        limit = self._limit_for(scope, limit)
        previous = self._active.get(view_key)
        if previous is not None:
            previous.cancel()

        subscription = Subscription(
            self, view_key, scope, limit, on_snapshot, on_error,
        )
        self._active[view_key] = subscription
        try:
            unsubscribe = self.documents.subscribe(
                scope.to_query(limit, self.collection),
                subscription._deliver,
                subscription._fail,
            )
        except Exception:
            subscription.cancel()
            raise
        subscription._attach(unsubscribe)
        logger.info(
            "Feed opened (%s, limit=%s)", scope.kind.value, limit,
            extra={"view_key": view_key},
        )
        return subscription

    async def fetch_feed(
        self, scope: FeedScope, limit: int | None = None,
    ) -> tuple[FeedEntry, ...]:
        """One-shot ordered read (no live updates)."""
        limit = self._limit_for(scope, limit)
        records = await self.documents.query(scope.to_query(limit, self.collection))
        return order_entries([project_record(r) for r in records], limit)

    def _limit_for(self, scope: FeedScope, limit: int | None) -> int | None:
        if limit is not None:
            return limit
        return self.page_size if scope.kind == FeedScopeKind.GLOBAL else None

    def cancel_all(self) -> None:
        for subscription in list(self._active.values()):
            subscription.cancel()

    def _forget(self, subscription: Subscription) -> None:
        if self._active.get(subscription.view_key) is subscription:
            del self._active[subscription.view_key]
