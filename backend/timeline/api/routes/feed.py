"""Feed Routes — one-shot feed reads and the SSE live feed.

Invariants:
    - Every SSE "snapshot" event carries the full ordered feed, never a diff
    - One live subscription per view_id: reconnecting with the same id replaces it
    - The subscription is opened and cancelled inside the response generator, so a
      response whose body is never iterated registers nothing
    - Profile reads are one-shot and unbounded; the global feed is capped by page size

Design Decisions:
    - Snapshot callback offers into a one-slot LatestEvent mailbox; a stalled client
      holds at most one pending snapshot and receives the newest when it resumes
    - Store errors become an SSE "error" event (TimelineError.to_sse_event) and end the stream
"""

import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from timeline.api.dependencies import Services, get_services
from timeline.core.errors import StoreError, TimelineError
from timeline.core.feed_projection import FeedEntry, FeedScope
from timeline.schemas.post import FeedResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["feed"])

# Anti-buffering: nginx (X-Accel-Buffering) and browsers (Cache-Control)
# would otherwise batch small chunks.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}
_KEEPALIVE_SECONDS = 15


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def _scope(author: str | None) -> FeedScope:
    return FeedScope.by_author(author) if author else FeedScope.global_feed()


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    limit: int | None = Query(None, ge=1, le=100),
    services: Services = Depends(get_services),
):
    entries = await services.subscriptions.fetch_feed(FeedScope.global_feed(), limit)
    return FeedResponse.from_entries(entries, services.assets.resolve_url)


@router.get("/profiles/{author_id}/posts", response_model=FeedResponse)
async def get_profile_posts(
    author_id: str, services: Services = Depends(get_services),
):
    """Everything one author has posted, newest first."""
    entries = await services.subscriptions.fetch_feed(FeedScope.by_author(author_id))
    return FeedResponse.from_entries(entries, services.assets.resolve_url)


class LatestEvent:
    """Per-connection mailbox holding only the newest undelivered event.

    Snapshots are full replacements, so a newer one displaces a pending one.
    A pending error event is never displaced: it ends the stream.
    """

    def __init__(self):
        self._queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=1)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, event: dict) -> None:
        if self._queue.full():
            stale = self._queue.get_nowait()
            if stale["type"] == "error":
                self._queue.put_nowait(stale)
                return
        self._queue.put_nowait(event)

    async def next(self, timeout: float) -> dict:
        return await asyncio.wait_for(self._queue.get(), timeout)


@router.get("/feed/stream")
async def stream_feed(
    author: str | None = Query(None),
    view_id: str | None = Query(None, max_length=64),
    services: Services = Depends(get_services),
):
    """SSE live feed: a snapshot event on open and after every change."""
    view_key = view_id or uuid.uuid4().hex
    mailbox = LatestEvent()

    def on_snapshot(entries: tuple[FeedEntry, ...]) -> None:
        feed = FeedResponse.from_entries(entries, services.assets.resolve_url)
        mailbox.offer({"type": "snapshot", "data": feed.model_dump()})

    def on_error(exc: Exception) -> None:
        if not isinstance(exc, TimelineError):
            exc = StoreError(str(exc), "document store", "subscribe")
        mailbox.offer(exc.to_sse_event())

    async def event_generator():
        subscription = None
        try:
            subscription = services.subscriptions.open_feed(
                view_key, _scope(author), on_snapshot, on_error=on_error,
            )
            while subscription.active:
                try:
                    event = await mailbox.next(_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield sse_line(event)
                if event["type"] == "error":
                    return
        except asyncio.CancelledError:
            logger.info("Client disconnected from feed", extra={"view_key": view_key})
        finally:
            if subscription is not None:
                subscription.cancel()

    return StreamingResponse(
        event_generator(), media_type="text/event-stream", headers=_SSE_HEADERS,
    )
