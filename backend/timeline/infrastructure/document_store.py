"""SQL Document Store — DocumentStore protocol over SQLAlchemy, with live query fan-out.

Invariants:
    - Records leave this module as camelCase dicts with an "id" key (never ORM rows)
    - Every successful write schedules a refresh of each live query on that collection;
      the writer never waits for those refreshes
    - Per listener, a snapshot older than one already delivered is dropped
    - After unsubscribe() returns, the listener receives nothing more
    - update() on a missing id raises NotFoundError; delete() on a missing id is a no-op

Design Decisions:
    - In-process change notification: a single service process owns the writes, so
      re-running the listener's query after commit is enough to emulate push
    - Collections map to ORM models (FIELD_COLUMNS gives the field ↔ column map);
      unknown collections / fields are StoreErrors, not silent drops
    - Background task set keeps strong references until tasks finish
"""

import asyncio
import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import select

from timeline.core.domain_types import POSTS_COLLECTION
from timeline.core.errors import ErrorContext, NotFoundError, StoreError
from timeline.core.repository_protocols import (
    DELETE_FIELD, OnChange, OnError, StoreQuery, Unsubscribe,
)
from timeline.infrastructure.database import DatabaseSessionManager
from timeline.models.post import PostDocument

logger = logging.getLogger(__name__)

_STORE = "document store"


@dataclass
class _Listener:
    query: StoreQuery
    on_change: OnChange
    on_error: OnError | None = None
    active: bool = True
    requested: int = 0
    delivered: int = 0


class SqlDocumentStore:
    """DocumentStore backed by the posts table."""

    def __init__(
        self, db: DatabaseSessionManager, models: dict[str, type] | None = None,
    ):
        self.db = db
        self.models = models or {POSTS_COLLECTION: PostDocument}
        self._listeners: dict[str, dict[int, _Listener]] = defaultdict(dict)
        self._tasks: set[asyncio.Task] = set()
        self._keys = itertools.count(1)

    # ─── Writes ──────────────────────────────────────────────────

    async def add(self, collection: str, fields: dict) -> str:
        model = self._model(collection)
        row = model(**self._columns(model, fields, skip_deletes=True))
        async with self.db.session() as session:
            session.add(row)
            await session.commit()
            doc_id = row.id
        self._notify(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict) -> None:
        model = self._model(collection)
        values = self._columns(model, fields)
        async with self.db.session() as session:
            row = await session.get(model, doc_id)
            if row is None:
                raise NotFoundError(
                    "Document", doc_id, ErrorContext(post_id=doc_id, operation="update"),
                )
            for column, value in values.items():
                setattr(row, column, value)
            await session.commit()
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        model = self._model(collection)
        async with self.db.session() as session:
            row = await session.get(model, doc_id)
            if row is None:
                return
            await session.delete(row)
            await session.commit()
        self._notify(collection)

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, collection: str, doc_id: str) -> dict | None:
        model = self._model(collection)
        async with self.db.session() as session:
            row = await session.get(model, doc_id)
            return row.to_record() if row is not None else None

    async def query(self, query: StoreQuery) -> list[dict]:
        model = self._model(query.collection)
        order_col = getattr(model, self._column(model, query.order_by))
        stmt = select(model).order_by(
            order_col.desc() if query.descending else order_col.asc(),
            model.id.asc(),
        )
        if query.where is not None:
            field, value = query.where
            stmt = stmt.where(getattr(model, self._column(model, field)) == value)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [row.to_record() for row in result.scalars().all()]

    # ─── Live queries ────────────────────────────────────────────

    def subscribe(
        self, query: StoreQuery, on_change: OnChange, on_error: OnError | None = None,
    ) -> Unsubscribe:
        self._model(query.collection)
        key = next(self._keys)
        listener = _Listener(query, on_change, on_error)
        self._listeners[query.collection][key] = listener
        self._schedule(listener)

        def unsubscribe() -> None:
            listener.active = False
            self._listeners[query.collection].pop(key, None)

        return unsubscribe

    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())

    async def wait_idle(self) -> None:
        """Wait until every scheduled refresh has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for listeners in self._listeners.values():
            for listener in listeners.values():
                listener.active = False
            listeners.clear()
        for task in list(self._tasks):
            task.cancel()

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners[collection].values()):
            self._schedule(listener)

    def _schedule(self, listener: _Listener) -> None:
        listener.requested += 1
        task = asyncio.get_running_loop().create_task(
            self._refresh(listener, listener.requested),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self, listener: _Listener, seq: int) -> None:
        try:
            records = await self.query(listener.query)
        except Exception as e:
            if listener.active and listener.on_error is not None:
                await listener.on_error(e)
            else:
                logger.error(f"Live query refresh failed: {e}")
            return
        if not listener.active or seq < listener.delivered:
            return
        listener.delivered = seq
        try:
            await listener.on_change(records)
        except Exception:
            logger.exception("Snapshot consumer raised")

    # ─── Mapping ─────────────────────────────────────────────────

    def _model(self, collection: str) -> type:
        model = self.models.get(collection)
        if model is None:
            raise StoreError(f"unknown collection '{collection}'", _STORE, "resolve")
        return model

    @staticmethod
    def _column(model: type, field: str) -> str:
        column = model.FIELD_COLUMNS.get(field)
        if column is None:
            raise StoreError(f"unknown field '{field}'", _STORE, "map")
        return column

    def _columns(self, model: type, fields: dict, skip_deletes: bool = False) -> dict:
        values = {}
        for field, value in fields.items():
            if value is DELETE_FIELD:
                if skip_deletes:
                    continue
                value = None
            values[self._column(model, field)] = value
        return values
