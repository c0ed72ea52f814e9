"""In-Memory Store Fakes — protocol implementations for service tests.

Invariants:
    - Every store call is appended to .calls as (op, target) in the order awaited
    - failures[op] = exc makes every later call of that op raise exc
    - Document deliveries run as scheduled tasks; settle() waits for all of them
    - A delivery already in flight still calls its callback after unsubscribe
      (worst-case store: it cannot abort a query it already started)

Design Decisions:
    - Flat classes, no inheritance: structural typing is enough for the Protocols
    - gate (asyncio.Event) parks deliveries between query and callback so tests can
      cancel a subscription while a snapshot is in flight
"""

import asyncio
import itertools
from collections import defaultdict

from timeline.core.domain_types import IntentStatus
from timeline.core.errors import NotFoundError
from timeline.core.repository_protocols import DELETE_FIELD, StoreQuery


class InMemoryDocumentStore:

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = defaultdict(dict)
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.gate = asyncio.Event()
        self.gate.set()
        self._ids = itertools.count(1)
        self._listeners: dict[int, tuple] = {}
        self._keys = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()

    @property
    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("add", "update", "delete")]

    def _call(self, op: str, target: str) -> None:
        self.calls.append((op, target))
        if op in self.failures:
            raise self.failures[op]

    async def add(self, collection: str, fields: dict) -> str:
        doc_id = f"post-{next(self._ids):04d}"
        self._call("add", doc_id)
        self.collections[collection][doc_id] = {
            k: v for k, v in fields.items() if v is not DELETE_FIELD
        }
        self._notify(collection)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict | None:
        self._call("get", doc_id)
        doc = self.collections[collection].get(doc_id)
        return {"id": doc_id, **doc} if doc is not None else None

    async def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._call("update", doc_id)
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            raise NotFoundError("Document", doc_id)
        for key, value in fields.items():
            if value is DELETE_FIELD:
                doc.pop(key, None)
            else:
                doc[key] = value
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._call("delete", doc_id)
        if self.collections[collection].pop(doc_id, None) is not None:
            self._notify(collection)

    async def query(self, query: StoreQuery) -> list[dict]:
        self._call("query", query.collection)
        records = [{"id": k, **v} for k, v in self.collections[query.collection].items()]
        if query.where is not None:
            field, value = query.where
            records = [r for r in records if r.get(field) == value]
        records.sort(key=lambda r: r["id"])
        records.sort(key=lambda r: r.get(query.order_by, 0), reverse=query.descending)
        if query.limit is not None:
            records = records[:query.limit]
        return records

    def subscribe(self, query: StoreQuery, on_change, on_error=None):
        key = next(self._keys)
        self._listeners[key] = (query, on_change, on_error)
        self._schedule(key)

        def unsubscribe() -> None:
            self._listeners.pop(key, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def settle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _notify(self, collection: str) -> None:
        for key, (query, _, _) in list(self._listeners.items()):
            if query.collection == collection:
                self._schedule(key)

    def _schedule(self, key: int) -> None:
        task = asyncio.get_running_loop().create_task(self._push(*self._listeners[key]))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _push(self, query, on_change, on_error) -> None:
        try:
            records = await self.query(query)
        except Exception as e:
            if on_error is not None:
                await on_error(e)
            return
        await self.gate.wait()
        await on_change(records)


class InMemoryBlobStore:

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self._versions = itertools.count(1)

    def _call(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if op in self.failures:
            raise self.failures[op]

    async def put(self, path: str, data: bytes) -> str:
        self._call("put", path)
        self.objects[path] = data
        return f"{path}?v={next(self._versions)}"

    async def delete(self, path: str) -> None:
        self._call("delete", path)
        if path not in self.objects:
            raise NotFoundError("Asset", path)
        del self.objects[path]

    def resolve_url(self, locator: str) -> str:
        return f"https://blobs.test/{locator}"


class InMemoryIntentLog:

    def __init__(self):
        self.intents: dict[str, dict] = {}
        self.fail_resolve: Exception | None = None
        self._ids = itertools.count(1)

    async def record(self, intent: dict) -> str:
        intent_id = f"intent-{next(self._ids)}"
        self.intents[intent_id] = {
            **intent, "id": intent_id, "status": IntentStatus.PENDING.value, "detail": None,
        }
        return intent_id

    async def resolve(self, intent_id: str, status: IntentStatus, detail=None) -> None:
        if self.fail_resolve is not None:
            raise self.fail_resolve
        self.intents[intent_id].update(status=status.value, detail=detail)

    async def unreconciled(self) -> list[dict]:
        return [
            i for i in self.intents.values()
            if i["status"] != IntentStatus.COMPLETED.value
        ]

    def by_status(self, status: IntentStatus) -> list[dict]:
        return [i for i in self.intents.values() if i["status"] == status.value]


def confirm_yes(prompt: str) -> bool:
    return True


def confirm_no(prompt: str) -> bool:
    return False
