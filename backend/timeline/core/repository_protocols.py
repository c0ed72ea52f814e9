"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Records cross the boundary as plain dicts with camelCase fields and an "id" key
    - DocumentStore.subscribe is synchronous: registration returns the disposer
      immediately, deliveries arrive later on the event loop

Design Decisions:
    - Protocol over ABC: structural subtyping, adapters and test fakes need no base class
    - Async in Protocol: boundary methods are async because implementations do IO
    - DELETE_FIELD sentinel over None: None is a legal field value, clearing is an intent
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from timeline.core.domain_types import IntentId, IntentStatus, Locator


class _DeleteField:
    """Sentinel: remove this field from the record on update."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


@dataclass(frozen=True)
class StoreQuery:
    """Ordered, optionally filtered and capped read of one collection."""
    collection: str
    order_by: str = "createdAt"
    descending: bool = True
    limit: int | None = None
    where: tuple[str, object] | None = None   # (field, value) equality


OnChange = Callable[[list[dict]], Awaitable[None]]
OnError = Callable[[Exception], Awaitable[None]]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """Contract for metadata persistence — implemented by shell."""
    async def add(self, collection: str, fields: dict) -> str: ...
    async def get(self, collection: str, doc_id: str) -> dict | None: ...
    async def update(self, collection: str, doc_id: str, fields: dict) -> None: ...
    async def delete(self, collection: str, doc_id: str) -> None: ...
    async def query(self, query: StoreQuery) -> list[dict]: ...
    def subscribe(
        self, query: StoreQuery, on_change: OnChange, on_error: OnError | None = None,
    ) -> Unsubscribe: ...


class BlobStore(Protocol):
    """Contract for binary assets — implemented by shell.

    delete() raises NotFoundError when nothing lives at the path.
    """
    async def put(self, path: str, data: bytes) -> Locator: ...
    async def delete(self, path: str) -> None: ...
    def resolve_url(self, locator: str) -> str: ...


class IdentityProvider(Protocol):
    """Contract for the external identity collaborator."""
    @property
    def current_actor_id(self) -> str | None: ...
    @property
    def current_display_name(self) -> str | None: ...


class IntentLog(Protocol):
    """Contract for compensation records written around cross-store mutations."""
    async def record(self, intent: dict) -> IntentId: ...
    async def resolve(
        self, intent_id: IntentId, status: IntentStatus, detail: str | None = None,
    ) -> None: ...
    async def unreconciled(self) -> list[dict]: ...
