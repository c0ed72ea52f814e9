"""Service Wiring — builds the store adapters and services once, hands them to routes.

Invariants:
    - One Services bundle per process, created in lifespan, torn down on shutdown
    - Routes get ActorContext from request headers, never from ambient state
    - get_services() before init_services() is a programming error (RuntimeError)
    - Uploads are read at most MAX_ASSET_BYTES deep; empty parts mean "no file"

Design Decisions:
    - Module-level singleton like db_manager: single-process uvicorn, and the live
      query fan-out lives inside the document store instance
"""

import logging
from dataclasses import dataclass

from fastapi import Request, UploadFile

from timeline.config import Settings
from timeline.core.actor_context import ActorContext
from timeline.core.assets import validate_asset_size
from timeline.core.domain_types import MAX_ASSET_BYTES
from timeline.infrastructure.blob_store import FilesystemBlobStore
from timeline.infrastructure.database import DatabaseSessionManager
from timeline.infrastructure.document_store import SqlDocumentStore
from timeline.infrastructure.identity import HeaderIdentityProvider
from timeline.infrastructure.intent_log import SqlIntentLog
from timeline.services.asset_lifecycle import AssetLifecycleManager
from timeline.services.mutation_coordinator import MutationCoordinator
from timeline.services.subscription_manager import SubscriptionManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    documents: SqlDocumentStore
    blobs: FilesystemBlobStore
    intents: SqlIntentLog
    assets: AssetLifecycleManager
    coordinator: MutationCoordinator
    subscriptions: SubscriptionManager

    async def close(self) -> None:
        self.subscriptions.cancel_all()
        self.documents.close()
        await self.documents.wait_idle()


def build_services(db: DatabaseSessionManager, settings: Settings) -> Services:
    documents = SqlDocumentStore(db)
    blobs = FilesystemBlobStore(settings.blob_root, settings.blob_base_url)
    intents = SqlIntentLog(db)
    assets = AssetLifecycleManager(blobs)
    return Services(
        documents=documents,
        blobs=blobs,
        intents=intents,
        assets=assets,
        coordinator=MutationCoordinator(
            documents, assets, intents,
            anonymous_name=settings.anonymous_display_name,
        ),
        subscriptions=SubscriptionManager(
            documents, page_size=settings.feed_page_size,
        ),
    )


# Singleton (initialized on startup)
_services: Services | None = None


def init_services(db: DatabaseSessionManager, settings: Settings) -> Services:
    global _services
    _services = build_services(db, settings)
    logger.info("Services wired")
    return _services


async def shutdown_services() -> None:
    global _services
    if _services is not None:
        await _services.close()
        _services = None


def get_services() -> Services:
    """FastAPI dependency for the wired services."""
    if _services is None:
        raise RuntimeError("Services not initialized")
    return _services


def get_actor(request: Request) -> ActorContext:
    """FastAPI dependency: who is making this request."""
    return ActorContext.from_identity(HeaderIdentityProvider.from_headers(request.headers))


async def read_upload(file: UploadFile | None) -> bytes | None:
    """Read an uploaded part, never buffering past the asset size limit.

    A missing, nameless or empty part counts as no file. Anything that reaches
    MAX_ASSET_BYTES is rejected without reading the rest of the stream.
    """
    if file is None or not file.filename:
        return None
    data = await file.read(MAX_ASSET_BYTES)
    if not data:
        return None
    validate_asset_size(len(data), field="file")
    return data
