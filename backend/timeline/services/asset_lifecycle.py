"""Asset Lifecycle Manager — upload, replace, and delete the single asset of a post.

Invariants:
    - Size limit checked before the BlobStore is called (no network on rejection)
    - remove() treats "not found" as success; every other failure propagates
    - replace() is remove-then-upload, never upload-then-remove: at most one live
      object per path, at the cost of a window where the path is empty
    - Paths come from core.assets only (asset_path / avatar_path)

Design Decisions:
    - Thin wrapper, no retries: a failed step surfaces to the coordinator, which
      owns the cross-store ordering and the intent record
"""

import logging

from timeline.core.actor_context import ActorContext
from timeline.core.assets import asset_path, avatar_path, validate_asset_size
from timeline.core.domain_types import AssetPath, Locator
from timeline.core.errors import AuthorizationError, NotFoundError
from timeline.core.repository_protocols import BlobStore

logger = logging.getLogger(__name__)


class AssetLifecycleManager:
    """Owns every call the core makes to the BlobStore."""

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    @staticmethod
    def path_for(author_id: str, post_id: str) -> AssetPath:
        return asset_path(author_id, post_id)

    async def upload(self, path: str, data: bytes) -> Locator:
        validate_asset_size(len(data))
        locator = await self.blobs.put(path, data)
        logger.info(
            "Uploaded asset (%d bytes)", len(data),
            extra={"operation": "asset.upload", "asset_path": path},
        )
        return locator

    async def remove(self, path: str) -> None:
        try:
            await self.blobs.delete(path)
        except NotFoundError:
            logger.debug(
                "Asset already absent, nothing to delete",
                extra={"operation": "asset.remove", "asset_path": path},
            )
            return
        logger.info(
            "Removed asset", extra={"operation": "asset.remove", "asset_path": path},
        )

    async def replace(self, path: str, data: bytes) -> Locator:
        validate_asset_size(len(data))
        await self.remove(path)
        return await self.upload(path, data)

    def resolve_url(self, locator: str) -> str:
        return self.blobs.resolve_url(locator)

    async def upload_avatar(self, actor: ActorContext, data: bytes) -> str:
        """Replace the actor's avatar; returns the retrieval URL."""
        if not actor.is_authenticated:
            raise AuthorizationError("Authentication required to change an avatar")
        locator = await self.replace(avatar_path(actor.actor_id), data)
        return self.resolve_url(locator)
