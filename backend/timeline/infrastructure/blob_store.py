"""Filesystem Blob Store — BlobStore protocol on a local directory.

Invariants:
    - Every path resolves inside root; anything escaping it is a ValidationError
    - put() overwrites atomically (temp file + rename) and returns a content-versioned
      locator "<path>?v=<sha256[:12]>", so a replaced object gets a new locator
    - delete() raises NotFoundError when nothing lives at the path
    - All OSErrors mapped to StoreError; file IO runs off the event loop

Design Decisions:
    - Locator keeps the storage path readable: resolve_url is a prefix join, and the
      same directory is served as static files by the HTTP shell
"""

import asyncio
import hashlib
import logging
import os
from pathlib import Path

from timeline.core.domain_types import Locator
from timeline.core.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

_STORE = "blob store"


class FilesystemBlobStore:
    """BlobStore writing objects under a root directory."""

    def __init__(self, root: str | Path, base_url: str = "/blobs"):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    async def put(self, path: str, data: bytes) -> Locator:
        target = self._target(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error(f"Blob write failed: {e}", extra={"asset_path": path})
            raise StoreError(str(e), _STORE, "put")
        digest = hashlib.sha256(data).hexdigest()[:12]
        return Locator(f"{path}?v={digest}")

    async def delete(self, path: str) -> None:
        target = self._target(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError:
            raise NotFoundError("Asset", path)
        except OSError as e:
            logger.error(f"Blob delete failed: {e}", extra={"asset_path": path})
            raise StoreError(str(e), _STORE, "delete")

    def resolve_url(self, locator: str) -> str:
        return f"{self.base_url}/{locator}"

    def exists(self, path: str) -> bool:
        return self._target(path).is_file()

    def read(self, path: str) -> bytes:
        return self._target(path).read_bytes()

    def _target(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target == self.root or not target.is_relative_to(self.root):
            raise ValidationError(f"Blob path escapes store root: {path!r}", field="path")
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        tmp.write_bytes(data)
        os.replace(tmp, target)
