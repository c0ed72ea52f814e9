"""Asset Values — tagged asset states, edit intents, and deterministic storage paths.

Invariants:
    - asset_path(author, post) is the ONLY way to obtain a post's storage path
    - Distinct (author, post) pairs never map to the same path
    - A payload of MAX_ASSET_BYTES or more is rejected before any IO
    - Empty / missing asset fields map to NoAsset (never an error)

Design Decisions:
    - Frozen dataclasses as tagged values: match-case dispatch in services,
      no None/undefined overloading for "removed" vs "never had one"
    - Path segments may not contain '/' or be '.'/'..': keeps paths injective
      and confined to the asset prefix
"""

from dataclasses import dataclass

from timeline.core.domain_types import (
    AssetPath, Locator, ASSET_PREFIX, AVATAR_PREFIX, MAX_ASSET_BYTES,
)
from timeline.core.errors import ValidationError


# ─── Asset surface state ─────────────────────────────────────────

@dataclass(frozen=True)
class NoAsset:
    """Post has no attached object."""


@dataclass(frozen=True)
class Attached:
    """Post references exactly one live object."""
    locator: Locator


@dataclass(frozen=True)
class PendingRemoval:
    """Working copy marks the attached object for deletion on commit."""
    locator: Locator


AssetState = NoAsset | Attached | PendingRemoval


def asset_state_from_field(value: object) -> AssetState:
    """Map a raw record's asset field to a tagged state."""
    if isinstance(value, str) and value:
        return Attached(Locator(value))
    return NoAsset()


# ─── Edit intent for the asset ───────────────────────────────────

@dataclass(frozen=True)
class Unchanged:
    """Leave the asset as it is."""


@dataclass(frozen=True)
class Removed:
    """Delete the asset object, then clear the field."""


@dataclass(frozen=True)
class Replaced:
    """Delete the existing object, upload this payload to the same path."""
    data: bytes

    def __repr__(self) -> str:
        return f"Replaced(<{len(self.data)} bytes>)"


AssetChange = Unchanged | Removed | Replaced


# ─── Paths & limits ──────────────────────────────────────────────

def check_path_segment(value: str, field: str) -> str:
    if not value or "/" in value or value in (".", ".."):
        raise ValidationError(
            f"Invalid path segment for {field}: {value!r}", field=field,
        )
    return value


def asset_path(author_id: str, post_id: str) -> AssetPath:
    """Deterministic storage path for a post's single asset."""
    author = check_path_segment(author_id, "author_id")
    post = check_path_segment(post_id, "post_id")
    return AssetPath(f"{ASSET_PREFIX}/{author}/{post}")


def avatar_path(actor_id: str) -> AssetPath:
    """Deterministic storage path for an actor's avatar."""
    return AssetPath(f"{AVATAR_PREFIX}/{check_path_segment(actor_id, 'actor_id')}")


def validate_asset_size(size: int, field: str = "asset") -> None:
    """Reject payloads at or above the 1 MiB limit."""
    if size >= MAX_ASSET_BYTES:
        raise ValidationError(
            f"Asset is {size} bytes; must be smaller than {MAX_ASSET_BYTES} bytes",
            field=field,
        )
