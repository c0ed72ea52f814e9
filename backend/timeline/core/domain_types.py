"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - PostId, ActorId wrap store-assigned / identity-assigned strings
    - AssetPath is always derived from (author, post), never user supplied
    - Locator is opaque: only the BlobStore that issued it can resolve it
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

PostId = NewType("PostId", str)
ActorId = NewType("ActorId", str)
IntentId = NewType("IntentId", str)


# ─── Value Types ─────────────────────────────────────────────────

AssetPath = NewType("AssetPath", str)   # tweets/{author}/{post}
Locator = NewType("Locator", str)       # issued by BlobStore.put
EpochMillis = NewType("EpochMillis", int)


# ─── Limits ──────────────────────────────────────────────────────

MIN_BODY_LENGTH: int = 1
MAX_BODY_LENGTH: int = 180
MAX_ASSET_BYTES: int = 1024 * 1024      # payloads >= 1 MiB are rejected
FEED_PAGE_SIZE: int = 25

POSTS_COLLECTION: str = "tweets"
ASSET_PREFIX: str = "tweets"
AVATAR_PREFIX: str = "avatars"
ANONYMOUS_DISPLAY_NAME: str = "Anonymous"


# ─── Enums ───────────────────────────────────────────────────────

class FeedScopeKind(str, Enum):
    """Which records a feed view selects."""
    GLOBAL = "global"
    BY_AUTHOR = "by_author"


class EditPhase(str, Enum):
    """EditSession states. Cancelling returns straight to VIEWING."""
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"


class MutationOutcome(str, Enum):
    """Result of a confirmation-gated mutation."""
    APPLIED = "applied"
    DECLINED = "declined"


class IntentKind(str, Enum):
    """Cross-store operations that get a compensation record."""
    CREATE_ATTACH = "create_attach"
    EDIT_REMOVE = "edit_remove"
    EDIT_REPLACE = "edit_replace"
    DELETE = "delete"


class IntentStatus(str, Enum):
    """Compensation record lifecycle. PENDING after a crash means 'inspect me'."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
