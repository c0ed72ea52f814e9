"""Post Schemas — Pydantic response models for feed and mutation endpoints.

Invariants:
    - asset_url is resolved at the boundary; FeedEntry keeps the raw locator
    - PostResponse.has_asset mirrors FeedEntry.has_asset (the delete form sends it back)

Design Decisions:
    - Request bodies are multipart forms (file upload), validated in core/ rather than
      duplicated here; only responses are modelled
"""

from collections.abc import Callable, Iterable

from pydantic import BaseModel

from timeline.core.assets import Attached
from timeline.core.feed_projection import FeedEntry
from timeline.core.domain_types import MutationOutcome


class PostResponse(BaseModel):
    """One feed entry, as the client renders it."""
    id: str
    body: str
    author_id: str
    username: str
    created_at: int
    updated_at: int | None = None
    has_asset: bool = False
    asset_url: str | None = None

    @classmethod
    def from_entry(
        cls, entry: FeedEntry, resolve_url: Callable[[str], str],
    ) -> "PostResponse":
        asset_url = None
        if isinstance(entry.asset, Attached):
            asset_url = resolve_url(entry.asset.locator)
        return cls(
            id=entry.id,
            body=entry.body,
            author_id=entry.author_id,
            username=entry.username,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            has_asset=entry.has_asset,
            asset_url=asset_url,
        )


class FeedResponse(BaseModel):
    """Ordered feed snapshot."""
    posts: list[PostResponse]

    @classmethod
    def from_entries(
        cls, entries: Iterable[FeedEntry], resolve_url: Callable[[str], str],
    ) -> "FeedResponse":
        return cls(posts=[PostResponse.from_entry(e, resolve_url) for e in entries])


class MutationResponse(BaseModel):
    """Outcome of a create / edit / delete request."""
    outcome: MutationOutcome
    post_id: str | None = None
    asset_url: str | None = None


class AvatarResponse(BaseModel):
    avatar_url: str
