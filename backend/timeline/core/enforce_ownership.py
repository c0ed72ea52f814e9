"""Ownership Enforcement — binds the acting identity to post authorship.

Invariants:
    - assert_owner is PURE: raises or returns None, never touches a store
    - An absent actor (None / "") is never an owner
    - Called before the first mutating store call of edit and delete;
      never for read or create (create binds authorId to the actor)
"""

from collections.abc import Mapping

from timeline.core.errors import AuthorizationError, ErrorContext


def assert_owner(actor_id: str | None, post: Mapping) -> None:
    """Raise AuthorizationError unless actor_id is the post's author."""
    post_id = post.get("id")
    if not actor_id:
        raise AuthorizationError(
            "Authentication required to modify a post",
            ErrorContext(post_id=post_id),
        )
    if actor_id != post.get("authorId"):
        raise AuthorizationError(
            "Only the author can modify this post",
            ErrorContext(actor_id=actor_id, post_id=post_id),
        )
