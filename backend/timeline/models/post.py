"""Post Document ORM — persisted metadata record for one post.

Invariants:
    - id is a store-assigned string primary key (uuid4 hex)
    - author_id and created_at are written once, never updated
    - asset is NULL when the post has no object in the blob store
    - created_at / updated_at are epoch milliseconds (BigInteger)

Design Decisions:
    - Dedicated columns over a JSON document column: ordering and author filters
      stay indexable; FIELD_COLUMNS maps the camelCase record shape onto them
    - Composite index (created_at, id) matches the feed order and tie-break
"""

import uuid

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timeline.db.base import Base


def _new_post_id() -> str:
    return uuid.uuid4().hex


class PostDocument(Base):
    """One row per post in the feed."""
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_created_at_id", "created_at", "id"),
    )

    # record field -> column attribute
    FIELD_COLUMNS = {
        "body": "body",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
        "authorId": "author_id",
        "username": "username",
        "asset": "asset",
    }

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=_new_post_id,
    )
    author_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    asset: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_record(self) -> dict:
        """camelCase record; optional fields omitted when unset."""
        record = {"id": self.id}
        for field, column in self.FIELD_COLUMNS.items():
            value = getattr(self, column)
            if value is not None:
                record[field] = value
        return record
