"""Mutation Intent ORM — compensation record for one cross-store operation.

Invariants:
    - Written before the first step of the operation, status "pending"
    - status moves once: pending -> completed | failed
    - A row still "pending" after its process exited marks an interrupted operation

Design Decisions:
    - No foreign key to posts: the intent must survive the post's deletion
    - steps stored as JSON list in execution order
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from timeline.db.base import Base


class MutationIntentRecord(Base):
    """Durable intent log entry."""
    __tablename__ = "mutation_intents"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex,
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    post_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    asset_path: Mapped[str] = mapped_column(Text, nullable=False)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "post_id": self.post_id,
            "author_id": self.author_id,
            "asset_path": self.asset_path,
            "steps": list(self.steps or []),
            "status": self.status,
            "detail": self.detail,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }
