"""SQL Intent Log — durable compensation records for cross-store mutations.

Invariants:
    - record() commits before returning: the intent exists before step one runs
    - resolve() on an unknown id raises NotFoundError
    - unreconciled() lists pending and failed intents, oldest first
"""

from datetime import datetime, timezone

from sqlalchemy import select

from timeline.core.domain_types import IntentId, IntentStatus
from timeline.core.errors import NotFoundError
from timeline.infrastructure.database import DatabaseSessionManager
from timeline.models.mutation_intent import MutationIntentRecord


class SqlIntentLog:
    """IntentLog backed by the mutation_intents table."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def record(self, intent: dict) -> IntentId:
        row = MutationIntentRecord(
            kind=intent["kind"],
            post_id=intent["post_id"],
            author_id=intent["author_id"],
            asset_path=intent["asset_path"],
            steps=list(intent.get("steps", [])),
            status=IntentStatus.PENDING.value,
        )
        async with self.db.session() as session:
            session.add(row)
            await session.commit()
            return IntentId(row.id)

    async def resolve(
        self, intent_id: IntentId, status: IntentStatus, detail: str | None = None,
    ) -> None:
        async with self.db.session() as session:
            row = await session.get(MutationIntentRecord, intent_id)
            if row is None:
                raise NotFoundError("Intent", intent_id)
            row.status = status.value
            row.detail = detail
            row.resolved_at = datetime.now(timezone.utc)
            await session.commit()

    async def unreconciled(self) -> list[dict]:
        stmt = (
            select(MutationIntentRecord)
            .where(MutationIntentRecord.status != IntentStatus.COMPLETED.value)
            .order_by(MutationIntentRecord.created_at.asc())
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [row.to_dict() for row in result.scalars().all()]
