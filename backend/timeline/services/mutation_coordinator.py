"""Mutation Coordinator — sequences create/edit/delete across the document and blob stores.

Invariants:
    - Validation (body, asset size) runs before the confirmation gate; the gate runs
      before the first store call; declining returns DECLINED with no side effect
    - Ownership is asserted before the first mutating call of edit and delete
    - Create writes the record without an asset, then uploads, then patches the locator
    - Edit with Removed: blob delete, then clear the field
    - Edit with Replaced: blob delete, blob put, then set the new locator
    - Delete: record delete, then blob delete
    - Every step awaited in sequence; no retry, no rollback
    - Each cross-store operation records an intent before its first step and
      resolves it (completed / failed) after; a crash leaves it pending

Design Decisions:
    - Known gaps are surfaced, not fixed: any TimelineError after at least one step has
      landed is re-raised with partial=True (attach after create, blob delete after
      record delete, record update after blob delete)
    - Confirmation as a callback (sync or async) instead of an in-line prompt: the
      shell decides how to ask, the coordinator only decides when
    - Intent resolution failures are logged, not raised: the mutation already
      happened and the intent stays pending, which a repair pass treats as "inspect"
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from timeline.core.actor_context import ActorContext
from timeline.core.assets import (
    AssetChange, AssetState, Attached, NoAsset, Removed, Replaced, Unchanged,
    asset_path, asset_state_from_field, check_path_segment, validate_asset_size,
)
from timeline.core.compensation import build_intent, failure_detail
from timeline.core.domain_types import (
    IntentId, IntentKind, IntentStatus, MutationOutcome,
    POSTS_COLLECTION, ANONYMOUS_DISPLAY_NAME,
)
from timeline.core.edit_session import EditSession
from timeline.core.enforce_ownership import assert_owner
from timeline.core.enforce_post import validate_body
from timeline.core.errors import (
    AuthorizationError, ErrorContext, NotFoundError, StoreError, TimelineError,
    ValidationError,
)
from timeline.core.feed_projection import FeedEntry, project_record
from timeline.core.repository_protocols import DELETE_FIELD, DocumentStore, IntentLog
from timeline.services.asset_lifecycle import AssetLifecycleManager

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool | Awaitable[bool]]

CREATE_PROMPT = "Are you sure you want to publish this post?"
EDIT_PROMPT = "Are you sure you want to edit this post?"
DELETE_PROMPT = "Are you sure you want to delete this post?"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class MutationResult:
    outcome: MutationOutcome
    post_id: str | None = None
    asset: AssetState = field(default_factory=NoAsset)

    @property
    def applied(self) -> bool:
        return self.outcome == MutationOutcome.APPLIED


DECLINED = MutationResult(MutationOutcome.DECLINED)


@dataclass
class _Progress:
    """Tracks which steps of one cross-store operation have landed."""
    committed: bool = False
    step: str = "intent.record"
    completed: list[str] = field(default_factory=list)

    async def run(self, step: str, call: Awaitable):
        self.step = step
        result = await call
        self.completed.append(step)
        return result

    @property
    def partial(self) -> bool:
        return self.committed or bool(self.completed)


async def _confirmed(confirm: Confirm, prompt: str) -> bool:
    answer = confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class MutationCoordinator:
    """Write path: OwnershipGuard → AssetLifecycleManager → stores."""

    def __init__(
        self,
        documents: DocumentStore,
        assets: AssetLifecycleManager,
        intents: IntentLog,
        clock: Callable[[], int] = now_ms,
        collection: str = POSTS_COLLECTION,
        anonymous_name: str = ANONYMOUS_DISPLAY_NAME,
    ):
        self.documents = documents
        self.assets = assets
        self.intents = intents
        self.clock = clock
        self.collection = collection
        self.anonymous_name = anonymous_name

    # ─── Reads ───────────────────────────────────────────────────

    async def get_post(self, post_id: str) -> FeedEntry:
        return project_record(await self._load(post_id))

    # ─── Create ──────────────────────────────────────────────────

    async def create_post(
        self,
        actor: ActorContext,
        body: str,
        asset: bytes | None = None,
        *,
        confirm: Confirm,
    ) -> MutationResult:
        validate_body(body)
        if asset is not None:
            validate_asset_size(len(asset))
        if not actor.is_authenticated:
            raise AuthorizationError("Authentication required to publish a post")
        if asset is not None:
            check_path_segment(actor.actor_id, "author_id")
        if not await _confirmed(confirm, CREATE_PROMPT):
            return DECLINED

        post_id = await self.documents.add(self.collection, {
            "body": body,
            "createdAt": self.clock(),
            "authorId": actor.actor_id,
            "username": actor.username(self.anonymous_name),
        })
        logger.info(
            "Post created",
            extra={"post_id": post_id, "actor_id": actor.actor_id, "operation": "create_post"},
        )
        if asset is None:
            return MutationResult(MutationOutcome.APPLIED, post_id)

        path = asset_path(actor.actor_id, post_id)
        async with self._intent(
            IntentKind.CREATE_ATTACH, post_id, actor.actor_id, path, committed=True,
        ) as progress:
            locator = await progress.run("blob.put", self.assets.upload(path, asset))
            await progress.run(
                "document.update",
                self.documents.update(self.collection, post_id, {"asset": locator}),
            )
        return MutationResult(MutationOutcome.APPLIED, post_id, Attached(locator))

    # ─── Edit ────────────────────────────────────────────────────

    async def edit_post(
        self,
        actor: ActorContext,
        post_id: str,
        new_body: str,
        asset_change: AssetChange = Unchanged(),
        *,
        confirm: Confirm,
    ) -> MutationResult:
        validate_body(new_body)
        if isinstance(asset_change, Replaced):
            validate_asset_size(len(asset_change.data))
        if not await _confirmed(confirm, EDIT_PROMPT):
            return DECLINED

        record = await self._load(post_id)
        assert_owner(actor.actor_id, record)

        author_id = record["authorId"]
        current = asset_state_from_field(record.get("asset"))
        fields = {"body": new_body, "updatedAt": self.clock()}

        match asset_change:
            case Unchanged():
                await self.documents.update(self.collection, post_id, fields)
                result_asset = current
            case Removed() if isinstance(current, Attached):
                path = asset_path(author_id, post_id)
                async with self._intent(
                    IntentKind.EDIT_REMOVE, post_id, author_id, path,
                ) as progress:
                    await progress.run("blob.delete", self.assets.remove(path))
                    await progress.run(
                        "document.update",
                        self.documents.update(
                            self.collection, post_id, {**fields, "asset": DELETE_FIELD},
                        ),
                    )
                result_asset = NoAsset()
            case Removed():
                await self.documents.update(
                    self.collection, post_id, {**fields, "asset": DELETE_FIELD},
                )
                result_asset = NoAsset()
            case Replaced(data=data):
                path = asset_path(author_id, post_id)
                async with self._intent(
                    IntentKind.EDIT_REPLACE, post_id, author_id, path,
                ) as progress:
                    await progress.run("blob.delete", self.assets.remove(path))
                    locator = await progress.run("blob.put", self.assets.upload(path, data))
                    await progress.run(
                        "document.update",
                        self.documents.update(
                            self.collection, post_id, {**fields, "asset": locator},
                        ),
                    )
                result_asset = Attached(locator)
            case _:
                raise ValidationError(
                    f"Unknown asset change: {asset_change!r}", field="asset_change",
                )

        logger.info(
            "Post edited (%s)", type(asset_change).__name__.lower(),
            extra={"post_id": post_id, "actor_id": actor.actor_id, "operation": "edit_post"},
        )
        return MutationResult(MutationOutcome.APPLIED, post_id, result_asset)

    async def commit_edit(
        self, actor: ActorContext, session: EditSession, *, confirm: Confirm,
    ) -> MutationResult:
        """Drive an EditSession through COMMITTING into edit_post."""
        draft = session.begin_commit()
        try:
            result = await self.edit_post(
                actor, draft.post_id, draft.body, draft.asset_change, confirm=confirm,
            )
        except Exception:
            session.abort_commit()
            raise
        if result.applied:
            session.finish()
        else:
            session.abort_commit()
        return result

    # ─── Delete ──────────────────────────────────────────────────

    async def delete_post(
        self,
        actor: ActorContext,
        post_id: str,
        has_asset: bool | None = None,
        *,
        confirm: Confirm,
    ) -> MutationResult:
        if not await _confirmed(confirm, DELETE_PROMPT):
            return DECLINED

        record = await self._load(post_id)
        assert_owner(actor.actor_id, record)
        if has_asset is None:
            has_asset = isinstance(asset_state_from_field(record.get("asset")), Attached)

        if not has_asset:
            await self.documents.delete(self.collection, post_id)
        else:
            author_id = record["authorId"]
            path = asset_path(author_id, post_id)
            async with self._intent(
                IntentKind.DELETE, post_id, author_id, path,
            ) as progress:
                await progress.run(
                    "document.delete", self.documents.delete(self.collection, post_id),
                )
                await progress.run("blob.delete", self.assets.remove(path))

        logger.info(
            "Post deleted",
            extra={"post_id": post_id, "actor_id": actor.actor_id, "operation": "delete_post"},
        )
        return MutationResult(MutationOutcome.APPLIED, post_id)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _load(self, post_id: str) -> dict:
        record = await self.documents.get(self.collection, post_id)
        if record is None:
            raise NotFoundError("Post", post_id, ErrorContext(post_id=post_id))
        return record

    @asynccontextmanager
    async def _intent(
        self, kind: IntentKind, post_id: str, author_id: str, path: str,
        committed: bool = False,
    ):
        progress = _Progress(committed=committed)
        intent_id: IntentId | None = None
        try:
            intent_id = await self.intents.record(
                build_intent(kind, post_id, author_id, path),
            )
            yield progress
        except Exception as e:
            if intent_id is not None:
                await self._resolve(
                    intent_id, IntentStatus.FAILED, failure_detail(progress.step, e),
                )
            if (isinstance(e, TimelineError) and progress.partial
                    and not getattr(e, "partial", False)):
                logger.error(
                    f"Partial cross-store mutation at {progress.step}: {e.message}",
                    extra={
                        "post_id": post_id, "intent_id": intent_id,
                        "operation": kind.value, "error_code": "PARTIAL_MUTATION",
                    },
                )
                if isinstance(e, StoreError):
                    detail, store, operation = e.detail, e.store, e.operation
                else:
                    store, _, operation = progress.step.partition(".")
                    detail = e.message
                raise StoreError(
                    detail, store, operation, partial=True,
                    context=ErrorContext(
                        post_id=post_id, operation=kind.value,
                        debug_info={"completed_steps": list(progress.completed)},
                    ),
                ) from e
            raise
        await self._resolve(intent_id, IntentStatus.COMPLETED)

    async def _resolve(
        self, intent_id: IntentId, status: IntentStatus, detail: str | None = None,
    ) -> None:
        try:
            await self.intents.resolve(intent_id, status, detail)
        except TimelineError as e:
            logger.error(
                f"Could not resolve intent as {status.value}: {e.message}",
                extra={"intent_id": intent_id, "error_code": e.code},
            )
