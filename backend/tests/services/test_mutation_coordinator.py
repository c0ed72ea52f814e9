"""Mutation Coordinator — create / edit / delete sequencing against in-memory stores.

Tests cover:
    - publishing with and without an asset (record first, then upload, then locator)
    - validation and authorization failures leave both stores untouched,
      including non-owner asset removal and replacement
    - a declined confirmation performs no store call at all
    - edit body, remove asset, replace asset at the same deterministic path
    - delete by owner / non-owner, with and without an asset
    - intents recorded and completed for cross-store operations only
"""

import pytest

from timeline.core.actor_context import ActorContext
from timeline.core.assets import Attached, NoAsset, Removed, Replaced
from timeline.core.domain_types import IntentStatus, MAX_ASSET_BYTES, MutationOutcome
from timeline.core.edit_session import EditSession
from timeline.core.errors import AuthorizationError, NotFoundError, ValidationError
from timeline.core.feed_projection import FeedScope
from tests.services.fake_stores import confirm_no, confirm_yes


async def _publish(coordinator, actor, body="hello", asset=None):
    result = await coordinator.create_post(actor, body, asset, confirm=confirm_yes)
    return result.post_id


# ─── create_post ─────────────────────────────────────────────────

async def test_create_post_appears_first_in_feed(coordinator, subscriptions, alice):
    await _publish(coordinator, alice, "older")
    result = await coordinator.create_post(alice, "hello", confirm=confirm_yes)

    assert result.outcome == MutationOutcome.APPLIED
    feed = await subscriptions.fetch_feed(FeedScope.global_feed())
    first = feed[0]
    assert first.id == result.post_id
    assert first.body == "hello"
    assert first.author_id == "alice"
    assert first.username == "Alice"
    assert first.asset == NoAsset()


async def test_create_post_uses_anonymous_username(coordinator, documents):
    post_id = await _publish(coordinator, ActorContext("dave"))
    assert documents.collections["tweets"][post_id]["username"] == "Anonymous"


@pytest.mark.parametrize("body", ["", "x" * 181])
async def test_create_post_rejects_invalid_body(coordinator, documents, blobs, alice, body):
    asked = []
    with pytest.raises(ValidationError):
        await coordinator.create_post(alice, body, confirm=asked.append)
    assert asked == []
    assert documents.calls == []
    assert blobs.calls == []


async def test_create_post_rejects_oversized_asset_before_any_io(
    coordinator, documents, blobs, alice,
):
    with pytest.raises(ValidationError):
        await coordinator.create_post(
            alice, "hi", b"x" * MAX_ASSET_BYTES, confirm=confirm_yes,
        )
    assert documents.calls == []
    assert blobs.calls == []


async def test_create_post_requires_authenticated_actor(coordinator, documents, anonymous):
    with pytest.raises(AuthorizationError):
        await coordinator.create_post(anonymous, "hi", confirm=confirm_yes)
    assert documents.calls == []


async def test_create_post_declined_touches_nothing(coordinator, documents, blobs, alice):
    result = await coordinator.create_post(alice, "hi", b"img", confirm=confirm_no)
    assert result.outcome == MutationOutcome.DECLINED
    assert not result.applied
    assert documents.calls == []
    assert blobs.calls == []


async def test_create_post_accepts_async_confirmation(coordinator, alice):
    async def confirm(prompt):
        return True

    result = await coordinator.create_post(alice, "hi", confirm=confirm)
    assert result.applied


async def test_create_post_with_asset_sequence(coordinator, documents, blobs, intents, alice):
    result = await coordinator.create_post(alice, "pic", b"img", confirm=confirm_yes)

    post_id = result.post_id
    path = f"tweets/alice/{post_id}"
    assert documents.mutations == [("add", post_id), ("update", post_id)]
    assert blobs.calls == [("put", path)]
    assert blobs.objects[path] == b"img"
    record = documents.collections["tweets"][post_id]
    assert record["asset"] == result.asset.locator
    assert isinstance(result.asset, Attached)

    (intent,) = intents.intents.values()
    assert intent["kind"] == "create_attach"
    assert intent["status"] == IntentStatus.COMPLETED.value


async def test_create_post_without_asset_records_no_intent(coordinator, intents, alice):
    await _publish(coordinator, alice)
    assert intents.intents == {}


# ─── edit_post ───────────────────────────────────────────────────

async def test_edit_post_updates_body_and_timestamp(coordinator, alice):
    post_id = await _publish(coordinator, alice, "a")
    before = await coordinator.get_post(post_id)

    result = await coordinator.edit_post(alice, post_id, "b", confirm=confirm_yes)

    after = await coordinator.get_post(post_id)
    assert result.applied
    assert after.body == "b"
    assert after.updated_at is not None
    assert after.updated_at > before.created_at
    assert after.created_at == before.created_at


async def test_edit_post_by_non_owner_is_rejected(coordinator, documents, alice, bob):
    post_id = await _publish(coordinator, alice, "a")
    writes_before = list(documents.mutations)

    with pytest.raises(AuthorizationError):
        await coordinator.edit_post(bob, post_id, "hijacked", confirm=confirm_yes)

    assert documents.mutations == writes_before
    assert (await coordinator.get_post(post_id)).body == "a"


@pytest.mark.parametrize("change", [Replaced(b"hijack"), Removed()])
async def test_edit_asset_by_non_owner_touches_no_blob(
    coordinator, documents, blobs, intents, alice, bob, change,
):
    post_id = await _publish(coordinator, alice, "pic", asset=b"original")
    blobs.calls.clear()
    writes_before = list(documents.mutations)

    with pytest.raises(AuthorizationError):
        await coordinator.edit_post(bob, post_id, "pic", change, confirm=confirm_yes)

    assert blobs.calls == []
    assert blobs.objects == {f"tweets/alice/{post_id}": b"original"}
    assert documents.mutations == writes_before
    assert await intents.unreconciled() == []


async def test_edit_post_rejects_invalid_body_before_confirmation(coordinator, alice):
    post_id = await _publish(coordinator, alice)
    asked = []
    with pytest.raises(ValidationError):
        await coordinator.edit_post(alice, post_id, "", confirm=asked.append)
    assert asked == []


async def test_edit_post_declined_reads_nothing(coordinator, documents, alice):
    post_id = await _publish(coordinator, alice)
    calls_before = list(documents.calls)
    result = await coordinator.edit_post(alice, post_id, "b", confirm=confirm_no)
    assert result.outcome == MutationOutcome.DECLINED
    assert documents.calls == calls_before


async def test_edit_post_missing_post(coordinator, alice):
    with pytest.raises(NotFoundError):
        await coordinator.edit_post(alice, "post-9999", "b", confirm=confirm_yes)


async def test_edit_post_replaces_asset_at_same_path(coordinator, blobs, alice):
    created = await coordinator.create_post(alice, "pic", b"file1", confirm=confirm_yes)
    path = f"tweets/alice/{created.post_id}"

    result = await coordinator.edit_post(
        alice, created.post_id, "pic", Replaced(b"file2"), confirm=confirm_yes,
    )

    assert blobs.objects == {path: b"file2"}
    assert blobs.calls[-2:] == [("delete", path), ("put", path)]
    entry = await coordinator.get_post(created.post_id)
    assert entry.asset == result.asset
    assert entry.asset != created.asset


async def test_edit_post_removes_asset(coordinator, blobs, documents, alice):
    created = await coordinator.create_post(alice, "pic", b"file1", confirm=confirm_yes)

    result = await coordinator.edit_post(
        alice, created.post_id, "no pic", Removed(), confirm=confirm_yes,
    )

    assert result.asset == NoAsset()
    assert blobs.objects == {}
    assert "asset" not in documents.collections["tweets"][created.post_id]


async def test_edit_post_remove_without_asset_only_clears_field(
    coordinator, blobs, intents, alice,
):
    post_id = await _publish(coordinator, alice)
    await coordinator.edit_post(alice, post_id, "b", Removed(), confirm=confirm_yes)
    assert blobs.calls == []
    assert intents.intents == {}


async def test_edit_post_replace_on_post_without_asset_attaches(coordinator, blobs, alice):
    post_id = await _publish(coordinator, alice)
    result = await coordinator.edit_post(
        alice, post_id, "now with pic", Replaced(b"new"), confirm=confirm_yes,
    )
    assert isinstance(result.asset, Attached)
    assert blobs.objects == {f"tweets/alice/{post_id}": b"new"}


async def test_edit_post_rejects_oversized_replacement(coordinator, blobs, alice):
    post_id = await _publish(coordinator, alice)
    with pytest.raises(ValidationError):
        await coordinator.edit_post(
            alice, post_id, "b", Replaced(b"x" * MAX_ASSET_BYTES), confirm=confirm_yes,
        )
    assert blobs.calls == []


# ─── commit_edit ─────────────────────────────────────────────────

async def test_commit_edit_finishes_session(coordinator, alice):
    post_id = await _publish(coordinator, alice, "a")
    session = EditSession()
    session.select(await coordinator.get_post(post_id))
    session.set_body("b")

    result = await coordinator.commit_edit(alice, session, confirm=confirm_yes)

    assert result.applied
    assert not session.is_editing
    assert (await coordinator.get_post(post_id)).body == "b"


async def test_commit_edit_declined_keeps_working_copy(coordinator, alice):
    post_id = await _publish(coordinator, alice, "a")
    session = EditSession()
    session.select(await coordinator.get_post(post_id))
    session.set_body("b")

    result = await coordinator.commit_edit(alice, session, confirm=confirm_no)

    assert not result.applied
    assert session.is_editing
    assert session.body == "b"


async def test_commit_edit_failure_returns_to_editing(coordinator, alice, bob):
    post_id = await _publish(coordinator, alice, "a")
    session = EditSession()
    session.select(await coordinator.get_post(post_id))

    with pytest.raises(AuthorizationError):
        await coordinator.commit_edit(bob, session, confirm=confirm_yes)
    assert session.is_editing


# ─── delete_post ─────────────────────────────────────────────────

async def test_delete_post_by_non_owner_is_rejected(coordinator, alice, bob):
    post_id = await _publish(coordinator, alice)
    with pytest.raises(AuthorizationError):
        await coordinator.delete_post(bob, post_id, confirm=confirm_yes)
    assert (await coordinator.get_post(post_id)).id == post_id


async def test_delete_post_removes_from_feed(coordinator, subscriptions, alice):
    post_id = await _publish(coordinator, alice)
    await coordinator.delete_post(alice, post_id, confirm=confirm_yes)

    feed = await subscriptions.fetch_feed(FeedScope.global_feed())
    assert post_id not in [e.id for e in feed]
    with pytest.raises(NotFoundError):
        await coordinator.get_post(post_id)


async def test_delete_post_with_asset_deletes_record_then_object(
    coordinator, documents, blobs, intents, alice,
):
    created = await coordinator.create_post(alice, "pic", b"img", confirm=confirm_yes)
    path = f"tweets/alice/{created.post_id}"

    await coordinator.delete_post(alice, created.post_id, confirm=confirm_yes)

    assert documents.mutations[-1] == ("delete", created.post_id)
    assert blobs.calls[-1] == ("delete", path)
    assert blobs.objects == {}
    delete_intent = [i for i in intents.intents.values() if i["kind"] == "delete"]
    assert delete_intent[0]["status"] == IntentStatus.COMPLETED.value


async def test_delete_post_trusts_has_asset_hint(coordinator, blobs, alice):
    post_id = await _publish(coordinator, alice)
    await coordinator.delete_post(alice, post_id, has_asset=False, confirm=confirm_yes)
    assert blobs.calls == []


async def test_delete_post_tolerates_missing_object(coordinator, blobs, alice):
    post_id = await _publish(coordinator, alice)
    result = await coordinator.delete_post(
        alice, post_id, has_asset=True, confirm=confirm_yes,
    )
    assert result.applied
    assert blobs.calls == [("delete", f"tweets/alice/{post_id}")]


async def test_delete_post_declined(coordinator, documents, alice):
    post_id = await _publish(coordinator, alice)
    result = await coordinator.delete_post(alice, post_id, confirm=confirm_no)
    assert result.outcome == MutationOutcome.DECLINED
    assert post_id in documents.collections["tweets"]


async def test_delete_post_missing_post(coordinator, alice):
    with pytest.raises(NotFoundError):
        await coordinator.delete_post(alice, "post-9999", confirm=confirm_yes)
