"""Compensation Records — tests for intent builders.

Tests cover:
    - step order per intent kind matches the coordinator's store call order
    - failure_detail names the step and is length-capped
"""

from timeline.core.compensation import INTENT_STEPS, build_intent, failure_detail
from timeline.core.domain_types import IntentKind


def test_build_intent_payload():
    intent = build_intent(IntentKind.DELETE, "p1", "alice", "tweets/alice/p1")
    assert intent == {
        "kind": "delete",
        "post_id": "p1",
        "author_id": "alice",
        "asset_path": "tweets/alice/p1",
        "steps": ["document.delete", "blob.delete"],
    }


def test_every_kind_has_steps():
    assert set(INTENT_STEPS) == set(IntentKind)


def test_replace_deletes_before_upload():
    steps = INTENT_STEPS[IntentKind.EDIT_REPLACE]
    assert steps.index("blob.delete") < steps.index("blob.put")
    assert steps[-1] == "document.update"


def test_failure_detail():
    assert failure_detail("blob.put", RuntimeError("boom")) == "blob.put: RuntimeError: boom"


def test_failure_detail_is_capped():
    assert len(failure_detail("blob.put", RuntimeError("x" * 2000))) == 500
