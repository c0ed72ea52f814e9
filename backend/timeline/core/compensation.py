"""Compensation Records — pure builders for cross-store mutation intents.

Invariants:
    - An intent is built BEFORE the first step of the cross-store operation runs
    - steps lists store calls in the exact order the coordinator awaits them
    - Only operations that touch both stores get an intent; body-only edits do not

Design Decisions:
    - Plain dict payload: IntentLog adapters persist it as-is (JSON column)
    - A repair pass is NOT part of this project; unreconciled intents are the
      hand-off point for one
"""

from timeline.core.domain_types import IntentKind


INTENT_STEPS: dict[IntentKind, tuple[str, ...]] = {
    IntentKind.CREATE_ATTACH: ("blob.put", "document.update"),
    IntentKind.EDIT_REMOVE: ("blob.delete", "document.update"),
    IntentKind.EDIT_REPLACE: ("blob.delete", "blob.put", "document.update"),
    IntentKind.DELETE: ("document.delete", "blob.delete"),
}


def build_intent(
    kind: IntentKind, post_id: str, author_id: str, asset_path: str,
) -> dict:
    """Describe a cross-store operation about to start."""
    return {
        "kind": kind.value,
        "post_id": post_id,
        "author_id": author_id,
        "asset_path": asset_path,
        "steps": list(INTENT_STEPS[kind]),
    }


def failure_detail(step: str, exc: Exception) -> str:
    """Short, log-safe description of where an intent stopped."""
    return f"{step}: {type(exc).__name__}: {exc}"[:500]
