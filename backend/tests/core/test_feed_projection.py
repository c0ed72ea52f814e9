"""Feed Projection — tests for record mapping, ordering and scopes.

Tests cover:
    - createdAt descending, equal timestamps ordered by id ascending
    - limit applied after ordering
    - missing optional fields project to defaults (NoAsset, Anonymous)
    - FeedProjector replaces its snapshot and restarts iteration each time
    - FeedScope query shapes (global, filtered by author)
"""

from timeline.core.assets import Attached, NoAsset
from timeline.core.domain_types import FeedScopeKind
from timeline.core.feed_projection import (
    FeedProjector, FeedScope, order_entries, project_record,
)


def _record(post_id, created_at, **extra):
    return {"id": post_id, "body": f"post {post_id}", "createdAt": created_at,
            "authorId": "alice", "username": "Alice", **extra}


def test_project_record_maps_fields():
    entry = project_record(_record("p1", 10, updatedAt=12, asset="tweets/alice/p1?v=x"))
    assert entry.id == "p1"
    assert entry.body == "post p1"
    assert entry.author_id == "alice"
    assert entry.created_at == 10
    assert entry.updated_at == 12
    assert entry.asset == Attached("tweets/alice/p1?v=x")
    assert entry.has_asset


def test_project_record_defaults_for_missing_fields():
    entry = project_record({"id": "p1", "body": "x", "createdAt": 1, "authorId": "a"})
    assert entry.asset == NoAsset()
    assert entry.updated_at is None
    assert entry.username == "Anonymous"
    assert not entry.has_asset


def test_order_entries_descending_by_created_at():
    entries = [project_record(_record(p, t)) for p, t in [("a", 1), ("b", 3), ("c", 2)]]
    assert [e.id for e in order_entries(entries)] == ["b", "c", "a"]


def test_order_entries_breaks_ties_by_id():
    entries = [project_record(_record(p, 5)) for p in ["z", "m", "a"]]
    assert [e.id for e in order_entries(entries)] == ["a", "m", "z"]


def test_order_entries_applies_limit_after_sorting():
    entries = [project_record(_record(str(i), i)) for i in range(30)]
    ordered = order_entries(entries, limit=25)
    assert len(ordered) == 25
    assert ordered[0].id == "29"
    assert ordered[-1].id == "5"


def test_projector_replaces_snapshot():
    projector = FeedProjector(limit=2)
    projector.apply_snapshot([_record("a", 1), _record("b", 2)])
    projector.apply_snapshot([_record("c", 3)])
    assert [e.id for e in projector] == ["c"]
    assert len(projector) == 1


def test_projector_iteration_restarts():
    projector = FeedProjector()
    projector.apply_snapshot([_record("a", 1), _record("b", 2)])
    assert [e.id for e in projector] == ["b", "a"]
    assert [e.id for e in projector] == ["b", "a"]


def test_projector_get():
    projector = FeedProjector()
    projector.apply_snapshot([_record("a", 1)])
    assert projector.get("a").id == "a"
    assert projector.get("missing") is None


def test_global_scope_query():
    scope = FeedScope.global_feed()
    query = scope.to_query(25)
    assert scope.kind == FeedScopeKind.GLOBAL
    assert query.collection == "tweets"
    assert query.order_by == "createdAt"
    assert query.descending
    assert query.limit == 25
    assert query.where is None


def test_author_scope_query_filters_by_author():
    scope = FeedScope.by_author("alice")
    query = scope.to_query(None)
    assert query.limit is None
    assert query.where == ("authorId", "alice")
