"""Tests for record titles and idempotent materialization."""

from __future__ import annotations

from datetime import datetime, timedelta

from story_clustering.clustering.models import Activity, build_cluster
from story_clustering.sync.materialize import (
    materialize_clusters,
    materialize_orphans,
    split_into_windows,
    union_ids,
)
from story_clustering.sync.titles import (
    build_temporal_title,
    build_tool_summary,
    get_cluster_summary,
    short_date,
    tools_from_description,
)

BASE_TIME = datetime(2026, 3, 2, 9, 0)


# ---- Helpers ----

def _make_activity(
    id: str,
    source: str = "github",
    days: float = 0,
    title: str = "Activity",
    raw_data: dict | None = None,
    container: str | None = None,
) -> Activity:
    return Activity(
        id=id,
        source=source,
        source_id=id,
        title=title,
        timestamp=BASE_TIME + timedelta(days=days),
        raw_data=raw_data,
        container=container,
    )


def _oauth_cluster(ids=("a1", "a2", "a3")):
    activities = [
        _make_activity(aid, "github" if i % 2 == 0 else "jira", days=i, title=f"Token refresh part {i}")
        for i, aid in enumerate(ids)
    ]
    return build_cluster("cluster_1", activities, name="OAuth Revamp")


# ---- Titles ----

class TestTitles:
    def test_tool_summary(self):
        assert build_tool_summary([]) == ""
        assert build_tool_summary([_make_activity("a")]) == "github"
        assert build_tool_summary([_make_activity("a"), _make_activity("b", "jira")]) == "github and jira"
        three = [_make_activity("a"), _make_activity("b", "jira"), _make_activity("c", "slack")]
        assert build_tool_summary(three) == "github, jira, and slack"

    def test_tools_from_description(self):
        assert tools_from_description("4 related activities across github, jira, and slack") == [
            "github",
            "jira",
            "slack",
        ]
        assert tools_from_description("2 activities across github and jira") == ["github", "jira"]
        assert tools_from_description("3 activities across slack") == ["slack"]
        assert tools_from_description("hand-written note") == []
        assert tools_from_description(None) == []

    def test_cluster_summary_keyword(self):
        activities = [
            _make_activity("a", title="Add token refresh"),
            _make_activity("b", title="Fix token expiry"),
        ]
        assert get_cluster_summary(activities) == "Token Work"

    def test_cluster_summary_ignores_stopwords(self):
        activities = [
            _make_activity("a", title="this fix"),
            _make_activity("b", title="this change"),
        ]
        assert get_cluster_summary(activities) == "Cross-Tool Collaboration"

    def test_cluster_summary_needs_repeat(self):
        activities = [_make_activity("a", title="Unique words only")]
        assert get_cluster_summary(activities) == "Cross-Tool Collaboration"

    def test_temporal_title_single_repo(self):
        activities = [
            _make_activity("a", raw_data={"repository": "acme/web"}),
            _make_activity("b", raw_data={"repository": "acme/web"}),
        ]
        assert build_temporal_title(activities, "Mar 2", "Mar 9") == "web: Mar 2 - Mar 9 (2 activities)"

    def test_temporal_title_multiple_repos(self):
        activities = [
            _make_activity("a", raw_data={"repository": "acme/web"}),
            _make_activity("b", raw_data={"repository": "acme/api"}),
            _make_activity("c", "slack"),
        ]
        assert build_temporal_title(activities, "Mar 2", "Mar 9") == "2 projects: Mar 2 - Mar 9 (3 activities)"

    def test_temporal_title_tool_counts(self):
        activities = [
            _make_activity("a", "jira"),
            _make_activity("b", "slack"),
            _make_activity("c", "slack"),
        ]
        assert build_temporal_title(activities, "Mar 2", "Mar 9") == "Week of Mar 2 - Mar 9 (2 slack, 1 jira)"

    def test_short_date(self):
        assert short_date(datetime(2026, 3, 2)) == "Mar 2"


# ---- Windows ----

class TestSplitIntoWindows:
    def test_consecutive_windows_from_earliest(self):
        activities = [
            _make_activity("late", days=30),
            _make_activity("d0", days=0),
            _make_activity("d14", days=14),
            _make_activity("d1", days=1),
            _make_activity("d13", days=13.9),
        ]
        windows = split_into_windows(activities, window_days=14)
        assert [[a.id for a in w] for w in windows] == [["d0", "d1", "d13"], ["d14"], ["late"]]

    def test_empty(self):
        assert split_into_windows([]) == []


def test_union_ids_keeps_existing_order():
    assert union_ids(["a", "b"], ["c", "a"]) == ["a", "b", "c"]


# ---- Cluster records ----

class TestMaterializeClusters:
    async def test_create_then_rerun_is_noop(self, store):
        cluster = _oauth_cluster()

        first = await materialize_clusters(store, "user-1", "production", [cluster], 3)
        second = await materialize_clusters(store, "user-1", "production", [cluster], 3)

        assert [o.status for o in first] == ["created"]
        assert first[0].title == "OAuth Revamp: Token Work"
        assert [o.status for o in second] == ["skipped"]
        assert await store.count_records("user-1", "production") == 1

    async def test_new_members_union_and_reset_narrative(self, store):
        [created] = await materialize_clusters(store, "user-1", "production", [_oauth_cluster()], 3)
        await store.mark_narrative_generated(created.record_id)

        grown = _oauth_cluster(ids=("a2", "a3", "a4"))
        [outcome] = await materialize_clusters(store, "user-1", "production", [grown], 3)

        record = await store.find_cluster_record("user-1", "production", "OAuth Revamp")
        assert outcome.status == "updated"
        assert record.activity_ids == ["a1", "a2", "a3", "a4"]
        assert record.narrative_pending is True
        assert record.generated_at is None
        assert record.description.startswith("4 related activities across")

    async def test_small_clusters_not_materialized(self, store):
        outcomes = await materialize_clusters(store, "user-1", "production", [_oauth_cluster()], 4)
        assert outcomes == []

    async def test_container_derived_display_name(self, store):
        activities = [
            _make_activity("a", container="repo:acme/web"),
            _make_activity("b", container="repo:acme/web"),
        ]
        cluster = build_cluster("cluster_1", activities)

        await materialize_clusters(store, "user-1", "production", [cluster], 2)

        record = await store.find_cluster_record("user-1", "production", "web")
        assert record is not None
        assert record.tags == ["production", "cluster-based"]


# ---- Temporal records ----

class TestMaterializeOrphans:
    async def test_windows_below_threshold_skipped(self, store):
        orphans = [
            _make_activity("s1", "slack", days=0),
            _make_activity("s2", "slack", days=1),
            _make_activity("s3", "slack", days=2),
            _make_activity("s4", "slack", days=20),
        ]

        outcomes = await materialize_orphans(store, "user-1", "production", orphans, 3)

        assert [(o.status, o.activity_count) for o in outcomes] == [("created", 3)]
        assert outcomes[0].title == "Week of Mar 2 - Mar 4 (3 slack)"

    async def test_overlapping_window_unions(self, store):
        first = [_make_activity(f"s{i}", "slack", days=i) for i in range(3)]
        await materialize_orphans(store, "user-1", "production", first, 3)

        later = [_make_activity(f"t{i}", "jira", days=1 + i) for i in range(3)]
        [outcome] = await materialize_orphans(store, "user-1", "production", later, 3)

        assert outcome.status == "updated"
        assert outcome.activity_count == 6
        assert await store.count_records("user-1", "production") == 1

        record = await store.find_overlapping_temporal_record(
            "user-1", "production", BASE_TIME, BASE_TIME + timedelta(days=3)
        )
        assert record.description == "6 activities across slack and jira"

    async def test_rerun_is_noop(self, store):
        orphans = [_make_activity(f"s{i}", "slack", days=i) for i in range(3)]
        await materialize_orphans(store, "user-1", "production", orphans, 3)

        [outcome] = await materialize_orphans(store, "user-1", "production", orphans, 3)

        assert outcome.status == "skipped"
