"""Tests for grouping record persistence."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from story_clustering.sync.store import GroupingRecordStore, to_naive_utc

START = datetime(2026, 3, 2, 9, 0)


async def _create_cluster_record(store: GroupingRecordStore, cluster_ref: str = "OAuth Revamp", **overrides):
    fields = {
        "author_id": "user-1",
        "source_mode": "production",
        "grouping_method": "cluster",
        "title": f"{cluster_ref}: Token Work",
        "description": "2 related activities across github and jira",
        "activity_ids": ["a1", "a2"],
        "time_range_start": START,
        "time_range_end": START + timedelta(days=2),
        "cluster_ref": cluster_ref,
        "tags": ["production", "cluster-based"],
    }
    fields.update(overrides)
    return await store.create_record(**fields)


async def _create_temporal_record(store: GroupingRecordStore, start: datetime, days: int = 3):
    return await store.create_record(
        author_id="user-1",
        source_mode="production",
        grouping_method="time",
        title="Week of Mar 2 - Mar 5 (3 slack)",
        description="3 activities across slack",
        activity_ids=["s1", "s2", "s3"],
        time_range_start=start,
        time_range_end=start + timedelta(days=days),
        tags=["production", "temporal"],
    )


class TestCreateAndFind:
    async def test_create_sets_narrative_pending(self, store):
        record = await _create_cluster_record(store)

        assert record is not None
        assert record.id is not None
        assert record.narrative_pending is True
        assert record.generated_at is None
        assert record.activity_ids == ["a1", "a2"]

    async def test_find_cluster_record_by_display_name(self, store):
        created = await _create_cluster_record(store)

        found = await store.find_cluster_record("user-1", "production", "OAuth Revamp")

        assert found is not None
        assert found.id == created.id

    async def test_find_is_scoped_by_author_and_mode(self, store):
        await _create_cluster_record(store)

        assert await store.find_cluster_record("user-2", "production", "OAuth Revamp") is None
        assert await store.find_cluster_record("user-1", "demo", "OAuth Revamp") is None

    async def test_duplicate_cluster_ref_returns_none(self, store):
        """A concurrent sync creating the same cluster record is tolerated."""
        first = await _create_cluster_record(store)
        second = await _create_cluster_record(store)

        assert first is not None
        assert second is None
        assert await store.count_records("user-1", "production") == 1

    async def test_temporal_records_do_not_collide_on_null_ref(self, store):
        await _create_temporal_record(store, START)
        await _create_temporal_record(store, START + timedelta(days=20))

        assert await store.count_records("user-1", "production") == 2

    async def test_duplicate_time_window_start_returns_none(self, store):
        """Two syncs racing to create the same window leave one record."""
        first = await _create_temporal_record(store, START)
        second = await _create_temporal_record(store, START, days=5)

        assert first is not None
        assert second is None
        assert await store.count_records("user-1", "production") == 1

    async def test_cluster_record_may_share_a_window_start(self, store):
        await _create_temporal_record(store, START)

        assert await _create_cluster_record(store) is not None

    async def test_count_records(self, store):
        await _create_cluster_record(store, "A")
        await _create_cluster_record(store, "B")
        await _create_cluster_record(store, "C", source_mode="demo")

        assert await store.count_records("user-1", "production") == 2
        assert await store.count_records("user-1", "demo") == 1
        assert await store.count_records("user-2", "production") == 0


class TestOverlappingTemporal:
    async def test_overlap_found(self, store):
        created = await _create_temporal_record(store, START, days=3)

        found = await store.find_overlapping_temporal_record(
            "user-1", "production", START + timedelta(days=2), START + timedelta(days=10)
        )

        assert found is not None
        assert found.id == created.id

    async def test_disjoint_window_not_found(self, store):
        await _create_temporal_record(store, START, days=3)

        found = await store.find_overlapping_temporal_record(
            "user-1", "production", START + timedelta(days=4), START + timedelta(days=10)
        )

        assert found is None

    async def test_cluster_records_are_not_temporal(self, store):
        await _create_cluster_record(store)

        found = await store.find_overlapping_temporal_record(
            "user-1", "production", START, START + timedelta(days=1)
        )

        assert found is None

    async def test_aware_datetimes_compared_as_utc(self, store):
        await _create_temporal_record(store, START, days=1)
        aware_start = (START + timedelta(hours=12)).replace(tzinfo=timezone.utc)

        found = await store.find_overlapping_temporal_record(
            "user-1", "production", aware_start, aware_start + timedelta(hours=1)
        )

        assert found is not None


class TestUpdates:
    async def test_update_resets_narrative(self, store):
        record = await _create_cluster_record(store)
        await store.mark_narrative_generated(record.id)
        generated = await store.find_cluster_record("user-1", "production", "OAuth Revamp")
        assert generated.narrative_pending is False
        assert generated.generated_at is not None

        updated = await store.update_activity_ids(
            record.id, ["a1", "a2", "a3"], "3 related activities across github"
        )

        assert updated.activity_ids == ["a1", "a2", "a3"]
        assert updated.description == "3 related activities across github"
        assert updated.narrative_pending is True
        assert updated.generated_at is None

    async def test_update_widens_time_range(self, store):
        record = await _create_cluster_record(store)
        new_end = START + timedelta(days=9)

        updated = await store.update_activity_ids(
            record.id, ["a1", "a2", "a3"], "desc", time_range_end=new_end
        )

        assert updated.time_range_start == START
        assert updated.time_range_end == new_end

    async def test_update_keeps_range_when_start_collides(self, store):
        await _create_temporal_record(store, START, days=2)
        later = await _create_temporal_record(store, START + timedelta(days=5))

        updated = await store.update_activity_ids(
            later.id,
            ["s1", "s2", "s3", "s4"],
            "4 activities across slack",
            time_range_start=START,
            time_range_end=START + timedelta(days=8),
        )

        assert updated.activity_ids == ["s1", "s2", "s3", "s4"]
        assert updated.time_range_start == START + timedelta(days=5)
        assert updated.time_range_end == START + timedelta(days=8)


class TestToNaiveUtc:
    def test_naive_unchanged(self):
        assert to_naive_utc(START) == START

    def test_aware_converted(self):
        aware = datetime(2026, 3, 2, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_naive_utc(aware) == START
