"""Translate final clusters and orphan windows into grouping records.

Each record is reconciled against what the user already has:

* no matching record: create one (narrative pending)
* matching record whose ids already cover the new ones: skip
* otherwise: union the ids, update, and reset the narrative to pending

Cluster records match on the derived display name; temporal records match
on any overlapping time range.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from story_clustering.clustering.models import Activity, Cluster
from story_clustering.clustering.naming import derive_cluster_name
from story_clustering.models.grouping_record import GroupingRecord
from story_clustering.sync.store import GroupingRecordStore, to_naive_utc
from story_clustering.sync.titles import (
    build_cluster_title,
    build_temporal_title,
    cluster_description,
    short_date,
    temporal_description,
    tools_from_description,
)

logger = structlog.get_logger()

CLUSTER_TAGS = ["production", "cluster-based"]
TEMPORAL_TAGS = ["production", "temporal"]


@dataclass
class RecordOutcome:
    """What happened to one candidate record during a sync."""

    status: str  # "created", "updated" or "skipped"
    grouping_method: str
    title: str
    activity_count: int
    record_id: int | None = None


def union_ids(existing: list[str], incoming: list[str]) -> list[str]:
    """Existing ids first, then new ones, without duplicates."""
    return list(dict.fromkeys([*existing, *incoming]))


def _widen(record: GroupingRecord, start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = to_naive_utc(start), to_naive_utc(end)
    if record.time_range_start is not None:
        start = min(start, record.time_range_start)
    if record.time_range_end is not None:
        end = max(end, record.time_range_end)
    return start, end


async def _union_or_skip(
    store: GroupingRecordStore,
    existing: GroupingRecord,
    activities: list[Activity],
    grouping_method: str,
    start: datetime,
    end: datetime,
) -> RecordOutcome:
    merged = union_ids(list(existing.activity_ids or []), [a.id for a in activities])
    if len(merged) == len(existing.activity_ids or []):
        logger.debug(
            "grouping_record_unchanged",
            record_id=existing.id,
            grouping_method=grouping_method,
            title=existing.title,
        )
        return RecordOutcome("skipped", grouping_method, existing.title, len(merged), existing.id)

    describe = cluster_description if grouping_method == "cluster" else temporal_description
    new_start, new_end = _widen(existing, start, end)
    updated = await store.update_activity_ids(
        existing.id,
        merged,
        describe(len(merged), activities, tools_from_description(existing.description)),
        time_range_start=new_start,
        time_range_end=new_end,
    )
    logger.info(
        "grouping_record_updated",
        record_id=existing.id,
        grouping_method=grouping_method,
        before=len(existing.activity_ids or []),
        after=len(merged),
    )
    title = updated.title if updated is not None else existing.title
    return RecordOutcome("updated", grouping_method, title, len(merged), existing.id)


async def materialize_cluster(
    store: GroupingRecordStore,
    author_id: str,
    source_mode: str,
    cluster: Cluster,
) -> RecordOutcome:
    """Create or union the cluster record keyed by the cluster's display name."""
    activities = sorted(cluster.activities, key=lambda a: a.timestamp)
    start, end = activities[0].timestamp, activities[-1].timestamp
    display_name = derive_cluster_name(cluster.name, cluster.dominant_container)
    title = build_cluster_title(display_name, activities)

    existing = await store.find_cluster_record(author_id, source_mode, display_name)
    if existing is not None:
        return await _union_or_skip(store, existing, activities, "cluster", start, end)

    record = await store.create_record(
        author_id=author_id,
        source_mode=source_mode,
        grouping_method="cluster",
        title=title,
        description=cluster_description(len(activities), activities),
        activity_ids=cluster.activity_ids,
        time_range_start=start,
        time_range_end=end,
        cluster_ref=display_name,
        tags=list(CLUSTER_TAGS),
    )
    if record is None:
        return RecordOutcome("skipped", "cluster", title, cluster.size)
    logger.info("grouping_record_created", record_id=record.id, grouping_method="cluster", title=title)
    return RecordOutcome("created", "cluster", title, cluster.size, record.id)


async def materialize_clusters(
    store: GroupingRecordStore,
    author_id: str,
    source_mode: str,
    clusters: list[Cluster],
    min_activities_per_entry: float,
) -> list[RecordOutcome]:
    """Materialize every cluster with at least ``min_activities_per_entry`` members."""
    outcomes = []
    for cluster in clusters:
        if cluster.size >= min_activities_per_entry:
            outcomes.append(await materialize_cluster(store, author_id, source_mode, cluster))
    return outcomes


def split_into_windows(activities: list[Activity], window_days: int = 14) -> list[list[Activity]]:
    """Consecutive non-overlapping windows starting at the earliest activity.

    Empty windows are omitted; each window is chronologically sorted.
    """
    if not activities:
        return []
    ordered = sorted(activities, key=lambda a: a.timestamp)
    size = timedelta(days=window_days)

    windows: list[list[Activity]] = []
    window_start = ordered[0].timestamp
    current: list[Activity] = []
    for activity in ordered:
        while activity.timestamp >= window_start + size:
            if current:
                windows.append(current)
                current = []
            window_start += size
        current.append(activity)
    if current:
        windows.append(current)
    return windows


async def materialize_window(
    store: GroupingRecordStore,
    author_id: str,
    source_mode: str,
    activities: list[Activity],
) -> RecordOutcome:
    """Create or union the temporal record overlapping this window."""
    start, end = activities[0].timestamp, activities[-1].timestamp
    title = build_temporal_title(activities, short_date(start), short_date(end))

    existing = await store.find_overlapping_temporal_record(author_id, source_mode, start, end)
    if existing is not None:
        return await _union_or_skip(store, existing, activities, "time", start, end)

    record = await store.create_record(
        author_id=author_id,
        source_mode=source_mode,
        grouping_method="time",
        title=title,
        description=temporal_description(len(activities), activities),
        activity_ids=[a.id for a in activities],
        time_range_start=start,
        time_range_end=end,
        tags=list(TEMPORAL_TAGS),
    )
    if record is None:
        return RecordOutcome("skipped", "time", title, len(activities))
    logger.info("grouping_record_created", record_id=record.id, grouping_method="time", title=title)
    return RecordOutcome("created", "time", title, len(activities), record.id)


async def materialize_orphans(
    store: GroupingRecordStore,
    author_id: str,
    source_mode: str,
    orphans: list[Activity],
    min_activities_per_entry: float,
    window_days: int = 14,
) -> list[RecordOutcome]:
    """Materialize orphan activities as time-window records."""
    outcomes = []
    for window in split_into_windows(orphans, window_days):
        if len(window) >= min_activities_per_entry:
            outcomes.append(await materialize_window(store, author_id, source_mode, window))
    return outcomes
