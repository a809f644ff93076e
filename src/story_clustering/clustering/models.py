"""In-memory activity and cluster types shared by every pipeline stage.

All functions here are PURE -- no database access, no LLM calls.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Activity:
    """One ingested event from an external work tool.

    Attributes:
        id: Stable activity identifier (unique per user).
        source: Tool type (``"github"``, ``"jira"``, ``"slack"``, ...).
        source_id: Identifier inside the source tool.
        source_url: Link back to the source tool, if any.
        title: Short human title.
        description: Longer free text, if any.
        timestamp: When the activity happened.
        raw_data: Opaque per-tool payload.
        cross_tool_refs: Extracted refs (recomputed every run).
        container: Tool-specific grouping key (recomputed every run).
        collaborators: Normalized people, self excluded (recomputed every run).
    """

    id: str
    source: str
    source_id: str
    title: str
    timestamp: datetime
    source_url: str | None = None
    description: str | None = None
    raw_data: dict | None = None
    cross_tool_refs: tuple[str, ...] = ()
    container: str | None = None
    collaborators: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> Activity:
        """Build an activity from a feed dict (camelCase or snake_case keys)."""
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        raw_data = data.get("raw_data", data.get("rawData"))
        return cls(
            id=str(data["id"]),
            source=data["source"],
            source_id=str(data.get("source_id", data.get("sourceId", data["id"]))),
            source_url=data.get("source_url", data.get("sourceUrl")),
            title=data.get("title") or "",
            description=data.get("description"),
            timestamp=timestamp,
            raw_data=raw_data if isinstance(raw_data, dict) else None,
        )


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


@dataclass
class ClusterMetrics:
    date_range: DateRange
    tool_types: list[str] = field(default_factory=list)


@dataclass
class Cluster:
    """A connected set of activities believed to be one project.

    Clusters are ephemeral: produced fresh every run and discarded once
    translated into grouping records.
    """

    id: str
    name: str | None
    dominant_container: str | None
    activities: list[Activity]
    metrics: ClusterMetrics

    @property
    def activity_ids(self) -> list[str]:
        return [a.id for a in self.activities]

    @property
    def size(self) -> int:
        return len(self.activities)


def compute_date_range(timestamps: list[datetime]) -> DateRange:
    """Return ``[min, max]`` of the timestamps (``now`` for an empty list)."""
    if not timestamps:
        now = datetime.now()
        return DateRange(start=now, end=now)
    return DateRange(start=min(timestamps), end=max(timestamps))


def extract_tool_types(activities: list[Activity]) -> list[str]:
    """Distinct sources in first-seen order."""
    return list(dict.fromkeys(a.source for a in activities))


def compute_dominant_container(activities: list[Activity]) -> str | None:
    """Most frequent non-null container; ties go to the first seen."""
    counts = Counter(a.container for a in activities if a.container)
    if not counts:
        return None
    # Counter preserves insertion order, and max() keeps the first maximum.
    return max(counts, key=lambda c: counts[c])


def build_cluster(
    cluster_id: str,
    activities: list[Activity],
    name: str | None = None,
) -> Cluster:
    """Create a cluster with metrics and dominant container derived from members."""
    return Cluster(
        id=cluster_id,
        name=name,
        dominant_container=compute_dominant_container(activities),
        activities=list(activities),
        metrics=ClusterMetrics(
            date_range=compute_date_range([a.timestamp for a in activities]),
            tool_types=extract_tool_types(activities),
        ),
    )


def merge_clusters(target: Cluster, source: Cluster) -> Cluster:
    """Return a new cluster holding the union of both memberships.

    Keeps ``target``'s id, recomputes metrics and dominant container from
    the union, and keeps whichever name is longer.
    """
    seen = set(target.activity_ids)
    activities = list(target.activities)
    for activity in source.activities:
        if activity.id not in seen:
            seen.add(activity.id)
            activities.append(activity)

    name = target.name
    if source.name and (not name or len(source.name) > len(name)):
        name = source.name

    return build_cluster(target.id, activities, name=name)


def clone_cluster(cluster: Cluster, **changes) -> Cluster:
    """Shallow copy with an independent activity list."""
    return Cluster(
        id=changes.get("id", cluster.id),
        name=changes.get("name", cluster.name),
        dominant_container=changes.get("dominant_container", cluster.dominant_container),
        activities=list(changes.get("activities", cluster.activities)),
        metrics=ClusterMetrics(
            date_range=cluster.metrics.date_range,
            tool_types=list(cluster.metrics.tool_types),
        ),
    )
