"""Types exchanged with the cluster-assignment LLM call."""
from __future__ import annotations

from dataclasses import dataclass, field

ACTIONS = ("KEEP", "MOVE", "NEW")


@dataclass(frozen=True)
class ClusterSummary:
    """Snapshot of one current cluster as shown to the model."""

    id: str
    name: str
    activity_count: int
    date_range: str
    tool_summary: str
    top_activities: str


@dataclass(frozen=True)
class CandidateActivity:
    """An activity the model must place.

    ``current_cluster_id`` is ``None`` for unclustered activities, which
    makes ``KEEP`` illegal for them.
    """

    id: str
    source: str
    title: str
    date: str
    current_cluster_id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ParsedAssignment:
    action: str
    target: str


@dataclass
class AssignmentValidation:
    """Outcome of validating one raw model response.

    ``parsed`` is filled only when ``valid`` is true: a response with any
    violation is rejected as a whole.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    parsed: dict[str, ParsedAssignment] = field(default_factory=dict)
