"""LLM-assisted second pass over activities the graph left unclustered.

Some activities are related only through free text the ref grammar cannot
see (a meeting about "the billing migration", a doc without links).
Candidates are sent in fixed-size sequential batches together with a
snapshot of the current clusters; each validated batch is applied before
the next snapshot is built, so clusters created in batch N are visible to
batch N+1.  A failed, timed-out or invalid batch leaves its activities
unclustered and processing continues.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from story_clustering.clustering.config import RefinementConfig
from story_clustering.clustering.models import Activity, Cluster, build_cluster, clone_cluster
from story_clustering.llm.timeouts import with_timeout
from story_clustering.refinement.prompt import SYSTEM_PROMPT, format_assignment_prompt
from story_clustering.refinement.schemas import (
    CandidateActivity,
    ClusterSummary,
    ParsedAssignment,
)
from story_clustering.refinement.validation import validate_cluster_assignment

if TYPE_CHECKING:
    from story_clustering.llm.client import TaskExecutor

logger = structlog.get_logger()


def _short_date(value) -> str:
    return f"{value:%b} {value.day}"


def summarize_clusters(clusters: Iterable[Cluster], top_activities: int = 3) -> list[ClusterSummary]:
    """Build the cluster snapshot shown to the model."""
    summaries = []
    for idx, cluster in enumerate(clusters, start=1):
        date_range = cluster.metrics.date_range
        summaries.append(
            ClusterSummary(
                id=cluster.id,
                name=cluster.name or f"Cluster {idx}",
                activity_count=cluster.size,
                date_range=f"{_short_date(date_range.start)} - {_short_date(date_range.end)}",
                tool_summary=", ".join(cluster.metrics.tool_types),
                top_activities=", ".join(a.title for a in cluster.activities[:top_activities]),
            )
        )
    return summaries


def to_candidate(activity: Activity, current_cluster_id: str | None = None) -> CandidateActivity:
    return CandidateActivity(
        id=activity.id,
        source=activity.source,
        title=activity.title,
        date=_short_date(activity.timestamp),
        current_cluster_id=current_cluster_id,
        description=activity.description,
    )


async def request_assignments(
    executor: TaskExecutor,
    clusters: list[Cluster],
    batch: list[CandidateActivity],
    config: RefinementConfig,
    label: str,
) -> dict[str, ParsedAssignment] | None:
    """Ask the model to place one batch; ``None`` if there is no usable answer."""
    snapshot = summarize_clusters(clusters, config.top_activities)
    prompt = format_assignment_prompt(snapshot, batch, config.description_chars)

    try:
        result = await with_timeout(
            executor.execute_task(
                "cluster-assign",
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                config.quality_tier,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            ),
            config.timeout_seconds,
            label,
        )
    except Exception as e:
        logger.warning("cluster_assign_call_failed", batch=label, error=str(e))
        return None

    if result is None:
        return None

    validation = validate_cluster_assignment(result.content, batch, [s.id for s in snapshot])
    if not validation.valid:
        logger.warning(
            "cluster_assign_rejected",
            batch=label,
            model=result.model,
            error_count=len(validation.errors),
            errors=validation.errors[:10],
        )
        return None

    logger.debug(
        "cluster_assign_accepted",
        batch=label,
        model=result.model,
        assignments=len(validation.parsed),
        estimated_cost_usd=result.estimated_cost,
    )
    return validation.parsed


def apply_assignments(
    clusters: list[Cluster],
    assignments: dict[str, ParsedAssignment],
    activities_by_id: dict[str, Activity],
    next_cluster_number: int,
) -> tuple[list[Cluster], int]:
    """Apply one validated batch.

    MOVE appends the activity to its target (removing it from any cluster
    it was in), NEW groups form fresh clusters named after the NEW target,
    KEEP changes nothing.  Emptied clusters are dropped.

    Returns:
        ``(clusters, next_cluster_number)``.
    """
    members: dict[str, list[Activity]] = {c.id: list(c.activities) for c in clusters}
    current_of = {a.id: c.id for c in clusters for a in c.activities}
    new_groups: dict[str, list[Activity]] = {}

    for activity_id, assignment in assignments.items():
        activity = activities_by_id.get(activity_id)
        if activity is None or assignment.action == "KEEP":
            continue

        current = current_of.get(activity_id)
        if current is not None:
            members[current] = [a for a in members[current] if a.id != activity_id]

        if assignment.action == "MOVE":
            members[assignment.target].append(activity)
        else:
            new_groups.setdefault(assignment.target, []).append(activity)

    updated: list[Cluster] = []
    for cluster in clusters:
        if members[cluster.id] == cluster.activities:
            updated.append(cluster)
        elif members[cluster.id]:
            updated.append(build_cluster(cluster.id, members[cluster.id], name=cluster.name))

    for name, group in new_groups.items():
        updated.append(build_cluster(f"refined_{next_cluster_number}", group, name=name))
        next_cluster_number += 1

    return updated, next_cluster_number


async def refine_clusters(
    clusters: list[Cluster],
    activities: list[Activity],
    executor: TaskExecutor | None,
    config: RefinementConfig | None = None,
) -> list[Cluster]:
    """Place unclustered activities into existing or new clusters via the LLM.

    Args:
        clusters: Graph clusters (not mutated).
        activities: All enriched activities of this run.
        executor: LLM task executor; ``None`` skips refinement.
        config: Batch size, timeout and sampling parameters.

    Returns:
        Updated clusters: originals plus any ``refined_<n>`` clusters.
    """
    config = config or RefinementConfig()
    result = [clone_cluster(c) for c in clusters]
    if executor is None or not config.enabled:
        return result

    clustered = {aid for c in result for aid in c.activity_ids}
    unclustered = [a for a in activities if a.id not in clustered]
    if not unclustered:
        logger.debug("cluster_refinement_skip", reason="all_activities_clustered")
        return result

    run_id = str(uuid.uuid4())[:8]
    log = logger.bind(run_id=run_id, candidates=len(unclustered), clusters=len(result))
    log.info("cluster_refinement_start")

    activities_by_id = {a.id: a for a in unclustered}
    candidates = [to_candidate(a) for a in unclustered]
    batch_size = max(1, config.batch_size)
    next_number = 1
    assigned = 0
    failed_batches = 0

    for batch_number, start in enumerate(range(0, len(candidates), batch_size), start=1):
        batch = candidates[start:start + batch_size]
        assignments = await request_assignments(
            executor, result, batch, config, label=f"{run_id}:{batch_number}"
        )
        if assignments is None:
            failed_batches += 1
            continue

        result, next_number = apply_assignments(result, assignments, activities_by_id, next_number)
        assigned += sum(1 for a in assignments.values() if a.action != "KEEP")

    log.info(
        "cluster_refinement_complete",
        assigned=assigned,
        failed_batches=failed_batches,
        new_clusters=next_number - 1,
        total_clusters=len(result),
    )
    return result
