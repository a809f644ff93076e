"""Cluster post-processing: entry-target sizing, small-cluster merge, dedup.

Runs after graph clustering and LLM refinement so that repeated syncs
converge on roughly one entry per real project.  All functions are PURE
and never mutate their input clusters.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass

import structlog

from story_clustering.clustering.config import PostProcessConfig
from story_clustering.clustering.models import Activity, Cluster, merge_clusters

logger = structlog.get_logger()


@dataclass(frozen=True)
class EntryTarget:
    """How many entries to create and how large each must be.

    ``min_activities_per_entry`` is ``math.inf`` when nothing should be
    created, so every size comparison fails.
    """

    target_entries: int
    min_activities_per_entry: float


def project_key(activity: Activity) -> str:
    """Container, else declared repository, else ``tool:<source>``."""
    if activity.container:
        return activity.container
    raw = activity.raw_data
    if isinstance(raw, dict) and isinstance(raw.get("repository"), str):
        return raw["repository"]
    return f"tool:{activity.source}"


def compute_entry_target(
    activities: list[Activity],
    existing_entry_count: int,
    config: PostProcessConfig | None = None,
) -> EntryTarget:
    """Derive the entry target from the number of significant projects.

    Args:
        activities: All enriched activities of this sync.
        existing_entry_count: Grouping records the user already has.
        config: Thresholds; defaults when ``None``.

    Returns:
        ``EntryTarget(0, inf)`` when existing entries already cover every
        significant project, else ``max(3, remaining)`` entries.
    """
    config = config or PostProcessConfig()
    counts = Counter(project_key(a) for a in activities)
    significant = sum(1 for n in counts.values() if n >= config.significant_project_min)
    remaining = min(significant, config.max_significant_projects) - existing_entry_count

    if remaining <= 0:
        return EntryTarget(target_entries=0, min_activities_per_entry=math.inf)

    target = max(config.min_target_entries, remaining)
    min_per_entry = max(
        config.min_activities_per_entry, len(activities) // (target * 3)
    )
    return EntryTarget(target_entries=target, min_activities_per_entry=min_per_entry)


def merge_small_clusters(
    clusters: list[Cluster],
    target_entries: int,
    overshoot_factor: float = 1.2,
) -> list[Cluster]:
    """Merge smallest clusters until count <= ``ceil(target * overshoot)``.

    The smallest cluster goes into the first same-container partner if one
    exists, else into the next-smallest cluster.  Total activity count is
    conserved.
    """
    if target_entries <= 0:
        return list(clusters)
    max_clusters = math.ceil(target_entries * overshoot_factor)
    if len(clusters) <= max_clusters:
        return list(clusters)

    # sorted() is stable, so equal sizes keep their input order.
    ordered = sorted(clusters, key=lambda c: c.size)
    while len(ordered) > max_clusters and len(ordered) >= 2:
        smallest = ordered[0]
        partner_idx = 1
        if smallest.dominant_container is not None:
            for i, candidate in enumerate(ordered[1:], start=1):
                if candidate.dominant_container == smallest.dominant_container:
                    partner_idx = i
                    break

        partner = ordered[partner_idx]
        merged = merge_clusters(partner, smallest)
        logger.debug(
            "cluster_merged",
            source=smallest.id,
            target=partner.id,
            size=merged.size,
            same_container=smallest.dominant_container is not None
            and partner.dominant_container == smallest.dominant_container,
        )
        ordered[partner_idx] = merged
        del ordered[0]
        ordered.sort(key=lambda c: c.size)

    return ordered


def dedup_clusters_by_container(
    clusters: list[Cluster],
    max_merge_size: int = 15,
) -> list[Cluster]:
    """Merge clusters sharing a dominant container (same repo = same project).

    Size-gated: two clusters merge only if at least one has fewer than
    ``max_merge_size`` activities.  Two large clusters of one repository
    are an intentional temporal split and stay separate.  Clusters with
    no dominant container pass through unchanged.
    """
    result: list[Cluster] = []
    index_by_container: dict[str, int] = {}

    for cluster in clusters:
        container = cluster.dominant_container
        if not container:
            result.append(cluster)
            continue

        idx = index_by_container.get(container)
        if idx is None:
            index_by_container[container] = len(result)
            result.append(cluster)
            continue

        existing = result[idx]
        if existing.size < max_merge_size or cluster.size < max_merge_size:
            result[idx] = merge_clusters(existing, cluster)
            logger.debug(
                "cluster_deduped",
                container=container,
                kept=existing.id,
                absorbed=cluster.id,
                size=result[idx].size,
            )
        else:
            result.append(cluster)

    return result
