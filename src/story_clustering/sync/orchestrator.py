"""Clustering sync orchestrator.

Runs the whole pipeline for one author:

1. Enrich activities (refs, container, collaborators)
2. Graph clustering (pure)
3. LLM refinement of unclustered activities
4. LLM naming of clusters
5. Entry-target sizing against the author's existing records
6. Small-cluster merge and container dedup (pure)
7. Materialization of orphan windows and clusters as grouping records

The two LLM steps are the only suspension points besides the database.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from story_clustering.clustering.config import ClusteringConfig, load_clustering_config
from story_clustering.clustering.graph_cluster import cluster_activities, orphan_activities
from story_clustering.clustering.models import Activity, Cluster
from story_clustering.clustering.naming import name_clusters
from story_clustering.clustering.postprocess import (
    compute_entry_target,
    dedup_clusters_by_container,
    merge_small_clusters,
)
from story_clustering.config.settings import get_settings
from story_clustering.db.session import get_session_factory
from story_clustering.extraction.enrichment import enrich_activities
from story_clustering.llm.client import GeminiTaskExecutor, TaskExecutor
from story_clustering.refinement.assigner import refine_clusters
from story_clustering.sync.materialize import (
    RecordOutcome,
    materialize_clusters,
    materialize_orphans,
)
from story_clustering.sync.store import GroupingRecordStore

logger = structlog.get_logger()


@dataclass
class EntryPreview:
    id: int | None
    title: str
    grouping_method: str
    activity_count: int


@dataclass
class SyncResult:
    """Summary of one clustering sync."""

    activities_by_source: dict[str, int] = field(default_factory=dict)
    clusters_created: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    temporal_count: int = 0
    cluster_count: int = 0
    entry_previews: list[EntryPreview] = field(default_factory=list)
    clusters: list[Cluster] = field(default_factory=list)

    @property
    def entries_written(self) -> int:
        return self.records_created + self.records_updated


def _tally(result: SyncResult, outcomes: list[RecordOutcome]) -> None:
    for outcome in outcomes:
        if outcome.status == "created":
            result.records_created += 1
        elif outcome.status == "updated":
            result.records_updated += 1
        else:
            result.records_skipped += 1
            continue
        result.entry_previews.append(
            EntryPreview(
                id=outcome.record_id,
                title=outcome.title,
                grouping_method=outcome.grouping_method,
                activity_count=outcome.activity_count,
            )
        )


async def run_clustering_sync(
    author_id: str,
    activities: list[Activity],
    store: GroupingRecordStore,
    executor: TaskExecutor | None = None,
    config: ClusteringConfig | None = None,
    self_identifiers: Iterable[str] = (),
) -> SyncResult:
    """Cluster one author's activities and reconcile them with stored records.

    Args:
        author_id: Owner of the activities and records.
        activities: Raw activities from the feed (enrichment fields ignored).
        store: Grouping record store.
        executor: LLM task executor; ``None`` skips refinement and naming.
        config: Pipeline configuration; defaults when ``None``.
        self_identifiers: The author's tool handles/emails, excluded from
            collaborators.  ``author_id`` is always included.

    Returns:
        ``SyncResult`` with counts and previews of written records.
    """
    config = config or ClusteringConfig()
    source_mode = config.sync.source_mode
    log = logger.bind(author_id=author_id, source_mode=source_mode)
    log.info("clustering_sync_start", activity_count=len(activities))

    result = SyncResult(activities_by_source=dict(Counter(a.source for a in activities)))

    # Step 1: Enrichment
    enriched = enrich_activities(activities, [*self_identifiers, author_id])

    # Step 2: Graph clustering (pure)
    clusters = cluster_activities(enriched, config.graph)
    log.info("graph_clusters_built", clusters=len(clusters))

    # Step 3: LLM refinement of leftovers
    clusters = await refine_clusters(clusters, enriched, executor, config.refinement)

    # Step 4: LLM naming
    clusters = await name_clusters(clusters, executor, config.naming)
    result.clusters_created = len(clusters)

    # Step 5: Entry target against what the author already has
    existing = await store.count_records(author_id, source_mode)
    target = compute_entry_target(enriched, existing, config.postprocess)
    if target.target_entries == 0:
        log.info("entry_creation_skipped", existing_records=existing)
        result.clusters = clusters
        return result

    # Step 6: Merge and dedup (pure)
    clusters = merge_small_clusters(
        clusters, target.target_entries, config.postprocess.overshoot_factor
    )
    clusters = dedup_clusters_by_container(clusters, config.postprocess.max_merge_size)
    result.clusters = clusters
    log.info(
        "entry_target_applied",
        target_entries=target.target_entries,
        min_activities_per_entry=target.min_activities_per_entry,
        clusters=len(clusters),
    )

    # Step 7: Materialize orphans, then clusters
    orphans = orphan_activities(enriched, clusters)
    temporal = await materialize_orphans(
        store,
        author_id,
        source_mode,
        orphans,
        target.min_activities_per_entry,
        config.sync.window_days,
    )
    clustered = await materialize_clusters(
        store, author_id, source_mode, clusters, target.min_activities_per_entry
    )
    result.temporal_count = sum(1 for o in temporal if o.status != "skipped")
    result.cluster_count = sum(1 for o in clustered if o.status != "skipped")
    _tally(result, temporal + clustered)

    log.info(
        "clustering_sync_complete",
        clusters=len(clusters),
        orphans=len(orphans),
        created=result.records_created,
        updated=result.records_updated,
        skipped=result.records_skipped,
    )
    return result


async def sync_author(
    author_id: str,
    activities: list[Activity],
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    self_identifiers: Iterable[str] = (),
) -> SyncResult:
    """Run a sync with configuration, database and Gemini client from settings.

    The LLM steps are skipped when no Gemini API key is configured.
    """
    settings = get_settings()
    config = load_clustering_config(settings.clustering_config_path)
    api_key = config.llm.api_key or settings.gemini_api_key
    executor = None
    if api_key:
        executor = GeminiTaskExecutor(config.llm.model_copy(update={"api_key": api_key}))

    store = GroupingRecordStore(session_factory or get_session_factory())
    return await run_clustering_sync(
        author_id,
        activities,
        store,
        executor=executor,
        config=config,
        self_identifiers=self_identifiers,
    )
