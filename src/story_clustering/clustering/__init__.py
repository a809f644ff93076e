"""Graph-based clustering of work activities.

Turns shared refs, containers and collaborators into project clusters
using networkx connected components, then sizes and deduplicates them.
"""

from .graph_cluster import cluster_activities, orphan_activities
from .models import Activity, Cluster
from .postprocess import (
    EntryTarget,
    compute_entry_target,
    dedup_clusters_by_container,
    merge_small_clusters,
)

__all__ = [
    "Activity",
    "Cluster",
    "EntryTarget",
    "cluster_activities",
    "compute_entry_target",
    "dedup_clusters_by_container",
    "merge_small_clusters",
    "orphan_activities",
]
