"""Graph-based clustering using networkx connected components.

Builds an undirected graph over activities with an edge for every shared
cross-tool ref and every shared container.  Collaborator overlap close in
time only attaches a loose activity to one of those components; it never
links activities on its own.  Connected components of
at least ``min_cluster_size`` become clusters; everything else is an
orphan.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import timedelta

import networkx as nx
import structlog

from story_clustering.clustering.config import GraphConfig
from story_clustering.clustering.models import Activity, Cluster, build_cluster

logger = structlog.get_logger()


def build_activity_graph(activities: list[Activity], config: GraphConfig) -> nx.Graph:
    """Build the similarity graph.

    Nodes are activity IDs in input order.  Edge ``weight`` is the
    strongest signal linking the pair; ``signals`` lists every kind seen.
    """
    G = nx.Graph()
    for activity in activities:
        G.add_node(activity.id)

    by_ref: dict[str, list[str]] = defaultdict(list)
    by_container: dict[str, list[str]] = defaultdict(list)
    for activity in activities:
        for ref in dict.fromkeys(activity.cross_tool_refs):
            by_ref[ref].append(activity.id)
        if activity.container:
            by_container[activity.container].append(activity.id)

    # A chain over each group gives the same components as a clique.
    for ids in by_ref.values():
        for a, b in zip(ids, ids[1:]):
            _add_edge(G, a, b, "ref", config.weights.ref)
    for ids in by_container.values():
        for a, b in zip(ids, ids[1:]):
            _add_edge(G, a, b, "container", config.weights.container)

    if config.collaborator_window_hours is not None:
        _add_collaborator_edges(G, activities, config)

    return G


def _add_collaborator_edges(G: nx.Graph, activities: list[Activity], config: GraphConfig) -> None:
    """Attach loose activities to an existing component through a shared collaborator.

    Components here are the ones ref and container edges already built.  A
    loose activity joins the component it shares the most collaborator
    overlaps with inside the time window (first seen wins a tie).  Two
    loose activities are never linked this way, and two components are
    never bridged.
    """
    window = timedelta(hours=config.collaborator_window_hours)

    component_of: dict[str, int] = {}
    for index, component in enumerate(nx.connected_components(G)):
        if len(component) > 1:
            for node in component:
                component_of[node] = index

    by_person: dict[str, list[Activity]] = defaultdict(list)
    for activity in activities:
        for person in dict.fromkeys(activity.collaborators):
            by_person[person].append(activity)

    # loose activity id -> [(component index, linked member id), ...]
    attachments: dict[str, list[tuple[int, str]]] = defaultdict(list)
    for members in by_person.values():
        ordered = sorted(members, key=lambda a: a.timestamp)
        for i, a in enumerate(ordered):
            for b in ordered[i + 1:]:
                if b.timestamp - a.timestamp > window:
                    break
                comp_a = component_of.get(a.id)
                comp_b = component_of.get(b.id)
                if comp_a is not None and comp_a == comp_b:
                    _add_edge(G, a.id, b.id, "collaborator", config.weights.collaborator)
                elif comp_a is None and comp_b is not None:
                    attachments[a.id].append((comp_b, b.id))
                elif comp_b is None and comp_a is not None:
                    attachments[b.id].append((comp_a, a.id))

    for loose_id, links in attachments.items():
        counts = Counter(comp for comp, _ in links)
        best = max(counts, key=counts.__getitem__)
        for comp, member_id in links:
            if comp == best:
                _add_edge(G, loose_id, member_id, "collaborator", config.weights.collaborator)


def _add_edge(G: nx.Graph, a: str, b: str, signal: str, weight: float) -> None:
    if a == b:
        return
    if G.has_edge(a, b):
        data = G.edges[a, b]
        data["weight"] = max(data["weight"], weight)
        if signal not in data["signals"]:
            data["signals"].append(signal)
    else:
        G.add_edge(a, b, weight=weight, signals=[signal])


def cluster_activities(
    activities: list[Activity],
    config: GraphConfig | None = None,
) -> list[Cluster]:
    """Group activities into clusters via connected components.

    Args:
        activities: Enriched activities (refs/container/collaborators set).
        config: Graph parameters; defaults when ``None``.

    Returns:
        Clusters ordered by the input position of their first member,
        members in input order, ids ``cluster_1``, ``cluster_2``, ...
    """
    config = config or GraphConfig()
    if not activities:
        return []

    # Duplicate ids would break the partition; first occurrence wins.
    first_seen: dict[str, Activity] = {}
    for activity in activities:
        first_seen.setdefault(activity.id, activity)
    unique = list(first_seen.values())
    position = {a.id: i for i, a in enumerate(unique)}
    by_id = {a.id: a for a in unique}

    G = build_activity_graph(unique, config)

    components = sorted(
        (sorted(component, key=position.__getitem__) for component in nx.connected_components(G)),
        key=lambda ids: position[ids[0]],
    )

    clusters: list[Cluster] = []
    for ids in components:
        if len(ids) < config.min_cluster_size:
            continue
        members = [by_id[i] for i in ids]
        clusters.append(
            build_cluster(f"cluster_{len(clusters) + 1}", members, name=_shared_ref_name(members))
        )

    logger.debug(
        "graph_clustering_complete",
        activities=len(unique),
        edges=G.number_of_edges(),
        components=len(components),
        clusters=len(clusters),
    )
    return clusters


def _shared_ref_name(members: list[Activity]) -> str | None:
    """Most common ref carried by at least two members (first-seen tiebreak)."""
    counts = Counter(ref for a in members for ref in dict.fromkeys(a.cross_tool_refs))
    shared = {ref: n for ref, n in counts.items() if n >= 2}
    if not shared:
        return None
    return max(shared, key=lambda ref: shared[ref])


def orphan_activities(activities: list[Activity], clusters: list[Cluster]) -> list[Activity]:
    """Activities not in any cluster, in input order."""
    clustered = {aid for c in clusters for aid in c.activity_ids}
    return [a for a in activities if a.id not in clustered]
