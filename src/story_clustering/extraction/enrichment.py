"""Per-run activity enrichment: refs, container and collaborators.

Identity fields are never touched; enrichment returns new ``Activity``
instances with the three derived fields recomputed from scratch.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

import structlog

from story_clustering.clustering.models import Activity
from story_clustering.extraction.refs import RefExtractor, ref_extractor
from story_clustering.extraction.signals import extract_signals

logger = structlog.get_logger()


def extract_activity_refs(activity: Activity, extractor: RefExtractor = ref_extractor) -> list[str]:
    """Refs from the text fields first, then from the raw payload's strings."""
    refs = extractor.extract_refs_from_multiple(
        [activity.source_id, activity.title, activity.description, activity.source_url]
    )
    for ref in extractor.extract_refs_from_object(activity.raw_data):
        if ref not in refs:
            refs.append(ref)
    return refs


def enrich_activities(
    activities: list[Activity],
    self_identifiers: Iterable[str],
    extractor: RefExtractor = ref_extractor,
) -> list[Activity]:
    """Recompute ``cross_tool_refs``, ``container`` and ``collaborators``."""
    self_ids = list(self_identifiers)
    enriched = []
    for activity in activities:
        signals = extract_signals(activity.source, activity.raw_data, self_ids)
        enriched.append(
            dataclasses.replace(
                activity,
                cross_tool_refs=tuple(extract_activity_refs(activity, extractor)),
                container=signals.container,
                collaborators=tuple(signals.collaborators),
            )
        )

    logger.info(
        "signal_extraction_complete",
        activities=len(enriched),
        with_refs=sum(1 for a in enriched if a.cross_tool_refs),
        with_container=sum(1 for a in enriched if a.container),
        with_collaborators=sum(1 for a in enriched if a.collaborators),
    )
    return enriched
