"""Collaboration signal extraction.

Pulls the two non-ref clustering signals out of an activity's raw payload:

- **collaborators**: normalized people involved, excluding the user
- **container**: feature branch / epic / thread / space / file key

Dispatch is on the activity's declared source; payload shape is never
used to guess the tool.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from story_clustering.extraction.raw_data import parse_raw_data

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExtractedSignals:
    collaborators: list[str] = field(default_factory=list)
    container: str | None = None


def extract_signals(
    source_type: str,
    raw_data: dict | None,
    self_identifiers: Iterable[str],
) -> ExtractedSignals:
    """Extract collaborators and container from a per-tool payload.

    Args:
        source_type: The activity's declared tool type.
        raw_data: Opaque tool payload (may be ``None``).
        self_identifiers: The user's own handles/emails; removed from
            the collaborator list case-insensitively.

    Returns:
        ``ExtractedSignals``; empty for unknown sources or missing payloads.
    """
    try:
        parsed = parse_raw_data(source_type, raw_data)
        if parsed is None:
            return ExtractedSignals()

        self_set = {s.lower() for s in self_identifiers if isinstance(s, str)}
        return ExtractedSignals(
            collaborators=_filter_self_and_dedupe(parsed.extract_collaborators(), self_set),
            container=parsed.extract_container(),
        )
    except Exception as e:
        logger.warning("signal_extraction_failed", source=source_type, error=str(e))
        return ExtractedSignals()


def _filter_self_and_dedupe(people: list[str], self_set: set[str]) -> list[str]:
    result: dict[str, None] = {}
    for person in people:
        normalized = person.strip().lower()
        if normalized and normalized not in self_set:
            result.setdefault(normalized, None)
    return list(result)
