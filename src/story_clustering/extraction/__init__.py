"""Reference and signal extraction from raw work-tool activities."""

from .enrichment import enrich_activities
from .refs import (
    RefExtractor,
    extract_refs,
    extract_refs_from_multiple,
    extract_refs_from_object,
)
from .signals import ExtractedSignals, extract_signals

__all__ = [
    "ExtractedSignals",
    "RefExtractor",
    "enrich_activities",
    "extract_refs",
    "extract_refs_from_multiple",
    "extract_refs_from_object",
    "extract_signals",
]
