"""Activity clustering and story deduplication engine."""
