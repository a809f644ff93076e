"""Cross-tool reference extraction.

Finds identifiers that link activities across tools (Jira keys, GitHub
PRs/issues, Confluence pages, Figma files, Meet codes) and normalizes
them to a single canonical string per target so that, e.g., a PR URL and
an ``org/repo#N`` mention in a Slack message produce the same ref.

Patterns are compiled once and only used through ``finditer``, which
keeps no match position between calls.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()

# Uppercase prefixes that look like ticket keys but are not.
_NON_TICKET_PREFIXES = frozenset({"UTF", "SHA", "ISO", "CVE", "RFC"})


@dataclass(frozen=True)
class RefPattern:
    """A single reference grammar.

    Attributes:
        id: Stable pattern identifier.
        tool_type: Tool the ref points into.
        confidence: ``"high"``, ``"medium"`` or ``"low"``.
        regex: Compiled pattern.
        normalize: Maps a match to its canonical ref, or ``None`` to drop it.
        examples: ``(text, expected_ref)`` pairs checked by ``validate()``.
    """

    id: str
    tool_type: str
    confidence: str
    regex: re.Pattern
    normalize: Callable[[re.Match], str | None]
    examples: tuple[tuple[str, str], ...] = field(default_factory=tuple)


def _jira_key(match: re.Match) -> str | None:
    if match.group(1) in _NON_TICKET_PREFIXES:
        return None
    return match.group(0)


DEFAULT_PATTERNS: tuple[RefPattern, ...] = (
    RefPattern(
        id="github-url",
        tool_type="github",
        confidence="high",
        regex=re.compile(
            r"https?://(?:www\.)?github\.com/([\w.-]+)/([\w.-]+)/(?:pull|issues)/(\d+)"
        ),
        normalize=lambda m: f"{m.group(1)}/{m.group(2)}#{m.group(3)}",
        examples=(("https://github.com/acme/repo/pull/99", "acme/repo#99"),),
    ),
    RefPattern(
        id="github-repo-ref",
        tool_type="github",
        confidence="high",
        regex=re.compile(r"(?<![\w/.-])([\w.-]+/[\w.-]+)#(\d+)\b"),
        normalize=lambda m: f"{m.group(1)}#{m.group(2)}",
        examples=(("See acme/backend#42 for details", "acme/backend#42"),),
    ),
    RefPattern(
        id="github-local-ref",
        tool_type="github",
        confidence="medium",
        regex=re.compile(r"(?<![\w/&#])#(\d+)\b"),
        normalize=lambda m: f"local#{m.group(1)}",
        examples=(("Fixes #12", "local#12"),),
    ),
    RefPattern(
        id="jira-key",
        tool_type="jira",
        confidence="high",
        regex=re.compile(r"\b([A-Z][A-Z0-9]{1,9})-(\d+)\b"),
        normalize=_jira_key,
        examples=(("Fixed bug in AUTH-123", "AUTH-123"),),
    ),
    RefPattern(
        id="confluence-page-url",
        tool_type="confluence",
        confidence="high",
        regex=re.compile(r"/wiki/spaces/[\w~-]+/pages/(\d+)"),
        normalize=lambda m: f"confluence:{m.group(1)}",
        examples=(
            (
                "https://acme.atlassian.net/wiki/spaces/ENG/pages/987654/Design",
                "confluence:987654",
            ),
        ),
    ),
    RefPattern(
        id="confluence-page-id",
        tool_type="confluence",
        confidence="high",
        regex=re.compile(r"atlassian\.net/wiki/\S*?[?&]pageId=(\d+)"),
        normalize=lambda m: f"confluence:{m.group(1)}",
        examples=(
            (
                "https://acme.atlassian.net/wiki/pages/viewpage.action?pageId=5551",
                "confluence:5551",
            ),
        ),
    ),
    RefPattern(
        id="figma-url",
        tool_type="figma",
        confidence="high",
        regex=re.compile(
            r"https?://(?:www\.)?figma\.com/(?:file|design|proto|board)/([A-Za-z0-9]+)"
        ),
        normalize=lambda m: f"figma:{m.group(1)}",
        examples=(
            ("https://www.figma.com/file/ABC123XYZ/Design", "figma:ABC123XYZ"),
            ("https://www.figma.com/design/KEY987/Mockups?node-id=1", "figma:KEY987"),
        ),
    ),
    RefPattern(
        id="google-meet",
        tool_type="google-meet",
        confidence="medium",
        regex=re.compile(r"meet\.google\.com/([a-z]{3}-[a-z]{4}-[a-z]{3})\b"),
        normalize=lambda m: f"gmeet:{m.group(1)}",
        examples=(("Join: https://meet.google.com/abc-defg-hij", "gmeet:abc-defg-hij"),),
    ),
)


class RefExtractor:
    """Extracts canonical cross-tool refs from free text."""

    def __init__(self, patterns: Iterable[RefPattern] = DEFAULT_PATTERNS) -> None:
        self.patterns = tuple(patterns)

    def validate(self) -> None:
        """Check every pattern against its own examples.

        Raises:
            ValueError: Listing every failing pattern (not just the first),
                or if no patterns are registered.
        """
        if not self.patterns:
            raise ValueError("RefExtractor has no registered patterns")

        errors = []
        for pattern in self.patterns:
            for text, expected in pattern.examples:
                refs = [
                    ref
                    for m in pattern.regex.finditer(text)
                    if (ref := pattern.normalize(m)) is not None
                ]
                if expected not in refs:
                    errors.append(f"[{pattern.id}] {text!r} did not yield {expected!r}")
        if errors:
            raise ValueError("RefExtractor validation failed:\n  " + "\n  ".join(errors))

    def extract_refs(self, text: str | None) -> list[str]:
        """Return refs in first-occurrence order, deduplicated.

        ``None``, empty or non-string input yields ``[]``.
        """
        if not text or not isinstance(text, str):
            return []

        found: list[tuple[int, int, str]] = []
        for order, pattern in enumerate(self.patterns):
            try:
                for match in pattern.regex.finditer(text):
                    ref = pattern.normalize(match)
                    if ref is not None:
                        found.append((match.start(), order, ref))
            except Exception as e:  # a custom normalizer must not break extraction
                logger.warning("ref_pattern_failed", pattern=pattern.id, error=str(e))

        found.sort(key=lambda item: (item[0], item[1]))
        return list(dict.fromkeys(ref for _, _, ref in found))

    def extract_refs_from_multiple(self, texts: Iterable[str | None]) -> list[str]:
        """Union refs across several text fields, deduplicated across fields."""
        refs: dict[str, None] = {}
        for text in texts:
            for ref in self.extract_refs(text):
                refs.setdefault(ref, None)
        return list(refs)

    def extract_refs_from_object(self, obj: object) -> list[str]:
        """Extract refs from every nested string leaf of an arbitrary object."""
        return self.extract_refs_from_multiple(_iter_strings(obj))


def _iter_strings(obj: object, _depth: int = 0):
    """Yield string leaves of nested dicts/lists/tuples (values only)."""
    if _depth > 50:
        return
    if isinstance(obj, str):
        yield obj
    elif isinstance(obj, dict):
        for value in obj.values():
            yield from _iter_strings(value, _depth + 1)
    elif isinstance(obj, (list, tuple, set)):
        for value in obj:
            yield from _iter_strings(value, _depth + 1)


ref_extractor = RefExtractor()


def extract_refs(text: str | None) -> list[str]:
    return ref_extractor.extract_refs(text)


def extract_refs_from_multiple(texts: Iterable[str | None]) -> list[str]:
    return ref_extractor.extract_refs_from_multiple(texts)


def extract_refs_from_object(obj: object) -> list[str]:
    return ref_extractor.extract_refs_from_object(obj)
