"""Titles and descriptions for grouping records.

All functions here are PURE.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from story_clustering.clustering.models import Activity, extract_tool_types

_STOPWORDS = frozenset({"this", "that", "with", "from", "into", "the", "and", "for"})


def short_date(value: datetime) -> str:
    """``Mar 4`` style date."""
    return f"{value:%b} {value.day}"


def format_tool_list(tools: list[str]) -> str:
    """``github``, ``github and jira`` or ``github, jira, and slack``."""
    if not tools:
        return ""
    if len(tools) == 1:
        return tools[0]
    if len(tools) == 2:
        return f"{tools[0]} and {tools[1]}"
    return f"{', '.join(tools[:-1])}, and {tools[-1]}"


def build_tool_summary(activities: list[Activity]) -> str:
    return format_tool_list(extract_tool_types(activities))


def tools_from_description(description: str | None) -> list[str]:
    """Tool names listed after ``across`` in a stored description."""
    if not description:
        return []
    _, sep, tail = description.rpartition(" across ")
    if not sep:
        return []
    parts = tail.replace(", and ", ", ").replace(" and ", ", ").split(", ")
    return [p.strip() for p in parts if p.strip()]


def _merged_tools(activities: list[Activity], prior_tools: Iterable[str]) -> str:
    return format_tool_list(list(dict.fromkeys([*prior_tools, *extract_tool_types(activities)])))


def get_cluster_summary(activities: list[Activity]) -> str:
    """``<Keyword> Work`` from the most repeated title word, if any."""
    counts = Counter(
        word
        for a in activities
        for word in a.title.lower().split()
        if len(word) > 3 and word not in _STOPWORDS
    )
    if counts:
        keyword, count = counts.most_common(1)[0]
        if count > 1:
            return keyword[:1].upper() + keyword[1:] + " Work"
    return "Cross-Tool Collaboration"


def build_cluster_title(display_name: str, activities: list[Activity]) -> str:
    return f"{display_name}: {get_cluster_summary(activities)}"


def build_temporal_title(activities: list[Activity], start: str, end: str) -> str:
    """Title for a time-window record.

    Uses the repository names declared in ``raw_data`` when present,
    otherwise per-tool activity counts (most frequent first).
    """
    repo_names: dict[str, None] = {}
    for a in activities:
        raw = a.raw_data
        if isinstance(raw, dict) and isinstance(raw.get("repository"), str):
            repo_names[raw["repository"].split("/")[-1]] = None

    n = len(activities)
    if len(repo_names) == 1:
        return f"{next(iter(repo_names))}: {start} - {end} ({n} activities)"
    if len(repo_names) > 1:
        return f"{len(repo_names)} projects: {start} - {end} ({n} activities)"

    tool_counts = Counter(a.source for a in activities)
    tools = ", ".join(f"{count} {tool}" for tool, count in tool_counts.most_common())
    return f"Week of {start} - {end} ({tools})"


def cluster_description(
    activity_count: int, activities: list[Activity], prior_tools: Iterable[str] = ()
) -> str:
    """``prior_tools`` keeps the tools of members not in ``activities``."""
    return f"{activity_count} related activities across {_merged_tools(activities, prior_tools)}"


def temporal_description(
    activity_count: int, activities: list[Activity], prior_tools: Iterable[str] = ()
) -> str:
    return f"{activity_count} activities across {_merged_tools(activities, prior_tools)}"
