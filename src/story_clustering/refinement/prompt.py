"""Prompt template and formatting for LLM cluster assignment."""
from __future__ import annotations

from story_clustering.refinement.schemas import CandidateActivity, ClusterSummary

SYSTEM_PROMPT = """You group a software engineer's work activities into projects.

You receive the CURRENT CLUSTERS (projects found so far) and a list of
CANDIDATE ACTIVITIES.  Assign every candidate exactly one action:

- "KEEP:<cluster_id>"  the candidate stays in its current cluster
                       (only allowed when it already has one)
- "MOVE:<cluster_id>"  the candidate belongs to a different existing cluster
- "NEW:<project name>" the candidate starts a new project; candidates that
                       belong together must use the SAME name

Key considerations:
- Shared ticket keys, PR numbers, repository or feature names, and
  matching terminology across tools indicate the same project
- Meetings and chat threads belong to the project they discuss
- Prefer an existing cluster over a new one when the fit is plausible
- Use only cluster ids from the list; never invent ids

Respond with ONLY a JSON object mapping every candidate id to its action,
for example {"act_1": "MOVE:cluster_2", "act_2": "NEW:Billing Migration"}."""


def format_assignment_prompt(
    clusters: list[ClusterSummary],
    candidates: list[CandidateActivity],
    description_chars: int = 200,
) -> str:
    """Format the cluster snapshot and candidates for the user message."""
    if clusters:
        cluster_lines = "\n".join(
            f"- {c.id}: {c.name} ({c.activity_count} activities, {c.date_range}, "
            f"tools: {c.tool_summary})\n  Examples: {c.top_activities}"
            for c in clusters
        )
    else:
        cluster_lines = "(none yet)"

    candidate_lines = "\n".join(_format_candidate(c, description_chars) for c in candidates)

    return f"""## Current Clusters
{cluster_lines}

## Candidate Activities
{candidate_lines}

Assign every candidate id listed above."""


def _format_candidate(candidate: CandidateActivity, description_chars: int) -> str:
    current = candidate.current_cluster_id or "none"
    line = (
        f"- {candidate.id} [{candidate.source}, {candidate.date}, current: {current}] "
        f"{candidate.title}"
    )
    if candidate.description:
        line += f"\n  {_truncate(candidate.description.replace(chr(10), ' '), description_chars)}"
    return line


def _truncate(text: str, max_len: int) -> str:
    """Truncate text to max_len, adding ellipsis if needed."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."
