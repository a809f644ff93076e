"""Validation of the cluster-assignment response contract.

The model must answer with a JSON object mapping every candidate id to
``KEEP:<cluster_id>``, ``MOVE:<cluster_id>`` or ``NEW:<name>``.  All
violations are collected in one pass; any violation rejects the whole
response.
"""
from __future__ import annotations

import json
import re
from collections.abc import Iterable

from story_clustering.refinement.schemas import (
    ACTIONS,
    AssignmentValidation,
    CandidateActivity,
    ParsedAssignment,
)

_ASSIGNMENT = re.compile(r"^(KEEP|MOVE|NEW):(.*)$", re.DOTALL)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _strip_code_fence(raw: str) -> str:
    match = _CODE_FENCE.match(raw.strip())
    return match.group(1) if match else raw.strip()


def validate_cluster_assignment(
    raw_json: str,
    candidates: list[CandidateActivity],
    existing_cluster_ids: Iterable[str],
) -> AssignmentValidation:
    """Validate a raw model response against the assignment contract.

    Args:
        raw_json: The model's raw text output.
        candidates: Activities the model was asked to place.
        existing_cluster_ids: Ids of the cluster snapshot sent to the model.

    Returns:
        ``AssignmentValidation`` with every error found, and the parsed
        assignments only if there were none.
    """
    try:
        data = json.loads(_strip_code_fence(raw_json or ""))
    except (json.JSONDecodeError, TypeError) as e:
        return AssignmentValidation(valid=False, errors=[f"Response is not valid JSON: {e}"])

    if not isinstance(data, dict):
        return AssignmentValidation(
            valid=False,
            errors=[f"Response must be a JSON object, got {type(data).__name__}"],
        )

    existing = set(existing_cluster_ids)
    by_id = {c.id: c for c in candidates}
    errors: list[str] = []
    parsed: dict[str, ParsedAssignment] = {}

    for candidate in candidates:
        if candidate.id not in data:
            errors.append(f"Missing assignment for activity {candidate.id}")

    for activity_id, value in data.items():
        candidate = by_id.get(activity_id)
        if candidate is None:
            errors.append(f"Unexpected activity id {activity_id}")
            continue
        if not isinstance(value, str):
            errors.append(f"Assignment for {activity_id} must be a string, got {type(value).__name__}")
            continue

        match = _ASSIGNMENT.match(value.strip())
        if not match:
            errors.append(
                f"Assignment for {activity_id} must match ACTION:target "
                f"with ACTION in {', '.join(ACTIONS)}, got {value!r}"
            )
            continue

        action, target = match.group(1), match.group(2).strip()
        if not target:
            errors.append(f"Assignment for {activity_id} has an empty {action} target")
            continue

        if action in ("KEEP", "MOVE") and target not in existing:
            errors.append(f"{action} target {target} for {activity_id} is not an existing cluster")
            continue
        if action == "KEEP" and candidate.current_cluster_id is None:
            errors.append(f"KEEP is illegal for {activity_id}: it has no current cluster")
            continue
        if action == "KEEP" and target != candidate.current_cluster_id:
            errors.append(
                f"KEEP:{target} for {activity_id} does not match its current cluster "
                f"{candidate.current_cluster_id}"
            )
            continue
        if action == "MOVE" and target == candidate.current_cluster_id:
            errors.append(f"MOVE:{target} for {activity_id} targets its current cluster")
            continue

        parsed[activity_id] = ParsedAssignment(action=action, target=target)

    if errors:
        return AssignmentValidation(valid=False, errors=errors)
    return AssignmentValidation(valid=True, parsed=parsed)
