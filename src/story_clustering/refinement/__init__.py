"""LLM-assisted refinement of the graph clustering.

Unclustered activities are placed with a KEEP/MOVE/NEW contract that is
validated in full before any of it is applied.
"""

from .assigner import refine_clusters
from .schemas import AssignmentValidation, CandidateActivity, ParsedAssignment
from .validation import validate_cluster_assignment

__all__ = [
    "AssignmentValidation",
    "CandidateActivity",
    "ParsedAssignment",
    "refine_clusters",
    "validate_cluster_assignment",
]
