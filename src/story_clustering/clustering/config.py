"""Clustering pipeline configuration with sensible defaults.

All parameters can be overridden via ``config/clustering.yaml``.
If the file does not exist, defaults are used.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, model_validator


class EdgeWeights(BaseModel):
    """Relative strength of the three graph signals."""

    ref: float = 1.0
    container: float = 0.8
    collaborator: float = 0.3

    @model_validator(mode="after")
    def warn_if_weights_unordered(self) -> "EdgeWeights":
        """Log a warning if collaborator edges outweigh explicit signals."""
        if not (self.ref >= self.container >= self.collaborator):
            structlog.get_logger().warning(
                "edge_weights_unordered",
                ref=self.ref,
                container=self.container,
                collaborator=self.collaborator,
            )
        return self


class GraphConfig(BaseModel):
    """Parameters for connected-component clustering."""

    min_cluster_size: int = 2
    # Collaborator overlap only links activities this close in time.
    # ``None`` disables collaborator edges entirely.
    collaborator_window_hours: float | None = 48.0
    weights: EdgeWeights = EdgeWeights()


class RefinementConfig(BaseModel):
    """Parameters for the LLM-assisted assignment of unclustered activities."""

    enabled: bool = True
    batch_size: int = 40
    timeout_seconds: float = 60.0
    max_tokens: int = 4096
    temperature: float = 0.1
    quality_tier: str = "balanced"
    top_activities: int = 3
    description_chars: int = 200


class NamingConfig(BaseModel):
    """Parameters for LLM cluster naming."""

    enabled: bool = True
    max_titles: int = 8
    max_name_length: int = 60
    max_concurrent: int = 3
    timeout_seconds: float = 15.0
    max_tokens: int = 30
    temperature: float = 0.3
    quality_tier: str = "quick"


class PostProcessConfig(BaseModel):
    """Entry-target sizing and merge thresholds."""

    significant_project_min: int = 3
    max_significant_projects: int = 10
    min_target_entries: int = 3
    min_activities_per_entry: int = 3
    overshoot_factor: float = 1.2
    max_merge_size: int = 15


class SyncConfig(BaseModel):
    """Grouping-record materialization parameters."""

    window_days: int = 14
    source_mode: str = "production"


class LLMConfig(BaseModel):
    """Gemini task executor configuration."""

    api_key: str = ""
    tier_models: dict[str, str] = {
        "quick": "gemini-2.5-flash-lite",
        "balanced": "gemini-2.5-flash",
        "premium": "gemini-2.5-pro",
    }
    default_model: str = "gemini-2.5-flash"

    # Cost monitoring (USD per 1M tokens, keyed by model)
    pricing: dict[str, tuple[float, float]] = {
        "gemini-2.5-flash-lite": (0.10, 0.40),
        "gemini-2.5-flash": (0.30, 2.50),
        "gemini-2.5-pro": (1.25, 10.00),
    }


class ClusteringConfig(BaseModel):
    """Top-level clustering configuration combining all sub-configs."""

    graph: GraphConfig = GraphConfig()
    refinement: RefinementConfig = RefinementConfig()
    naming: NamingConfig = NamingConfig()
    postprocess: PostProcessConfig = PostProcessConfig()
    sync: SyncConfig = SyncConfig()
    llm: LLMConfig = LLMConfig()


def load_clustering_config(path: Path) -> ClusteringConfig:
    """Load clustering configuration from a YAML file.

    If the file does not exist, returns a ``ClusteringConfig`` with all
    default values.  Partial overrides are supported -- only the keys
    present in the YAML file will override defaults.
    """
    if not path.exists():
        return ClusteringConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return ClusteringConfig(**data)
