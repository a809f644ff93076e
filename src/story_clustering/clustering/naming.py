"""Human-readable cluster names.

Graph clusters are named after a shared ref (``AUTH-123``, ``local#4``)
or not at all.  Those names are replaced by a short LLM-generated
project name; anything that already reads like a human name is kept.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

import structlog

from story_clustering.clustering.config import NamingConfig
from story_clustering.clustering.models import Cluster, clone_cluster
from story_clustering.llm.timeouts import with_timeout

if TYPE_CHECKING:
    from story_clustering.llm.client import TaskExecutor

logger = structlog.get_logger()

NAMING_SYSTEM_PROMPT = (
    "Name this group of work activities in 3-6 words. Return ONLY the name, no quotes."
)

_LOCAL_REF = re.compile(r"^local#\d+$", re.IGNORECASE)
_JIRA_KEY = re.compile(r"^[A-Z]+-\d+$")
_KEBAB_WORD = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)+$")
_QUOTES = re.compile(r"^[\"'`]+|[\"'`]+$")


def looks_like_raw_ref(name: str | None) -> bool:
    """True if ``name`` looks like a raw ref rather than a project name.

    Catches ``arig``, ``local#1``, ``DH-905`` and ``tacit-web`` but keeps
    ``OAuth2 Authentication`` and ``Bidirectional Sync Server``.
    """
    if not name:
        return False
    if " " in name:
        return False
    if name == name.lower() and len(name) < 15:
        return True
    if _LOCAL_REF.match(name):
        return True
    if _JIRA_KEY.match(name):
        return True
    if _KEBAB_WORD.match(name):
        return True
    return False


def short_repo_name(full_name: str) -> str:
    """``repo:owner/name`` -> ``name``; other containers pass through."""
    if full_name.startswith("repo:"):
        return full_name[len("repo:"):].split("/")[-1]
    return full_name


def derive_cluster_name(name: str | None, dominant_container: str | None = None) -> str:
    """Display name: LLM/ref name, else short container name, else ``Project``."""
    if name:
        return name
    if dominant_container:
        return short_repo_name(dominant_container)
    return "Project"


def needs_name(cluster: Cluster) -> bool:
    return cluster.name is None or looks_like_raw_ref(cluster.name)


def clean_generated_name(content: str, max_length: int = 60) -> str | None:
    """Strip whitespace and quotes; ``None`` if empty or too long."""
    name = _QUOTES.sub("", content.strip().splitlines()[0] if content.strip() else "").strip()
    if not name or len(name) >= max_length:
        return None
    return name


async def name_clusters(
    clusters: list[Cluster],
    executor: TaskExecutor | None,
    config: NamingConfig | None = None,
) -> list[Cluster]:
    """Replace missing or raw-ref names with LLM-generated ones.

    Calls run concurrently (bounded by ``config.max_concurrent``) with a
    per-call timeout.  A failed or rejected call leaves that cluster's
    prior name untouched.

    Returns:
        New cluster objects in input order.
    """
    config = config or NamingConfig()
    if executor is None or not config.enabled:
        return list(clusters)

    semaphore = asyncio.Semaphore(config.max_concurrent)

    async def name_one(cluster: Cluster) -> Cluster:
        if not needs_name(cluster):
            return cluster
        titles = "\n".join(a.title for a in cluster.activities[: config.max_titles])
        async with semaphore:
            try:
                result = await with_timeout(
                    executor.execute_task(
                        "cluster-name",
                        [
                            {"role": "system", "content": NAMING_SYSTEM_PROMPT},
                            {"role": "user", "content": titles},
                        ],
                        config.quality_tier,
                        max_tokens=config.max_tokens,
                        temperature=config.temperature,
                    ),
                    config.timeout_seconds,
                    f"cluster-name:{cluster.id}",
                )
            except Exception as e:
                logger.warning("cluster_naming_failed", cluster_id=cluster.id, error=str(e))
                return cluster

        if result is None:
            return cluster
        name = clean_generated_name(result.content, config.max_name_length)
        if name is None:
            logger.debug("cluster_name_rejected", cluster_id=cluster.id, content=result.content[:80])
            return cluster
        return clone_cluster(cluster, name=name)

    named = await asyncio.gather(*[name_one(c) for c in clusters])
    renamed = sum(1 for before, after in zip(clusters, named) if before.name != after.name)
    logger.info("cluster_naming_complete", clusters=len(clusters), renamed=renamed)
    return list(named)
