"""Timeout helper for external calls.

Every LLM call in the pipeline resolves to "no result" on expiry instead
of raising, so one slow call only degrades its own unit of work.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str) -> T | None:
    """Await ``awaitable``; return ``None`` (and log) if it takes too long."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("llm_call_timeout", label=label, timeout_seconds=seconds)
        return None
