"""Gemini-backed LLM task executor.

The clustering stages talk to the model only through ``TaskExecutor``:
``execute_task(task_type, messages, quality_tier, ...)`` returning a
``TaskResult``.  ``GeminiTaskExecutor`` implements it with the google-genai
async client; the SDK handles retries (up to 4 with exponential backoff)
and rate limit (429) responses automatically.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import structlog
from google import genai
from google.genai import types

from story_clustering.clustering.config import LLMConfig
from story_clustering.llm.cost import estimate_cost

logger = structlog.get_logger()


@dataclass(frozen=True)
class TaskResult:
    content: str
    model: str
    estimated_cost: float = 0.0


class TaskExecutor(Protocol):
    async def execute_task(
        self,
        task_type: str,
        messages: list[dict[str, str]],
        quality_tier: str,
        max_tokens: int,
        temperature: float,
    ) -> TaskResult: ...


def create_client(api_key: str) -> genai.Client:
    """Create a Gemini API client.

    Args:
        api_key: Google AI Studio API key.

    Returns:
        Configured genai.Client instance.
    """
    return genai.Client(api_key=api_key)


class GeminiTaskExecutor:
    """``TaskExecutor`` that routes quality tiers to Gemini models."""

    def __init__(self, config: LLMConfig, client: genai.Client | None = None) -> None:
        self.config = config
        self.client = client or create_client(config.api_key)

    def model_for(self, quality_tier: str) -> str:
        return self.config.tier_models.get(quality_tier, self.config.default_model)

    async def execute_task(
        self,
        task_type: str,
        messages: list[dict[str, str]],
        quality_tier: str,
        max_tokens: int,
        temperature: float,
    ) -> TaskResult:
        """Run one chat-style task.

        ``system`` messages become the system instruction; the remaining
        messages are sent as the prompt in order.

        Raises:
            Exception: On API error (caller should handle gracefully).
        """
        model = self.model_for(quality_tier)
        system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
        prompt = "\n\n".join(m["content"] for m in messages if m.get("role") != "system")

        response = await self.client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system or None,
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )

        usage = response.usage_metadata
        prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
        completion_tokens = getattr(usage, "candidates_token_count", 0) or 0
        cost = estimate_cost(prompt_tokens, completion_tokens, model, self.config)

        logger.debug(
            "llm_task_complete",
            task_type=task_type,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost_usd=cost,
        )

        return TaskResult(content=response.text or "", model=model, estimated_cost=cost)
