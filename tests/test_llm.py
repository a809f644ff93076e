"""Tests for the Gemini task executor, cost estimation and timeouts.

Uses a mocked genai client; no API calls are made.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from story_clustering.clustering.config import LLMConfig
from story_clustering.llm.client import GeminiTaskExecutor
from story_clustering.llm.cost import estimate_cost
from story_clustering.llm.timeouts import with_timeout


def _mock_client(text: str = "ok", prompt_tokens: int = 1000, completion_tokens: int = 500) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(
            text=text,
            usage_metadata=SimpleNamespace(
                prompt_token_count=prompt_tokens,
                candidates_token_count=completion_tokens,
            ),
        )
    )
    return client


class TestEstimateCost:
    def test_basic_cost(self):
        cost = estimate_cost(1_000_000, 1_000_000, "gemini-2.5-flash", LLMConfig())
        assert cost == pytest.approx(0.30 + 2.50)

    def test_zero_tokens(self):
        assert estimate_cost(0, 0, "gemini-2.5-flash", LLMConfig()) == 0.0

    def test_unknown_model_is_free(self):
        assert estimate_cost(1000, 1000, "some-other-model", LLMConfig()) == 0.0


class TestGeminiTaskExecutor:
    def test_model_for_tier(self):
        executor = GeminiTaskExecutor(LLMConfig(), client=_mock_client())
        assert executor.model_for("quick") == "gemini-2.5-flash-lite"
        assert executor.model_for("premium") == "gemini-2.5-pro"
        assert executor.model_for("unknown") == "gemini-2.5-flash"

    async def test_execute_task(self):
        client = _mock_client(text="Token Refresh Rework")
        executor = GeminiTaskExecutor(LLMConfig(), client=client)

        result = await executor.execute_task(
            "cluster-name",
            [
                {"role": "system", "content": "Name this group."},
                {"role": "user", "content": "Add token refresh"},
            ],
            "balanced",
            max_tokens=30,
            temperature=0.3,
        )

        assert result.content == "Token Refresh Rework"
        assert result.model == "gemini-2.5-flash"
        assert result.estimated_cost == pytest.approx(1000 / 1e6 * 0.30 + 500 / 1e6 * 2.50)

        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"] == "Add token refresh"
        assert kwargs["config"].system_instruction == "Name this group."
        assert kwargs["config"].max_output_tokens == 30

    async def test_empty_response_text(self):
        executor = GeminiTaskExecutor(LLMConfig(), client=_mock_client(text=None))
        result = await executor.execute_task(
            "cluster-name", [{"role": "user", "content": "x"}], "quick", max_tokens=10, temperature=0.0
        )
        assert result.content == ""

    async def test_api_error_propagates(self):
        client = _mock_client()
        client.aio.models.generate_content.side_effect = RuntimeError("quota")
        executor = GeminiTaskExecutor(LLMConfig(), client=client)

        with pytest.raises(RuntimeError):
            await executor.execute_task(
                "cluster-assign", [{"role": "user", "content": "x"}], "balanced", max_tokens=10, temperature=0.0
            )


class TestWithTimeout:
    async def test_returns_result(self):
        async def fast():
            return 42

        assert await with_timeout(fast(), 1.0, "fast") == 42

    async def test_timeout_returns_none(self):
        async def slow():
            await asyncio.sleep(1)
            return 42

        assert await with_timeout(slow(), 0.01, "slow") is None

    async def test_errors_propagate(self):
        async def broken():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await with_timeout(broken(), 1.0, "broken")
