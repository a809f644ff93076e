"""Cost estimation for LLM task calls."""
from __future__ import annotations

from story_clustering.clustering.config import LLMConfig


def estimate_cost(
    prompt_tokens: int,
    completion_tokens: int,
    model: str,
    config: LLMConfig,
) -> float:
    """Estimate cost in USD for a single API call.

    Models without a pricing entry are reported as free.

    Args:
        prompt_tokens: Number of input tokens.
        completion_tokens: Number of output tokens.
        model: Model that served the call.
        config: LLM config with per-1M-token pricing per model.

    Returns:
        Estimated cost in USD.
    """
    input_price, output_price = config.pricing.get(model, (0.0, 0.0))
    input_cost = (prompt_tokens / 1_000_000) * input_price
    output_cost = (completion_tokens / 1_000_000) * output_price
    return input_cost + output_cost
