"""Model pricing table and usage/cost accounting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from openrouter_gateway.types import TokenUsage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelPricing:
    """USD per 1 million tokens."""

    prompt: float
    completion: float


# Approximate OpenRouter list prices; update as needed.
MODEL_PRICING: dict[str, ModelPricing] = {
    "openai/gpt-4o-mini": ModelPricing(prompt=0.15, completion=0.60),
    "openai/gpt-4o": ModelPricing(prompt=2.50, completion=10.00),
    "openai/gpt-4-turbo": ModelPricing(prompt=10.00, completion=30.00),
    "anthropic/claude-3.5-sonnet": ModelPricing(prompt=3.00, completion=15.00),
    "anthropic/claude-3-opus": ModelPricing(prompt=15.00, completion=75.00),
    "anthropic/claude-3-haiku": ModelPricing(prompt=0.25, completion=1.25),
    "google/gemini-pro-1.5": ModelPricing(prompt=2.50, completion=7.50),
    "meta-llama/llama-3.1-70b-instruct": ModelPricing(prompt=0.52, completion=0.75),
}

# Pricing used for models missing from the table
DEFAULT_PRICING_MODEL = "openai/gpt-4o-mini"


def register_pricing(model: str, prompt_per_1m: float, completion_per_1m: float) -> None:
    """Register or update pricing for a model.

    Args:
        model: OpenRouter model identifier, e.g. ``"mistralai/mixtral-8x7b"``.
        prompt_per_1m: Cost in USD per 1M prompt tokens.
        completion_per_1m: Cost in USD per 1M completion tokens.
    """
    MODEL_PRICING[model] = ModelPricing(prompt=prompt_per_1m, completion=completion_per_1m)


def get_pricing(model: str) -> ModelPricing | None:
    """Return pricing for a model, or None if unknown."""
    return MODEL_PRICING.get(model)


def estimate_cost(prompt_tokens: int, completion_tokens: int, model: str) -> float:
    """Estimated USD cost of a call.

    Unknown models are priced as ``DEFAULT_PRICING_MODEL``.
    """
    pricing = MODEL_PRICING.get(model) or MODEL_PRICING[DEFAULT_PRICING_MODEL]
    return (
        prompt_tokens * pricing.prompt + completion_tokens * pricing.completion
    ) / 1_000_000


class UsageTracker:
    """Accumulates token usage and estimated cost across calls.

    Emits a single warning once the cumulative cost crosses ``cost_warn_usd``.
    """

    def __init__(self, cost_warn_usd: float | None = None) -> None:
        self._cost_warn = cost_warn_usd
        self._prompt_tokens: int = 0
        self._completion_tokens: int = 0
        self._total_cost_usd: float = 0.0
        self._call_count: int = 0
        self._warned: bool = False

    def record(self, usage: TokenUsage, cost_usd: float) -> None:
        """Record a single call's usage."""
        self._prompt_tokens += usage.prompt_tokens
        self._completion_tokens += usage.completion_tokens
        self._total_cost_usd += cost_usd
        self._call_count += 1

        if (
            self._cost_warn
            and not self._warned
            and self._total_cost_usd >= self._cost_warn
        ):
            self._warned = True
            logger.warning(
                "OpenRouter cost warning threshold reached: $%.4f >= $%.4f",
                self._total_cost_usd,
                self._cost_warn,
            )

    @property
    def total_cost_usd(self) -> float:
        return self._total_cost_usd

    @property
    def total_tokens(self) -> int:
        return self._prompt_tokens + self._completion_tokens

    @property
    def call_count(self) -> int:
        return self._call_count

    def summary(self) -> dict[str, Any]:
        """Return a summary dict suitable for logging or span attributes."""
        return {
            "total_prompt_tokens": self._prompt_tokens,
            "total_completion_tokens": self._completion_tokens,
            "total_tokens": self.total_tokens,
            "total_cost_usd": round(self._total_cost_usd, 6),
            "call_count": self._call_count,
        }

    def reset(self) -> None:
        """Reset all accumulators."""
        self._prompt_tokens = 0
        self._completion_tokens = 0
        self._total_cost_usd = 0.0
        self._call_count = 0
        self._warned = False
