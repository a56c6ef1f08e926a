"""Cost estimation for Claude Code sessions based on API pricing."""

from __future__ import annotations

from ccview.models import CostBreakdown, ModelPricing, TokenUsage

# Prices per million tokens
PRICING: dict[str, ModelPricing] = {
    "claude-sonnet-4-5-20250929": ModelPricing(
        input=3.00, output=15.00, cache_creation=3.75, cache_read=0.30,
    ),
    "claude-sonnet-4-20250514": ModelPricing(
        input=3.00, output=15.00, cache_creation=3.75, cache_read=0.30,
    ),
    "claude-opus-4-20250514": ModelPricing(
        input=15.00, output=75.00, cache_creation=18.75, cache_read=1.50,
    ),
    "claude-haiku-4-20250515": ModelPricing(
        input=0.80, output=4.00, cache_creation=1.00, cache_read=0.08,
    ),
}

DEFAULT_PRICING_MODEL = "claude-sonnet-4-5-20250929"


def resolve_pricing(model: str | None) -> ModelPricing:
    """Price table for a model id, falling back to the default model."""
    if model and model in PRICING:
        return PRICING[model]
    return PRICING[DEFAULT_PRICING_MODEL]


def calculate_cost(usage: TokenUsage, pricing: ModelPricing) -> CostBreakdown:
    """Cost of a token usage in USD, per component (unrounded)."""
    return CostBreakdown(
        input_cost=usage.input_tokens / 1_000_000 * pricing.input,
        output_cost=usage.output_tokens / 1_000_000 * pricing.output,
        cache_creation_cost=usage.cache_creation_tokens / 1_000_000 * pricing.cache_creation,
        cache_read_cost=usage.cache_read_tokens / 1_000_000 * pricing.cache_read,
    )


def estimate_cache_savings(cache_read_tokens: int) -> float:
    """Approximate USD saved by cache reads, priced with the default model."""
    pricing = PRICING[DEFAULT_PRICING_MODEL]
    return cache_read_tokens / 1_000_000 * (pricing.input - pricing.cache_read)
