"""Tests for ccview.pricing module."""

import pytest

from ccview.models import TokenUsage
from ccview.pricing import (
    DEFAULT_PRICING_MODEL,
    PRICING,
    calculate_cost,
    estimate_cache_savings,
    resolve_pricing,
)


def test_resolve_known_model():
    assert resolve_pricing("claude-opus-4-20250514").input == 15.00


def test_resolve_unknown_model_falls_back_to_default():
    assert resolve_pricing("claude-future-9") is PRICING[DEFAULT_PRICING_MODEL]


def test_resolve_missing_model_falls_back_to_default():
    assert resolve_pricing(None) is PRICING[DEFAULT_PRICING_MODEL]


def test_calculate_cost_known_values():
    """1000 input at $3/M and 500 output at $15/M."""
    cost = calculate_cost(
        TokenUsage(input_tokens=1000, output_tokens=500),
        PRICING[DEFAULT_PRICING_MODEL],
    )
    assert cost.input_cost == pytest.approx(0.003)
    assert cost.output_cost == pytest.approx(0.0075)
    assert cost.total_cost == pytest.approx(0.0105)


def test_calculate_cost_all_token_types():
    cost = calculate_cost(
        TokenUsage(
            input_tokens=1_000_000,
            output_tokens=100_000,
            cache_read_tokens=500_000,
            cache_creation_tokens=200_000,
        ),
        PRICING[DEFAULT_PRICING_MODEL],
    )
    # input: 3.00, output: 1.50, cache_read: 0.15, cache_creation: 0.75
    assert cost.cache_read_cost == pytest.approx(0.15)
    assert cost.cache_creation_cost == pytest.approx(0.75)
    assert cost.total_cost == pytest.approx(5.40)


def test_calculate_cost_zeros():
    cost = calculate_cost(TokenUsage(), PRICING[DEFAULT_PRICING_MODEL])
    assert cost.total_cost == 0.0


def test_total_is_sum_of_components():
    cost = calculate_cost(
        TokenUsage(input_tokens=123, output_tokens=45, cache_read_tokens=6789, cache_creation_tokens=10),
        PRICING["claude-haiku-4-20250515"],
    )
    assert cost.to_dict()["totalCost"] == (
        cost.input_cost + cost.output_cost + cost.cache_creation_cost + cost.cache_read_cost
    )


def test_estimate_cache_savings_uses_default_model():
    # 1M cache reads save (3.00 - 0.30) on the default model
    assert estimate_cache_savings(1_000_000) == pytest.approx(2.70)
    assert estimate_cache_savings(0) == 0.0
