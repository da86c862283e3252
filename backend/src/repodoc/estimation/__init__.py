"""Cost estimation for documentation runs."""

from repodoc.estimation.cost import (
    CacheSavings,
    CostEstimate,
    CostRange,
    PartialRegenerationSavings,
    TokenBreakdown,
    TokenEstimate,
    calculate_cache_savings,
    calculate_cost,
    cheapest_model_in_budget,
    compare_costs,
    estimate_partial_regeneration_savings,
    estimate_tokens,
    format_cost,
    full_cost_estimate,
    models_by_price_tier,
    quick_cost_estimate,
)

__all__ = [
    "CacheSavings",
    "CostEstimate",
    "CostRange",
    "PartialRegenerationSavings",
    "TokenBreakdown",
    "TokenEstimate",
    "calculate_cache_savings",
    "calculate_cost",
    "cheapest_model_in_budget",
    "compare_costs",
    "estimate_partial_regeneration_savings",
    "estimate_tokens",
    "format_cost",
    "full_cost_estimate",
    "models_by_price_tier",
    "quick_cost_estimate",
]
