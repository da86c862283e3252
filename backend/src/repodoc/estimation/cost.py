"""Cost estimates for documentation runs.

Token counts are projected from the repository's character count with
fixed ratios; no LLM is called. All functions are pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from repodoc.constants.llm import (
    BUDGET_TIER_LIMIT,
    CHAPTER_CONTEXT_SHARE,
    COST_HIGH_FACTOR,
    COST_LOW_FACTOR,
    DEFAULT_CHAPTER_COUNT,
    ORDERING_INPUT_TOKENS,
    OUTPUT_TOKENS_ABSTRACTIONS,
    OUTPUT_TOKENS_ORDERING,
    OUTPUT_TOKENS_PER_CHAPTER,
    OUTPUT_TOKENS_RELATIONSHIPS,
    PROMPT_OVERHEAD,
    RELATIONSHIP_CONTEXT_SHARE,
    STANDARD_TIER_LIMIT,
    TOKENS_PER_CHAR,
)
from repodoc.generation.models import FileEntry
from repodoc.llm.providers import LLMModel, LLMProvider, get_model, get_provider, iter_models


@dataclass(frozen=True)
class TokenBreakdown:
    """Tokens per stage, input and output combined."""

    file_content: int
    abstractions: int
    relationships: int
    ordering: int
    chapters: int

    def to_dict(self) -> dict[str, int]:
        return {
            "file_content": self.file_content,
            "abstractions": self.abstractions,
            "relationships": self.relationships,
            "ordering": self.ordering,
            "chapters": self.chapters,
        }


@dataclass(frozen=True)
class TokenEstimate:
    input_tokens: int
    output_tokens: int
    breakdown: TokenBreakdown

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class CostRange:
    """Dollar cost with a band around the point estimate."""

    low: float
    estimated: float
    high: float


@dataclass(frozen=True)
class CostEstimate:
    """Estimated cost of one full run on one model."""

    provider_id: str
    model_id: str
    provider: str
    model: str
    tokens: TokenEstimate
    cost_low: float
    cost_estimated: float
    cost_high: float
    is_free: bool
    formatted_cost: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "model_id": self.model_id,
            "provider": self.provider,
            "model": self.model,
            "tokens": self.tokens.to_dict(),
            "cost_low": self.cost_low,
            "cost_estimated": self.cost_estimated,
            "cost_high": self.cost_high,
            "is_free": self.is_free,
            "formatted_cost": self.formatted_cost,
        }


@dataclass(frozen=True)
class CacheSavings:
    tokens_saved: int
    cost_saved: float


@dataclass(frozen=True)
class PartialRegenerationSavings:
    original_cost: float
    new_cost: float
    savings: float
    savings_percent: float


# =============================================================================
# Core Estimates
# =============================================================================


def estimate_tokens(
    files: Iterable[FileEntry], chapter_count: int = DEFAULT_CHAPTER_COUNT
) -> TokenEstimate:
    """Project input and output tokens for a full run.

    Args:
        files: Repository files that would be fed to the pipeline.
        chapter_count: Number of chapters expected.

    Returns:
        Token estimate with a per-stage breakdown.
    """
    total_chars = sum(len(entry.content) for entry in files)
    file_tokens = math.ceil(total_chars * TOKENS_PER_CHAR)

    abstraction_input = math.ceil(file_tokens * PROMPT_OVERHEAD)
    relationship_input = math.ceil(file_tokens * RELATIONSHIP_CONTEXT_SHARE * PROMPT_OVERHEAD)
    ordering_input = math.ceil(ORDERING_INPUT_TOKENS * PROMPT_OVERHEAD)
    chapter_input = math.ceil(file_tokens * CHAPTER_CONTEXT_SHARE * PROMPT_OVERHEAD) * chapter_count

    chapter_output = OUTPUT_TOKENS_PER_CHAPTER * chapter_count

    return TokenEstimate(
        input_tokens=abstraction_input + relationship_input + ordering_input + chapter_input,
        output_tokens=(
            OUTPUT_TOKENS_ABSTRACTIONS
            + OUTPUT_TOKENS_RELATIONSHIPS
            + OUTPUT_TOKENS_ORDERING
            + chapter_output
        ),
        breakdown=TokenBreakdown(
            file_content=file_tokens,
            abstractions=abstraction_input + OUTPUT_TOKENS_ABSTRACTIONS,
            relationships=relationship_input + OUTPUT_TOKENS_RELATIONSHIPS,
            ordering=ordering_input + OUTPUT_TOKENS_ORDERING,
            chapters=chapter_input + chapter_output,
        ),
    )


def calculate_cost(model: LLMModel, tokens: TokenEstimate) -> CostRange:
    """Apply a model's per-1000-token prices to a token estimate."""
    base = (
        tokens.input_tokens / 1000 * model.cost_per_1k_input
        + tokens.output_tokens / 1000 * model.cost_per_1k_output
    )
    return CostRange(low=base * COST_LOW_FACTOR, estimated=base, high=base * COST_HIGH_FACTOR)


def _format_amount(amount: float) -> str:
    if amount < 0.01:
        return f"${amount:.4f}"
    if amount < 1:
        return f"${amount:.3f}"
    return f"${amount:.2f}"


def format_cost(cost: CostRange) -> str:
    """Human-readable cost band, e.g. "$0.012 - $0.018"."""
    if cost.estimated == 0:
        return "FREE (local)"
    return f"{_format_amount(cost.low)} - {_format_amount(cost.high)}"


def _estimate(provider: LLMProvider, model: LLMModel, tokens: TokenEstimate) -> CostEstimate:
    cost = calculate_cost(model, tokens)
    return CostEstimate(
        provider_id=provider.id,
        model_id=model.id,
        provider=provider.name,
        model=model.name,
        tokens=tokens,
        cost_low=cost.low,
        cost_estimated=cost.estimated,
        cost_high=cost.high,
        is_free=model.is_free,
        formatted_cost=format_cost(cost),
    )


def full_cost_estimate(
    provider_id: str,
    model_id: str,
    files: Iterable[FileEntry],
    chapter_count: int = DEFAULT_CHAPTER_COUNT,
) -> CostEstimate:
    """Cost estimate for one catalog model.

    Raises:
        ValueError: If the provider or model is not in the catalog.
    """
    provider = get_provider(provider_id)
    model = get_model(provider_id, model_id)
    if provider is None or model is None:
        raise ValueError(f"Unknown provider/model: {provider_id}/{model_id}")

    return _estimate(provider, model, estimate_tokens(files, chapter_count))


def compare_costs(
    files: Iterable[FileEntry],
    chapter_count: int = DEFAULT_CHAPTER_COUNT,
    providers: Optional[tuple[LLMProvider, ...]] = None,
) -> list[CostEstimate]:
    """Estimates for every catalog model, cheapest first."""
    tokens = estimate_tokens(files, chapter_count)
    estimates = [_estimate(provider, model, tokens) for provider, model in iter_models(providers)]
    # sorted() is stable, so equal-cost models keep catalog order
    return sorted(estimates, key=lambda e: e.cost_estimated)


# =============================================================================
# Savings
# =============================================================================


def calculate_cache_savings(
    provider_id: str,
    model_id: str,
    cached_prompts: int,
    avg_tokens_per_prompt: int = 2000,
) -> CacheSavings:
    """Tokens and dollars saved by serving prompts from the cache.

    Unknown models report zero savings.
    """
    model = get_model(provider_id, model_id)
    if model is None:
        return CacheSavings(tokens_saved=0, cost_saved=0.0)
    tokens_saved = cached_prompts * avg_tokens_per_prompt
    average_price = (model.cost_per_1k_input + model.cost_per_1k_output) / 2
    return CacheSavings(tokens_saved=tokens_saved, cost_saved=tokens_saved / 1000 * average_price)


def estimate_partial_regeneration_savings(
    full_estimate: CostEstimate,
    chapters_to_regenerate: int,
    total_chapters: int,
    rerun_identification: bool,
) -> PartialRegenerationSavings:
    """Cost of a partial run compared to a full one.

    A partial run pays for the rewritten share of chapters, the ordering
    stage and, with re-identification, the abstraction and relationship
    stages.
    """
    original = full_estimate.cost_estimated
    total_tokens = full_estimate.tokens.total_tokens
    if original == 0 or total_tokens == 0:
        return PartialRegenerationSavings(
            original_cost=original, new_cost=0.0, savings=0.0, savings_percent=0.0
        )

    breakdown = full_estimate.tokens.breakdown
    chapter_share = breakdown.chapters / total_tokens
    analysis_share = (breakdown.abstractions + breakdown.relationships) / total_tokens
    ordering_share = breakdown.ordering / total_tokens
    chapter_ratio = chapters_to_regenerate / total_chapters if total_chapters else 1.0

    new_cost = original * chapter_share * chapter_ratio + original * ordering_share
    if rerun_identification:
        new_cost += original * analysis_share

    savings = original - new_cost
    return PartialRegenerationSavings(
        original_cost=original,
        new_cost=new_cost,
        savings=savings,
        savings_percent=savings / original * 100,
    )


# =============================================================================
# Shortcuts
# =============================================================================


def quick_cost_estimate(
    total_chars: int, model: LLMModel, chapter_count: int = DEFAULT_CHAPTER_COUNT
) -> float:
    """Rough dollar estimate from a character count alone."""
    input_tokens = math.ceil(total_chars * TOKENS_PER_CHAR * PROMPT_OVERHEAD * 2.5)
    output_tokens = (
        OUTPUT_TOKENS_ABSTRACTIONS
        + OUTPUT_TOKENS_RELATIONSHIPS
        + OUTPUT_TOKENS_ORDERING
        + OUTPUT_TOKENS_PER_CHAPTER * chapter_count
    )
    return (
        input_tokens / 1000 * model.cost_per_1k_input
        + output_tokens / 1000 * model.cost_per_1k_output
    )


def cheapest_model_in_budget(
    budget: float,
    files: Iterable[FileEntry],
    chapter_count: int = DEFAULT_CHAPTER_COUNT,
    providers: Optional[tuple[LLMProvider, ...]] = None,
) -> Optional[CostEstimate]:
    """Cheapest model whose high-end estimate fits the budget, or None."""
    for estimate in compare_costs(files, chapter_count, providers):
        if estimate.cost_high <= budget:
            return estimate
    return None


def models_by_price_tier(
    files: Iterable[FileEntry],
    chapter_count: int = DEFAULT_CHAPTER_COUNT,
    providers: Optional[tuple[LLMProvider, ...]] = None,
) -> dict[str, list[CostEstimate]]:
    """Group estimates into free, budget, standard and premium tiers."""
    tiers: dict[str, list[CostEstimate]] = {
        "free": [],
        "budget": [],
        "standard": [],
        "premium": [],
    }
    for estimate in compare_costs(files, chapter_count, providers):
        if estimate.is_free:
            tiers["free"].append(estimate)
        elif estimate.cost_estimated < BUDGET_TIER_LIMIT:
            tiers["budget"].append(estimate)
        elif estimate.cost_estimated < STANDARD_TIER_LIMIT:
            tiers["standard"].append(estimate)
        else:
            tiers["premium"].append(estimate)
    return tiers
