"""LLM request and cost estimation settings."""

# =============================================================================
# Request Defaults
# =============================================================================

MAX_TOKENS = 8192
DEFAULT_TEMPERATURE = 0.7

# Space reserved for the model's answer when sizing the context window.
OUTPUT_RESERVE_PERCENT = 0.15
MIN_OUTPUT_TOKENS = 4096

# =============================================================================
# Cost Estimation
# =============================================================================
# Estimates are calibrated by hand, not measured. TOKENS_PER_CHAR is the
# usual four-characters-per-token rule; PROMPT_OVERHEAD covers instructions
# wrapped around the repository content.

TOKENS_PER_CHAR = 0.25
PROMPT_OVERHEAD = 1.3

OUTPUT_TOKENS_ABSTRACTIONS = 2000
OUTPUT_TOKENS_RELATIONSHIPS = 1500
OUTPUT_TOKENS_ORDERING = 500
OUTPUT_TOKENS_PER_CHAPTER = 3000

# Ordering prompt input size does not depend on repository size.
ORDERING_INPUT_TOKENS = 2000

# Share of file tokens that reach the relationship and chapter prompts.
RELATIONSHIP_CONTEXT_SHARE = 0.3
CHAPTER_CONTEXT_SHARE = 0.5

DEFAULT_CHAPTER_COUNT = 8

COST_LOW_FACTOR = 0.8
COST_HIGH_FACTOR = 1.2

# Price tiers by estimated cost of one full run, in dollars.
BUDGET_TIER_LIMIT = 0.10
STANDARD_TIER_LIMIT = 1.00
