"""Catalog of LLM providers and models with published prices.

Prices are dollars per 1,000 tokens. They drift over time; the catalog is
used for estimates only and never for billing.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Optional

from repodoc.constants.generation import DEFAULT_CONTEXT_WINDOW
from repodoc.constants.llm import MIN_OUTPUT_TOKENS, OUTPUT_RESERVE_PERCENT


@dataclass(frozen=True)
class LLMModel:
    """A model offered by a provider."""

    id: str
    name: str
    context_window: int
    cost_per_1k_input: float
    cost_per_1k_output: float
    recommended: bool = False
    description: str = ""

    @property
    def is_free(self) -> bool:
        return self.cost_per_1k_input == 0 and self.cost_per_1k_output == 0


@dataclass(frozen=True)
class LLMProvider:
    """A provider and the models it serves."""

    id: str
    name: str
    description: str
    models: tuple[LLMModel, ...]
    requires_api_key: bool = True
    env_var_names: tuple[str, ...] = field(default_factory=tuple)
    base_url: Optional[str] = None
    is_local: bool = False


PROVIDERS: tuple[LLMProvider, ...] = (
    LLMProvider(
        id="openai",
        name="OpenAI",
        description="GPT models via the OpenAI API",
        env_var_names=("OPENAI_API_KEY",),
        models=(
            LLMModel(
                id="gpt-4o-mini",
                name="GPT-4o mini",
                context_window=128_000,
                cost_per_1k_input=0.00015,
                cost_per_1k_output=0.0006,
                recommended=True,
                description="Fast and inexpensive, good default for documentation",
            ),
            LLMModel(
                id="gpt-4o",
                name="GPT-4o",
                context_window=128_000,
                cost_per_1k_input=0.0025,
                cost_per_1k_output=0.01,
                description="Higher quality prose for large codebases",
            ),
        ),
    ),
    LLMProvider(
        id="anthropic",
        name="Anthropic",
        description="Claude models via the Anthropic API",
        env_var_names=("ANTHROPIC_API_KEY",),
        models=(
            LLMModel(
                id="claude-3-5-sonnet-20241022",
                name="Claude 3.5 Sonnet",
                context_window=200_000,
                cost_per_1k_input=0.003,
                cost_per_1k_output=0.015,
                recommended=True,
                description="Strong code understanding with a large context window",
            ),
            LLMModel(
                id="claude-3-5-haiku-20241022",
                name="Claude 3.5 Haiku",
                context_window=200_000,
                cost_per_1k_input=0.0008,
                cost_per_1k_output=0.004,
                description="Cheaper and faster Claude model",
            ),
        ),
    ),
    LLMProvider(
        id="google",
        name="Google",
        description="Gemini models via the Google AI API",
        env_var_names=("GOOGLE_API_KEY", "GEMINI_API_KEY"),
        models=(
            LLMModel(
                id="gemini-1.5-pro",
                name="Gemini 1.5 Pro",
                context_window=2_000_000,
                cost_per_1k_input=0.00125,
                cost_per_1k_output=0.005,
                description="Very large context window",
            ),
            LLMModel(
                id="gemini-1.5-flash",
                name="Gemini 1.5 Flash",
                context_window=1_000_000,
                cost_per_1k_input=0.000075,
                cost_per_1k_output=0.0003,
                recommended=True,
                description="Lowest cost hosted option",
            ),
        ),
    ),
    LLMProvider(
        id="ollama",
        name="Ollama",
        description="Models running locally through Ollama",
        requires_api_key=False,
        base_url="http://localhost:11434",
        is_local=True,
        models=(
            LLMModel(
                id="llama3.1",
                name="Llama 3.1",
                context_window=128_000,
                cost_per_1k_input=0.0,
                cost_per_1k_output=0.0,
                recommended=True,
                description="General purpose local model",
            ),
            LLMModel(
                id="qwen2.5-coder",
                name="Qwen 2.5 Coder",
                context_window=32_768,
                cost_per_1k_input=0.0,
                cost_per_1k_output=0.0,
                description="Local model tuned for code",
            ),
        ),
    ),
)


def get_provider(provider_id: str) -> Optional[LLMProvider]:
    """Look up a provider by id."""
    for provider in PROVIDERS:
        if provider.id == provider_id:
            return provider
    return None


def get_model(provider_id: str, model_id: str) -> Optional[LLMModel]:
    """Look up a model by provider and model id."""
    provider = get_provider(provider_id)
    if provider is None:
        return None
    for model in provider.models:
        if model.id == model_id:
            return model
    return None


def iter_models(
    providers: Optional[tuple[LLMProvider, ...]] = None,
) -> Iterator[tuple[LLMProvider, LLMModel]]:
    """Yield every (provider, model) pair in catalog order."""
    for provider in providers if providers is not None else PROVIDERS:
        for model in provider.models:
            yield provider, model


def get_context_window(
    provider_id: str, model_id: str, default: int = DEFAULT_CONTEXT_WINDOW
) -> int:
    """Context window of a catalog model, or `default` for unknown models."""
    model = get_model(provider_id, model_id)
    return model.context_window if model else default


def available_input_tokens(context_window: int) -> int:
    """Tokens left for the prompt after reserving room for the answer."""
    reserve = max(int(context_window * OUTPUT_RESERVE_PERCENT), MIN_OUTPUT_TOKENS)
    return max(context_window - reserve, 0)
