"""LiteLLM-based LLM client."""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
)

from repodoc.config import ConfigError, load_settings
from repodoc.constants.llm import DEFAULT_TEMPERATURE, MAX_TOKENS

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM provider."""

    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication with the LLM provider fails."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM provider."""

    pass


class LLMClient:
    """Unified LLM client supporting multiple providers via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, anthropic, google, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom base URL (Ollama or OpenAI-compatible servers).
            log_path: Optional path to JSONL log file for query logging.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path

    def _log_query(
        self,
        prompt: str,
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
    ) -> None:
        """Append a query record to the JSONL log file."""
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "prompt_chars": len(prompt),
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response_chars": len(response) if response is not None else None,
            "duration_ms": duration_ms,
            "error": error,
        }

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            # Don't let logging failures break generation
            logger.debug(f"Could not write LLM query log: {e}")

    def _get_model_string(self) -> str:
        """Get LiteLLM model string.

        Returns:
            Model string in provider/model format.
        """
        if self.provider == "openai":
            return self.model  # OpenAI is default
        elif self.provider == "ollama":
            return f"ollama/{self.model}"
        else:
            return f"{self.provider}/{self.model}"

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate completion from prompt.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Returns:
            Generated text response.

        Raises:
            LLMError: If the provider call fails.
        """
        if temperature is None or max_tokens is None:
            try:
                settings = load_settings()
                if temperature is None:
                    temperature = settings.llm.default_temperature
                if max_tokens is None:
                    max_tokens = settings.llm.max_tokens
            except (ValueError, OSError, ConfigError):
                if temperature is None:
                    temperature = DEFAULT_TEMPERATURE
                if max_tokens is None:
                    max_tokens = MAX_TOKENS

        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self._get_model_string(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.endpoint:
            kwargs["api_base"] = self.endpoint

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except AuthenticationError as e:
            self._log_failure(prompt, temperature, max_tokens, start_time, e)
            raise LLMAuthenticationError(f"Authentication failed: {e}") from e
        except RateLimitError as e:
            self._log_failure(prompt, temperature, max_tokens, start_time, e)
            raise LLMRateLimitError(f"Rate limit exceeded: {e}") from e
        except APIConnectionError as e:
            self._log_failure(prompt, temperature, max_tokens, start_time, e)
            raise LLMConnectionError(f"Connection failed: {e}") from e
        except APIError as e:
            self._log_failure(prompt, temperature, max_tokens, start_time, e)
            raise LLMError(f"LLM API error: {e}") from e

        result: str = str(response.choices[0].message.content or "")
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        self._log_query(
            prompt,
            temperature,
            max_tokens,
            response=result,
            duration_ms=duration_ms,
            error=None,
        )
        return result

    def _log_failure(
        self,
        prompt: str,
        temperature: float,
        max_tokens: int,
        start_time: float,
        error: Exception,
    ) -> None:
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.warning(f"LLM call to {self._get_model_string()} failed after {duration_ms}ms: {error}")
        self._log_query(
            prompt,
            temperature,
            max_tokens,
            response=None,
            duration_ms=duration_ms,
            error=str(error),
        )
