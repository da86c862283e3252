"""Configuration system for repodoc.

This module handles loading settings from environment variables and INI files,
providing sensible defaults, and computing derived paths inside the data
directory (cache, generated docs, logs).
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os

from repodoc.constants import cache as cache_constants
from repodoc.constants import files as file_constants
from repodoc.constants import generation as generation_constants
from repodoc.constants import github as github_constants
from repodoc.constants import llm as llm_constants


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "crawler": {
        "max_file_size_kb": (
            int,
            file_constants.MAX_FILE_SIZE_KB,
            1,
            10000,
            "Blobs above this size are skipped",
        ),
        "blob_batch_size": (
            int,
            github_constants.BLOB_BATCH_SIZE,
            1,
            50,
            "Concurrent blob downloads",
        ),
        "request_timeout_seconds": (
            float,
            github_constants.REQUEST_TIMEOUT_SECONDS,
            1.0,
            300.0,
            "Timeout for each GitHub API request",
        ),
        "rate_limit_warning_threshold": (
            int,
            github_constants.RATE_LIMIT_WARNING_THRESHOLD,
            0,
            5000,
            "Warn when fewer API requests remain",
        ),
    },
    "context": {
        "usage_ratio": (
            float,
            generation_constants.CONTEXT_USAGE_RATIO,
            0.1,
            0.95,
            "Share of the context window filled with repository content",
        ),
        "chars_per_token": (
            float,
            generation_constants.CHARS_PER_TOKEN,
            1.0,
            10.0,
            "Character to token conversion ratio",
        ),
        "max_lines_per_file": (
            int,
            generation_constants.MAX_LINES_PER_FILE,
            10,
            5000,
            "Line allowance per file in full-content context",
        ),
        "default_context_window": (
            int,
            generation_constants.DEFAULT_CONTEXT_WINDOW,
            1000,
            None,
            "Context window assumed for unknown models",
        ),
    },
    "generation": {
        "max_abstractions": (
            int,
            generation_constants.DEFAULT_MAX_ABSTRACTIONS,
            generation_constants.MIN_ABSTRACTIONS,
            30,
            "Maximum abstractions (chapters) to identify",
        ),
        "language": (str, generation_constants.DEFAULT_LANGUAGE, None, None, "Output language"),
        "chapter_max_tokens": (
            int,
            generation_constants.CHAPTER_MAX_TOKENS,
            256,
            32768,
            "Max response tokens per chapter",
        ),
        "analysis_max_tokens": (
            int,
            generation_constants.ANALYSIS_MAX_TOKENS,
            256,
            32768,
            "Max response tokens for analytical stages",
        ),
    },
    "llm": {
        "max_tokens": (int, llm_constants.MAX_TOKENS, 256, 32768, "Max response tokens"),
        "default_temperature": (
            float,
            llm_constants.DEFAULT_TEMPERATURE,
            0.0,
            2.0,
            "Default LLM temperature",
        ),
    },
    "cache": {
        "backend": (str, "filesystem", None, None, "filesystem, memory or remote"),
        "partial_threshold_percent": (
            float,
            cache_constants.PARTIAL_THRESHOLD_PERCENT,
            0.0,
            100.0,
            "Changed-file share below which only affected chapters are rewritten",
        ),
        "reidentify_threshold_percent": (
            float,
            cache_constants.REIDENTIFY_THRESHOLD_PERCENT,
            0.0,
            100.0,
            "Changed-file share below which analysis reruns but chapters are reused",
        ),
        "reidentify_on_drift": (
            bool,
            True,
            None,
            None,
            "Rerun analysis stages when moderate structural drift is detected",
        ),
        "stale_after_hours": (
            int,
            cache_constants.STALE_AFTER_HOURS,
            1,
            None,
            "Age after which a cache entry is reported stale",
        ),
    },
    "paths": {
        "cache_dir": (str, "cache", None, None, "Cache directory name"),
        "output_dir": (str, "docs", None, None, "Generated documentation directory name"),
        "logs_dir": (str, "logs", None, None, "Logs directory name"),
    },
}


@dataclass(frozen=True)
class CrawlerConfig:
    """Repository crawler configuration."""

    max_file_size_kb: int
    blob_batch_size: int
    request_timeout_seconds: float
    rate_limit_warning_threshold: int


@dataclass(frozen=True)
class ContextConfig:
    """Context budgeting configuration."""

    usage_ratio: float
    chars_per_token: float
    max_lines_per_file: int
    default_context_window: int


@dataclass(frozen=True)
class GenerationConfig:
    """Pipeline configuration."""

    max_abstractions: int
    language: str
    chapter_max_tokens: int
    analysis_max_tokens: int


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float


@dataclass(frozen=True)
class CacheConfig:
    """Incremental cache configuration."""

    backend: str
    partial_threshold_percent: float
    reidentify_threshold_percent: float
    reidentify_on_drift: bool
    stale_after_hours: int


@dataclass(frozen=True)
class PathsConfig:
    """Path names configuration."""

    cache_dir: str
    output_dir: str
    logs_dir: str


SECTION_TYPES: dict[str, type] = {
    "crawler": CrawlerConfig,
    "context": ContextConfig,
    "generation": GenerationConfig,
    "llm": LLMConfig,
    "cache": CacheConfig,
    "paths": PathsConfig,
}


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _default_section(section: str) -> Any:
    """Build a section dataclass populated with schema defaults."""
    values = {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}
    return SECTION_TYPES[section](**values)


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated and environment fields
        left at their defaults.

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    sections = {
        name: SECTION_TYPES[name](**_load_section(parser, name, CONFIG_SCHEMA[name]))
        for name in CONFIG_SCHEMA
    }

    cache_config: CacheConfig = sections["cache"]
    if cache_config.reidentify_threshold_percent < cache_config.partial_threshold_percent:
        raise ConfigError(
            "Value for [cache].reidentify_threshold_percent must not be below "
            "[cache].partial_threshold_percent"
        )

    return Config(**sections)


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path = None  # type: ignore[assignment]  # Set in __post_init__ if None
    active_provider: str = "ollama"
    active_model: str = "llama3.1"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"
    github_token: Optional[str] = None
    storage_url: Optional[str] = None
    storage_bucket: str = "repodoc-cache"
    storage_key: Optional[str] = None

    # Section configs - defaults set in __post_init__
    crawler: CrawlerConfig = None  # type: ignore[assignment]
    context: ContextConfig = None  # type: ignore[assignment]
    generation: GenerationConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    cache: CacheConfig = None  # type: ignore[assignment]
    paths: PathsConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # Since frozen=True, we need to use object.__setattr__
        if self.data_dir is None:
            object.__setattr__(self, "data_dir", Path.home() / ".repodoc")
        for section in SECTION_TYPES:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _default_section(section))

    @property
    def cache_path(self) -> Path:
        """Directory used by the filesystem cache backend."""
        return self.data_dir / self.paths.cache_dir

    @property
    def output_path(self) -> Path:
        """Directory that receives generated documentation."""
        return self.data_dir / self.paths.output_dir

    @property
    def llm_log_path(self) -> Path:
        """Path to LLM query log file."""
        return self.data_dir / self.paths.logs_dir / "llm-queries.jsonl"

    @property
    def max_file_size_bytes(self) -> int:
        """Crawler size ceiling in bytes."""
        return self.crawler.max_file_size_kb * 1024

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the active LLM provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }
        return provider_keys.get(self.active_provider)

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Endpoint for LLM provider (mainly for Ollama)."""
        if self.active_provider == "ollama":
            return self.ollama_endpoint
        return None


PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-1.5-pro",
    "ollama": "llama3.1",
}


def _detect_provider_from_keys() -> tuple[str, str]:
    """Auto-detect provider from available API keys.

    Returns:
        Tuple of (provider, model) based on available keys.
        Falls back to ollama if no keys are found.
    """
    if os.getenv("OPENAI_API_KEY"):
        return ("openai", PROVIDER_DEFAULT_MODELS["openai"])
    if os.getenv("ANTHROPIC_API_KEY"):
        return ("anthropic", PROVIDER_DEFAULT_MODELS["anthropic"])
    if os.getenv("GOOGLE_API_KEY"):
        return ("google", PROVIDER_DEFAULT_MODELS["google"])
    return ("ollama", PROVIDER_DEFAULT_MODELS["ollama"])


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If the config file or an environment override is invalid.
    """
    data_dir_str = os.getenv("REPODOC_DATA_DIR")
    data_dir = Path(data_dir_str).expanduser() if data_dir_str else Path.home() / ".repodoc"

    config_file_str = os.getenv("REPODOC_CONFIG")
    config_file = Path(config_file_str) if config_file_str else data_dir / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    active_provider = os.getenv("ACTIVE_PROVIDER")
    active_model = os.getenv("ACTIVE_MODEL")

    if not active_provider:
        detected_provider, detected_model = _detect_provider_from_keys()
        active_provider = detected_provider
        if not active_model:
            active_model = detected_model
    elif not active_model:
        active_model = PROVIDER_DEFAULT_MODELS.get(active_provider, PROVIDER_DEFAULT_MODELS["ollama"])

    cache_config = base_config.cache
    backend_override = os.getenv("REPODOC_CACHE_BACKEND")
    if backend_override:
        if backend_override not in ("filesystem", "memory", "remote"):
            raise ConfigError(
                f"Invalid value for REPODOC_CACHE_BACKEND: {backend_override!r} "
                "(expected filesystem, memory or remote)"
            )
        cache_config = CacheConfig(
            backend=backend_override,
            partial_threshold_percent=cache_config.partial_threshold_percent,
            reidentify_threshold_percent=cache_config.reidentify_threshold_percent,
            reidentify_on_drift=cache_config.reidentify_on_drift,
            stale_after_hours=cache_config.stale_after_hours,
        )

    return Config(
        data_dir=data_dir,
        active_provider=active_provider,
        active_model=active_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        github_token=os.getenv("GITHUB_TOKEN"),
        storage_url=os.getenv("REPODOC_STORAGE_URL"),
        storage_bucket=os.getenv("REPODOC_STORAGE_BUCKET", "repodoc-cache"),
        storage_key=os.getenv("REPODOC_STORAGE_KEY"),
        crawler=base_config.crawler,
        context=base_config.context,
        generation=base_config.generation,
        llm=base_config.llm,
        cache=cache_config,
        paths=base_config.paths,
    )
