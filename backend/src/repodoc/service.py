"""Generation service: crawl, plan against the cache, run what is needed.

One call to DocumentationService.generate handles one repository. Calls for
the same repository are serialized so two jobs never race on its cache
entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from repodoc.cache.adapters import StorageAdapter, create_storage_adapter
from repodoc.cache.locks import SingleFlight
from repodoc.cache.manager import CacheManager, hash_files
from repodoc.cache.models import CacheIndex
from repodoc.cache.planner import (
    FileChangeAnalysis,
    RegenerationMode,
    RegenerationPlan,
    analyze_file_changes,
    determine_regeneration_plan,
)
from repodoc.config import Config
from repodoc.errors import CacheError
from repodoc.generation.chapters import ChapterSlot
from repodoc.generation.models import (
    Abstraction,
    LLMSettings,
    PipelineState,
    ProgressCallback,
    Stage,
    TutorialOutput,
)
from repodoc.generation.orchestrator import ChapterReuse, DocumentationOrchestrator
from repodoc.generation.output import project_slug, write_tutorial
from repodoc.llm.client import LLMClient
from repodoc.repo.crawler import CrawlStats, GitHubCrawler
from repodoc.repo.url_parser import normalize_repo_url, parse_github_url

logger = logging.getLogger(__name__)

LLMClientFactory = Callable[[LLMSettings], Any]


@dataclass
class GenerationRequest:
    """Parameters of one documentation job. Unset fields fall back to settings."""

    repo_url: str
    github_token: Optional[str] = None
    include_patterns: Optional[list[str]] = None
    exclude_patterns: Optional[list[str]] = None
    max_file_size: Optional[int] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    language: Optional[str] = None
    max_abstractions: Optional[int] = None
    use_cache: bool = True
    force: bool = False


@dataclass
class GenerationOutcome:
    """Result of a job: the document set and how it was obtained."""

    output: TutorialOutput
    plan: RegenerationPlan
    crawl_stats: CrawlStats
    from_cache: bool = False
    llm_calls: int = 0
    output_path: Optional[Path] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output.to_dict(),
            "plan": self.plan.to_dict(),
            "crawl_stats": self.crawl_stats.to_dict(),
            "from_cache": self.from_cache,
            "llm_calls": self.llm_calls,
            "output_path": str(self.output_path) if self.output_path else None,
        }


class DocumentationService:
    """Runs documentation jobs with incremental reuse of earlier runs."""

    def __init__(
        self,
        settings: Config,
        storage: Optional[StorageAdapter] = None,
        crawler: Optional[GitHubCrawler] = None,
        llm_client_factory: Optional[LLMClientFactory] = None,
        output_dir: Optional[Path] = None,
    ):
        """Initialize the service.

        Args:
            settings: Application settings.
            storage: Cache storage (defaults to the configured backend).
            crawler: Repository crawler (defaults to one built from settings).
            llm_client_factory: Builds an LLM client for a job's LLMSettings.
            output_dir: If set, every result is also written under this directory.
        """
        self.settings = settings
        self.cache = CacheManager(storage or create_storage_adapter(settings))
        self.crawler = crawler or GitHubCrawler(
            token=settings.github_token,
            batch_size=settings.crawler.blob_batch_size,
            timeout=settings.crawler.request_timeout_seconds,
            rate_limit_warning_threshold=settings.crawler.rate_limit_warning_threshold,
        )
        self.llm_client_factory = llm_client_factory or self._default_llm_client
        self.output_dir = output_dir
        self.locks = SingleFlight()

    # =========================================================================
    # Setup
    # =========================================================================

    def _api_key_for(self, provider: str) -> Optional[str]:
        keys = {
            "openai": self.settings.openai_api_key,
            "anthropic": self.settings.anthropic_api_key,
            "google": self.settings.google_api_key,
        }
        return keys.get(provider)

    def _default_llm_client(self, llm: LLMSettings) -> LLMClient:
        return LLMClient(
            provider=llm.provider,
            model=llm.model,
            api_key=llm.api_key,
            endpoint=llm.base_url,
            log_path=self.settings.llm_log_path,
        )

    def llm_settings(self, request: GenerationRequest) -> LLMSettings:
        """Resolve the job's LLM selection against the configured defaults."""
        provider = request.provider or self.settings.active_provider
        if request.model:
            model = request.model
        elif provider == self.settings.active_provider:
            model = self.settings.active_model
        else:
            raise ValueError(f"A model is required for provider {provider!r}")
        base_url = request.base_url
        if base_url is None and provider == "ollama":
            base_url = self.settings.ollama_endpoint
        return LLMSettings(
            provider=provider,
            model=model,
            api_key=request.api_key or self._api_key_for(provider),
            base_url=base_url,
        )

    def build_state(
        self,
        request: GenerationRequest,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PipelineState:
        generation = self.settings.generation
        return PipelineState(
            repo_url=request.repo_url,
            project_name=parse_github_url(request.repo_url).repo,
            llm=self.llm_settings(request),
            language=request.language or generation.language,
            max_abstractions=request.max_abstractions or generation.max_abstractions,
            github_token=request.github_token,
            include_patterns=request.include_patterns,
            exclude_patterns=request.exclude_patterns,
            max_file_size=request.max_file_size or self.settings.max_file_size_bytes,
            progress_callback=progress_callback,
        )

    def build_orchestrator(self, llm_client) -> DocumentationOrchestrator:
        context = self.settings.context
        generation = self.settings.generation
        return DocumentationOrchestrator(
            llm_client,
            crawler=self.crawler,
            usage_ratio=context.usage_ratio,
            chars_per_token=context.chars_per_token,
            max_lines_per_file=context.max_lines_per_file,
            chapter_max_tokens=generation.chapter_max_tokens,
            analysis_max_tokens=generation.analysis_max_tokens,
            default_context_window=context.default_context_window,
        )

    # =========================================================================
    # Jobs
    # =========================================================================

    async def generate(
        self,
        request: GenerationRequest,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> GenerationOutcome:
        """Generate (or refresh) documentation for one repository.

        Args:
            request: Job parameters.
            progress_callback: Async sink for progress updates.

        Returns:
            The outcome, including the regeneration plan that was applied.

        Raises:
            ValueError: If the repository URL is invalid.
            GenerationError: If a pipeline stage fails.
            RepoDocError: Crawler transport errors propagate unchanged.
        """
        repo_id = normalize_repo_url(request.repo_url)
        async with self.locks.hold(repo_id):
            return await self._generate(repo_id, request, progress_callback)

    async def _generate(
        self,
        repo_id: str,
        request: GenerationRequest,
        progress_callback: Optional[ProgressCallback],
    ) -> GenerationOutcome:
        state = self.build_state(request, progress_callback)
        orchestrator = self.build_orchestrator(self.llm_client_factory(state.llm))

        crawl = await orchestrator.fetch_repo(state)
        file_hashes = hash_files(state.files)

        cache = await self._load_cache(request) if request.use_cache else None
        changes = analyze_file_changes(cache.files, file_hashes) if cache else None
        plan = self._plan(cache, changes, force=request.force)
        logger.info(f"Regeneration plan for {repo_id}: {plan.mode.value} ({plan.reason})")

        if plan.mode is RegenerationMode.SKIP:
            assert cache is not None
            self._restore(state, cache)
            await orchestrator.run(state, resume_from=Stage.COMBINE_TUTORIAL)
        elif plan.mode is RegenerationMode.PARTIAL:
            assert cache is not None
            self._restore(state, cache)
            await orchestrator.run(
                state,
                resume_from=Stage.WRITE_CHAPTERS,
                reuse_chapter=_reuse_unaffected(cache, plan.chapters_to_regenerate),
            )
        elif plan.mode is RegenerationMode.PARTIAL_REIDENTIFY:
            assert cache is not None and changes is not None
            await orchestrator.run(
                state,
                resume_from=Stage.IDENTIFY_ABSTRACTIONS,
                reuse_chapter=_reuse_unchanged(cache, state, changes),
            )
        else:
            await orchestrator.run(state, resume_from=Stage.IDENTIFY_ABSTRACTIONS)

        assert state.output is not None
        await self._save_cache(state, file_hashes, cache)
        output_path = self._write_output(state, request)

        return GenerationOutcome(
            output=state.output,
            plan=plan,
            crawl_stats=crawl.stats,
            from_cache=plan.mode is RegenerationMode.SKIP,
            llm_calls=state.llm_calls,
            output_path=output_path,
        )

    def _plan(
        self,
        cache: Optional[CacheIndex],
        changes: Optional[FileChangeAnalysis],
        force: bool,
    ) -> RegenerationPlan:
        if force:
            return RegenerationPlan(
                mode=RegenerationMode.FULL,
                reason="Full regeneration requested",
                rerun_identification=True,
                changes=changes,
            )
        cache_settings = self.settings.cache
        return determine_regeneration_plan(
            cache,
            changes,
            partial_threshold=cache_settings.partial_threshold_percent,
            reidentify_threshold=cache_settings.reidentify_threshold_percent,
            reidentify_on_drift=cache_settings.reidentify_on_drift,
        )

    async def _load_cache(self, request: GenerationRequest) -> Optional[CacheIndex]:
        try:
            return await self.cache.load(request.repo_url)
        except CacheError as e:
            logger.warning(f"Ignoring unreadable cache for {request.repo_url}: {e}")
            return None

    async def _save_cache(
        self,
        state: PipelineState,
        file_hashes: dict[str, str],
        previous: Optional[CacheIndex],
    ) -> None:
        index = CacheIndex.from_state(
            state, file_hashes, created_at=previous.created_at if previous else None
        )
        try:
            await self.cache.save(index)
        except CacheError as e:
            logger.error(f"Failed to save cache for {state.repo_url}: {e}")

    def _restore(self, state: PipelineState, cache: CacheIndex) -> None:
        """Load the analytical results of the cached run into state."""
        state.abstractions = cache.restore_abstractions(state.files)
        state.relationships = cache.relationships
        state.chapter_order = list(cache.chapter_order)
        state.chapters = cache.restore_chapters()

    def _write_output(self, state: PipelineState, request: GenerationRequest) -> Optional[Path]:
        if self.output_dir is None or state.output is None:
            return None
        parsed = parse_github_url(request.repo_url)
        directory = Path(self.output_dir) / project_slug(parsed.owner, parsed.repo)
        write_tutorial(state.output, directory, provider=state.llm.provider, model=state.llm.model)
        logger.info(f"Wrote documentation for {parsed.full_name} to {directory}")
        return directory


def _reuse_unaffected(cache: CacheIndex, regenerate: list[str]) -> ChapterReuse:
    """Reuse every cached chapter except those scheduled for rewriting."""
    rewrite = set(regenerate)

    def reuse(slot: ChapterSlot, abstraction: Abstraction) -> Optional[str]:
        if slot.filename in rewrite:
            return None
        cached = cache.chapter_for(slot.filename)
        return cached.body if cached else None

    return reuse


def _reuse_unchanged(
    cache: CacheIndex, state: PipelineState, changes: FileChangeAnalysis
) -> ChapterReuse:
    """Reuse a cached chapter when its abstraction survived re-identification.

    The abstraction must keep its name, its chapter position and its file
    set, and none of its files may have changed.
    """
    changed = set(changes.changed_files)

    def reuse(slot: ChapterSlot, abstraction: Abstraction) -> Optional[str]:
        cached = cache.chapter_for(slot.filename)
        if cached is None or cached.abstraction_name != abstraction.name:
            return None
        cached_files = cache.abstraction_files(abstraction.name)
        current_files = [state.files[i].path for i in abstraction.files]
        if cached_files is None or set(cached_files) != set(current_files):
            return None
        if changed.intersection(current_files):
            return None
        return cached.body

    return reuse
