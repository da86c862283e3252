# backend/src/repodoc/generation/orchestrator.py
"""Documentation pipeline orchestrator.

Runs a fixed sequence of stages over one PipelineState:

1. FetchRepo - crawl the repository into FileEntry records
2. IdentifyAbstractions - signature-mode context, one LLM call
3. AnalyzeRelationships - full-mode context for referenced files, one LLM call
4. OrderChapters - one LLM call producing a permutation of abstractions
5. WriteChapters - one LLM call per chapter, strictly in chapter order
6. CombineTutorial - diagram, index page and chapter trailers

Each analytical stage validates the LLM's structured output strictly. Any
validation or LLM failure aborts the job with a GenerationError naming the
stage (and chapter, when writing chapters).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from repodoc.constants.generation import (
    ANALYSIS_MAX_TOKENS,
    CHAPTER_MAX_TOKENS,
    CHARS_PER_TOKEN,
    CONTEXT_USAGE_RATIO,
    DEFAULT_CONTEXT_WINDOW,
    MAX_LINES_PER_FILE,
    MIN_ABSTRACTIONS,
    PROGRESS_CHAPTERS_SPAN,
    PROGRESS_CHAPTERS_START,
    PROGRESS_COMBINING,
    PROGRESS_COMPLETE,
    PROGRESS_FETCH,
    PROGRESS_IDENTIFY,
    PROGRESS_ORDERING,
    PROGRESS_RELATIONSHIPS,
)
from repodoc.errors import CrawlerError, GenerationError, OutputValidationError
from repodoc.generation.chapters import (
    ChapterSlot,
    chapter_listing,
    ensure_chapter_heading,
    neighbors,
    plan_chapters,
    previous_chapters_digest,
)
from repodoc.generation.combine import combine_tutorial
from repodoc.generation.context import (
    ContextMode,
    build_context,
    build_file_listing,
    compute_max_context_chars,
    get_content_for_indices,
)
from repodoc.generation.mermaid import find_unconnected_abstractions
from repodoc.generation.models import (
    Abstraction,
    ChapterContent,
    FileEntry,
    GenerationProgress,
    PipelineState,
    Stage,
    TutorialOutput,
)
from repodoc.generation.parsing import (
    parse_abstractions,
    parse_chapter_order,
    parse_relationships,
)
from repodoc.generation.prompts import (
    SYSTEM_PROMPT,
    get_analyze_relationships_prompt,
    get_identify_abstractions_prompt,
    get_order_chapters_prompt,
    get_write_chapter_prompt,
)
from repodoc.llm.client import LLMError
from repodoc.llm.providers import get_context_window
from repodoc.repo.crawler import CrawlResult, GitHubCrawler

logger = logging.getLogger(__name__)

# Returns a previously written body to reuse for a chapter, or None to write it
ChapterReuse = Callable[[ChapterSlot, Abstraction], Optional[str]]

ANALYTICAL_STAGES = (
    Stage.IDENTIFY_ABSTRACTIONS,
    Stage.ANALYZE_RELATIONSHIPS,
    Stage.ORDER_CHAPTERS,
    Stage.WRITE_CHAPTERS,
    Stage.COMBINE_TUTORIAL,
)


def chapter_progress(chapter_number: int, total: int, finished: bool) -> int:
    """Percentage reported around one chapter of the writing stage."""
    done = chapter_number if finished else chapter_number - 1
    return PROGRESS_CHAPTERS_START + round(done / max(total, 1) * PROGRESS_CHAPTERS_SPAN)


class DocumentationOrchestrator:
    """Runs the documentation pipeline for one job at a time.

    Attributes:
        llm_client: Object with an async generate(prompt, system_prompt, max_tokens).
        crawler: Repository crawler used by the fetch stage.
    """

    def __init__(
        self,
        llm_client,
        crawler: Optional[GitHubCrawler] = None,
        context_window: Optional[int] = None,
        usage_ratio: float = CONTEXT_USAGE_RATIO,
        chars_per_token: float = CHARS_PER_TOKEN,
        max_lines_per_file: int = MAX_LINES_PER_FILE,
        chapter_max_tokens: int = CHAPTER_MAX_TOKENS,
        analysis_max_tokens: int = ANALYSIS_MAX_TOKENS,
        default_context_window: int = DEFAULT_CONTEXT_WINDOW,
    ):
        """Initialize the orchestrator.

        Args:
            llm_client: LLM client for all generation calls.
            crawler: Crawler for the fetch stage (a default one is created if None).
            context_window: Override for the model's context window in tokens.
            usage_ratio: Share of the context window filled with repository content.
            chars_per_token: Character/token conversion for the budget.
            max_lines_per_file: Line allowance per file in full mode.
            chapter_max_tokens: Output token limit for chapter calls.
            analysis_max_tokens: Output token limit for analytical calls.
            default_context_window: Window used for models missing from the catalog.
        """
        self.llm_client = llm_client
        self.crawler = crawler or GitHubCrawler()
        self.context_window = context_window
        self.usage_ratio = usage_ratio
        self.chars_per_token = chars_per_token
        self.max_lines_per_file = max_lines_per_file
        self.chapter_max_tokens = chapter_max_tokens
        self.analysis_max_tokens = analysis_max_tokens
        self.default_context_window = default_context_window

    # =========================================================================
    # Driver
    # =========================================================================

    async def run(
        self,
        state: PipelineState,
        resume_from: Stage = Stage.FETCH_REPO,
        reuse_chapter: Optional[ChapterReuse] = None,
    ) -> TutorialOutput:
        """Run the pipeline from `resume_from` to completion.

        Stages before `resume_from` are assumed to have populated `state`
        already (the service fetches files itself, and partial regeneration
        restores abstractions, relationships and order from the cache).

        Args:
            state: Pipeline state for this job.
            resume_from: First stage to run.
            reuse_chapter: Optional hook returning a cached chapter body.

        Returns:
            The combined document set (also stored on state.output).

        Raises:
            GenerationError: If a stage fails validation or an LLM call fails.
            RepoDocError: Transport errors from the crawler propagate unchanged.
        """
        if resume_from is Stage.FETCH_REPO:
            await self.fetch_repo(state)
        stages = {
            Stage.IDENTIFY_ABSTRACTIONS: self.identify_abstractions,
            Stage.ANALYZE_RELATIONSHIPS: self.analyze_relationships,
            Stage.ORDER_CHAPTERS: self.order_chapters,
            Stage.COMBINE_TUTORIAL: self.combine,
        }
        start = 0 if resume_from is Stage.FETCH_REPO else ANALYTICAL_STAGES.index(resume_from)
        for stage in ANALYTICAL_STAGES[start:]:
            logger.info(f"Running stage {stage.value} for {state.project_name}")
            if stage is Stage.WRITE_CHAPTERS:
                await self.write_chapters(state, reuse_chapter)
            else:
                await stages[stage](state)

        if state.output is None:
            raise GenerationError(
                "Pipeline finished without output", stage=Stage.COMBINE_TUTORIAL.value
            )
        logger.info(
            f"Generated {len(state.output.chapters)} chapters for {state.project_name} "
            f"with {state.llm_calls} LLM calls"
        )
        return state.output

    @contextmanager
    def _stage(self, stage: Stage, chapter: Optional[int] = None) -> Iterator[None]:
        """Wrap validation and LLM failures as a GenerationError for `stage`."""
        try:
            yield
        except GenerationError:
            raise
        except (OutputValidationError, LLMError, CrawlerError) as e:
            where = f"{stage.value} (chapter {chapter})" if chapter else stage.value
            logger.error(f"Stage {where} failed: {e}")
            raise GenerationError(
                f"Stage {where} failed: {e}", stage=stage.value, chapter=chapter
            ) from e

    async def emit(self, state: PipelineState, progress: GenerationProgress) -> None:
        """Push a progress update. Sink failures are logged and ignored."""
        if state.progress_callback is None:
            return
        try:
            await state.progress_callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed at {progress.stage.value}: {e}")

    async def _call_llm(self, state: PipelineState, prompt: str, max_tokens: int) -> str:
        state.llm_calls += 1
        response = await self.llm_client.generate(
            prompt=prompt, system_prompt=SYSTEM_PROMPT, max_tokens=max_tokens
        )
        return response.strip()

    def _max_context_chars(self, state: PipelineState) -> int:
        window = (
            state.llm.context_window
            or self.context_window
            or get_context_window(state.llm.provider, state.llm.model, self.default_context_window)
        )
        return compute_max_context_chars(window, self.usage_ratio, self.chars_per_token)

    # =========================================================================
    # Stages
    # =========================================================================

    async def fetch_repo(self, state: PipelineState) -> CrawlResult:
        """Crawl the repository into state.files.

        Raises:
            GenerationError: If no files survive filtering.
        """
        await self.emit(
            state,
            GenerationProgress(Stage.FETCH_REPO, "Fetching repository files...", PROGRESS_FETCH),
        )
        result = await self.crawler.crawl(
            state.repo_url,
            token=state.github_token,
            include_patterns=state.include_patterns,
            exclude_patterns=state.exclude_patterns,
            max_file_size=state.max_file_size,
        )
        with self._stage(Stage.FETCH_REPO):
            if not result.files:
                raise CrawlerError(
                    f"No files matched the criteria in {result.stats.base_path}.",
                    repo=result.stats.base_path,
                )
        state.files = [FileEntry(path, content) for path, content in sorted(result.files.items())]
        logger.info(f"Fetched {len(state.files)} files for {state.project_name}")
        return result

    async def identify_abstractions(self, state: PipelineState) -> None:
        await self.emit(
            state,
            GenerationProgress(
                Stage.IDENTIFY_ABSTRACTIONS, "Identifying core abstractions...", PROGRESS_IDENTIFY
            ),
        )
        with self._stage(Stage.IDENTIFY_ABSTRACTIONS):
            if not state.files:
                raise CrawlerError("No files available for abstraction analysis.")
            context = build_context(
                state.files,
                ContextMode.SIGNATURE,
                max_context_chars=self._max_context_chars(state),
                max_lines_per_file=self.max_lines_per_file,
            )
            if context.files_skipped:
                logger.info(
                    f"Context budget reached: {context.files_included} files included, "
                    f"{context.files_skipped} left out"
                )
            prompt = get_identify_abstractions_prompt(
                project_name=state.project_name,
                context=context.text,
                file_listing=build_file_listing(state.files, context.included_indices),
                max_abstractions=state.max_abstractions,
                language=state.language,
                min_abstractions=MIN_ABSTRACTIONS,
            )
            response = await self._call_llm(state, prompt, self.analysis_max_tokens)
            state.abstractions = parse_abstractions(
                response, len(state.files), state.max_abstractions
            )
        logger.info(f"Identified {len(state.abstractions)} abstractions")

    async def analyze_relationships(self, state: PipelineState) -> None:
        await self.emit(
            state,
            GenerationProgress(
                Stage.ANALYZE_RELATIONSHIPS,
                "Analyzing relationships between abstractions...",
                PROGRESS_RELATIONSHIPS,
            ),
        )
        with self._stage(Stage.ANALYZE_RELATIONSHIPS):
            if not state.abstractions:
                raise OutputValidationError("No abstractions found for relationship analysis.")
            lines = ["Identified Abstractions:"]
            referenced: set[int] = set()
            for i, abstraction in enumerate(state.abstractions):
                referenced.update(abstraction.files)
                lines.append(
                    f"- Index {i}: {abstraction.name} "
                    f"(Relevant file indices: {abstraction.files})\n"
                    f"  Description: {abstraction.description}"
                )
            header = "\n".join(lines) + "\n\nRelevant File Snippets:\n"
            snippets = build_context(
                state.files,
                ContextMode.FULL,
                max_context_chars=max(self._max_context_chars(state) - len(header), 0),
                max_lines_per_file=self.max_lines_per_file,
                indices=sorted(referenced),
                prioritize=False,
            )
            prompt = get_analyze_relationships_prompt(
                project_name=state.project_name,
                context=header + snippets.text,
                abstraction_listing=_abstraction_listing(state.abstractions),
                language=state.language,
            )
            response = await self._call_llm(state, prompt, self.analysis_max_tokens)
            state.relationships = parse_relationships(response, len(state.abstractions))

        unconnected = find_unconnected_abstractions(
            state.abstractions, state.relationships.details
        )
        if unconnected:
            names = ", ".join(state.abstractions[i].name for i in unconnected)
            logger.warning(f"Abstractions missing from every relationship: {names}")
        logger.info(f"Found {len(state.relationships.details)} relationships")

    async def order_chapters(self, state: PipelineState) -> None:
        await self.emit(
            state,
            GenerationProgress(
                Stage.ORDER_CHAPTERS, "Determining chapter order...", PROGRESS_ORDERING
            ),
        )
        with self._stage(Stage.ORDER_CHAPTERS):
            if not state.abstractions or state.relationships is None:
                raise OutputValidationError("Abstractions and relationships are required.")
            lines = [f"Project Summary:\n{state.relationships.summary}\n", "Relationships:"]
            for rel in state.relationships.details:
                lines.append(
                    f"- From {rel.from_index} ({state.abstractions[rel.from_index].name}) "
                    f"to {rel.to_index} ({state.abstractions[rel.to_index].name}): {rel.label}"
                )
            prompt = get_order_chapters_prompt(
                project_name=state.project_name,
                abstraction_listing=_abstraction_listing(state.abstractions),
                context="\n".join(lines),
                language=state.language,
            )
            response = await self._call_llm(state, prompt, self.analysis_max_tokens)
            state.chapter_order = parse_chapter_order(response, len(state.abstractions))
        logger.info(f"Chapter order: {state.chapter_order}")

    async def write_chapters(
        self,
        state: PipelineState,
        reuse_chapter: Optional[ChapterReuse] = None,
    ) -> None:
        """Write every chapter sequentially.

        Each prompt receives the digest of all chapters before it, so chapters
        are written strictly in order. Bodies returned by `reuse_chapter` skip
        the LLM call but still feed the digest.
        """
        slots = plan_chapters(state.chapter_order, state.abstractions)
        listing = chapter_listing(slots)
        total = len(slots)
        written: list[str] = []
        chapters: list[ChapterContent] = []

        for position, slot in enumerate(slots):
            abstraction = state.abstractions[slot.abstraction_index]
            with self._stage(Stage.WRITE_CHAPTERS, chapter=slot.number):
                body = reuse_chapter(slot, abstraction) if reuse_chapter else None
                action = "Reusing" if body is not None else "Writing"
                await self.emit(
                    state,
                    GenerationProgress(
                        Stage.WRITE_CHAPTERS,
                        f"{action} chapter {slot.number}/{total}: {slot.name}...",
                        chapter_progress(slot.number, total, finished=False),
                        current_chapter=slot.number,
                        total_chapters=total,
                        chapter_name=slot.name,
                    ),
                )
                if body is None:
                    body = await self._write_chapter(state, slots, position, listing, written)
                else:
                    logger.info(f"Reusing cached chapter {slot.number}: {slot.name}")

            written.append(body)
            chapters.append(
                ChapterContent(
                    chapter_number=slot.number,
                    abstraction_index=slot.abstraction_index,
                    filename=slot.filename,
                    title=slot.title,
                    body=body,
                )
            )
            await self.emit(
                state,
                GenerationProgress(
                    Stage.WRITE_CHAPTERS,
                    f"Completed chapter {slot.number}/{total}: {slot.name}",
                    chapter_progress(slot.number, total, finished=True),
                    current_chapter=slot.number,
                    total_chapters=total,
                    chapter_name=slot.name,
                ),
            )

        state.chapters = chapters

    async def _write_chapter(
        self,
        state: PipelineState,
        slots: list[ChapterSlot],
        position: int,
        listing: str,
        written: list[str],
    ) -> str:
        slot = slots[position]
        abstraction = state.abstractions[slot.abstraction_index]
        previous, following = neighbors(slots, position)
        prompt = get_write_chapter_prompt(
            project_name=state.project_name,
            chapter_number=slot.number,
            abstraction_name=abstraction.name,
            abstraction_description=abstraction.description,
            chapter_listing=listing,
            previous_chapters=previous_chapters_digest(written),
            file_context=get_content_for_indices(
                state.files, abstraction.files, self.max_lines_per_file
            ),
            language=state.language,
            previous_link=previous.link if previous else "",
            next_link=following.link if following else "",
        )
        response = await self._call_llm(state, prompt, self.chapter_max_tokens)
        return ensure_chapter_heading(response, slot.number, abstraction.name)

    async def combine(self, state: PipelineState) -> None:
        await self.emit(
            state,
            GenerationProgress(
                Stage.COMBINE_TUTORIAL,
                "Combining chapters into final documentation...",
                PROGRESS_COMBINING,
            ),
        )
        with self._stage(Stage.COMBINE_TUTORIAL):
            if state.relationships is None:
                raise OutputValidationError("Relationship data is required to combine.")
            slots = plan_chapters(state.chapter_order, state.abstractions)
            state.output = combine_tutorial(
                project_name=state.project_name,
                repo_url=state.repo_url,
                abstractions=state.abstractions,
                relationships=state.relationships,
                slots=slots,
                bodies=[chapter.body for chapter in state.chapters],
            )
        await self.emit(
            state,
            GenerationProgress(
                Stage.COMPLETE, "Documentation generation complete!", PROGRESS_COMPLETE
            ),
        )


def _abstraction_listing(abstractions: list[Abstraction]) -> str:
    return "\n".join(f"{i} # {a.name}" for i, a in enumerate(abstractions))
