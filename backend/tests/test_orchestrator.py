# backend/tests/test_orchestrator.py
"""Documentation orchestrator tests."""

import logging
from unittest.mock import AsyncMock

import pytest

from conftest import respond_by_stage
from repodoc.errors import GenerationError
from repodoc.generation.models import LLMSettings, PipelineState, Stage
from repodoc.generation.orchestrator import DocumentationOrchestrator, chapter_progress
from repodoc.llm.client import LLMError
from repodoc.repo.crawler import CrawlResult, CrawlStats


def make_state(files=None, **kwargs) -> PipelineState:
    return PipelineState(
        repo_url="https://github.com/octo/app",
        project_name="app",
        llm=LLMSettings(provider="openai", model="gpt-4o-mini"),
        files=list(files or []),
        **kwargs,
    )


def crawl_result(files: dict) -> CrawlResult:
    stats = CrawlStats(
        base_path="octo/app",
        branch="main",
        include_patterns=[],
        exclude_patterns=[],
        downloaded_count=len(files),
    )
    return CrawlResult(files=files, stats=stats)


@pytest.fixture
def mock_crawler():
    crawler = AsyncMock()
    crawler.crawl.return_value = crawl_result(
        {
            "src/storage.py": "class Storage: pass\n",
            "src/config.py": "import os\n",
            "src/router.py": "def route(): pass\n",
            "src/main.py": "def main(): pass\n",
        }
    )
    return crawler


@pytest.fixture
def orchestrator(scripted_llm, mock_crawler):
    """Create orchestrator."""
    return DocumentationOrchestrator(llm_client=scripted_llm, crawler=mock_crawler)


def prompts_sent(llm) -> list[str]:
    return [call.kwargs["prompt"] for call in llm.generate.call_args_list]


# =============================================================================
# Full Run Tests
# =============================================================================


async def test_full_run_produces_tutorial(orchestrator, scripted_llm):
    """A full run makes one call per analytical stage plus one per chapter."""
    state = make_state()

    output = await orchestrator.run(state)

    assert state.llm_calls == 6
    assert scripted_llm.generate.await_count == 6
    assert [c.filename for c in output.chapters] == [
        "01_request_router.md",
        "02_storage_layer.md",
        "03_config_loader.md",
    ]
    assert output.chapters[0].body.startswith(
        "# Chapter 1: Request Router\n\nThis chapter explains Request Router."
    )
    assert output.chapters[2].body.endswith("---\n\nGenerated by repodoc")
    assert output.index_content.startswith("# Tutorial: app\n\nA tiny **web service**")
    assert '    A0 -- "Saves records" --> A1' in output.mermaid_diagram
    assert state.output is output


async def test_fetch_sorts_files_by_path(orchestrator, mock_crawler):
    state = make_state(github_token="ghp_x", include_patterns=["**/*.py"])

    await orchestrator.fetch_repo(state)

    assert state.file_paths == ["src/config.py", "src/main.py", "src/router.py", "src/storage.py"]
    kwargs = mock_crawler.crawl.call_args.kwargs
    assert kwargs["token"] == "ghp_x"
    assert kwargs["include_patterns"] == ["**/*.py"]


async def test_empty_crawl_aborts_at_fetch(orchestrator, mock_crawler, scripted_llm):
    mock_crawler.crawl.return_value = crawl_result({})

    with pytest.raises(GenerationError) as exc_info:
        await orchestrator.run(make_state())

    assert exc_info.value.stage == "fetch_repo"
    scripted_llm.generate.assert_not_called()


async def test_resume_skips_fetch(orchestrator, mock_crawler, sample_files):
    state = make_state(sample_files)

    await orchestrator.run(state, resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    mock_crawler.crawl.assert_not_called()
    assert state.abstractions[0].files == [1, 2]
    assert state.chapter_order == [0, 1, 2]


async def test_chapters_receive_previous_chapters(orchestrator, scripted_llm, sample_files):
    """Each chapter prompt carries every chapter written before it."""
    await orchestrator.run(make_state(sample_files), resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    chapter_prompts = [p for p in prompts_sent(scripted_llm) if "about the concept" in p]
    assert len(chapter_prompts) == 3
    assert "This is the first chapter." in chapter_prompts[0]
    assert "This chapter explains Request Router." in chapter_prompts[2]
    assert "This chapter explains Storage Layer." in chapter_prompts[2]
    # Chapter prompts carry the abstraction's own files
    assert "--- File: 3 # src/storage.py ---" in chapter_prompts[1]


async def test_identify_prompt_uses_signatures(orchestrator, scripted_llm, sample_files):
    await orchestrator.run(make_state(sample_files), resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    identify_prompt = prompts_sent(scripted_llm)[0]
    assert "// Python Module: src/storage.py" in identify_prompt
    assert "- 3 # src/storage.py" in identify_prompt


async def test_reused_chapters_skip_llm(orchestrator, scripted_llm, sample_files):
    state = make_state(sample_files)

    def reuse(slot, abstraction):
        return "# Chapter 2: Storage Layer\n\nCached." if slot.number == 2 else None

    output = await orchestrator.run(
        state, resume_from=Stage.IDENTIFY_ABSTRACTIONS, reuse_chapter=reuse
    )

    assert state.llm_calls == 5
    assert output.chapters[1].body.startswith("# Chapter 2: Storage Layer\n\nCached.")
    # The reused body still feeds the next chapter's context
    assert "Cached." in prompts_sent(scripted_llm)[-1]


async def test_combine_only_makes_no_llm_calls(orchestrator, scripted_llm, sample_files):
    state = make_state(sample_files)
    await orchestrator.run(state, resume_from=Stage.IDENTIFY_ABSTRACTIONS)
    scripted_llm.generate.reset_mock()
    state.llm_calls = 0
    state.output = None

    output = await orchestrator.run(state, resume_from=Stage.COMBINE_TUTORIAL)

    assert state.llm_calls == 0
    scripted_llm.generate.assert_not_called()
    assert len(output.chapters) == 3


async def test_unconnected_abstractions_are_logged(orchestrator, scripted_llm, sample_files, caplog):
    relationships = """```yaml
summary: Small.
relationships:
  - from_abstraction: 0
    to_abstraction: 1
    label: Uses
```"""
    scripted_llm.generate.side_effect = respond_by_stage(relationships=relationships)

    with caplog.at_level(logging.WARNING):
        await orchestrator.run(make_state(sample_files), resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    assert "Config Loader" in caplog.text


# =============================================================================
# Failure Tests
# =============================================================================


async def test_invalid_order_aborts_with_stage(orchestrator, scripted_llm, sample_files):
    scripted_llm.generate.side_effect = respond_by_stage(order="```yaml\n- 0\n- 0\n- 2\n```")

    with pytest.raises(GenerationError) as exc_info:
        await orchestrator.run(make_state(sample_files), resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    assert exc_info.value.stage == "order_chapters"
    assert "Duplicate index 0" in str(exc_info.value)


async def test_invalid_abstractions_abort(orchestrator, scripted_llm, sample_files):
    scripted_llm.generate.side_effect = respond_by_stage(abstractions="I could not decide.")

    with pytest.raises(GenerationError) as exc_info:
        await orchestrator.run(make_state(sample_files), resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    assert exc_info.value.stage == "identify_abstractions"
    assert scripted_llm.generate.await_count == 1


async def test_chapter_failure_names_chapter(orchestrator, scripted_llm, sample_files):
    """An LLM failure while writing aborts the job and names the chapter."""

    def chapter(prompt):
        if "This is Chapter 2." in prompt:
            raise LLMError("provider down")
        return "Body."

    scripted_llm.generate.side_effect = respond_by_stage(chapter=chapter)
    state = make_state(sample_files)

    with pytest.raises(GenerationError) as exc_info:
        await orchestrator.run(state, resume_from=Stage.IDENTIFY_ABSTRACTIONS)

    assert exc_info.value.stage == "write_chapters"
    assert exc_info.value.chapter == 2
    assert state.output is None


# =============================================================================
# Progress Tests
# =============================================================================


async def test_progress_is_reported_in_stage_order(orchestrator):
    events = []

    async def collect(progress):
        events.append(progress)

    state = make_state(progress_callback=collect)
    await orchestrator.run(state)

    stages = [e.stage for e in events]
    assert stages[0] is Stage.FETCH_REPO
    assert stages[-1] is Stage.COMPLETE
    assert events[-1].progress == 100
    percentages = [e.progress for e in events]
    assert percentages == sorted(percentages)
    chapter_events = [e for e in events if e.stage is Stage.WRITE_CHAPTERS]
    assert len(chapter_events) == 6
    assert chapter_events[0].total_chapters == 3
    assert chapter_events[-1].chapter_name == "Config Loader"


async def test_failing_progress_sink_does_not_abort(orchestrator):
    async def broken(progress):
        raise RuntimeError("client went away")

    output = await orchestrator.run(make_state(progress_callback=broken))

    assert len(output.chapters) == 3


def test_chapter_progress_spans_writing_stage():
    assert chapter_progress(1, 4, finished=False) == 30
    assert chapter_progress(4, 4, finished=True) == 90
    assert chapter_progress(1, 0, finished=True) == 90
