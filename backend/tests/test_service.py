"""Documentation service tests."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import respond_by_stage
from repodoc.cache.adapters import MemoryStorage
from repodoc.cache.manager import cache_key
from repodoc.cache.planner import RegenerationMode
from repodoc.errors import CacheError
from repodoc.repo.crawler import CrawlResult, CrawlStats
from repodoc.service import DocumentationService, GenerationRequest

REPO_URL = "https://github.com/octo/app"

FILES = {
    "src/config.py": "import os\n",
    "src/main.py": "def main(): pass\n",
    "src/router.py": "def route(): pass\n",
    "src/storage.py": "class Storage: pass\n",
}


def crawl_result(files: dict) -> CrawlResult:
    stats = CrawlStats(
        base_path="octo/app",
        branch="main",
        include_patterns=[],
        exclude_patterns=[],
        downloaded_count=len(files),
    )
    return CrawlResult(files=dict(files), stats=stats)


def with_changes(**changes) -> dict:
    """Repository files with some contents replaced (keys use the basename)."""
    files = dict(FILES)
    for name, content in changes.items():
        files[f"src/{name}.py"] = content
    return files


@pytest.fixture
def crawler():
    crawler = AsyncMock()
    crawler.crawl.return_value = crawl_result(FILES)
    return crawler


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def service(settings, storage, crawler, scripted_llm):
    return DocumentationService(
        settings,
        storage=storage,
        crawler=crawler,
        llm_client_factory=lambda llm: scripted_llm,
    )


def request(**kwargs) -> GenerationRequest:
    return GenerationRequest(repo_url=REPO_URL, **kwargs)


# =============================================================================
# LLM Selection
# =============================================================================


def test_llm_settings_default_to_configured_provider(service):
    llm = service.llm_settings(request())

    assert (llm.provider, llm.model, llm.api_key) == ("openai", "gpt-4o-mini", "sk-test")
    assert llm.base_url is None


def test_llm_settings_request_overrides(service):
    llm = service.llm_settings(request(model="gpt-4o", api_key="sk-mine"))

    assert llm.model == "gpt-4o"
    assert llm.api_key == "sk-mine"


def test_other_provider_requires_model(service):
    with pytest.raises(ValueError, match="model is required"):
        service.llm_settings(request(provider="anthropic"))


def test_ollama_gets_local_endpoint(service, settings):
    llm = service.llm_settings(request(provider="ollama", model="llama3.1"))

    assert llm.base_url == settings.ollama_endpoint
    assert llm.api_key is None


def test_state_uses_generation_defaults(service, settings):
    state = service.build_state(request(language="german"))

    assert state.project_name == "app"
    assert state.language == "german"
    assert state.max_abstractions == settings.generation.max_abstractions
    assert state.max_file_size == settings.max_file_size_bytes


# =============================================================================
# Regeneration Modes
# =============================================================================


async def test_first_run_is_full(service, storage):
    outcome = await service.generate(request())

    assert outcome.plan.mode is RegenerationMode.FULL
    assert outcome.llm_calls == 6
    assert not outcome.from_cache
    assert len(outcome.output.chapters) == 3
    assert await storage.get(cache_key(REPO_URL)) is not None


async def test_unchanged_rerun_is_served_from_cache(service, scripted_llm):
    first = await service.generate(request())
    scripted_llm.generate.reset_mock()

    second = await service.generate(request())

    assert second.plan.mode is RegenerationMode.SKIP
    assert second.from_cache
    assert second.llm_calls == 0
    scripted_llm.generate.assert_not_awaited()
    assert second.output.index_content == first.output.index_content
    assert [c.body for c in second.output.chapters] == [c.body for c in first.output.chapters]


async def test_small_change_rewrites_chapter_and_dependents(service, crawler, scripted_llm):
    await service.generate(request())
    crawler.crawl.return_value = crawl_result(with_changes(storage="class Storage: v2\n"))
    scripted_llm.generate.side_effect = respond_by_stage(chapter=lambda prompt: "Rewritten.")

    outcome = await service.generate(request())

    assert outcome.plan.mode is RegenerationMode.PARTIAL
    # Router depends on Storage, Config does not
    assert set(outcome.plan.chapters_to_regenerate) == {
        "01_request_router.md",
        "02_storage_layer.md",
    }
    assert outcome.llm_calls == 2
    router, storage_chapter, config = outcome.output.chapters
    assert "Rewritten." in router.body
    assert "Rewritten." in storage_chapter.body
    assert "Rewritten." not in config.body


async def test_moderate_change_reidentifies_and_reuses(service, crawler, scripted_llm):
    await service.generate(request())
    crawler.crawl.return_value = crawl_result(
        with_changes(config="import sys\n", storage="class Storage: v2\n")
    )
    scripted_llm.generate.side_effect = respond_by_stage(chapter=lambda prompt: "Rewritten.")

    outcome = await service.generate(request())

    assert outcome.plan.mode is RegenerationMode.PARTIAL_REIDENTIFY
    # Three analysis calls, then only the chapters whose files changed
    assert outcome.llm_calls == 5
    router, storage_chapter, config = outcome.output.chapters
    assert "Rewritten." not in router.body
    assert "Rewritten." in storage_chapter.body
    assert "Rewritten." in config.body


async def test_force_regenerates_everything(service):
    await service.generate(request())

    outcome = await service.generate(request(force=True))

    assert outcome.plan.mode is RegenerationMode.FULL
    assert outcome.llm_calls == 6


async def test_cache_disabled_runs_full(service):
    await service.generate(request())

    outcome = await service.generate(request(use_cache=False))

    assert outcome.plan.mode is RegenerationMode.FULL


async def test_cache_keeps_creation_time(service):
    await service.generate(request())
    first = await service.cache.peek(REPO_URL)

    await service.generate(request(force=True))

    second = await service.cache.peek(REPO_URL)
    assert second.created_at == first.created_at
    assert second.updated_at >= first.updated_at


# =============================================================================
# Failure Handling
# =============================================================================


async def test_unreadable_cache_is_ignored(service, storage):
    await storage.set(cache_key(REPO_URL), {"garbage": True})

    outcome = await service.generate(request())

    assert outcome.plan.mode is RegenerationMode.FULL


async def test_cache_save_failure_still_returns_output(service, caplog):
    service.cache.save = AsyncMock(side_effect=CacheError("disk full"))

    outcome = await service.generate(request())

    assert len(outcome.output.chapters) == 3
    assert "Failed to save cache" in caplog.text


async def test_invalid_url_rejected(service, crawler):
    with pytest.raises(ValueError):
        await service.generate(GenerationRequest(repo_url="https://gitlab.com/octo/app"))

    crawler.crawl.assert_not_awaited()


# =============================================================================
# Concurrency and Output
# =============================================================================


async def test_concurrent_jobs_for_one_repo_are_serialized(service, scripted_llm):
    outcomes = await asyncio.gather(service.generate(request()), service.generate(request()))

    assert sorted(o.plan.mode.value for o in outcomes) == sorted(
        [RegenerationMode.FULL.value, RegenerationMode.SKIP.value]
    )
    assert scripted_llm.generate.await_count == 6


async def test_output_written_when_directory_configured(
    settings, storage, crawler, scripted_llm, tmp_path
):
    service = DocumentationService(
        settings,
        storage=storage,
        crawler=crawler,
        llm_client_factory=lambda llm: scripted_llm,
        output_dir=tmp_path / "docs",
    )

    outcome = await service.generate(request())

    assert outcome.output_path == tmp_path / "docs" / "octo-app"
    assert (outcome.output_path / "index.md").exists()
    assert (outcome.output_path / "02_storage_layer.md").exists()
    assert outcome.to_dict()["output_path"] == str(outcome.output_path)


async def test_no_output_directory_writes_nothing(service):
    outcome = await service.generate(request())

    assert outcome.output_path is None
