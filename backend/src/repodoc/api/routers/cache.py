"""Cache inspection endpoints."""

from datetime import timedelta

from fastapi import APIRouter, Depends

from repodoc.api.deps import get_cache_manager, get_settings
from repodoc.api.schemas import (
    CacheDeleteResponse,
    CachedRepo,
    CacheStatsResponse,
    CacheStatusResponse,
)
from repodoc.cache.manager import CacheManager
from repodoc.config import Config

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("", response_model=CacheStatsResponse)
async def cache_stats(
    cache: CacheManager = Depends(get_cache_manager),
) -> CacheStatsResponse:
    """List every cached repository."""
    stats = await cache.stats()
    return CacheStatsResponse(
        total_repos=stats["total_repos"],
        repos=[CachedRepo(**repo) for repo in stats["repos"]],
    )


@router.get("/{owner}/{repo}", response_model=CacheStatusResponse)
async def cache_status(
    owner: str,
    repo: str,
    cache: CacheManager = Depends(get_cache_manager),
    settings: Config = Depends(get_settings),
) -> CacheStatusResponse:
    """Report whether a repository is cached, and how old the cache is."""
    repo_id = f"{owner}/{repo}".lower()
    index = await cache.peek(repo_id)
    if index is None:
        return CacheStatusResponse(repo_id=repo_id, cached=False, stale=True)

    age = await cache.cache_age(repo_id)
    max_age = timedelta(hours=settings.cache.stale_after_hours)
    return CacheStatusResponse(
        repo_id=repo_id,
        cached=True,
        age_seconds=age.total_seconds() if age is not None else None,
        stale=age is None or age > max_age,
        chapters_count=len(index.chapters),
        files_count=len(index.files),
        last_crawl_time=index.last_crawl_time,
    )


@router.delete("/{owner}/{repo}", response_model=CacheDeleteResponse)
async def clear_cache(
    owner: str,
    repo: str,
    cache: CacheManager = Depends(get_cache_manager),
) -> CacheDeleteResponse:
    """Delete one repository's cache."""
    repo_id = f"{owner}/{repo}".lower()
    deleted = await cache.clear(repo_id)
    return CacheDeleteResponse(repo_id=repo_id, deleted=deleted)
