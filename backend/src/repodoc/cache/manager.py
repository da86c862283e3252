"""Repository-level cache operations on top of a storage adapter."""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from repodoc.cache.adapters import StorageAdapter
from repodoc.cache.models import CacheIndex
from repodoc.constants.cache import (
    CACHE_PREFIX,
    CACHE_VERSION,
    KEY_DIGEST_LENGTH,
    REPO_INDEX_KEY,
)
from repodoc.generation.models import FileEntry
from repodoc.repo.url_parser import normalize_repo_url

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_-]")


def compute_content_hash(content: str) -> str:
    """Compute SHA-256 hash of file content.

    Args:
        content: File content to hash.

    Returns:
        Hex digest of SHA-256 hash.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def hash_files(files: Iterable[FileEntry]) -> dict[str, str]:
    """Content hash per file path."""
    return {entry.path: compute_content_hash(entry.content) for entry in files}


def cache_key(repo_url: str) -> str:
    """Storage key for a repository, e.g. "repo_cache_owner_repo_1a2b3c4d5e6f".

    The readable slug is lossy, so a digest of the normalized "owner/repo"
    keeps distinct repositories on distinct keys.
    """
    normalized = normalize_repo_url(repo_url)
    safe = _UNSAFE_KEY_CHARS.sub("-", normalized.replace("/", "_"))
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:KEY_DIGEST_LENGTH]
    return f"{CACHE_PREFIX}{safe}_{digest}"


def _repo_id_of(index: CacheIndex) -> Optional[str]:
    try:
        return normalize_repo_url(index.repo_url)
    except ValueError:
        return None


class CacheManager:
    """Load, save and inspect cached generation graphs.

    Alongside the per-repository entries, a repository index (key
    "repo_index") records each cached repository's key, URL and last access
    time so caches can be listed without scanning storage.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    async def _load_repo_index(self) -> dict[str, Any]:
        index = await self.storage.get(REPO_INDEX_KEY)
        if not isinstance(index, dict) or "repos" not in index:
            return {"repos": {}, "version": CACHE_VERSION}
        return index

    async def _touch(self, repo_id: str, key: str, repo_url: str) -> None:
        index = await self._load_repo_index()
        index["repos"][repo_id] = {
            "cache_key": key,
            "repo_url": repo_url,
            "last_accessed": datetime.now(timezone.utc).isoformat(),
        }
        await self.storage.set(REPO_INDEX_KEY, index)

    async def load(self, repo_url: str) -> Optional[CacheIndex]:
        """Load the cache for a repository.

        Entries written by another cache format version are ignored.

        Returns:
            The cached index, or None if there is none.

        Raises:
            CacheError: If storage fails or the entry is malformed.
        """
        repo_id = normalize_repo_url(repo_url)
        key = cache_key(repo_url)
        index = await self.storage.load(key)
        if index is None:
            logger.info(f"No cache found for {repo_id}")
            return None
        if index.version != CACHE_VERSION:
            logger.warning(
                f"Ignoring cache for {repo_id}: version {index.version}, expected {CACHE_VERSION}"
            )
            return None
        if _repo_id_of(index) != repo_id:
            logger.warning(
                f"Ignoring cache under {key}: it belongs to {index.repo_url}, not {repo_id}"
            )
            return None

        await self._touch(repo_id, key, index.repo_url)
        logger.info(
            f"Loaded cache for {repo_id}: {len(index.files)} files, {len(index.chapters)} chapters"
        )
        return index

    async def save(self, index: CacheIndex) -> None:
        """Save a repository cache and record it in the repository index."""
        repo_id = normalize_repo_url(index.repo_url)
        key = cache_key(index.repo_url)
        index.updated_at = datetime.now(timezone.utc)
        await self.storage.save(key, index)
        await self._touch(repo_id, key, index.repo_url)
        logger.info(
            f"Saved cache for {repo_id}: {len(index.files)} files, {len(index.chapters)} chapters"
        )

    async def clear(self, repo_url: str) -> bool:
        """Delete one repository's cache. Returns False if nothing was cached."""
        repo_id = normalize_repo_url(repo_url)
        deleted = await self.storage.delete(cache_key(repo_url))

        index = await self._load_repo_index()
        if index["repos"].pop(repo_id, None) is not None:
            await self.storage.set(REPO_INDEX_KEY, index)
            deleted = True
        if deleted:
            logger.info(f"Cleared cache for {repo_id}")
        return deleted

    async def clear_all(self) -> None:
        """Delete every repository cache and the repository index."""
        await self.storage.clear(CACHE_PREFIX)
        await self.storage.delete(REPO_INDEX_KEY)
        logger.info("Cleared all caches")

    async def peek(self, repo_url: str) -> Optional[CacheIndex]:
        """Read a cache entry without recording an access."""
        return await self.storage.load(cache_key(repo_url))

    async def has_cache(self, repo_url: str) -> bool:
        return await self.storage.get(cache_key(repo_url)) is not None

    async def stats(self) -> dict[str, Any]:
        """Summary of every cached repository."""
        index = await self._load_repo_index()
        repos = []
        for repo_id, entry in sorted(index["repos"].items()):
            cached = await self.storage.load(entry["cache_key"])
            repos.append(
                {
                    "repo_id": repo_id,
                    "repo_url": entry.get("repo_url", ""),
                    "last_accessed": entry.get("last_accessed"),
                    "chapters_count": len(cached.chapters) if cached else 0,
                    "files_count": len(cached.files) if cached else 0,
                }
            )
        return {"total_repos": len(repos), "repos": repos}

    async def cache_age(
        self, repo_url: str, now: Optional[datetime] = None
    ) -> Optional[timedelta]:
        """Time since the cached crawl, or None without a cache."""
        index = await self.peek(repo_url)
        if index is None:
            return None
        return (now or datetime.now(timezone.utc)) - index.last_crawl_time

    async def is_stale(
        self, repo_url: str, max_age: timedelta, now: Optional[datetime] = None
    ) -> bool:
        """Whether the cache is missing or older than max_age."""
        age = await self.cache_age(repo_url, now)
        return age is None or age > max_age
