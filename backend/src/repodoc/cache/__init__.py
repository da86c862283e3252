"""Incremental regeneration cache."""

from repodoc.cache.adapters import (
    FilesystemStorage,
    MemoryStorage,
    RemoteObjectStorage,
    StorageAdapter,
    create_storage_adapter,
)
from repodoc.cache.locks import SingleFlight
from repodoc.cache.manager import CacheManager, cache_key, compute_content_hash, hash_files
from repodoc.cache.models import CachedAbstraction, CachedChapter, CacheIndex
from repodoc.cache.planner import (
    FileChangeAnalysis,
    RegenerationMode,
    RegenerationPlan,
    analyze_file_changes,
    determine_regeneration_plan,
    find_affected_chapters,
)

__all__ = [
    "CacheIndex",
    "CacheManager",
    "CachedAbstraction",
    "CachedChapter",
    "FileChangeAnalysis",
    "FilesystemStorage",
    "MemoryStorage",
    "RegenerationMode",
    "RegenerationPlan",
    "RemoteObjectStorage",
    "SingleFlight",
    "StorageAdapter",
    "analyze_file_changes",
    "cache_key",
    "compute_content_hash",
    "create_storage_adapter",
    "determine_regeneration_plan",
    "find_affected_chapters",
    "hash_files",
]
