"""Storage adapters for the generation cache.

Every adapter stores JSON-serializable values under string keys and
exposes the same async contract, so the cache manager never knows which
medium it is talking to.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote

import httpx

from repodoc.cache.models import CacheIndex
from repodoc.config import Config, ConfigError
from repodoc.errors import CacheError


class StorageAdapter(ABC):
    """Abstract key-value store for cache documents."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if it existed."""
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """All keys starting with prefix, sorted."""
        pass

    async def clear(self, prefix: str = "") -> None:
        """Delete every key starting with prefix."""
        for key in await self.keys(prefix):
            await self.delete(key)

    async def load(self, key: str) -> Optional[CacheIndex]:
        """Load a CacheIndex, or None if absent."""
        data = await self.get(key)
        if data is None:
            return None
        try:
            return CacheIndex.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Cache entry {key} is malformed: {e}", key=key) from e

    async def save(self, key: str, index: CacheIndex) -> None:
        """Persist a CacheIndex under key."""
        await self.set(key, index.to_dict())


# =============================================================================
# Filesystem
# =============================================================================


class FilesystemStorage(StorageAdapter):
    """One JSON file per key inside a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    async def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CacheError(f"Cache file {path} is not valid JSON: {e}", key=key) from e
        except OSError as e:
            raise CacheError(f"Could not read cache file {path}: {e}", key=key) from e

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value), encoding="utf-8")
            # Readers never observe a half-written file
            os.replace(tmp_path, path)
        except OSError as e:
            raise CacheError(f"Could not write cache file {path}: {e}", key=key) from e

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Could not delete cache file {path}: {e}", key=key) from e
        return True

    async def keys(self, prefix: str = "") -> list[str]:
        if not self.directory.exists():
            return []
        names = (unquote(p.name[: -len(".json")]) for p in self.directory.glob("*.json"))
        return sorted(name for name in names if name.startswith(prefix))


# =============================================================================
# Memory
# =============================================================================


class MemoryStorage(StorageAdapter):
    """In-process store for tests and single-process deployments.

    Values are kept serialized so callers never share mutable state with
    the store.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._store.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._store[key] = json.dumps(value)

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self._store if key.startswith(prefix))

    def __len__(self) -> int:
        return len(self._store)


# =============================================================================
# Remote Object Storage
# =============================================================================


class RemoteObjectStorage(StorageAdapter):
    """Objects in a bucket behind an HTTP object-storage API.

    Endpoints (relative to base_url):
    - GET    /object/{bucket}/{key}.json   read (404 means absent)
    - POST   /object/{bucket}/{key}.json   upsert (x-upsert: true)
    - DELETE /object/{bucket}/{key}.json   delete (404 means absent)
    - POST   /object/list/{bucket}         list, body {"prefix": ...}
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.api_key = api_key
        self._client = client
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def _object_url(self, key: str) -> str:
        return f"{self.base_url}/object/{self.bucket}/{quote(key, safe='')}.json"

    async def _request(
        self, method: str, url: str, headers: Optional[dict[str, str]] = None, **kwargs: Any
    ) -> httpx.Response:
        headers = {**self._headers(), **(headers or {})}
        try:
            if self._client is not None:
                return await self._client.request(
                    method, url, headers=headers, timeout=self.timeout, **kwargs
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise CacheError(f"Object storage request failed: {method} {url}: {e}") from e

    def _check(self, response: httpx.Response, action: str, key: str) -> None:
        if response.status_code >= 400:
            raise CacheError(
                f"Object storage {action} failed for {key}: "
                f"{response.status_code} {response.text[:200]}",
                key=key,
            )

    async def get(self, key: str) -> Optional[Any]:
        response = await self._request("GET", self._object_url(key))
        if response.status_code == 404:
            return None
        self._check(response, "read", key)
        try:
            return response.json()
        except ValueError as e:
            raise CacheError(f"Object {key} is not valid JSON: {e}", key=key) from e

    async def set(self, key: str, value: Any) -> None:
        response = await self._request(
            "POST",
            self._object_url(key),
            headers={"x-upsert": "true"},
            content=json.dumps(value),
        )
        self._check(response, "write", key)

    async def delete(self, key: str) -> bool:
        response = await self._request("DELETE", self._object_url(key))
        if response.status_code == 404:
            return False
        self._check(response, "delete", key)
        return True

    async def keys(self, prefix: str = "") -> list[str]:
        response = await self._request(
            "POST", f"{self.base_url}/object/list/{self.bucket}", json={"prefix": prefix}
        )
        self._check(response, "list", prefix or "*")
        names = []
        for item in response.json():
            name = unquote(item.get("name", ""))
            if name.endswith(".json"):
                name = name[: -len(".json")]
            if name and name.startswith(prefix):
                names.append(name)
        return sorted(names)


def create_storage_adapter(settings: Config) -> StorageAdapter:
    """Build the adapter selected by settings.cache.backend.

    Raises:
        ConfigError: For an unknown backend or a remote backend without a URL.
    """
    backend = settings.cache.backend
    if backend == "filesystem":
        return FilesystemStorage(settings.cache_path)
    if backend == "memory":
        return MemoryStorage()
    if backend == "remote":
        if not settings.storage_url:
            raise ConfigError("REPODOC_STORAGE_URL is required for the remote cache backend")
        return RemoteObjectStorage(
            base_url=settings.storage_url,
            bucket=settings.storage_bucket,
            api_key=settings.storage_key,
        )
    raise ConfigError(f"Unknown cache backend: {backend!r}")
