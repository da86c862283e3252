"""GitHub repository crawler.

Fetches a repository's file tree with one recursive git-tree request, filters
it with include/exclude globs and a size ceiling, then downloads the matching
blobs in fixed-size concurrent batches.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from repodoc.constants.files import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_MAX_FILE_SIZE,
)
from repodoc.constants.github import (
    BLOB_BATCH_SIZE,
    FALLBACK_BRANCH,
    GITHUB_ACCEPT_HEADER,
    GITHUB_API_BASE,
    GITHUB_USER_AGENT,
    RATE_LIMIT_WARNING_THRESHOLD,
    REQUEST_TIMEOUT_SECONDS,
)
from repodoc.errors import (
    NetworkError,
    RepoDocError,
    RequestTimeoutError,
    classify_github_error,
)
from repodoc.repo.file_filter import FileFilter, FilterDecision
from repodoc.repo.url_parser import ParsedRepoUrl, parse_github_url

logger = logging.getLogger(__name__)


@dataclass
class CrawlStats:
    """Aggregate statistics for one crawl."""

    base_path: str
    branch: str
    include_patterns: list[str]
    exclude_patterns: list[str]
    downloaded_count: int = 0
    skipped_count: int = 0
    skipped_files: list[dict[str, Any]] = field(default_factory=list)
    excluded_count: int = 0
    excluded_files: list[str] = field(default_factory=list)
    api_requests: int = 0
    truncated: bool = False
    method: str = "git-tree"

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_path": self.base_path,
            "branch": self.branch,
            "include_patterns": list(self.include_patterns),
            "exclude_patterns": list(self.exclude_patterns),
            "downloaded_count": self.downloaded_count,
            "skipped_count": self.skipped_count,
            "skipped_files": list(self.skipped_files),
            "excluded_count": self.excluded_count,
            "excluded_files": list(self.excluded_files),
            "api_requests": self.api_requests,
            "truncated": self.truncated,
            "method": self.method,
        }


@dataclass
class CrawlResult:
    """Files downloaded by a crawl, keyed by path, plus statistics."""

    files: dict[str, str]
    stats: CrawlStats

    @property
    def total_chars(self) -> int:
        return sum(len(content) for content in self.files.values())


def format_file_size(size: int) -> str:
    """Format a byte count for humans (e.g. "1.5 KB")."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def crawl_summary(result: CrawlResult) -> str:
    """One-line description of a crawl for logs and progress messages."""
    stats = result.stats
    return (
        f"{stats.base_path}@{stats.branch}: {stats.downloaded_count} files "
        f"({format_file_size(result.total_chars)}), {stats.excluded_count} excluded, "
        f"{stats.skipped_count} skipped, {stats.api_requests} API requests"
    )


def _decode_blob(payload: dict[str, Any]) -> str:
    """Decode a git blob API payload to text."""
    content = payload.get("content") or ""
    if payload.get("encoding", "base64") != "base64":
        return content
    raw = base64.b64decode(content.replace("\n", ""))
    return raw.decode("utf-8", errors="replace")


class GitHubCrawler:
    """Crawl GitHub repositories through the REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        batch_size: int = BLOB_BATCH_SIZE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        rate_limit_warning_threshold: int = RATE_LIMIT_WARNING_THRESHOLD,
        api_base: str = GITHUB_API_BASE,
    ):
        """Initialize the crawler.

        Args:
            token: GitHub token. Falls back to the GITHUB_TOKEN environment variable.
            client: Optional preconfigured httpx client (tests inject a mock transport).
            batch_size: Number of blobs downloaded concurrently.
            timeout: Per-request timeout in seconds.
            rate_limit_warning_threshold: Warn when fewer requests remain.
            api_base: GitHub API root URL.
        """
        self.token = token
        self._client = client
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.rate_limit_warning_threshold = rate_limit_warning_threshold
        self.api_base = api_base.rstrip("/")

    def _headers(self, token: Optional[str]) -> dict[str, str]:
        headers = {
            "Accept": GITHUB_ACCEPT_HEADER,
            "User-Agent": GITHUB_USER_AGENT,
        }
        token = token or self.token or os.getenv("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def crawl(
        self,
        repo_url: str,
        token: Optional[str] = None,
        include_patterns: Optional[list[str]] = None,
        exclude_patterns: Optional[list[str]] = None,
        max_file_size: Optional[int] = None,
    ) -> CrawlResult:
        """Crawl a repository and download matching files.

        Args:
            repo_url: Any repository reference parse_github_url accepts.
            token: Optional token overriding the crawler's token.
            include_patterns: Globs a file must match (defaults apply if None).
            exclude_patterns: Globs that reject a file (defaults apply if None).
            max_file_size: Size ceiling in bytes.

        Returns:
            CrawlResult with file contents keyed by path.

        Raises:
            ValueError: If the URL is not a GitHub repository reference.
            GitHubAuthError, GitHubNotFoundError, GitHubRateLimitError,
            GitHubAPIError: If the repository or tree cannot be fetched.
            NetworkError, RequestTimeoutError: On transport failures.
        """
        parsed = parse_github_url(repo_url)
        include = list(DEFAULT_INCLUDE_PATTERNS if include_patterns is None else include_patterns)
        exclude = list(DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns)
        file_filter = FileFilter(
            include_patterns=include,
            exclude_patterns=exclude,
            max_file_size=max_file_size if max_file_size is not None else DEFAULT_MAX_FILE_SIZE,
        )
        headers = self._headers(token)

        if self._client is not None:
            return await self._crawl_with_client(self._client, parsed, file_filter, headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._crawl_with_client(client, parsed, file_filter, headers)

    async def _crawl_with_client(
        self,
        client: httpx.AsyncClient,
        parsed: ParsedRepoUrl,
        file_filter: FileFilter,
        headers: dict[str, str],
    ) -> CrawlResult:
        full_name = parsed.full_name
        repo_base = f"{self.api_base}/repos/{full_name}"
        stats = CrawlStats(
            base_path=full_name,
            branch=parsed.branch or "",
            include_patterns=file_filter.include_patterns,
            exclude_patterns=file_filter.exclude_patterns,
        )

        branch = parsed.branch
        if not branch:
            response = await self._get(client, repo_base, headers, full_name)
            stats.api_requests += 1
            branch = response.json().get("default_branch") or FALLBACK_BRANCH
        stats.branch = branch

        logger.info(f"Fetching file tree for {full_name}@{branch}")
        tree_response = await self._get(
            client,
            f"{repo_base}/git/trees/{branch}",
            headers,
            full_name,
            branch,
            params={"recursive": "1"},
        )
        stats.api_requests += 1
        self._log_rate_limit(tree_response.headers)

        tree = tree_response.json()
        if tree.get("truncated"):
            stats.truncated = True
            logger.warning(
                f"Tree for {full_name}@{branch} was truncated by GitHub; some files are missing"
            )

        to_download: list[dict[str, Any]] = []
        for entry in tree.get("tree", []):
            if entry.get("type") != "blob":
                continue
            path = entry["path"]
            if parsed.path and not path.startswith(parsed.path.rstrip("/") + "/"):
                continue
            decision = file_filter.check(path, entry.get("size"))
            if decision is FilterDecision.EXCLUDED:
                stats.excluded_count += 1
                stats.excluded_files.append(path)
            elif decision is FilterDecision.TOO_LARGE:
                stats.skipped_count += 1
                stats.skipped_files.append(
                    {"path": path, "size": entry.get("size"), "reason": "too_large"}
                )
            else:
                to_download.append(entry)

        logger.info(
            f"{len(to_download)} files match filters in {full_name} "
            f"({stats.excluded_count} excluded, {stats.skipped_count} too large)"
        )

        files: dict[str, str] = {}
        for start in range(0, len(to_download), self.batch_size):
            batch = to_download[start : start + self.batch_size]
            results = await asyncio.gather(
                *(
                    self._download_blob(client, repo_base, full_name, entry, headers)
                    for entry in batch
                )
            )
            stats.api_requests += len(batch)
            for entry, (content, error) in zip(batch, results):
                if content is None:
                    stats.skipped_count += 1
                    stats.skipped_files.append(
                        {"path": entry["path"], "size": entry.get("size"), "reason": error}
                    )
                    continue
                files[entry["path"]] = content
                stats.downloaded_count += 1

        result = CrawlResult(files=files, stats=stats)
        logger.info(f"Crawl complete: {crawl_summary(result)}")
        return result

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        repo: str,
        branch: Optional[str] = None,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """GET a GitHub API URL, mapping failures to typed errors."""
        try:
            response = await client.get(url, headers=headers, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Request to GitHub timed out for {repo}", repo=repo, branch=branch
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"Could not reach GitHub for {repo}: {e}", repo=repo, branch=branch
            ) from e

        if response.status_code >= 400:
            raise classify_github_error(
                response.status_code, response.text, response.headers, repo=repo, branch=branch
            )
        return response

    async def _download_blob(
        self,
        client: httpx.AsyncClient,
        repo_base: str,
        repo: str,
        entry: dict[str, Any],
        headers: dict[str, str],
    ) -> tuple[Optional[str], Optional[str]]:
        """Download one blob. Failures are returned, not raised.

        Returns:
            (content, None) on success, (None, reason) on failure.
        """
        path = entry["path"]
        try:
            response = await self._get(
                client, f"{repo_base}/git/blobs/{entry['sha']}", headers, repo
            )
            return _decode_blob(response.json()), None
        except RepoDocError as e:
            logger.warning(f"Skipping {path}: {e.detail}")
            return None, e.title
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Skipping {path}: could not decode blob ({e})")
            return None, "decode_error"

    def _log_rate_limit(self, headers: httpx.Headers) -> None:
        remaining = headers.get("x-ratelimit-remaining")
        limit = headers.get("x-ratelimit-limit")
        reset = headers.get("x-ratelimit-reset")
        if remaining is None:
            return
        logger.info(f"GitHub rate limit: {remaining}/{limit} remaining (resets at {reset})")
        try:
            if int(remaining) < self.rate_limit_warning_threshold:
                logger.warning(f"GitHub rate limit nearly exhausted: {remaining} requests left")
        except ValueError:
            pass
