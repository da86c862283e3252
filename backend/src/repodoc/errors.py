"""Error types for crawling, generation and caching.

Every error carries enough information to be rendered as an RFC 7807
problem detail, so the HTTP layer can return it unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

ERROR_TYPE_PREFIX = "urn:repodoc:error:"


class RepoDocError(Exception):
    """Base class for repodoc errors."""

    error_type = "internal"
    title = "Internal Error"
    status = 500

    def __init__(
        self,
        detail: str,
        *,
        status: Optional[int] = None,
        instance: Optional[str] = None,
        **extensions: Any,
    ):
        super().__init__(detail)
        self.detail = detail
        if status is not None:
            self.status = status
        self.instance = instance
        self.extensions = {k: v for k, v in extensions.items() if v is not None}

    def to_problem_detail(self) -> dict[str, Any]:
        """Render this error as an RFC 7807 problem detail body."""
        problem: dict[str, Any] = {
            "type": f"{ERROR_TYPE_PREFIX}{self.error_type}",
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        problem.update(self.extensions)
        return problem


# =============================================================================
# Transport Errors
# =============================================================================


class GitHubAuthError(RepoDocError):
    """GitHub rejected the credentials, or the repository is private."""

    error_type = "github-auth"
    title = "GitHub Authentication Failed"
    status = 401


class GitHubRateLimitError(RepoDocError):
    """GitHub API rate limit exhausted."""

    error_type = "github-rate-limit"
    title = "GitHub Rate Limit Exceeded"
    status = 429

    def __init__(
        self,
        detail: str,
        *,
        remaining: Optional[int] = None,
        reset_at: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(detail, remaining=remaining, reset_at=reset_at, **kwargs)
        self.remaining = remaining
        self.reset_at = reset_at


class GitHubNotFoundError(RepoDocError):
    """Repository, branch or blob does not exist (or is hidden)."""

    error_type = "github-not-found"
    title = "Repository Not Found"
    status = 404


class GitHubAPIError(RepoDocError):
    """Any other non-success GitHub API response."""

    error_type = "github-api"
    title = "GitHub API Error"
    status = 502


class NetworkError(RepoDocError):
    """The remote service could not be reached."""

    error_type = "network"
    title = "Network Error"
    status = 503


class RequestTimeoutError(RepoDocError):
    """A remote request did not complete in time."""

    error_type = "timeout"
    title = "Request Timed Out"
    status = 504


# =============================================================================
# Pipeline Errors
# =============================================================================


class OutputValidationError(RepoDocError):
    """Structured LLM output is missing, malformed or semantically invalid."""

    error_type = "validation"
    title = "Invalid LLM Output"
    status = 422

    def __init__(self, detail: str, *, field: Optional[str] = None, **kwargs: Any):
        super().__init__(detail, field=field, **kwargs)
        self.field = field


class GenerationError(RepoDocError):
    """A pipeline stage failed and the job was aborted."""

    error_type = "generation"
    title = "Documentation Generation Failed"
    status = 500

    def __init__(
        self,
        detail: str,
        *,
        stage: str,
        chapter: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(detail, stage=stage, chapter=chapter, **kwargs)
        self.stage = stage
        self.chapter = chapter


class CrawlerError(RepoDocError):
    """The crawl produced no usable result."""

    error_type = "crawler"
    title = "Repository Crawl Failed"
    status = 500


class CacheError(RepoDocError):
    """Cache storage could not be read or written."""

    error_type = "cache"
    title = "Cache Error"
    status = 500


def _header_int(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_github_error(
    status: int,
    body: str,
    headers: Optional[Mapping[str, str]] = None,
    repo: Optional[str] = None,
    branch: Optional[str] = None,
) -> RepoDocError:
    """Map a failed GitHub API response to a typed error.

    Args:
        status: HTTP status code.
        body: Response body text.
        headers: Response headers (used for rate-limit details).
        repo: "owner/repo" for context in the message.
        branch: Branch being crawled, if known.

    Returns:
        The error to raise. It is returned rather than raised so callers
        can add context before raising.
    """
    headers = headers or {}
    target = repo or "repository"
    if branch:
        target = f"{target}@{branch}"
    lowered = body.lower()

    if status == 401 or "bad credentials" in lowered:
        return GitHubAuthError(
            f"GitHub rejected the credentials while accessing {target}. "
            "Check GITHUB_TOKEN or pass a valid token.",
            repo=repo,
            branch=branch,
        )
    if status in (403, 429) and "rate limit" in lowered:
        remaining = _header_int(headers, "x-ratelimit-remaining")
        reset_at = _header_int(headers, "x-ratelimit-reset")
        return GitHubRateLimitError(
            f"GitHub API rate limit exceeded while accessing {target}.",
            remaining=remaining,
            reset_at=reset_at,
            repo=repo,
            branch=branch,
        )
    if status == 404:
        return GitHubNotFoundError(
            f"{target} was not found. It may be private, renamed or deleted.",
            repo=repo,
            branch=branch,
        )
    return GitHubAPIError(
        f"GitHub API returned {status} for {target}: {body[:200]}",
        repo=repo,
        branch=branch,
        upstream_status=status,
    )


def is_retryable_error(error: BaseException) -> bool:
    """Whether retrying the same request later could succeed."""
    if isinstance(error, (GitHubRateLimitError, NetworkError, RequestTimeoutError)):
        return True
    if isinstance(error, GitHubAPIError):
        upstream = error.extensions.get("upstream_status")
        return isinstance(upstream, int) and upstream >= 500
    return False
