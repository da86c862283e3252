"""Parse GitHub repository URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass
class ParsedRepoUrl:
    """Result of parsing a repository URL."""

    owner: str
    repo: str
    branch: Optional[str] = None  # None means "use the default branch"
    path: Optional[str] = None  # Subdirectory from /tree/<branch>/<path> URLs
    original_url: str = ""

    @property
    def full_name(self) -> str:
        """"owner/repo" as GitHub writes it."""
        return f"{self.owner}/{self.repo}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"


_NAME = r"[A-Za-z0-9_.-]+"

# owner/repo, optionally followed by #branch or @branch
SHORTHAND_PATTERN = re.compile(rf"^({_NAME})/({_NAME}?)(?:[#@](\S+))?$")

# git@github.com:owner/repo.git
SSH_PATTERN = re.compile(rf"^git@github\.com:({_NAME})/({_NAME}?)(?:\.git)?/?$")

# https://api.github.com/repos/owner/repo
API_PATTERN = re.compile(rf"^https?://api\.github\.com/repos/({_NAME})/({_NAME}?)(?:/.*)?$")

# https://raw.githubusercontent.com/owner/repo/branch/path
RAW_PATTERN = re.compile(
    rf"^https?://raw\.githubusercontent\.com/({_NAME})/({_NAME})/([^/]+)(?:/(.*))?$"
)

# https://github.com/owner/repo[.git][/<kind>/<ref>[/<path>]], also git://
WEB_PATTERN = re.compile(
    rf"^(?:https?|git)://(?:www\.)?github\.com/({_NAME})/({_NAME}?)(?:\.git)?"
    r"(?:/(tree|blob|commit|releases/tag|archive)/([^/?#]+)(?:/([^?#]*))?)?/?(?:[?#].*)?$"
)


def _strip_git_suffix(repo: str) -> str:
    return repo[:-4] if repo.endswith(".git") else repo


def parse_github_url(url: str) -> ParsedRepoUrl:
    """
    Parse a GitHub repository reference.

    Supports:
    - Shorthand: owner/repo, owner/repo#branch, owner/repo@branch
    - Web URLs: https://github.com/owner/repo with optional .git suffix,
      /tree/<branch>[/path], /blob/<branch>/<file>, /commit/<sha>,
      /releases/tag/<tag> and /archive/<ref>
    - git:// and SSH (git@github.com:owner/repo.git) URLs
    - API URLs: https://api.github.com/repos/owner/repo
    - Raw URLs: https://raw.githubusercontent.com/owner/repo/branch/path

    Raises ValueError for anything else.
    """
    url = url.strip()
    if not url:
        raise ValueError("Repository URL is empty")
    if url.startswith(("github.com/", "www.github.com/")):
        url = f"https://{url}"

    match = SSH_PATTERN.match(url)
    if match:
        owner, repo = match.groups()
        return ParsedRepoUrl(owner, _strip_git_suffix(repo), original_url=url)

    match = API_PATTERN.match(url)
    if match:
        owner, repo = match.groups()
        return ParsedRepoUrl(owner, _strip_git_suffix(repo), original_url=url)

    match = RAW_PATTERN.match(url)
    if match:
        owner, repo, branch, path = match.groups()
        return ParsedRepoUrl(owner, repo, branch=branch, path=path or None, original_url=url)

    match = WEB_PATTERN.match(url)
    if match:
        owner, repo, kind, ref, path = match.groups()
        repo = _strip_git_suffix(repo)
        if not repo:
            raise ValueError(f"Invalid GitHub repository URL: {url}")
        if kind == "archive" and ref:
            ref = re.sub(r"\.(zip|tar\.gz)$", "", ref)
        if kind == "blob" and path:
            # A blob URL points at a file; keep its directory as the path
            path = path.rsplit("/", 1)[0] if "/" in path else None
        return ParsedRepoUrl(
            owner,
            repo,
            branch=ref,
            path=path.strip("/") or None if path else None,
            original_url=url,
        )

    if "://" not in url and not url.startswith("git@"):
        match = SHORTHAND_PATTERN.match(url)
        if match:
            owner, repo, branch = match.groups()
            repo = _strip_git_suffix(repo)
            if repo:
                return ParsedRepoUrl(owner, repo, branch=branch, original_url=url)

    raise ValueError(f"Invalid GitHub repository URL: {url}")


def is_valid_github_url(url: str) -> bool:
    """Whether `url` is a GitHub repository reference parse_github_url accepts."""
    try:
        parse_github_url(url)
    except ValueError:
        return False
    return True


def normalize_repo_url(url: str) -> str:
    """Normalize any accepted repository reference to lowercase "owner/repo".

    Different spellings of the same repository (scheme, .git suffix, trailing
    slash, case, branch fragments) normalize to the same key.
    """
    parsed = parse_github_url(url)
    return parsed.full_name.lower()


def project_name_from_url(url: str) -> str:
    """Human-facing project name: the repository name without .git."""
    return parse_github_url(url).repo
