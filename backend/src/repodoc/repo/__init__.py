"""Repository access: URL parsing, file filtering and crawling."""

from repodoc.repo.crawler import CrawlResult, CrawlStats, GitHubCrawler
from repodoc.repo.file_filter import FileFilter, FilterDecision
from repodoc.repo.url_parser import (
    ParsedRepoUrl,
    is_valid_github_url,
    normalize_repo_url,
    parse_github_url,
    project_name_from_url,
)

__all__ = [
    "CrawlResult",
    "CrawlStats",
    "FileFilter",
    "FilterDecision",
    "GitHubCrawler",
    "ParsedRepoUrl",
    "is_valid_github_url",
    "normalize_repo_url",
    "parse_github_url",
    "project_name_from_url",
]
