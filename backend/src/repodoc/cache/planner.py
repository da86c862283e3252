"""Decide how much of a previous run can be reused.

The planner diffs current file hashes against the cached ones and picks a
regeneration mode:

- SKIP: nothing changed, the cached document is returned as is
- PARTIAL: few files changed, only chapters touching them (and chapters
  depending on those) are rewritten
- PARTIAL_REIDENTIFY: many files changed, the analysis stages rerun and
  chapters whose abstraction is unchanged are reused
- FULL: no usable cache, or most files changed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

import networkx as nx

from repodoc.cache.models import CacheIndex
from repodoc.constants.cache import PARTIAL_THRESHOLD_PERCENT, REIDENTIFY_THRESHOLD_PERCENT

logger = logging.getLogger(__name__)


class RegenerationMode(Enum):
    SKIP = "skip"
    PARTIAL = "partial"
    PARTIAL_REIDENTIFY = "partial_reidentify"
    FULL = "full"


@dataclass
class FileChangeAnalysis:
    """Differences between cached and current file hashes."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    change_percentage: float = 0.0
    total_files: int = 0

    @property
    def changed_files(self) -> list[str]:
        return self.added + self.modified + self.removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "modified": list(self.modified),
            "unchanged_count": len(self.unchanged),
            "change_percentage": round(self.change_percentage, 1),
            "total_files": self.total_files,
        }


@dataclass
class RegenerationPlan:
    """Outcome of planning: what to rerun and what to reuse."""

    mode: RegenerationMode
    reason: str
    chapters_to_regenerate: list[str] = field(default_factory=list)  # filenames
    rerun_identification: bool = False
    estimated_savings: int = 0  # percent
    changes: Optional[FileChangeAnalysis] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "reason": self.reason,
            "chapters_to_regenerate": list(self.chapters_to_regenerate),
            "rerun_identification": self.rerun_identification,
            "estimated_savings": self.estimated_savings,
            "changes": self.changes.to_dict() if self.changes else None,
        }


def analyze_file_changes(
    cached_hashes: Mapping[str, str],
    current_hashes: Mapping[str, str],
) -> FileChangeAnalysis:
    """Compare two path -> hash maps.

    The change percentage is (added + removed + modified) over the current
    file count, so it can exceed 100 when many files were removed.
    """
    analysis = FileChangeAnalysis(total_files=len(current_hashes))
    for path, digest in sorted(current_hashes.items()):
        cached = cached_hashes.get(path)
        if cached is None:
            analysis.added.append(path)
        elif cached != digest:
            analysis.modified.append(path)
        else:
            analysis.unchanged.append(path)
    analysis.removed = sorted(path for path in cached_hashes if path not in current_hashes)

    changed = len(analysis.changed_files)
    if analysis.total_files:
        analysis.change_percentage = changed / analysis.total_files * 100
    else:
        analysis.change_percentage = 100.0 if changed else 0.0

    logger.info(
        f"File changes: +{len(analysis.added)} -{len(analysis.removed)} "
        f"~{len(analysis.modified)} ({analysis.change_percentage:.1f}%)"
    )
    return analysis


def chapter_dependency_graph(cache: CacheIndex) -> nx.DiGraph:
    """Chapter filenames, with an edge from each chapter to every chapter it depends on."""
    graph = nx.DiGraph()
    for chapter in cache.chapters:
        graph.add_node(chapter.filename)
    for chapter in cache.chapters:
        for dependency in chapter.dependencies:
            if graph.has_node(dependency):
                graph.add_edge(chapter.filename, dependency)
    return graph


def find_affected_chapters(cache: CacheIndex, changed_files: list[str]) -> list[str]:
    """Chapters touching a changed file, plus every chapter depending on them.

    Returns:
        Filenames in chapter order.
    """
    if not cache.chapters:
        return []

    changed = set(changed_files)
    affected_names = {
        a.name for a in cache.abstractions if any(path in changed for path in a.files)
    }
    directly = {c.filename for c in cache.chapters if c.abstraction_name in affected_names}

    graph = chapter_dependency_graph(cache)
    affected = set(directly)
    for filename in directly:
        # Dependents are the chapters with a path to this one
        affected.update(nx.ancestors(graph, filename))
    return [c.filename for c in cache.chapters if c.filename in affected]


def determine_regeneration_plan(
    cache: Optional[CacheIndex],
    changes: Optional[FileChangeAnalysis],
    partial_threshold: float = PARTIAL_THRESHOLD_PERCENT,
    reidentify_threshold: float = REIDENTIFY_THRESHOLD_PERCENT,
    reidentify_on_drift: bool = True,
) -> RegenerationPlan:
    """Pick a regeneration mode from the cache and the file changes.

    Args:
        cache: Cached index, None if the repository was never generated.
        changes: Result of analyze_file_changes (ignored without a cache).
        partial_threshold: Change percentage below which only affected
            chapters are rewritten.
        reidentify_threshold: Change percentage below which the analysis
            stages rerun and unchanged chapters are reused.
        reidentify_on_drift: If False, the re-identify band is treated as
            partial regeneration.

    Returns:
        The regeneration plan.
    """
    if cache is None or changes is None:
        return RegenerationPlan(
            mode=RegenerationMode.FULL,
            reason="No cached documentation for this repository",
            rerun_identification=True,
        )
    if not cache.chapters or len(cache.chapters) != len(cache.chapter_order):
        return RegenerationPlan(
            mode=RegenerationMode.FULL,
            reason="Cached documentation is incomplete",
            rerun_identification=True,
            changes=changes,
        )

    percent = changes.change_percentage
    all_chapters = [c.filename for c in cache.chapters]

    if not changes.changed_files:
        return RegenerationPlan(
            mode=RegenerationMode.SKIP,
            reason="No file changes detected since last generation",
            estimated_savings=100,
            changes=changes,
        )

    if percent < partial_threshold or (percent < reidentify_threshold and not reidentify_on_drift):
        affected = find_affected_chapters(cache, changes.changed_files)
        return RegenerationPlan(
            mode=RegenerationMode.PARTIAL,
            reason=f"{percent:.1f}% of files changed - regenerating affected chapters only",
            chapters_to_regenerate=affected,
            estimated_savings=round(100 - len(affected) / len(all_chapters) * 100),
            changes=changes,
        )

    if percent < reidentify_threshold:
        return RegenerationPlan(
            mode=RegenerationMode.PARTIAL_REIDENTIFY,
            reason=(
                f"{percent:.1f}% of files changed - re-identifying abstractions and "
                "regenerating affected chapters"
            ),
            rerun_identification=True,
            estimated_savings=30,
            changes=changes,
        )

    return RegenerationPlan(
        mode=RegenerationMode.FULL,
        reason=f"{percent:.1f}% of files changed - full regeneration",
        chapters_to_regenerate=all_chapters,
        rerun_identification=True,
        changes=changes,
    )
