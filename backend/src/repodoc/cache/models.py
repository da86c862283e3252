"""Cached generation graph for one repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from repodoc.constants.cache import CACHE_VERSION
from repodoc.generation.models import (
    Abstraction,
    ChapterContent,
    FileEntry,
    PipelineState,
    RelationshipData,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CachedAbstraction:
    """An abstraction with file paths instead of indices.

    Paths survive renumbering when files are added or removed between runs.
    """

    name: str
    description: str
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "files": list(self.files)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedAbstraction":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            files=list(data.get("files", [])),
        )


@dataclass
class CachedChapter:
    """A written chapter body (without trailer) and the chapters it depends on."""

    filename: str
    title: str
    abstraction_name: str
    body: str
    dependencies: list[str] = field(default_factory=list)  # filenames

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "title": self.title,
            "abstraction_name": self.abstraction_name,
            "body": self.body,
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedChapter":
        return cls(
            filename=data["filename"],
            title=data["title"],
            abstraction_name=data["abstraction_name"],
            body=data["body"],
            dependencies=list(data.get("dependencies", [])),
        )


@dataclass
class CacheIndex:
    """Everything needed to reuse or incrementally refresh a previous run.

    Attributes:
        repo_url: Repository URL as requested.
        project_name: Human-facing project name.
        files: Content hash per file path.
        abstractions: Abstractions in their original index order.
        relationships: Summary plus relationships (indices into abstractions).
        chapter_order: Permutation of abstraction indices.
        chapters: Chapters in chapter order.
    """

    repo_url: str
    project_name: str
    files: dict[str, str] = field(default_factory=dict)
    abstractions: list[CachedAbstraction] = field(default_factory=list)
    relationships: RelationshipData = field(default_factory=lambda: RelationshipData(summary=""))
    chapter_order: list[int] = field(default_factory=list)
    chapters: list[CachedChapter] = field(default_factory=list)
    version: str = CACHE_VERSION
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    last_crawl_time: datetime = field(default_factory=_now)

    @property
    def summary(self) -> str:
        return self.relationships.summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "repo_url": self.repo_url,
            "project_name": self.project_name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "last_crawl_time": self.last_crawl_time.isoformat(),
            "files": dict(self.files),
            "abstractions": [a.to_dict() for a in self.abstractions],
            "relationships": self.relationships.to_dict(),
            "chapter_order": list(self.chapter_order),
            "chapters": [c.to_dict() for c in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheIndex":
        return cls(
            version=data.get("version", CACHE_VERSION),
            repo_url=data["repo_url"],
            project_name=data.get("project_name", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            last_crawl_time=datetime.fromisoformat(data["last_crawl_time"]),
            files=dict(data.get("files", {})),
            abstractions=[CachedAbstraction.from_dict(a) for a in data.get("abstractions", [])],
            relationships=RelationshipData.from_dict(data.get("relationships", {})),
            chapter_order=[int(i) for i in data.get("chapter_order", [])],
            chapters=[CachedChapter.from_dict(c) for c in data.get("chapters", [])],
        )

    @classmethod
    def from_state(
        cls,
        state: PipelineState,
        file_hashes: dict[str, str],
        created_at: Optional[datetime] = None,
    ) -> "CacheIndex":
        """Snapshot a finished pipeline run.

        A chapter depends on the chapters of every abstraction its own
        abstraction points to through a relationship.
        """
        paths = state.file_paths
        filename_by_abstraction = {c.abstraction_index: c.filename for c in state.chapters}
        relationships = state.relationships or RelationshipData(summary="")

        chapters = []
        for chapter in state.chapters:
            targets = sorted(
                {
                    rel.to_index
                    for rel in relationships.details
                    if rel.from_index == chapter.abstraction_index
                    and rel.to_index != chapter.abstraction_index
                }
            )
            chapters.append(
                CachedChapter(
                    filename=chapter.filename,
                    title=chapter.title,
                    abstraction_name=state.abstractions[chapter.abstraction_index].name,
                    body=chapter.body,
                    dependencies=[
                        filename_by_abstraction[t] for t in targets if t in filename_by_abstraction
                    ],
                )
            )

        now = _now()
        return cls(
            repo_url=state.repo_url,
            project_name=state.project_name,
            files=dict(file_hashes),
            abstractions=[
                CachedAbstraction(
                    name=a.name,
                    description=a.description,
                    files=[paths[i] for i in a.files if 0 <= i < len(paths)],
                )
                for a in state.abstractions
            ],
            relationships=relationships,
            chapter_order=list(state.chapter_order),
            chapters=chapters,
            created_at=created_at or now,
            updated_at=now,
            last_crawl_time=now,
        )

    def restore_abstractions(self, files: Sequence[FileEntry]) -> list[Abstraction]:
        """Rebuild abstractions against a new file list.

        File paths are mapped to their index in `files`; paths that no
        longer exist are dropped.
        """
        index_by_path = {entry.path: i for i, entry in enumerate(files)}
        return [
            Abstraction(
                name=a.name,
                description=a.description,
                files=sorted(index_by_path[p] for p in a.files if p in index_by_path),
            )
            for a in self.abstractions
        ]

    def restore_chapters(self) -> list[ChapterContent]:
        """Chapter records in chapter order, with trailer-free bodies."""
        return [
            ChapterContent(
                chapter_number=position + 1,
                abstraction_index=abstraction_index,
                filename=chapter.filename,
                title=chapter.title,
                body=chapter.body,
            )
            for position, (abstraction_index, chapter) in enumerate(
                zip(self.chapter_order, self.chapters)
            )
        ]

    def chapter_for(self, filename: str) -> Optional[CachedChapter]:
        for chapter in self.chapters:
            if chapter.filename == filename:
                return chapter
        return None

    def abstraction_files(self, name: str) -> Optional[list[str]]:
        """File paths of the cached abstraction called `name`, if any."""
        for abstraction in self.abstractions:
            if abstraction.name == name:
                return abstraction.files
        return None
