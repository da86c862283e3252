"""Data model shared by the pipeline stages, the cache and the API."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class Stage(Enum):
    """Pipeline stages in execution order."""

    FETCH_REPO = "fetch_repo"
    IDENTIFY_ABSTRACTIONS = "identify_abstractions"
    ANALYZE_RELATIONSHIPS = "analyze_relationships"
    ORDER_CHAPTERS = "order_chapters"
    WRITE_CHAPTERS = "write_chapters"
    COMBINE_TUTORIAL = "combine_tutorial"
    COMPLETE = "complete"


@dataclass(frozen=True)
class FileEntry:
    """A fetched source file. Immutable for the lifetime of a job."""

    path: str
    content: str


@dataclass
class Abstraction:
    """A named subsystem backed by indices into the job's file list."""

    name: str
    description: str
    files: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "files": list(self.files)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Abstraction":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            files=[int(i) for i in data.get("files", [])],
        )


@dataclass(frozen=True)
class Relationship:
    """A directed, labelled edge between two abstractions."""

    from_index: int
    to_index: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_index, "to": self.to_index, "label": self.label}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Relationship":
        return cls(from_index=int(data["from"]), to_index=int(data["to"]), label=data["label"])


@dataclass
class RelationshipData:
    """Project summary plus the relationship list."""

    summary: str
    details: list[Relationship] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "details": [r.to_dict() for r in self.details]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RelationshipData":
        return cls(
            summary=data.get("summary", ""),
            details=[Relationship.from_dict(r) for r in data.get("details", [])],
        )


@dataclass
class ChapterContent:
    """One written chapter."""

    chapter_number: int
    abstraction_index: int
    filename: str
    title: str
    body: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter_number": self.chapter_number,
            "abstraction_index": self.abstraction_index,
            "filename": self.filename,
            "title": self.title,
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChapterContent":
        return cls(
            chapter_number=int(data["chapter_number"]),
            abstraction_index=int(data["abstraction_index"]),
            filename=data["filename"],
            title=data["title"],
            body=data["body"],
        )


@dataclass
class TutorialOutput:
    """The final document set: index page plus chapter pages."""

    project_name: str
    repo_url: str
    index_content: str
    mermaid_diagram: str
    chapters: list[ChapterContent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "repo_url": self.repo_url,
            "index_content": self.index_content,
            "mermaid_diagram": self.mermaid_diagram,
            "chapters": [c.to_dict() for c in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TutorialOutput":
        return cls(
            project_name=data["project_name"],
            repo_url=data.get("repo_url", ""),
            index_content=data["index_content"],
            mermaid_diagram=data.get("mermaid_diagram", ""),
            chapters=[ChapterContent.from_dict(c) for c in data.get("chapters", [])],
        )


@dataclass
class GenerationProgress:
    """Progress update pushed to the caller-supplied sink."""

    stage: Stage
    message: str
    progress: int
    current_chapter: Optional[int] = None
    total_chapters: Optional[int] = None
    chapter_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stage": self.stage.value,
            "message": self.message,
            "progress": self.progress,
        }
        if self.current_chapter is not None:
            data["current_chapter"] = self.current_chapter
        if self.total_chapters is not None:
            data["total_chapters"] = self.total_chapters
        if self.chapter_name is not None:
            data["chapter_name"] = self.chapter_name
        return data


ProgressCallback = Callable[[GenerationProgress], Coroutine[Any, Any, None]]


@dataclass
class LLMSettings:
    """LLM selection for one job."""

    provider: str
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    context_window: Optional[int] = None


@dataclass
class PipelineState:
    """The single mutable record threaded through all stages of one job.

    Created at job start and populated stage by stage. Owned exclusively by
    the orchestrator running the job.
    """

    repo_url: str
    project_name: str
    llm: LLMSettings
    language: str = "english"
    max_abstractions: int = 8
    github_token: Optional[str] = None
    include_patterns: Optional[list[str]] = None
    exclude_patterns: Optional[list[str]] = None
    max_file_size: Optional[int] = None
    files: list[FileEntry] = field(default_factory=list)
    abstractions: list[Abstraction] = field(default_factory=list)
    relationships: Optional[RelationshipData] = None
    chapter_order: list[int] = field(default_factory=list)
    chapters: list[ChapterContent] = field(default_factory=list)
    output: Optional[TutorialOutput] = None
    progress_callback: Optional[ProgressCallback] = None
    llm_calls: int = 0

    @property
    def file_paths(self) -> list[str]:
        return [f.path for f in self.files]
