# backend/src/repodoc/generation/__init__.py
"""Documentation generation pipeline module."""

from repodoc.generation.chapters import (
    ChapterSlot,
    chapter_filename,
    chapter_listing,
    ensure_chapter_heading,
    plan_chapters,
)
from repodoc.generation.combine import combine_tutorial
from repodoc.generation.context import (
    ContextMode,
    FileContext,
    build_context,
    compute_max_context_chars,
    extract_file_signatures,
    truncate_content,
)
from repodoc.generation.mermaid import find_unconnected_abstractions, render_flowchart
from repodoc.generation.models import (
    Abstraction,
    ChapterContent,
    FileEntry,
    GenerationProgress,
    LLMSettings,
    PipelineState,
    Relationship,
    RelationshipData,
    Stage,
    TutorialOutput,
)
from repodoc.generation.orchestrator import DocumentationOrchestrator
from repodoc.generation.output import project_slug, write_tutorial
from repodoc.generation.parsing import (
    parse_abstractions,
    parse_chapter_order,
    parse_index,
    parse_relationships,
)

__all__ = [
    "Abstraction",
    "ChapterContent",
    "ChapterSlot",
    "ContextMode",
    "DocumentationOrchestrator",
    "FileContext",
    "FileEntry",
    "GenerationProgress",
    "LLMSettings",
    "PipelineState",
    "Relationship",
    "RelationshipData",
    "Stage",
    "TutorialOutput",
    "build_context",
    "chapter_filename",
    "chapter_listing",
    "combine_tutorial",
    "compute_max_context_chars",
    "ensure_chapter_heading",
    "extract_file_signatures",
    "find_unconnected_abstractions",
    "parse_abstractions",
    "parse_chapter_order",
    "parse_index",
    "parse_relationships",
    "plan_chapters",
    "project_slug",
    "render_flowchart",
    "truncate_content",
    "write_tutorial",
]
