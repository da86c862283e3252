# backend/src/repodoc/generation/combine.py
"""Assemble the final document set from written chapters."""

from __future__ import annotations

from typing import Sequence

from repodoc.constants.generation import TUTORIAL_TRAILER
from repodoc.generation.chapters import ChapterSlot
from repodoc.generation.mermaid import render_flowchart
from repodoc.generation.models import (
    Abstraction,
    ChapterContent,
    RelationshipData,
    TutorialOutput,
)


def append_trailer(body: str, trailer: str = TUTORIAL_TRAILER) -> str:
    """Append "---" and the trailer, separated from the body by a blank line."""
    if not body.endswith("\n\n"):
        body = body.rstrip("\n") + "\n\n"
    return f"{body}---\n\n{trailer}"


def build_index_content(
    project_name: str,
    repo_url: str,
    summary: str,
    mermaid_diagram: str,
    slots: Sequence[ChapterSlot],
    trailer: str = TUTORIAL_TRAILER,
) -> str:
    """Render index.md: title, summary, source link, diagram and chapter list."""
    parts = [f"# Tutorial: {project_name}\n\n", f"{summary}\n\n"]
    if repo_url:
        parts.append(f"**Source Repository:** [{repo_url}]({repo_url})\n\n")
    parts.append(f"```mermaid\n{mermaid_diagram}\n```\n\n")
    parts.append("## Chapters\n\n")
    for slot in slots:
        parts.append(f"{slot.number}. {slot.link}\n")
    parts.append(f"\n\n---\n\n{trailer}")
    return "".join(parts)


def combine_tutorial(
    project_name: str,
    repo_url: str,
    abstractions: Sequence[Abstraction],
    relationships: RelationshipData,
    slots: Sequence[ChapterSlot],
    bodies: Sequence[str],
) -> TutorialOutput:
    """Build the TutorialOutput for a finished run.

    Args:
        project_name: Human-facing project name.
        repo_url: Repository URL for the source link (may be empty).
        abstractions: All abstractions.
        relationships: Summary and relationship list.
        slots: Chapter slots in chapter order.
        bodies: Chapter bodies (headings ensured), parallel to slots.

    Returns:
        The document set with trailers appended to every chapter.
    """
    diagram = render_flowchart(abstractions, relationships.details)
    index_content = build_index_content(
        project_name, repo_url, relationships.summary, diagram, slots
    )
    chapters = [
        ChapterContent(
            chapter_number=slot.number,
            abstraction_index=slot.abstraction_index,
            filename=slot.filename,
            title=slot.title,
            body=append_trailer(body),
        )
        for slot, body in zip(slots, bodies)
    ]
    return TutorialOutput(
        project_name=project_name,
        repo_url=repo_url,
        index_content=index_content,
        mermaid_diagram=diagram,
        chapters=chapters,
    )
