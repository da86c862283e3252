# backend/src/repodoc/generation/output.py
"""Write a generated document set to disk.

Layout of the project directory:
- index.md: title, summary, diagram and chapter list
- NN_<slug>.md: one file per chapter, each with YAML frontmatter
  (title, order, generated, abstractions)
- meta.json: project metadata and the chapter list
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from repodoc.generation.models import TutorialOutput

_SLUG_UNSAFE = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES = re.compile(r"-+")


def project_slug(owner: str, repo: str, max_length: int = 50) -> str:
    """Directory name for a project, e.g. ("Acme", "My.Repo") -> "acme-my-repo"."""
    slug = _SLUG_UNSAFE.sub("-", f"{owner}-{repo}".lower())
    slug = _SLUG_DASHES.sub("-", slug).strip("-")
    return slug[:max_length]


def build_frontmatter(
    title: str,
    order: int,
    generated: datetime,
    abstractions: list[str],
) -> str:
    """Build YAML frontmatter for a chapter page.

    Returns:
        Frontmatter starting and ending with --- followed by a blank line.
    """
    metadata = {
        "title": title,
        "order": order,
        "generated": generated.isoformat(),
        "abstractions": abstractions,
    }
    body = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True)
    return f"---\n{body}---\n\n"


def write_tutorial(
    output: TutorialOutput,
    directory: Path,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    generated: Optional[datetime] = None,
) -> Path:
    """Write index.md, the chapter files and meta.json into `directory`.

    Args:
        output: The document set.
        directory: Project directory (created if missing).
        provider: LLM provider recorded in meta.json.
        model: LLM model recorded in meta.json.
        generated: Generation time (defaults to now).

    Returns:
        The project directory.
    """
    generated = generated or datetime.now(timezone.utc)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    (directory / "index.md").write_text(output.index_content, encoding="utf-8")

    chapters = []
    for chapter in output.chapters:
        frontmatter = build_frontmatter(
            title=chapter.title,
            order=chapter.chapter_number,
            generated=generated,
            abstractions=[chapter.title.split(": ", 1)[-1]],
        )
        (directory / chapter.filename).write_text(frontmatter + chapter.body, encoding="utf-8")
        chapters.append(
            {
                "filename": chapter.filename,
                "title": chapter.title,
                "order": chapter.chapter_number,
            }
        )

    meta = {
        "project_name": output.project_name,
        "repo_url": output.repo_url,
        "created_at": generated.isoformat(),
        "llm_provider": provider,
        "llm_model": model,
        "chapters": chapters,
    }
    (directory / "meta.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")
    return directory
