# backend/src/repodoc/generation/chapters.py
"""Chapter naming, headings and cross-links."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from repodoc.constants.generation import MAX_CHAPTER_SLUG_LENGTH
from repodoc.generation.models import Abstraction

_UNSAFE_CHARS = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")

CHAPTER_SEPARATOR = "\n---\n"


@dataclass(frozen=True)
class ChapterSlot:
    """Position of one abstraction in the chapter sequence."""

    number: int  # 1-based
    abstraction_index: int
    name: str
    filename: str

    @property
    def title(self) -> str:
        return f"Chapter {self.number}: {self.name}"

    @property
    def link(self) -> str:
        return f"[{self.name}]({self.filename})"


def slugify(name: str, max_length: int = MAX_CHAPTER_SLUG_LENGTH) -> str:
    """Lowercase slug: unsafe characters dropped, whitespace runs joined by "_"."""
    slug = _UNSAFE_CHARS.sub("", name.lower()).strip()
    slug = _WHITESPACE.sub("_", slug)
    return slug[:max_length]


def chapter_filename(number: int, name: str) -> str:
    """Deterministic chapter filename, e.g. (3, "User Auth Flow!!") -> "03_user_auth_flow.md"."""
    slug = slugify(name) or "chapter"
    return f"{number:02d}_{slug}.md"


def plan_chapters(order: Sequence[int], abstractions: Sequence[Abstraction]) -> list[ChapterSlot]:
    """Assign chapter numbers and filenames following the chapter order."""
    return [
        ChapterSlot(
            number=position + 1,
            abstraction_index=index,
            name=abstractions[index].name,
            filename=chapter_filename(position + 1, abstractions[index].name),
        )
        for position, index in enumerate(order)
    ]


def chapter_listing(slots: Sequence[ChapterSlot]) -> str:
    """Table of contents as "N. [Name](file.md)" lines."""
    return "\n".join(f"{slot.number}. {slot.link}" for slot in slots)


def neighbors(
    slots: Sequence[ChapterSlot], position: int
) -> tuple[Optional[ChapterSlot], Optional[ChapterSlot]]:
    """Previous and next chapter around a 0-based position."""
    previous = slots[position - 1] if position > 0 else None
    following = slots[position + 1] if position + 1 < len(slots) else None
    return previous, following


def ensure_chapter_heading(body: str, number: int, name: str) -> str:
    """Prepend "# Chapter N: Name" unless the body already starts with a chapter-N heading."""
    body = body.strip()
    if re.match(rf"^#+\s*Chapter\s+{number}:", body, re.IGNORECASE):
        return body
    return f"# Chapter {number}: {name}\n\n{body}"


def previous_chapters_digest(bodies: Sequence[str]) -> str:
    """Cumulative context handed to the next chapter's prompt."""
    return CHAPTER_SEPARATOR.join(bodies)
