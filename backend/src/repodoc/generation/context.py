"""Token-budgeted context building for LLM prompts.

Two extraction modes are supported:

- full: verbatim file content, with oversized files cut down to a head and a
  tail around an "N lines omitted" marker. Used for narrow, per-abstraction
  context.
- signature: declarations only (imports, exports, type/interface bodies,
  function/class/method signatures with bodies elided). Used for the
  whole-repository analysis stage.

Signature extraction is a single-pass line scanner. It tracks brace depth
(and indentation for Python) but never parses semantically, so it is lossy
on unusual formatting.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from repodoc.constants.generation import (
    CHARS_PER_TOKEN,
    CONTEXT_USAGE_RATIO,
    MAX_LINES_PER_FILE,
    PRIORITY_PATH_PATTERNS,
    TRUNCATION_HEAD_RATIO,
)
from repodoc.generation.models import FileEntry
from repodoc.llm.providers import available_input_tokens


class ContextMode(Enum):
    """How file content is rendered into context."""

    FULL = "full"
    SIGNATURE = "signature"


@dataclass
class FileContext:
    """Result of building a context string."""

    text: str
    included_indices: list[int] = field(default_factory=list)
    skipped_indices: list[int] = field(default_factory=list)

    @property
    def files_included(self) -> int:
        return len(self.included_indices)

    @property
    def files_skipped(self) -> int:
        return len(self.skipped_indices)


# =============================================================================
# Budget
# =============================================================================


def compute_max_context_chars(
    context_window: int,
    usage_ratio: float = CONTEXT_USAGE_RATIO,
    chars_per_token: float = CHARS_PER_TOKEN,
) -> int:
    """Character budget for repository content in one prompt.

    The budget is context_window * usage_ratio tokens, capped so that room
    for the model's answer always remains on small windows.
    """
    budget_tokens = min(int(context_window * usage_ratio), available_input_tokens(context_window))
    return int(budget_tokens * chars_per_token)


# =============================================================================
# Truncation
# =============================================================================


def truncate_content(content: str, max_lines: int = MAX_LINES_PER_FILE) -> str:
    """Cut an oversized file down to a head and a tail.

    The result never exceeds max_lines lines: roughly 80% head, the rest tail,
    and one marker line in between. Content already within max_lines is
    returned unchanged, so truncation is idempotent.

    Args:
        content: File content.
        max_lines: Line allowance for the file.

    Returns:
        Content with at most max_lines lines.
    """
    lines = content.split("\n")
    if len(lines) <= max_lines:
        return content

    head_count = math.floor(max_lines * TRUNCATION_HEAD_RATIO)
    tail_count = max(max_lines - head_count - 1, 0)
    omitted = len(lines) - head_count - tail_count
    marker = f"// ... [{omitted} lines omitted] ..."
    tail = lines[len(lines) - tail_count :] if tail_count else []
    return "\n".join(lines[:head_count] + [marker] + tail)


# =============================================================================
# Signature Extraction
# =============================================================================

FILE_TYPE_LABELS = {
    "tsx": "React Component/Page",
    "ts": "TypeScript Module",
    "jsx": "React Component",
    "js": "JavaScript Module",
    "mjs": "JavaScript Module",
    "py": "Python Module",
    "java": "Java Class",
    "kt": "Kotlin Module",
    "cs": "C# Class",
    "go": "Go Package",
    "rs": "Rust Module",
    "rb": "Ruby Module",
    "php": "PHP Module",
    "md": "Documentation",
    "json": "Configuration",
    "yaml": "Configuration",
    "yml": "Configuration",
    "toml": "Configuration",
}


def get_file_type_label(path: str) -> str:
    """Human-readable label for a file based on its extension."""
    extension = path.rsplit(".", 1)[-1].lower() if "." in path.rsplit("/", 1)[-1] else ""
    return FILE_TYPE_LABELS.get(extension, "Source File")


IMPORT_RE = re.compile(r"^(import\s|import\{|from\s+\S+\s+import\s|use\s+\S|require\s*\()")
EXPORT_RE = re.compile(r"^export\s+(\{|\*|default\s+(?!function|class|async)|(const|let|var)\s)")
BLOCK_DECL_RE = re.compile(
    r"^(export\s+|pub(\([^)]*\))?\s+)?(declare\s+)?(interface|type|enum|struct|trait)\s+\w+"
)
FUNCTION_RE = re.compile(
    r"^(export\s+)?(default\s+)?(pub\s+)?(async\s+)?(function\*?|fn|func)\s*\*?\s*[\w(]"
)
ARROW_RE = re.compile(r"^(export\s+)?const\s+\w+\s*(:[^=]+)?=\s*(async\s+)?(\(|function\b|\w+\s*=>)")
COMPONENT_RE = re.compile(r"^(export\s+)?const\s+[A-Z]\w*\s*[:=]")
CLASS_RE = re.compile(
    r"^(export\s+)?(default\s+)?(public\s+|private\s+|protected\s+)?(final\s+|static\s+)*"
    r"(abstract\s+)?class\s+\w+"
)
METHOD_RE = re.compile(
    r"^(static\s+|readonly\s+|override\s+)*(private\s+|public\s+|protected\s+)?"
    r"(static\s+|final\s+|abstract\s+)*(async\s+)?(get\s+|set\s+)?([\w<>\[\],.?]+\s+)?"
    r"\*?[A-Za-z_$][\w$]*\s*(<[^>]*>)?\s*\("
)
CONTROL_KEYWORDS = frozenset(
    ["if", "for", "while", "switch", "catch", "return", "function", "await", "super", "new"]
)
PY_DEF_RE = re.compile(r"^(\s*)(async\s+)?def\s+\w+")
PY_CLASS_RE = re.compile(r"^(\s*)class\s+\w+")
COMMENT_PREFIXES = ("//", "#", "/*", "*", "*/")


def _brace_delta(text: str) -> int:
    return text.count("{") - text.count("}")


def _paren_delta(text: str) -> int:
    return text.count("(") - text.count(")")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _elide_body(signature: str) -> str:
    """Turn a declaration line into a body-less signature."""
    if "=>" in signature:
        head = signature.split("=>", 1)[0].rstrip()
        return f"{head} => {{ /* ... */ }}"
    head = signature.split("{", 1)[0].rstrip()
    return f"{head} {{ /* ... */ }}"


def _is_method(trimmed: str) -> bool:
    """Whether a class-body line declares a method."""
    if not METHOD_RE.match(trimmed):
        return False
    words = re.sub(r"[(<].*$", "", trimmed).split()
    if not words:
        return False
    return words[0] not in CONTROL_KEYWORDS and words[-1].lstrip("*") not in CONTROL_KEYWORDS


def extract_file_signatures(content: str, file_path: str) -> str:
    """Reduce a source file to its declarations.

    Keeps import and export statements, interface/type/enum bodies, and
    function/class/method signatures. Function and method bodies are elided
    as "{ /* ... */ }" (or "..." for Python). Output is deterministic for
    identical input.

    Args:
        content: File content.
        file_path: Path used for the header line and language detection.

    Returns:
        "// <label>: <path>" followed by one extracted declaration per line.
    """
    signatures: list[str] = []
    is_python = file_path.endswith((".py", ".pyi"))

    mode: Optional[str] = None  # import, block, class, skip
    depth = 0
    block: list[str] = []
    py_body_indent: Optional[int] = None
    py_signature: list[str] = []
    awaiting_brace = False

    for line in content.split("\n"):
        trimmed = line.strip()

        if mode == "import":
            signatures.append(line)
            depth += _brace_delta(trimmed) + _paren_delta(trimmed)
            if depth <= 0:
                mode = None
            continue

        if mode == "block":
            block.append(line)
            depth += _brace_delta(trimmed)
            if depth <= 0:
                signatures.append("\n".join(block))
                block = []
                mode = None
            continue

        if mode == "skip":
            depth += _brace_delta(trimmed)
            if depth <= 0:
                mode = None
            continue

        if mode == "class":
            at_member_level = depth == 1
            depth += _brace_delta(trimmed)
            if awaiting_brace:
                awaiting_brace = depth <= 0
                continue
            if at_member_level and _is_method(trimmed):
                signatures.append(f"  {_elide_body(trimmed)}")
            if depth <= 0:
                signatures.append("}")
                mode = None
            continue

        if is_python:
            if py_signature:
                # Multi-line def/class header, ends with a trailing colon
                py_signature.append(line)
                if trimmed.endswith(":"):
                    signatures.append("\n".join(py_signature) + " ...")
                    py_body_indent = _indent(py_signature[0])
                    py_signature = []
                continue
            if py_body_indent is not None:
                if not trimmed or _indent(line) > py_body_indent:
                    if not (PY_DEF_RE.match(line) or PY_CLASS_RE.match(line)):
                        continue
                else:
                    py_body_indent = None

        if not trimmed or trimmed.startswith(COMMENT_PREFIXES):
            continue

        if is_python:
            def_match = PY_DEF_RE.match(line)
            class_match = PY_CLASS_RE.match(line)
            if def_match or class_match:
                if trimmed.endswith(":"):
                    signatures.append(f"{line.rstrip()} ..." if def_match else line.rstrip())
                    # Class bodies stay visible so their methods are captured
                    py_body_indent = _indent(line) if def_match else None
                else:
                    py_signature = [line.rstrip()]
                continue
            if _indent(line) == 0 and IMPORT_RE.match(trimmed):
                signatures.append(line)
                if _paren_delta(trimmed) > 0:
                    mode = "import"
                    depth = _paren_delta(trimmed)
            continue

        if IMPORT_RE.match(trimmed):
            signatures.append(line)
            delta = _brace_delta(trimmed) + _paren_delta(trimmed)
            if delta > 0:
                mode = "import"
                depth = delta
            continue

        if BLOCK_DECL_RE.match(trimmed):
            delta = _brace_delta(trimmed)
            if delta > 0:
                mode = "block"
                depth = delta
                block = [line]
            else:
                signatures.append(line)
            continue

        if CLASS_RE.match(trimmed):
            signatures.append(f"{trimmed.split('{', 1)[0].rstrip()} {{")
            mode = "class"
            depth = _brace_delta(trimmed)
            # Opening brace may sit on a following line
            awaiting_brace = depth <= 0
            continue

        if FUNCTION_RE.match(trimmed) or ARROW_RE.match(trimmed):
            signatures.append(_elide_body(trimmed))
            delta = _brace_delta(trimmed)
            if delta > 0:
                mode = "skip"
                depth = delta
            continue

        if COMPONENT_RE.match(trimmed):
            head = re.split(r"\s*=\s*", trimmed, maxsplit=1)[0]
            signatures.append(f"{head} {{ /* React Component */ }}")
            delta = _brace_delta(trimmed)
            if delta > 0:
                mode = "skip"
                depth = delta
            continue

        if EXPORT_RE.match(trimmed):
            signatures.append(line)
            continue

    if mode == "block" and block:
        signatures.append("\n".join(block))
    elif mode == "class":
        signatures.append("}")

    header = f"// {get_file_type_label(file_path)}: {file_path}"
    return "\n".join([header] + signatures)


# =============================================================================
# Context Assembly
# =============================================================================

_PRIORITY_RES = [re.compile(p) for p in PRIORITY_PATH_PATTERNS]


def file_priority(path: str) -> int:
    """Rank of a path among the priority patterns (lower comes first)."""
    for rank, pattern in enumerate(_PRIORITY_RES):
        if pattern.search(path):
            return rank
    return len(_PRIORITY_RES)


def prioritize_files(files: Sequence[FileEntry], indices: Optional[Sequence[int]] = None) -> list[int]:
    """Order file indices so conventional entry points come first.

    The sort is stable: files with equal priority keep their original order.
    """
    candidates = list(range(len(files))) if indices is None else list(indices)
    return sorted(candidates, key=lambda i: file_priority(files[i].path))


def render_file(entry: FileEntry, mode: ContextMode, max_lines_per_file: int) -> str:
    """Render one file's content for the given mode."""
    if mode is ContextMode.SIGNATURE:
        return extract_file_signatures(entry.content, entry.path)
    return truncate_content(entry.content, max_lines_per_file)


def build_context(
    files: Sequence[FileEntry],
    mode: ContextMode,
    max_context_chars: Optional[int] = None,
    max_lines_per_file: int = MAX_LINES_PER_FILE,
    indices: Optional[Sequence[int]] = None,
    prioritize: bool = True,
) -> FileContext:
    """Build a budgeted context string from files.

    Files are rendered, ordered by priority, then appended as
    "--- File Index i: path ---" sections until the next one would exceed
    max_context_chars. Appending stops there; remaining files are reported
    as skipped. A file is never split to fill the remaining budget.

    Args:
        files: The job's file list.
        mode: Full or signature rendering.
        max_context_chars: Character budget, None for unlimited.
        max_lines_per_file: Line allowance for full mode.
        indices: Restrict to these file indices (defaults to all files).
        prioritize: Sort entry-point files first.

    Returns:
        FileContext with the text and included/skipped file indices.
    """
    candidates = list(range(len(files))) if indices is None else [
        i for i in indices if 0 <= i < len(files)
    ]
    if prioritize:
        candidates = prioritize_files(files, candidates)

    parts: list[str] = []
    included: list[int] = []
    skipped: list[int] = []
    used = 0
    for position, index in enumerate(candidates):
        entry = files[index]
        section = (
            f"--- File Index {index}: {entry.path} ---\n"
            f"{render_file(entry, mode, max_lines_per_file)}\n\n"
        )
        if max_context_chars is not None and used + len(section) > max_context_chars:
            skipped.extend(candidates[position:])
            break
        parts.append(section)
        included.append(index)
        used += len(section)

    return FileContext(text="".join(parts), included_indices=included, skipped_indices=skipped)


def build_file_listing(files: Sequence[FileEntry], indices: Sequence[int]) -> str:
    """Listing lines "- i # path" for the given indices, in index order."""
    return "\n".join(f"- {i} # {files[i].path}" for i in sorted(indices))


def get_content_for_indices(
    files: Sequence[FileEntry],
    indices: Sequence[int],
    max_lines_per_file: int = MAX_LINES_PER_FILE,
) -> str:
    """Full-mode snippets for specific files as "--- File: i # path ---" sections."""
    sections = []
    for i in indices:
        if 0 <= i < len(files):
            entry = files[i]
            content = truncate_content(entry.content, max_lines_per_file)
            sections.append(f"--- File: {i} # {entry.path} ---\n{content}")
    return "\n\n".join(sections)
