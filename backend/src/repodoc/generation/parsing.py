# backend/src/repodoc/generation/parsing.py
"""Strict parsers for the structured (YAML) output of the analysis stages.

Each parser either returns fully validated data or raises
OutputValidationError. The only normalization performed is numeric-prefix
extraction for index entries ("3 # path/to/file" -> 3), whitespace
stripping, and de-duplication of abstraction file indices.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import yaml

from repodoc.errors import OutputValidationError
from repodoc.generation.models import Abstraction, Relationship, RelationshipData

logger = logging.getLogger(__name__)

YAML_BLOCK_PATTERN = re.compile(r"```yaml\s*([\s\S]*?)\s*```")
INDEX_PREFIX_PATTERN = re.compile(r"^\s*(-?\d+)")


def extract_yaml_block(response: str, what: str) -> str:
    """Return the content of the first fenced ```yaml block.

    Args:
        response: Raw LLM response text.
        what: What the block should describe, for the error message.

    Raises:
        OutputValidationError: If no non-empty yaml block is present.
    """
    match = YAML_BLOCK_PATTERN.search(response.strip())
    content = match.group(1).strip() if match else ""
    if not content:
        raise OutputValidationError(f"LLM did not return a valid YAML block for {what}.")
    return content


def _load_yaml(response: str, what: str) -> Any:
    content = extract_yaml_block(response, what)
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise OutputValidationError(f"Could not parse YAML for {what}: {e}") from e


def parse_index(entry: Any) -> int:
    """Parse an index entry from LLM output.

    Accepts integers and strings that start with an integer, such as
    "3 # path/to/file.py" or "3". Booleans and floats are rejected.

    Raises:
        OutputValidationError: If no integer can be extracted.
    """
    if isinstance(entry, bool):
        raise OutputValidationError(f'Could not parse index: "{entry}"')
    if isinstance(entry, int):
        return entry
    if isinstance(entry, str):
        match = INDEX_PREFIX_PATTERN.match(entry)
        if match:
            return int(match.group(1))
    raise OutputValidationError(f'Could not parse index: "{entry}"')


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _required_text(value: Any, what: str, field: str) -> str:
    text = _text(value)
    if not text:
        raise OutputValidationError(f"{what} is empty", field=field)
    return text


def parse_abstractions(
    response: str,
    file_count: int,
    max_abstractions: Optional[int] = None,
) -> list[Abstraction]:
    """Parse and validate the identify-abstractions response.

    Args:
        response: Raw LLM response.
        file_count: Number of files in the job; indices must be in [0, file_count).
        max_abstractions: Keep at most this many abstractions.

    Returns:
        Abstractions with stripped names/descriptions and sorted, unique
        file indices.

    Raises:
        OutputValidationError: On a missing block, a non-list document, a
            missing field or an out-of-range index.
    """
    data = _load_yaml(response, "abstractions")
    if not isinstance(data, list):
        raise OutputValidationError("Parsed YAML is not a list of abstractions.", field="abstractions")
    if not data:
        raise OutputValidationError("LLM returned no abstractions.", field="abstractions")

    abstractions: list[Abstraction] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise OutputValidationError(
                f"Malformed abstraction at position {position}: expected a mapping",
                field="abstractions",
            )
        missing = [key for key in ("name", "description", "file_indices") if key not in item]
        if missing:
            raise OutputValidationError(
                f"Malformed abstraction at position {position}: missing {', '.join(missing)}",
                field="abstractions",
            )
        name = _required_text(
            item["name"], f"Malformed abstraction at position {position}: name", "name"
        )
        description = _required_text(
            item["description"], f'Description of abstraction "{name}"', "description"
        )
        raw_indices = item["file_indices"]
        if not isinstance(raw_indices, list):
            raise OutputValidationError(
                f'file_indices of abstraction "{name}" is not a list', field="file_indices"
            )

        indices: set[int] = set()
        for entry in raw_indices:
            index = parse_index(entry)
            if not 0 <= index < file_count:
                raise OutputValidationError(
                    f'Invalid file index {index} in abstraction "{name}" '
                    f"(expected 0-{file_count - 1})",
                    field="file_indices",
                )
            indices.add(index)

        abstractions.append(Abstraction(name=name, description=description, files=sorted(indices)))

    if max_abstractions is not None and len(abstractions) > max_abstractions:
        logger.info(f"LLM returned {len(abstractions)} abstractions; keeping {max_abstractions}")
        abstractions = abstractions[:max_abstractions]
    return abstractions


def parse_relationships(response: str, abstraction_count: int) -> RelationshipData:
    """Parse and validate the analyze-relationships response.

    Args:
        response: Raw LLM response.
        abstraction_count: Number of abstractions; indices must be in
            [0, abstraction_count).

    Raises:
        OutputValidationError: On a missing block, missing summary or
            relationship list, a malformed entry or an out-of-range index.
    """
    data = _load_yaml(response, "relationships")
    if not isinstance(data, dict) or "summary" not in data or "relationships" not in data:
        raise OutputValidationError(
            "Bad YAML structure for relationships: expected `summary` and `relationships`.",
            field="relationships",
        )
    items = data["relationships"]
    if not isinstance(items, list):
        raise OutputValidationError("`relationships` is not a list.", field="relationships")

    details: list[Relationship] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict) or not all(
            key in item for key in ("from_abstraction", "to_abstraction", "label")
        ):
            raise OutputValidationError(
                f"Malformed relationship at position {position}", field="relationships"
            )
        from_index = parse_index(item["from_abstraction"])
        to_index = parse_index(item["to_abstraction"])
        if not (0 <= from_index < abstraction_count and 0 <= to_index < abstraction_count):
            raise OutputValidationError(
                f"Invalid indices in relationship at position {position}: "
                f"from={from_index}, to={to_index}",
                field="relationships",
            )
        details.append(
            Relationship(from_index=from_index, to_index=to_index, label=_text(item["label"]))
        )

    summary = _required_text(data["summary"], "Project summary", "summary")
    return RelationshipData(summary=summary, details=details)


def parse_chapter_order(response: str, abstraction_count: int) -> list[int]:
    """Parse and validate the order-chapters response.

    The result must be a permutation of range(abstraction_count).

    Raises:
        OutputValidationError: On a missing block, a non-list document, an
            out-of-range index, a duplicate index or missing indices.
    """
    data = _load_yaml(response, "chapter order")
    if not isinstance(data, list):
        raise OutputValidationError("Parsed chapter order is not a list.", field="chapter_order")
    return validate_chapter_order([parse_index(entry) for entry in data], abstraction_count)


def validate_chapter_order(order: list[int], abstraction_count: int) -> list[int]:
    """Check that order is a permutation of range(abstraction_count)."""
    seen: set[int] = set()
    for position, index in enumerate(order):
        if not 0 <= index < abstraction_count:
            raise OutputValidationError(
                f"Invalid index {index} at position {position}", field="chapter_order"
            )
        if index in seen:
            raise OutputValidationError(
                f"Duplicate index {index} in ordered list.", field="chapter_order"
            )
        seen.add(index)

    missing = [i for i in range(abstraction_count) if i not in seen]
    if missing:
        raise OutputValidationError(
            f"Missing indices: {', '.join(str(i) for i in missing)}", field="chapter_order"
        )
    return list(order)
