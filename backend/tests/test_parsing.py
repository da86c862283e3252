"""Structured LLM output parsing tests."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import ABSTRACTIONS_YAML, ORDER_YAML, RELATIONSHIPS_YAML
from repodoc.errors import OutputValidationError
from repodoc.generation.parsing import (
    extract_yaml_block,
    parse_abstractions,
    parse_chapter_order,
    parse_index,
    parse_relationships,
    validate_chapter_order,
)


def yaml_block(body: str) -> str:
    return f"Here you go:\n```yaml\n{body}\n```\nDone."


# =============================================================================
# YAML Block Tests
# =============================================================================


def test_extract_yaml_block_ignores_surrounding_prose():
    assert extract_yaml_block(yaml_block("- 1"), "order") == "- 1"


@pytest.mark.parametrize("response", ["no fence at all", "```yaml\n\n```", "```python\n- 1\n```"])
def test_missing_yaml_block_raises(response):
    with pytest.raises(OutputValidationError, match="valid YAML block"):
        extract_yaml_block(response, "abstractions")


def test_unparseable_yaml_raises():
    with pytest.raises(OutputValidationError, match="Could not parse YAML"):
        parse_chapter_order(yaml_block("- [unclosed"), 1)


# =============================================================================
# Index Tests
# =============================================================================


def test_parse_index_accepts_commented_entries():
    assert parse_index(3) == 3
    assert parse_index("7 # src/app.py") == 7
    assert parse_index(" 2") == 2


@pytest.mark.parametrize("entry", [True, 2.5, "src/app.py", None, [1]])
def test_parse_index_rejects_non_integers(entry):
    with pytest.raises(OutputValidationError, match="Could not parse index"):
        parse_index(entry)


# =============================================================================
# Abstraction Tests
# =============================================================================


def test_parse_abstractions():
    abstractions = parse_abstractions(ABSTRACTIONS_YAML, file_count=4)

    assert [a.name for a in abstractions] == ["Request Router", "Storage Layer", "Config Loader"]
    assert abstractions[0].description == "Sends each request to the right handler."
    assert abstractions[0].files == [1, 2]


def test_file_indices_are_deduplicated_and_sorted():
    response = yaml_block(
        "- name: Core\n  description: The core.\n  file_indices:\n    - 3\n    - '1 # a.py'\n    - 3"
    )

    assert parse_abstractions(response, file_count=4)[0].files == [1, 3]


def test_out_of_range_file_index_raises():
    with pytest.raises(OutputValidationError, match="Invalid file index 3"):
        parse_abstractions(ABSTRACTIONS_YAML, file_count=3)


def test_missing_field_raises():
    response = yaml_block("- name: Core\n  file_indices: [0]")

    with pytest.raises(OutputValidationError, match="missing description"):
        parse_abstractions(response, file_count=1)


@pytest.mark.parametrize(
    "body, message",
    [
        ("- name: Core\n  description: d\n  file_indices:", "not a list"),
        ("- name: Core\n  description: d\n  file_indices: '0'", "not a list"),
        ("- name: Core\n  description:\n  file_indices: [0]", '"Core" is empty'),
        ("- name: Core\n  description: \"  \"\n  file_indices: [0]", "is empty"),
        ("- name:\n  description: d\n  file_indices: [0]", "name is empty"),
    ],
)
def test_null_or_empty_required_fields_raise(body, message):
    """Required fields that are present but null or blank are rejected."""
    with pytest.raises(OutputValidationError, match=message):
        parse_abstractions(yaml_block(body), file_count=1)


def test_empty_file_index_list_is_allowed():
    response = yaml_block("- name: Core\n  description: d\n  file_indices: []")

    assert parse_abstractions(response, file_count=1)[0].files == []


def test_non_list_abstractions_raise():
    with pytest.raises(OutputValidationError, match="not a list"):
        parse_abstractions(yaml_block("name: Core"), file_count=1)


def test_max_abstractions_keeps_first():
    abstractions = parse_abstractions(ABSTRACTIONS_YAML, file_count=4, max_abstractions=2)

    assert [a.name for a in abstractions] == ["Request Router", "Storage Layer"]


# =============================================================================
# Relationship Tests
# =============================================================================


def test_parse_relationships():
    data = parse_relationships(RELATIONSHIPS_YAML, abstraction_count=3)

    assert data.summary == "A tiny **web service** that stores records."
    assert [(r.from_index, r.to_index, r.label) for r in data.details] == [
        (0, 1, "Saves records"),
        (1, 2, "Reads paths"),
    ]


def test_relationship_index_out_of_range_raises():
    with pytest.raises(OutputValidationError, match="Invalid indices"):
        parse_relationships(RELATIONSHIPS_YAML, abstraction_count=2)


def test_relationships_need_summary():
    with pytest.raises(OutputValidationError, match="summary"):
        parse_relationships(yaml_block("relationships: []"), abstraction_count=2)


@pytest.mark.parametrize(
    "body, message",
    [
        ("summary: s\nrelationships:", "not a list"),
        ("summary: s\nrelationships: none", "not a list"),
        ("summary:\nrelationships: []", "Project summary is empty"),
        ("summary: \"\"\nrelationships: []", "Project summary is empty"),
    ],
)
def test_null_relationship_fields_raise(body, message):
    with pytest.raises(OutputValidationError, match=message):
        parse_relationships(yaml_block(body), abstraction_count=2)


def test_malformed_relationship_raises():
    response = yaml_block("summary: s\nrelationships:\n  - from_abstraction: 0\n    label: x")

    with pytest.raises(OutputValidationError, match="Malformed relationship"):
        parse_relationships(response, abstraction_count=2)


# =============================================================================
# Chapter Order Tests
# =============================================================================


def test_parse_chapter_order():
    assert parse_chapter_order(ORDER_YAML, abstraction_count=3) == [0, 1, 2]
    assert parse_chapter_order(yaml_block("- 1\n- 0\n- 2"), abstraction_count=3) == [1, 0, 2]


def test_duplicate_chapter_raises():
    with pytest.raises(OutputValidationError, match="Duplicate index 0"):
        parse_chapter_order(yaml_block("- 0\n- 0\n- 2"), abstraction_count=3)


def test_missing_chapter_raises():
    with pytest.raises(OutputValidationError, match="Missing indices: 2"):
        parse_chapter_order(yaml_block("- 1\n- 0"), abstraction_count=3)


def test_out_of_range_chapter_raises():
    with pytest.raises(OutputValidationError, match="Invalid index 5"):
        validate_chapter_order([0, 5], abstraction_count=2)


@given(st.integers(min_value=1, max_value=12).flatmap(lambda n: st.permutations(list(range(n)))))
def test_any_permutation_is_accepted(order):
    """Every permutation of the abstraction indices is a valid order."""
    body = "\n".join(f"- {i} # Abstraction {i}" for i in order)

    assert parse_chapter_order(yaml_block(body), abstraction_count=len(order)) == order
