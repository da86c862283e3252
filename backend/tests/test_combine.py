"""Tutorial assembly tests."""

from repodoc.generation.chapters import plan_chapters
from repodoc.generation.combine import append_trailer, build_index_content, combine_tutorial
from repodoc.generation.models import Abstraction, Relationship, RelationshipData

ABSTRACTIONS = [Abstraction("Router", "r", [0]), Abstraction("Storage", "s", [1])]
RELATIONSHIPS = RelationshipData(summary="A **small** app.", details=[Relationship(0, 1, "Saves")])


def test_append_trailer():
    assert append_trailer("Body") == "Body\n\n---\n\nGenerated by repodoc"
    assert append_trailer("Body\n\n") == "Body\n\n---\n\nGenerated by repodoc"
    assert append_trailer("Body\n\n\n", trailer="x") == "Body\n\n\n---\n\nx"


def test_index_content_layout():
    slots = plan_chapters([1, 0], ABSTRACTIONS)

    index = build_index_content(
        "app", "https://github.com/octo/app", "A **small** app.", "flowchart TD", slots
    )

    assert index.startswith("# Tutorial: app\n\nA **small** app.\n\n")
    assert "**Source Repository:** [https://github.com/octo/app](https://github.com/octo/app)" in index
    assert "```mermaid\nflowchart TD\n```" in index
    assert "## Chapters\n\n1. [Storage](01_storage.md)\n2. [Router](02_router.md)\n" in index
    assert index.endswith("\n\n---\n\nGenerated by repodoc")


def test_index_without_repo_url_has_no_source_line():
    index = build_index_content("app", "", "Summary", "flowchart TD", [])

    assert "Source Repository" not in index


def test_combine_tutorial():
    slots = plan_chapters([0, 1], ABSTRACTIONS)

    output = combine_tutorial(
        "app",
        "https://github.com/octo/app",
        ABSTRACTIONS,
        RELATIONSHIPS,
        slots,
        ["# Chapter 1: Router\n\nRouting.", "# Chapter 2: Storage\n\nStoring."],
    )

    assert output.mermaid_diagram.startswith("flowchart TD")
    assert output.mermaid_diagram in output.index_content
    assert [c.filename for c in output.chapters] == ["01_router.md", "02_storage.md"]
    assert output.chapters[1].title == "Chapter 2: Storage"
    assert output.chapters[1].body.endswith("Storing.\n\n---\n\nGenerated by repodoc")
    assert output.to_dict()["chapters"][0]["abstraction_index"] == 0
