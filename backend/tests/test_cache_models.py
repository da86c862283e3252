"""Cache index snapshot and restore tests."""

from datetime import datetime, timezone

from repodoc.cache.models import CacheIndex
from repodoc.generation.models import (
    Abstraction,
    ChapterContent,
    FileEntry,
    LLMSettings,
    PipelineState,
    Relationship,
    RelationshipData,
)


def finished_state(files) -> PipelineState:
    return PipelineState(
        repo_url="https://github.com/octo/app",
        project_name="app",
        llm=LLMSettings(provider="openai", model="gpt-4o-mini"),
        files=list(files),
        abstractions=[
            Abstraction("Request Router", "Routes.", [1, 2]),
            Abstraction("Storage Layer", "Stores.", [3]),
            Abstraction("Config Loader", "Configures.", [0]),
        ],
        relationships=RelationshipData(
            summary="A small app.",
            details=[
                Relationship(0, 1, "Saves records"),
                Relationship(0, 2, "Reads settings"),
                Relationship(1, 1, "Recurses"),
            ],
        ),
        chapter_order=[2, 0, 1],
        chapters=[
            ChapterContent(1, 2, "01_config_loader.md", "Chapter 1: Config Loader", "config body"),
            ChapterContent(2, 0, "02_request_router.md", "Chapter 2: Request Router", "router body"),
            ChapterContent(3, 1, "03_storage_layer.md", "Chapter 3: Storage Layer", "storage body"),
        ],
    )


def test_from_state_uses_paths(sample_files):
    index = CacheIndex.from_state(finished_state(sample_files), {"src/config.py": "h"})

    assert index.abstractions[0].files == ["src/main.py", "src/router.py"]
    assert index.files == {"src/config.py": "h"}
    assert index.summary == "A small app."
    assert [c.filename for c in index.chapters] == [
        "01_config_loader.md",
        "02_request_router.md",
        "03_storage_layer.md",
    ]


def test_chapter_dependencies_follow_relationships(sample_files):
    """A chapter depends on the chapters of the abstractions it points to."""
    index = CacheIndex.from_state(finished_state(sample_files), {})

    router = index.chapter_for("02_request_router.md")
    storage = index.chapter_for("03_storage_layer.md")
    assert router.dependencies == ["03_storage_layer.md", "01_config_loader.md"]
    # Self-relationships add no dependency
    assert storage.dependencies == []
    assert index.chapter_for("99_missing.md") is None


def test_from_state_keeps_created_at(sample_files):
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)

    index = CacheIndex.from_state(finished_state(sample_files), {}, created_at=created)

    assert index.created_at == created
    assert index.updated_at > created


def test_serialized_index_restores_equal(sample_files):
    index = CacheIndex.from_state(finished_state(sample_files), {"src/main.py": "abc"})

    assert CacheIndex.from_dict(index.to_dict()) == index


def test_restore_abstractions_remaps_indices(sample_files):
    """Indices follow the new file list; vanished files are dropped."""
    index = CacheIndex.from_state(finished_state(sample_files), {})
    new_files = [
        FileEntry("src/a_new.py", ""),
        FileEntry("src/config.py", ""),
        FileEntry("src/main.py", ""),
        FileEntry("src/storage.py", ""),
    ]

    abstractions = index.restore_abstractions(new_files)

    assert abstractions[0].files == [2]
    assert abstractions[1].files == [3]
    assert abstractions[2].files == [1]
    assert index.abstraction_files("Storage Layer") == ["src/storage.py"]
    assert index.abstraction_files("Unknown") is None


def test_restore_chapters(sample_files):
    index = CacheIndex.from_state(finished_state(sample_files), {})

    chapters = index.restore_chapters()

    assert [(c.chapter_number, c.abstraction_index) for c in chapters] == [(1, 2), (2, 0), (3, 1)]
    assert chapters[0].body == "config body"
