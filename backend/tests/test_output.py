"""Tests for writing document sets to disk."""

import json
from datetime import datetime, timezone

import yaml

from repodoc.generation.models import ChapterContent, TutorialOutput
from repodoc.generation.output import build_frontmatter, project_slug, write_tutorial

GENERATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_output() -> TutorialOutput:
    return TutorialOutput(
        project_name="app",
        repo_url="https://github.com/octo/app",
        index_content="# Tutorial: app\n",
        mermaid_diagram="flowchart TD",
        chapters=[
            ChapterContent(1, 0, "01_router.md", "Chapter 1: Router", "# Chapter 1: Router\n\nText"),
            ChapterContent(2, 1, "02_storage.md", "Chapter 2: Storage", "# Chapter 2: Storage\n"),
        ],
    )


def test_project_slug():
    assert project_slug("Acme", "My.Repo") == "acme-my-repo"
    assert project_slug("octo", "--weird__name--") == "octo-weird-name"
    assert len(project_slug("o" * 40, "r" * 40)) == 50


def test_frontmatter_is_valid_yaml():
    frontmatter = build_frontmatter("Chapter 1: Router", 1, GENERATED, ["Router"])

    assert frontmatter.startswith("---\n")
    assert frontmatter.endswith("---\n\n")
    data = yaml.safe_load(frontmatter.strip().strip("-"))
    assert data == {
        "title": "Chapter 1: Router",
        "order": 1,
        "generated": GENERATED.isoformat(),
        "abstractions": ["Router"],
    }


def test_write_tutorial_layout(tmp_path):
    directory = write_tutorial(
        make_output(), tmp_path / "octo-app", provider="openai", model="gpt-4o", generated=GENERATED
    )

    assert sorted(p.name for p in directory.iterdir()) == [
        "01_router.md",
        "02_storage.md",
        "index.md",
        "meta.json",
    ]
    assert (directory / "index.md").read_text() == "# Tutorial: app\n"
    chapter = (directory / "01_router.md").read_text()
    assert chapter.startswith("---\ntitle: 'Chapter 1: Router'\n")
    assert chapter.endswith("# Chapter 1: Router\n\nText")

    meta = json.loads((directory / "meta.json").read_text())
    assert meta["llm_model"] == "gpt-4o"
    assert meta["created_at"] == GENERATED.isoformat()
    assert [c["order"] for c in meta["chapters"]] == [1, 2]


def test_write_tutorial_overwrites_previous_run(tmp_path):
    write_tutorial(make_output(), tmp_path, generated=GENERATED)
    output = make_output()
    output.index_content = "# Tutorial: app v2\n"

    write_tutorial(output, tmp_path, generated=GENERATED)

    assert (tmp_path / "index.md").read_text() == "# Tutorial: app v2\n"
