"""Chapter naming and heading tests."""

from repodoc.generation.chapters import (
    chapter_filename,
    chapter_listing,
    ensure_chapter_heading,
    neighbors,
    plan_chapters,
    previous_chapters_digest,
    slugify,
)
from repodoc.generation.models import Abstraction


def test_chapter_filename():
    assert chapter_filename(3, "User Auth Flow!!") == "03_user_auth_flow.md"
    assert chapter_filename(12, "  Cache   Layer ") == "12_cache_layer.md"


def test_chapter_filename_falls_back_for_symbol_only_names():
    assert chapter_filename(1, "!!!") == "01_chapter.md"


def test_slug_is_truncated():
    assert len(slugify("word " * 40)) == 50
    assert slugify("Über-Cache_v2") == "ber-cache_v2"


def test_plan_chapters_follows_order():
    abstractions = [Abstraction("Router", "r"), Abstraction("Storage", "s"), Abstraction("Config", "c")]

    slots = plan_chapters([2, 0, 1], abstractions)

    assert [(s.number, s.abstraction_index, s.filename) for s in slots] == [
        (1, 2, "01_config.md"),
        (2, 0, "02_router.md"),
        (3, 1, "03_storage.md"),
    ]
    assert slots[0].title == "Chapter 1: Config"
    assert chapter_listing(slots).split("\n")[1] == "2. [Router](02_router.md)"


def test_neighbors():
    abstractions = [Abstraction("A", ""), Abstraction("B", "")]
    slots = plan_chapters([0, 1], abstractions)

    assert neighbors(slots, 0) == (None, slots[1])
    assert neighbors(slots, 1) == (slots[0], None)


def test_heading_added_when_missing():
    assert ensure_chapter_heading("Some text.", 2, "Storage") == "# Chapter 2: Storage\n\nSome text."


def test_existing_heading_kept():
    body = "## chapter 2: The Storage Layer\n\nText"

    assert ensure_chapter_heading(f"\n{body}\n", 2, "Storage") == body


def test_heading_for_other_chapter_is_replaced_by_prefix():
    result = ensure_chapter_heading("# Chapter 1: Wrong\n\nText", 2, "Storage")

    assert result.startswith("# Chapter 2: Storage\n\n# Chapter 1: Wrong")


def test_previous_chapters_digest():
    assert previous_chapters_digest(["one", "two"]) == "one\n---\ntwo"
    assert previous_chapters_digest([]) == ""
