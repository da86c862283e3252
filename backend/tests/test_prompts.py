# backend/tests/test_prompts.py
"""Prompt template tests."""

import pytest

from repodoc.generation.prompts import (
    PromptTemplate,
    get_analyze_relationships_prompt,
    get_identify_abstractions_prompt,
    get_order_chapters_prompt,
    get_write_chapter_prompt,
)


def test_prompt_template_renders_variables():
    """PromptTemplate substitutes variables correctly."""
    template = PromptTemplate("Hello {name}, welcome to {project}!")

    result = template.render(name="Alice", project="repodoc")

    assert result == "Hello Alice, welcome to repodoc!"


def test_prompt_template_handles_missing_variable():
    """PromptTemplate raises error for missing variables."""
    template = PromptTemplate("Hello {name}!")

    with pytest.raises(KeyError):
        template.render()


def test_identify_prompt_includes_context_and_listing():
    prompt = get_identify_abstractions_prompt(
        project_name="app",
        context="--- File Index 0: src/app.py ---\ndef main(): ...",
        file_listing="- 0 # src/app.py",
        max_abstractions=6,
    )

    assert "For the project `app`" in prompt
    assert "def main(): ..." in prompt
    assert "- 0 # src/app.py" in prompt
    assert "Identify the top 5-6 core" in prompt
    assert "IMPORTANT" not in prompt


def test_identify_prompt_clamps_minimum():
    prompt = get_identify_abstractions_prompt("app", "", "", max_abstractions=3)

    assert "Identify the top 3-3 core" in prompt


def test_non_english_prompts_ask_for_translation():
    """Non-English output languages add instructions and field hints."""
    prompt = get_identify_abstractions_prompt(
        "app", "ctx", "- 0 # a.py", max_abstractions=5, language="spanish"
    )

    assert "**Spanish** language" in prompt
    assert "(value in Spanish)" in prompt


def test_relationship_prompt_requires_every_abstraction():
    prompt = get_analyze_relationships_prompt(
        project_name="app",
        context="Identified Abstractions:\n- Index 0: Router",
        abstraction_listing="0 # Router\n1 # Storage",
    )

    assert "0 # Router\n1 # Storage" in prompt
    assert "EVERY abstraction" in prompt
    assert "A list (`relationships`)" in prompt


def test_order_prompt_includes_relationships():
    prompt = get_order_chapters_prompt(
        project_name="app",
        abstraction_listing="0 # Router",
        context="Relationships:\n- From 0 (Router) to 1 (Storage): Saves",
        language="german",
    )

    assert "what is the best order" in prompt
    assert "(Names might be in German)" in prompt
    assert "Saves" in prompt


def test_first_chapter_prompt():
    prompt = get_write_chapter_prompt(
        project_name="app",
        chapter_number=1,
        abstraction_name="Router",
        abstraction_description="Routes requests.",
        chapter_listing="1. [Router](01_router.md)\n2. [Storage](02_storage.md)",
        previous_chapters="",
        file_context="",
        next_link="[Storage](02_storage.md)",
    )

    assert 'about the concept: "Router"' in prompt
    assert "This is the first chapter." in prompt
    assert "No specific code snippets provided" in prompt
    assert "transitions to the next chapter [Storage](02_storage.md)" in prompt
    assert "Generate content in English" in prompt


def test_later_chapter_prompt_links_back():
    prompt = get_write_chapter_prompt(
        project_name="app",
        chapter_number=2,
        abstraction_name="Storage",
        abstraction_description="Keeps records.",
        chapter_listing="1. [Router](01_router.md)\n2. [Storage](02_storage.md)",
        previous_chapters="# Chapter 1: Router\n\nRouting explained.",
        file_context="--- File: 3 # src/storage.py ---\nclass Storage: ...",
        previous_link="[Router](01_router.md)",
    )

    assert "transition from the previous chapter [Router](01_router.md)" in prompt
    assert "Routing explained." in prompt
    assert "class Storage: ..." in prompt
    assert "This is the final chapter." in prompt
