# backend/src/repodoc/generation/prompts.py
"""Prompt templates for the documentation pipeline."""

from dataclasses import dataclass
from typing import Any

from repodoc.constants.generation import DEFAULT_LANGUAGE


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Args:
            **kwargs: Variables to substitute into the template.

        Returns:
            The rendered template string.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_PROMPT = """You are a senior software engineer writing architecture documentation
for developers who are new to a codebase. Follow these guidelines:

1. Only describe what exists in the provided code
2. Prefer simple language and concrete examples
3. When asked for YAML, answer with exactly one fenced ```yaml block
4. When asked for Markdown, answer with Markdown only"""


# =============================================================================
# Identify Abstractions Template
# =============================================================================

IDENTIFY_ABSTRACTIONS_TEMPLATE = PromptTemplate(
    """For the project `{project_name}`:

Codebase Context:
{context}

{language_instruction}Analyze the codebase context.
Identify the top {min_abstractions}-{max_abstractions} core most important abstractions to help those new to the codebase.

For each abstraction, provide:
1. A concise `name`{name_hint}.
2. A beginner-friendly `description` explaining what it is with a simple analogy, in around 100 words{description_hint}.
3. A list of relevant `file_indices` (integers) using the format `idx # path/comment`.

List of file indices and paths present in the context:
{file_listing}

Format the output as a YAML list of dictionaries:

```yaml
- name: |
    Query Processing{name_hint}
  description: |
    Explains what the abstraction does.
    It's like a central dispatcher routing requests.{description_hint}
  file_indices:
    - 0 # path/to/file1.py
    - 3 # path/to/related.py
- name: |
    Query Optimization{name_hint}
  description: |
    Another core concept, similar to a blueprint for objects.{description_hint}
  file_indices:
    - 5 # path/to/another.js
# ... up to {max_abstractions} abstractions
```"""
)


# =============================================================================
# Analyze Relationships Template
# =============================================================================

ANALYZE_RELATIONSHIPS_TEMPLATE = PromptTemplate(
    """Based on the following abstractions and relevant code snippets from the project `{project_name}`:

List of Abstraction Indices and Names{listing_note}:
{abstraction_listing}

Context (Abstractions, Descriptions, Code):
{context}

{language_instruction}Please provide:
1. A high-level `summary` of the project's main purpose and functionality in a few beginner-friendly sentences{field_hint}. Use markdown formatting with **bold** and *italic* text to highlight important concepts.
2. A list (`relationships`) describing the key interactions between these abstractions. For each relationship, specify:
    - `from_abstraction`: Index of the source abstraction (e.g., `0 # AbstractionName1`)
    - `to_abstraction`: Index of the target abstraction (e.g., `1 # AbstractionName2`)
    - `label`: A brief label for the interaction **in just a few words**{field_hint} (e.g., "Manages", "Inherits", "Uses").
    Ideally the relationship should be backed by one abstraction calling or passing parameters to another.
    Simplify the relationship and exclude those non-important ones.

IMPORTANT: Make sure EVERY abstraction is involved in at least ONE relationship (either as source or target). Each abstraction index must appear at least once across all relationships.

Format the output as YAML:

```yaml
summary: |
  A brief, simple explanation of the project{field_hint}.
  Can span multiple lines with **bold** and *italic* for emphasis.
relationships:
  - from_abstraction: 0 # AbstractionName1
    to_abstraction: 1 # AbstractionName2
    label: "Manages"{field_hint}
  - from_abstraction: 2 # AbstractionName3
    to_abstraction: 0 # AbstractionName1
    label: "Provides config"{field_hint}
  # ... other relationships
```

Now, provide the YAML output:"""
)


# =============================================================================
# Order Chapters Template
# =============================================================================

ORDER_CHAPTERS_TEMPLATE = PromptTemplate(
    """Given the following project abstractions and their relationships for the project `{project_name}`:

Abstractions (Index # Name){listing_note}:
{abstraction_listing}

Context about relationships and project summary:
{context}

If you are going to make a tutorial for `{project_name}`, what is the best order to explain these abstractions, from first to last?
Ideally, first explain those that are the most important or foundational, perhaps user-facing concepts or entry points. Then move to more detailed, lower-level implementation details or supporting concepts.

Output the ordered list of abstraction indices, including the name in a comment for clarity. Use the format `idx # AbstractionName`. Every index must appear exactly once.

```yaml
- 2 # FoundationalConcept
- 0 # CoreClassA
- 1 # CoreClassB (uses CoreClassA)
- ...
```

Now, provide the YAML output:"""
)


# =============================================================================
# Write Chapter Template
# =============================================================================

WRITE_CHAPTER_TEMPLATE = PromptTemplate(
    """{language_instruction}Write a very beginner-friendly tutorial chapter (in Markdown format) for the project `{project_name}` about the concept: "{abstraction_name}". This is Chapter {chapter_number}.

Concept Details{details_note}:
- Name: {abstraction_name}
- Description:
{abstraction_description}

Complete Tutorial Structure{structure_note}:
{chapter_listing}

Context from previous chapters{previous_note}:
{previous_chapters}

Relevant Code Snippets (Code itself remains unchanged):
{file_context}

Instructions for the chapter (Generate content in {language} unless specified otherwise):
- Start with a clear heading (e.g., `# Chapter {chapter_number}: {abstraction_name}`). Use the provided concept name.
- {transition_instruction}
- Begin with a high-level motivation explaining what problem this abstraction solves{instruction_hint}. Start with a central use case as a concrete example.
- If the abstraction is complex, break it down into key concepts and explain each one in a beginner-friendly way{instruction_hint}.
- Explain how to use this abstraction to solve the use case{instruction_hint}. Give example inputs and outputs for code snippets.
- Each code block should be BELOW 10 lines! Break longer code into smaller pieces and walk through them one-by-one. Use comments{code_comment_hint} to skip unimportant implementation details.
- Describe the internal implementation{instruction_hint}. Start with a code-light, step-by-step walkthrough. A simple sequenceDiagram with at most 5 participants is recommended{mermaid_hint}.
- Then dive deeper into the code with references to files. Keep examples simple{instruction_hint}.
- IMPORTANT: When you refer to other core abstractions covered in other chapters, ALWAYS use proper Markdown links like [Chapter Title](filename.md). Use the Complete Tutorial Structure above to find the filename and the chapter title{link_hint}.
- Use mermaid diagrams to illustrate complex concepts (```mermaid``` format){mermaid_hint}.
- Heavily use analogies and examples throughout{instruction_hint}.
- {conclusion_instruction}
- Ensure the tone is welcoming and easy for a newcomer to understand{tone_hint}.
- Output *only* the Markdown content for this chapter.

Now, directly provide a super beginner-friendly Markdown output (DON'T need ```markdown``` tags):"""
)


# =============================================================================
# Language Hints
# =============================================================================


def _is_english(language: str) -> bool:
    return language.strip().lower() == DEFAULT_LANGUAGE


def _language_name(language: str) -> str:
    """Capitalize a language name ("spanish" -> "Spanish")."""
    language = language.strip()
    return language[:1].upper() + language[1:]


def _hint(language: str, text: str) -> str:
    """Return " (<text>)" for non-English output languages, empty otherwise."""
    if _is_english(language):
        return ""
    return f" ({text.format(lang=_language_name(language))})"


# =============================================================================
# Prompt Builders
# =============================================================================


def get_identify_abstractions_prompt(
    project_name: str,
    context: str,
    file_listing: str,
    max_abstractions: int,
    language: str = DEFAULT_LANGUAGE,
    min_abstractions: int = 5,
) -> str:
    """Generate a prompt asking for the project's core abstractions.

    Args:
        project_name: Human-facing project name.
        context: Signature-mode repository context.
        file_listing: Lines of "- idx # path" for every file in the context.
        max_abstractions: Upper bound on the number of abstractions.
        language: Output language for names and descriptions.
        min_abstractions: Lower bound mentioned to the model.

    Returns:
        The rendered prompt string.
    """
    language_instruction = ""
    if not _is_english(language):
        lang = _language_name(language)
        language_instruction = (
            f"IMPORTANT: Generate the `name` and `description` for each abstraction in "
            f"**{lang}** language. Do NOT use English for these fields.\n\n"
        )
    value_hint = _hint(language, "value in {lang}")
    return IDENTIFY_ABSTRACTIONS_TEMPLATE.render(
        project_name=project_name,
        context=context,
        file_listing=file_listing,
        min_abstractions=min(min_abstractions, max_abstractions),
        max_abstractions=max_abstractions,
        language_instruction=language_instruction,
        name_hint=value_hint,
        description_hint=value_hint,
    )


def get_analyze_relationships_prompt(
    project_name: str,
    context: str,
    abstraction_listing: str,
    language: str = DEFAULT_LANGUAGE,
) -> str:
    """Generate a prompt asking for a project summary and relationships.

    Args:
        project_name: Human-facing project name.
        context: Abstractions with descriptions followed by file snippets.
        abstraction_listing: Lines of "idx # name".
        language: Output language for the summary and labels.

    Returns:
        The rendered prompt string.
    """
    language_instruction = ""
    if not _is_english(language):
        lang = _language_name(language)
        language_instruction = (
            f"IMPORTANT: Generate the `summary` and relationship `label` fields in "
            f"**{lang}** language. Do NOT use English for these fields.\n\n"
        )
    return ANALYZE_RELATIONSHIPS_TEMPLATE.render(
        project_name=project_name,
        context=context,
        abstraction_listing=abstraction_listing,
        language_instruction=language_instruction,
        field_hint=_hint(language, "in {lang}"),
        listing_note=_hint(language, "Names might be in {lang}"),
    )


def get_order_chapters_prompt(
    project_name: str,
    abstraction_listing: str,
    context: str,
    language: str = DEFAULT_LANGUAGE,
) -> str:
    """Generate a prompt asking for the teaching order of the abstractions."""
    return ORDER_CHAPTERS_TEMPLATE.render(
        project_name=project_name,
        abstraction_listing=abstraction_listing,
        context=context,
        listing_note=_hint(language, "Names might be in {lang}"),
    )


def get_write_chapter_prompt(
    project_name: str,
    chapter_number: int,
    abstraction_name: str,
    abstraction_description: str,
    chapter_listing: str,
    previous_chapters: str,
    file_context: str,
    language: str = DEFAULT_LANGUAGE,
    previous_link: str = "",
    next_link: str = "",
) -> str:
    """Generate a prompt for writing one chapter.

    Args:
        project_name: Human-facing project name.
        chapter_number: 1-based chapter number.
        abstraction_name: Name of the abstraction the chapter covers.
        abstraction_description: Its description.
        chapter_listing: Full table of contents as "N. [Name](file.md)" lines.
        previous_chapters: Digest of every chapter written so far.
        file_context: Full-mode snippets for the abstraction's files.
        language: Output language.
        previous_link: Markdown link to the previous chapter, if any.
        next_link: Markdown link to the next chapter, if any.

    Returns:
        The rendered prompt string.
    """
    language_instruction = ""
    if not _is_english(language):
        lang = _language_name(language)
        language_instruction = (
            f"IMPORTANT: Write this ENTIRE tutorial chapter in **{lang}**. Some input context "
            f"might already be in {lang}, but you MUST translate ALL other generated content "
            f"into {lang}. DO NOT use English anywhere except in code syntax, required proper "
            f"nouns, or when specified. The entire output MUST be in {lang}.\n\n"
        )

    link_hint = _hint(language, "Use the {lang} chapter title from the structure above")
    if previous_link:
        transition = (
            f"Begin with a brief transition from the previous chapter {previous_link}"
            f"{_hint(language, 'in {lang}')}, referencing it with a proper Markdown link{link_hint}."
        )
    else:
        transition = "This is the first chapter, so introduce the project before the concept."
    if next_link:
        conclusion = (
            f"End the chapter with a brief conclusion that summarizes what was learned and "
            f"transitions to the next chapter {next_link}{link_hint}."
        )
    else:
        conclusion = (
            "End the chapter with a brief conclusion that summarizes what was learned. "
            "This is the final chapter."
        )

    return WRITE_CHAPTER_TEMPLATE.render(
        project_name=project_name,
        chapter_number=chapter_number,
        abstraction_name=abstraction_name,
        abstraction_description=abstraction_description,
        chapter_listing=chapter_listing,
        previous_chapters=previous_chapters or "This is the first chapter.",
        file_context=file_context or "No specific code snippets provided for this abstraction.",
        language=_language_name(language),
        language_instruction=language_instruction,
        details_note=_hint(language, "Note: Provided in {lang}"),
        structure_note=_hint(language, "Note: Chapter names might be in {lang}"),
        previous_note=_hint(language, "Note: This summary might be in {lang}"),
        instruction_hint=_hint(language, "in {lang}"),
        code_comment_hint=_hint(
            language, "Translate to {lang} if possible, otherwise keep minimal English"
        ),
        mermaid_hint=_hint(language, "Use {lang} for labels/text if appropriate"),
        link_hint=link_hint,
        tone_hint=_hint(language, "appropriate for {lang} readers"),
        transition_instruction=transition,
        conclusion_instruction=conclusion,
    )
