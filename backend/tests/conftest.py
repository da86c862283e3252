"""Shared pytest fixtures for all tests."""

from typing import Callable, Optional
from unittest.mock import AsyncMock

import pytest

from repodoc.config import Config, load_settings
from repodoc.generation.models import FileEntry

ABSTRACTIONS_YAML = """```yaml
- name: |
    Request Router
  description: |
    Sends each request to the right handler.
  file_indices:
    - 1 # src/main.py
    - 2 # src/router.py
- name: |
    Storage Layer
  description: |
    Keeps records on disk.
  file_indices:
    - 3 # src/storage.py
- name: |
    Config Loader
  description: |
    Reads settings from the environment.
  file_indices:
    - 0 # src/config.py
```"""

RELATIONSHIPS_YAML = """```yaml
summary: |
  A tiny **web service** that stores records.
relationships:
  - from_abstraction: 0 # Request Router
    to_abstraction: 1 # Storage Layer
    label: "Saves records"
  - from_abstraction: 1 # Storage Layer
    to_abstraction: 2 # Config Loader
    label: "Reads paths"
```"""

ORDER_YAML = """```yaml
- 0 # Request Router
- 1 # Storage Layer
- 2 # Config Loader
```"""


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the load_settings cache around each test."""
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def sample_files() -> list[FileEntry]:
    """A small repository, sorted by path as the fetch stage produces it."""
    return [
        FileEntry("src/config.py", "import os\n\n\ndef load():\n    return os.environ\n"),
        FileEntry("src/main.py", "from src.router import route\n\n\ndef main():\n    route()\n"),
        FileEntry("src/router.py", "def route(request=None):\n    return request\n"),
        FileEntry("src/storage.py", "class Storage:\n    def save(self, record):\n        pass\n"),
    ]


def respond_by_stage(
    abstractions: str = ABSTRACTIONS_YAML,
    relationships: str = RELATIONSHIPS_YAML,
    order: str = ORDER_YAML,
    chapter: Optional[Callable[[str], str]] = None,
) -> Callable[..., str]:
    """Build an LLM side effect that answers according to the prompt's stage."""

    def answer(prompt: str, system_prompt=None, temperature=None, max_tokens=None) -> str:
        if "Identify the top" in prompt:
            return abstractions
        if "A list (`relationships`)" in prompt:
            return relationships
        if "what is the best order" in prompt:
            return order
        if chapter is not None:
            return chapter(prompt)
        name = prompt.split('about the concept: "', 1)[1].split('"', 1)[0]
        return f"This chapter explains {name}."

    return answer


@pytest.fixture
def scripted_llm():
    """LLM client mock answering every stage with valid output."""
    llm = AsyncMock()
    llm.generate.side_effect = respond_by_stage()
    return llm


@pytest.fixture
def settings(tmp_path) -> Config:
    """Settings with defaults, rooted in a temporary data directory."""
    return Config(
        data_dir=tmp_path / "data",
        active_provider="openai",
        active_model="gpt-4o-mini",
        openai_api_key="sk-test",
    )
