"""API dependency tests."""

import pytest

from repodoc.api.deps import (
    _reset_service_instance,
    get_cache_manager,
    get_service,
    get_settings,
)
from repodoc.config import Config
from repodoc.service import DocumentationService


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point REPODOC_DATA_DIR at a temporary directory."""
    monkeypatch.setenv("REPODOC_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("REPODOC_CACHE_BACKEND", "memory")
    _reset_service_instance()
    yield tmp_path
    _reset_service_instance()


def test_get_settings_returns_settings(data_dir):
    """get_settings returns the loaded Config."""
    settings = get_settings()

    assert isinstance(settings, Config)
    assert settings.data_dir == data_dir


def test_get_service_is_shared():
    """Every request sees the same service, and so the same repository locks."""
    service = get_service()

    assert isinstance(service, DocumentationService)
    assert get_service() is service
    assert get_cache_manager() is service.cache


def test_service_writes_to_configured_output(data_dir):
    assert get_service().output_dir == data_dir / "docs"


def test_reset_creates_new_service():
    first = get_service()

    _reset_service_instance()

    assert get_service() is not first
