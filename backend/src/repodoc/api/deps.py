"""FastAPI dependency injection functions."""

from repodoc.cache.manager import CacheManager
from repodoc.config import Config, load_settings
from repodoc.service import DocumentationService


def get_settings() -> Config:
    """Get application settings."""
    return load_settings()


_service_instance: DocumentationService | None = None


def get_service() -> DocumentationService:
    """Get the documentation service instance.

    The instance is shared so its per-repository locks cover every request.
    """
    global _service_instance
    if _service_instance is None:
        settings = get_settings()
        _service_instance = DocumentationService(settings, output_dir=settings.output_path)
    return _service_instance


def _reset_service_instance() -> None:
    """Reset service instance (for testing only)."""
    global _service_instance
    _service_instance = None


def get_cache_manager() -> CacheManager:
    """Get the cache manager of the shared service."""
    return get_service().cache
