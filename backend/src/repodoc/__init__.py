"""repodoc: architecture documentation generated from GitHub repositories."""

__version__ = "0.1.0"
