"""Tunable constants.

Re-exports all constants for convenient importing:
    from repodoc.constants import CONTEXT_USAGE_RATIO, BLOB_BATCH_SIZE
"""

from repodoc.constants.files import *  # noqa: F403
from repodoc.constants.github import *  # noqa: F403
from repodoc.constants.generation import *  # noqa: F403
from repodoc.constants.llm import *  # noqa: F403
from repodoc.constants.cache import *  # noqa: F403
