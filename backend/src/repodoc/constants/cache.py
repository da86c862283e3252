"""Incremental regeneration cache settings."""

# =============================================================================
# Storage Keys
# =============================================================================

CACHE_PREFIX = "repo_cache_"
REPO_INDEX_KEY = "repo_index"
CACHE_VERSION = "1.0"

# Hex digits of the sha256 of "owner/repo" appended to each cache key.
KEY_DIGEST_LENGTH = 12

# =============================================================================
# Regeneration Thresholds
# =============================================================================
# Percentage of changed files (added + removed + modified over current
# total). Below PARTIAL only affected chapters are rewritten; below
# REIDENTIFY the analysis stages rerun and unchanged chapters are reused;
# anything above regenerates everything.

PARTIAL_THRESHOLD_PERCENT = 30.0
REIDENTIFY_THRESHOLD_PERCENT = 60.0

# Caches older than this are reported as stale.
STALE_AFTER_HOURS = 168
