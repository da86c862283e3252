"""GitHub REST API settings used by the crawler."""

# =============================================================================
# Endpoints and Headers
# =============================================================================

GITHUB_API_BASE = "https://api.github.com"
GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"
GITHUB_USER_AGENT = "repodoc-crawler"
FALLBACK_BRANCH = "main"

# =============================================================================
# Request Batching
# =============================================================================
# Blob downloads run this many at a time. Unbounded fan-out trips GitHub's
# secondary rate limits on larger repositories.

BLOB_BATCH_SIZE = 10
REQUEST_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Rate Limits
# =============================================================================
# Rate-limit headers are logged after the tree request. Below this many
# remaining requests the crawler logs a warning but keeps going.

RATE_LIMIT_WARNING_THRESHOLD = 10
