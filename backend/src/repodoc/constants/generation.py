"""Documentation pipeline settings.

These values shape the prompts and the context handed to the LLM at each
pipeline stage.
"""

# =============================================================================
# Context Budget
# =============================================================================
# Only part of the model's context window is filled with repository content.
# The rest is left for prompt instructions and the model's answer.
# Characters are converted to tokens with a conservative ratio for code.

CONTEXT_USAGE_RATIO = 0.70
CHARS_PER_TOKEN = 3.5
DEFAULT_CONTEXT_WINDOW = 128_000

# Per-file line allowance when full content is included. Oversized files
# keep a head and a tail with a marker line in between.
MAX_LINES_PER_FILE = 150
TRUNCATION_HEAD_RATIO = 0.8

# Files whose paths match earlier patterns are placed first in the context
# so entry points survive the budget cut.
PRIORITY_PATH_PATTERNS = [
    r"(^|/)page\.(tsx?|jsx?)$",
    r"(^|/)index\.(tsx?|jsx?|py)$",
    r"(^|/)main\.(tsx?|jsx?|py|go|rs)$",
    r"(^|/)app\.(tsx?|jsx?|py)$",
    r"(^|/)route\.(tsx?|jsx?)$",
    r"(^|/)layout\.(tsx?|jsx?)$",
    r"(^|/)(api|lib|utils|components)/",
]

# =============================================================================
# Abstractions and Chapters
# =============================================================================

DEFAULT_MAX_ABSTRACTIONS = 8
MIN_ABSTRACTIONS = 3
DEFAULT_LANGUAGE = "english"

CHAPTER_MAX_TOKENS = 4000
ANALYSIS_MAX_TOKENS = 4096
MAX_CHAPTER_SLUG_LENGTH = 50
MAX_EDGE_LABEL_LENGTH = 30

TUTORIAL_TRAILER = "Generated by repodoc"

# =============================================================================
# Progress Checkpoints
# =============================================================================
# Percentages reported to the progress callback. Chapter writing spans
# CHAPTERS_START..CHAPTERS_START + CHAPTERS_SPAN.

PROGRESS_FETCH = 5
PROGRESS_IDENTIFY = 15
PROGRESS_RELATIONSHIPS = 22
PROGRESS_ORDERING = 28
PROGRESS_CHAPTERS_START = 30
PROGRESS_CHAPTERS_SPAN = 60
PROGRESS_COMBINING = 92
PROGRESS_COMPLETE = 100
