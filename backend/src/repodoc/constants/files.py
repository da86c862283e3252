"""File selection configuration for repository crawling.

These patterns decide which files of a crawled repository are downloaded
and shown to the LLM. Callers may pass their own include/exclude lists;
the defaults below are used when they don't.
"""

# =============================================================================
# Size Limits
# =============================================================================
# Blobs larger than this are counted as skipped and never downloaded. Large
# files are usually generated data or bundles and would crowd out source
# code in the context window.

MAX_FILE_SIZE_KB = 500
DEFAULT_MAX_FILE_SIZE = MAX_FILE_SIZE_KB * 1024

# =============================================================================
# Default Include Patterns
# =============================================================================
# Grouped by category so UIs can offer them as toggles. A file must match at
# least one include pattern when any are given.

INCLUDE_PATTERN_CATEGORIES: dict[str, list[str]] = {
    "Web Development": [
        "**/*.html",
        "**/*.css",
        "**/*.scss",
        "**/*.sass",
        "**/*.less",
        "**/*.js",
        "**/*.jsx",
        "**/*.ts",
        "**/*.tsx",
    ],
    "Backend": [
        "**/*.py",
        "**/*.java",
        "**/*.go",
        "**/*.rb",
        "**/*.php",
        "**/*.c",
        "**/*.cpp",
        "**/*.cs",
        "**/*.rs",
    ],
    "Data & Configuration": [
        "**/*.json",
        "**/*.yaml",
        "**/*.yml",
        "**/*.xml",
        "**/*.toml",
        "**/*.ini",
        "**/*.env.example",
    ],
    "Documentation": ["**/*.md", "**/*.mdx", "**/*.markdown", "**/*.txt", "**/*.rst", "**/*.adoc"],
    "Mobile Development": ["**/*.swift", "**/*.kt", "**/*.m", "**/*.mm", "**/*.dart"],
    "Infrastructure": [
        "**/*.tf",
        "**/*.hcl",
        "**/Dockerfile",
        "**/docker-compose.yml",
        "**/docker-compose.yaml",
    ],
    "Database": ["**/*.sql", "**/*.prisma", "**/*.graphql", "**/*.gql"],
    "Shell Scripts": ["**/*.sh", "**/*.bash", "**/*.zsh", "**/*.bat", "**/*.cmd", "**/*.ps1"],
    "Machine Learning": ["**/*.ipynb"],
    "Smart Contracts": ["**/*.sol", "**/*.vy"],
    "System Programming": ["**/*.cu", "**/*.cuh", "**/*.asm", "**/*.s"],
    "Web Assembly": ["**/*.wat"],
    "Serialization & RPC": ["**/*.proto", "**/*.avro", "**/*.thrift"],
}

# =============================================================================
# Default Exclude Patterns
# =============================================================================
# Exclusions win over inclusions. Tests, vendored dependencies, build output
# and binary assets say little about a project's architecture.

EXCLUDE_PATTERN_CATEGORIES: dict[str, list[str]] = {
    "Test Files": [
        "**/test/**",
        "**/tests/**",
        "**/__tests__/**",
        "**/*.test.*",
        "**/*.spec.*",
        "**/test_*.py",
        "**/*_test.go",
    ],
    "Media": [
        "**/*.png",
        "**/*.jpg",
        "**/*.jpeg",
        "**/*.gif",
        "**/*.svg",
        "**/*.ico",
        "**/*.webp",
        "**/*.mp4",
        "**/*.mp3",
        "**/*.woff",
        "**/*.woff2",
        "**/*.ttf",
        "**/*.eot",
    ],
    "Binaries": ["**/*.exe", "**/*.dll", "**/*.so", "**/*.dylib", "**/*.bin", "**/*.wasm"],
    "Dependencies": ["**/node_modules/**", "**/vendor/**", "**/venv/**", "**/.venv/**"],
    "Lock Files": [
        "**/package-lock.json",
        "**/yarn.lock",
        "**/pnpm-lock.yaml",
        "**/Cargo.lock",
        "**/poetry.lock",
        "**/Gemfile.lock",
        "**/composer.lock",
    ],
    "Minified": ["**/*.min.js", "**/*.min.css", "**/*.bundle.js", "**/*.chunk.js"],
    "Build Output": [
        "**/dist/**",
        "**/build/**",
        "**/out/**",
        "**/target/**",
        "**/.next/**",
        "**/__pycache__/**",
        "**/*.pyc",
    ],
    "Version Control": ["**/.git/**", "**/.github/**", "**/.svn/**"],
    "Coverage": ["**/coverage/**", "**/.nyc_output/**", "**/htmlcov/**"],
    "Logs": ["**/*.log", "**/logs/**"],
    "Source Maps": ["**/*.map"],
    "IDE": ["**/.idea/**", "**/.vscode/**"],
}


def _flatten(categories: dict[str, list[str]]) -> list[str]:
    patterns: list[str] = []
    for category_patterns in categories.values():
        patterns.extend(category_patterns)
    return patterns


DEFAULT_INCLUDE_PATTERNS = _flatten(INCLUDE_PATTERN_CATEGORIES)
DEFAULT_EXCLUDE_PATTERNS = _flatten(EXCLUDE_PATTERN_CATEGORIES)
