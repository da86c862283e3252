"""File filtering tests."""

from hypothesis import given, settings
from hypothesis import strategies as st

from repodoc.constants.files import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from repodoc.repo.file_filter import FileFilter, FilterDecision, matches_any, matches_pattern


def test_double_star_prefix_matches_root_files():
    """**/*.py matches files with and without leading directories."""
    assert matches_pattern("setup.py", "**/*.py")
    assert matches_pattern("src/pkg/app.py", "**/*.py")
    assert not matches_pattern("src/app.js", "**/*.py")


def test_directory_glob_matches_nested_paths():
    assert matches_pattern("tests/test_app.py", "**/tests/**")
    assert matches_pattern("src/tests/unit/test_app.py", "**/tests/**")
    assert not matches_pattern("src/testsuite.py", "**/tests/**")


def test_trailing_slash_matches_directory_component():
    assert matches_pattern("node_modules/pkg/index.js", "node_modules/")
    assert matches_pattern("web/node_modules/pkg/index.js", "node_modules/")
    # The final component is a file, not a directory
    assert not matches_pattern("docs/node_modules", "node_modules/")


def test_bare_pattern_matches_any_component():
    assert matches_pattern("src/cache.pyc", "*.pyc")
    assert matches_pattern("Dockerfile", "Dockerfile")


def test_leading_slash_is_ignored():
    assert matches_pattern("/src/app.py", "src/*.py")


def test_matches_any():
    assert matches_any("README.md", ["**/*.py", "**/*.md"])
    assert not matches_any("README.md", [])


def test_exclusion_wins_over_inclusion():
    """A path matching both lists is excluded."""
    file_filter = FileFilter(["**/*.py"], ["**/tests/**"])

    assert file_filter.check("tests/test_app.py") is FilterDecision.EXCLUDED
    assert file_filter.check("src/app.py") is FilterDecision.INCLUDED


def test_empty_include_list_admits_everything_not_excluded():
    file_filter = FileFilter([], ["**/*.png"])

    assert file_filter.check("anything/at/all.xyz") is FilterDecision.INCLUDED
    assert file_filter.check("logo.png") is FilterDecision.EXCLUDED


def test_unmatched_include_is_excluded():
    file_filter = FileFilter(["**/*.py"], [])

    assert file_filter.check("src/app.rb") is FilterDecision.EXCLUDED


def test_size_ceiling():
    file_filter = FileFilter(["**/*.py"], [], max_file_size=100)

    assert file_filter.check("a.py", 100) is FilterDecision.INCLUDED
    assert file_filter.check("a.py", 101) is FilterDecision.TOO_LARGE
    assert file_filter.check("a.py", None) is FilterDecision.INCLUDED


def test_defaults_skip_dependencies_and_media():
    file_filter = FileFilter(DEFAULT_INCLUDE_PATTERNS, DEFAULT_EXCLUDE_PATTERNS)

    assert file_filter.check("src/app.py") is FilterDecision.INCLUDED
    assert file_filter.check("README.md") is FilterDecision.INCLUDED
    assert file_filter.check("node_modules/left-pad/index.js") is FilterDecision.EXCLUDED
    assert file_filter.check("assets/logo.png") is FilterDecision.EXCLUDED
    assert file_filter.check("package-lock.json") is FilterDecision.EXCLUDED


@given(
    st.lists(
        st.text(alphabet="abcdefghij_", min_size=1, max_size=8),
        min_size=1,
        max_size=4,
    )
)
@settings(max_examples=50)
def test_excluded_directory_excludes_every_descendant(parts):
    """Any file below an excluded directory is excluded, however deep."""
    file_filter = FileFilter([], ["**/vendor/**"])
    path = "/".join(["vendor", *parts])

    assert file_filter.check(path) is FilterDecision.EXCLUDED
