"""Tests for table-name resolution."""

import pytest

from db_command.errors import DBCommandError
from db_command.tables import is_wildcard, resolve_tables

AVAILABLE = ["wp_posts", "wp_postmeta", "wp_users", "wp_2_posts", "other_log"]


class TestResolveTables:
    """Scope, then patterns, in engine order."""

    def test_prefix_scope(self) -> None:
        assert resolve_tables(AVAILABLE, "wp_") == [
            "wp_posts",
            "wp_postmeta",
            "wp_users",
            "wp_2_posts",
        ]

    def test_all_tables(self) -> None:
        assert resolve_tables(AVAILABLE, "wp_", all_tables=True) == AVAILABLE

    def test_wildcard(self) -> None:
        assert resolve_tables(AVAILABLE, "wp_", ["*_posts"]) == ["wp_posts", "wp_2_posts"]

    def test_exact_names_keep_engine_order(self) -> None:
        assert resolve_tables(AVAILABLE, "wp_", ["wp_users", "wp_posts"]) == ["wp_posts", "wp_users"]

    def test_pattern_outside_scope(self) -> None:
        with pytest.raises(DBCommandError, match="Couldn't find any tables matching: other_log"):
            resolve_tables(AVAILABLE, "wp_", ["other_log"])
        assert resolve_tables(AVAILABLE, "wp_", ["other_log"], all_tables=True) == ["other_log"]

    def test_no_match(self) -> None:
        with pytest.raises(DBCommandError, match="Couldn't find any tables matching: foo bar\\*"):
            resolve_tables(AVAILABLE, "wp_", ["foo", "bar*"])

    def test_question_mark_wildcard(self) -> None:
        assert is_wildcard("wp_?_posts")
        assert not is_wildcard("wp_posts")
        assert resolve_tables(AVAILABLE, "wp_", ["wp_?_posts"]) == ["wp_2_posts"]
