"""Tests for table include/exclude filtering."""

import pytest

from db_replicator.replication.filters import (
    filter_tables,
    matches_pattern,
    should_replicate_table,
)


class TestMatchesPattern:
    """Verify wildcard and exact matching."""

    @pytest.mark.parametrize(
        ("name", "pattern", "expected"),
        [
            ("users", "*", True),
            ("users", "USERS", True),
            ("users", "user", False),
            ("orders_2024", "orders_*", True),
            ("archived_orders_2024", "orders_*", False),
            ("tmp_import_x", "*import*", True),
            ("a.b", "a.*", True),
            ("axb", "a.b", False),
        ],
    )
    def test_matches(self, name: str, pattern: str, expected: bool) -> None:
        """Wildcards match whole names; other characters are literal."""
        assert matches_pattern(name, pattern) is expected


class TestShouldReplicateTable:
    """Verify include/exclude precedence."""

    def test_empty_include_means_all(self) -> None:
        """With no include list every non-excluded table is selected."""
        assert should_replicate_table("users", [], [])

    def test_exclude_wins(self) -> None:
        """A table both included and excluded is skipped."""
        assert not should_replicate_table("users", ["*"], ["users"])

    def test_include_restricts(self) -> None:
        """A non-empty include list selects only matches."""
        assert should_replicate_table("orders", ["orders", "users"], [])
        assert not should_replicate_table("audit", ["orders", "users"], [])

    def test_filter_tables_keeps_order(self) -> None:
        """filter_tables preserves input order."""
        names = ["audit_log", "orders", "users", "audit_trail"]
        assert filter_tables(names, [], ["audit_*"]) == ["orders", "users"]

    def test_include_prefix_with_exact_exclude(self) -> None:
        """A prefix include keeps its matches minus the excluded name."""
        names = ["user_1", "user_secret", "orders"]
        assert filter_tables(names, ["user_*"], ["user_secret"]) == ["user_1"]
