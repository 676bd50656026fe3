"""Unit tests for afssync utility functions."""

import pytest

from afssync.utils import combine_path


class TestCombinePath:
    """Tests for combine_path."""

    @pytest.mark.parametrize(
        "left,right,expected",
        [
            ("", "a.txt", "a.txt"),
            ("docs", "a.txt", "docs/a.txt"),
            ("docs/", "a.txt", "docs/a.txt"),
            ("docs", "/a.txt", "docs/a.txt"),
            ("a/b", "c", "a/b/c"),
        ],
    )
    def test_combine(self, left, right, expected):
        assert combine_path(left, right) == expected

    def test_nested_combination(self):
        path = combine_path(combine_path("", "docs"), "reports")

        assert combine_path(path, "q1.csv") == "docs/reports/q1.csv"
