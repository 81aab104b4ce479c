"""
tests/test_filters.py
---------------------
Unit tests for dbmunger/filters.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from dbmunger.filters import TableFilter, compile_pattern


class TestCompilePattern:
    @pytest.mark.parametrize("pattern, name, expected", [
        ("U%", "User", True),
        ("U%", "Utility", True),
        ("U%", "Service", False),
        ("User", "User", True),
        ("User", "UserArchive", False),
        ("User", "SuperUser", False),
        ("%Archive", "UserArchive", True),
        ("%Archive", "ArchiveUser", False),
        ("a%b%c", "axxbyyc", True),
    ])
    def test_matching(self, pattern: str, name: str, expected: bool) -> None:
        assert bool(compile_pattern(pattern).match(name)) is expected

    def test_regex_characters_are_literal(self) -> None:
        assert not compile_pattern("a.b").match("axb")
        assert compile_pattern("a.b").match("a.b")
        assert compile_pattern("t_(1)%").match("t_(1)_old")


class TestTableFilter:
    def test_empty_filter_keeps_everything(self) -> None:
        flt = TableFilter()
        assert flt.matches("anything")
        assert not flt.explicit

    def test_include(self) -> None:
        flt = TableFilter(include=["U%"])
        assert flt.apply(["User", "Service", "Utility"]) == ["User", "Utility"]
        assert flt.explicit

    def test_exclude(self) -> None:
        flt = TableFilter(exclude=["%Archive"])
        assert flt.ignores("UserArchive")
        assert flt.matches("User")

    def test_exclude_wins_over_include(self) -> None:
        flt = TableFilter(include=["User%"], exclude=["UserArchive"])
        assert flt.apply(["User", "UserArchive", "UserLog"]) == ["User", "UserLog"]
