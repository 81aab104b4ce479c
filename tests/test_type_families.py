"""
tests/test_type_families.py
---------------------------
Unit tests for dbmunger/type_families.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import pytest

from dbmunger.type_families import (
    TypeFamily,
    families_compatible,
    get_base_type,
    is_integer_type,
    is_text_type,
    is_timestamp_type,
    type_family,
)


class TestGetBaseType:
    @pytest.mark.parametrize("definition, expected", [
        ("varchar(255) NOT NULL", "varchar"),
        ("int(10) unsigned", "int"),
        ("INT", "int"),
        ("enum('a','b') NOT NULL", "enum"),
        ("", ""),
        ("   ", ""),
    ])
    def test_base_type(self, definition: str, expected: str) -> None:
        assert get_base_type(definition) == expected


class TestTypeFamily:
    @pytest.mark.parametrize("definition", [
        "tinyint(1)", "int(11) NOT NULL", "bigint(20) unsigned",
        "decimal(10,2)", "float", "double",
    ])
    def test_numeric(self, definition: str) -> None:
        assert type_family(definition) is TypeFamily.NUMERIC

    @pytest.mark.parametrize("definition", [
        "date", "datetime", "timestamp NOT NULL", "time", "year(4)",
    ])
    def test_datetime(self, definition: str) -> None:
        assert type_family(definition) is TypeFamily.DATETIME

    @pytest.mark.parametrize("definition", [
        "char(2)", "varchar(64)", "text", "longtext", "blob",
        "varbinary(16)", "enum('insert','update','delete')", "set('a')",
    ])
    def test_string(self, definition: str) -> None:
        assert type_family(definition) is TypeFamily.STRING

    @pytest.mark.parametrize("definition", ["json", "bit(1)", "geometry"])
    def test_other(self, definition: str) -> None:
        assert type_family(definition) is TypeFamily.OTHER


class TestFamiliesCompatible:
    # --- Same family ---
    def test_int_widening(self) -> None:
        assert families_compatible("int(11)", "bigint(20)")

    def test_varchar_to_text(self) -> None:
        assert families_compatible("varchar(64)", "text")

    def test_date_to_datetime(self) -> None:
        assert families_compatible("date", "datetime")

    # --- Cross family ---
    def test_varchar_to_int(self) -> None:
        assert not families_compatible("varchar(64)", "int(11)")

    def test_int_to_timestamp(self) -> None:
        assert not families_compatible("int(11)", "timestamp")

    def test_into_other_family_not_checked(self) -> None:
        assert families_compatible("varchar(64)", "json")

    def test_from_other_family_checked(self) -> None:
        assert not families_compatible("json", "varchar(64)")


class TestPredicates:
    @pytest.mark.parametrize("definition, expected", [
        ("int(11) NOT NULL", True),
        ("bigint(20)", True),
        ("decimal(10,0)", False),
        ("varchar(10)", False),
    ])
    def test_is_integer_type(self, definition: str, expected: bool) -> None:
        assert is_integer_type(definition) is expected

    @pytest.mark.parametrize("definition, expected", [
        ("varchar(256) NOT NULL", True),
        ("char(8)", True),
        ("text", True),
        ("blob", False),
        ("int(11)", False),
    ])
    def test_is_text_type(self, definition: str, expected: bool) -> None:
        assert is_text_type(definition) is expected

    @pytest.mark.parametrize("definition, expected", [
        ("timestamp NOT NULL DEFAULT CURRENT_TIMESTAMP", True),
        ("datetime", True),
        ("date", False),
        ("int(11)", False),
    ])
    def test_is_timestamp_type(self, definition: str, expected: bool) -> None:
        assert is_timestamp_type(definition) is expected
