"""
dbmunger/type_families.py
-------------------------
Column type classification for update-safety checks.

Every column definition falls into one comparable family:
    NUMERIC  – integer, fixed-point and floating-point types.
    DATETIME – date, datetime, timestamp, time, year.
    STRING   – char/varchar, binary/varbinary, blob/text variants, enum, set.
    OTHER    – anything else (json, bit, geometry, …).

Design Decision:
    Pure functions over frozenset data, so the classification table encodes
    domain knowledge as data rather than a nested if/else tree.
"""
from __future__ import annotations

from enum import Enum


class TypeFamily(str, Enum):
    NUMERIC = "numeric"
    DATETIME = "datetime"
    STRING = "string"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Type category sets
# ---------------------------------------------------------------------------
_INTEGER_TYPES = frozenset(
    {"tinyint", "smallint", "mediumint", "int", "integer", "bigint"}
)
_APPROX_NUMERIC = frozenset({"float", "double", "real"})
_EXACT_NUMERIC = frozenset({"decimal", "numeric", "fixed"})
_NUMERIC_TYPES = _INTEGER_TYPES | _APPROX_NUMERIC | _EXACT_NUMERIC
_DATETIME_TYPES = frozenset({"date", "datetime", "timestamp", "time", "year"})
_TEXT_TYPES = frozenset({"char", "varchar", "tinytext", "text", "mediumtext", "longtext"})
_STRING_TYPES = _TEXT_TYPES | frozenset(
    {"binary", "varbinary", "tinyblob", "blob", "mediumblob", "longblob", "enum", "set"}
)

_FAMILY_MAP = (
    (TypeFamily.NUMERIC, _NUMERIC_TYPES),
    (TypeFamily.DATETIME, _DATETIME_TYPES),
    (TypeFamily.STRING, _STRING_TYPES),
)


def get_base_type(definition: str) -> str:
    """
    Extract the base SQL type keyword from a column definition string.

    Examples::

        get_base_type("varchar(255) NOT NULL")  →  "varchar"
        get_base_type("int(10) unsigned")       →  "int"
        get_base_type("")                       →  ""
    """
    if not definition or not definition.strip():
        return ""
    return definition.split("(")[0].split()[0].lower()


def type_family(definition: str) -> TypeFamily:
    """Classify a column definition into its :class:`TypeFamily`."""
    base = get_base_type(definition)
    for family, types in _FAMILY_MAP:
        if base in types:
            return family
    return TypeFamily.OTHER


def families_compatible(current: str, desired: str) -> bool:
    """
    Return True when *current* may be modified into *desired*.

    Only a desired type inside one of the three comparable families is
    checked; a move into OTHER is left to the database to accept or refuse.
    """
    desired_family = type_family(desired)
    if desired_family is TypeFamily.OTHER:
        return True
    return type_family(current) is desired_family


def is_integer_type(definition: str) -> bool:
    return get_base_type(definition) in _INTEGER_TYPES


def is_text_type(definition: str) -> bool:
    return get_base_type(definition) in _TEXT_TYPES


def is_timestamp_type(definition: str) -> bool:
    return get_base_type(definition) in ("timestamp", "datetime")
