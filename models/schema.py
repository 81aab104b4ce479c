"""
models/schema.py
----------------
Typed descriptors for a table and its foreign-key constraints.

Design Decision:
    Descriptors are frozen dataclasses built fresh by the parser.  Ordered
    name sequences are tuples (order drives physical layout and
    ``ADD COLUMN ... AFTER`` placement); definitions are plain dicts keyed by
    name.  Nothing downstream mutates a descriptor: the differencer emits
    actions and the archive synthesizer builds a new descriptor.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConstraintDescriptor:
    """
    One ``CONSTRAINT ... FOREIGN KEY`` clause.

    Attributes:
        name:              Constraint name.
        columns:           Local columns, in order.
        reference_table:   Referenced table name.
        reference_columns: Referenced columns, in order.
        cascade_opt:       Opaque trailing clause, e.g. ``ON DELETE CASCADE``.
    """
    name: str
    columns: tuple[str, ...]
    reference_table: str
    reference_columns: tuple[str, ...]
    cascade_opt: str = ""


@dataclass(frozen=True)
class TableDescriptor:
    """
    Structured form of one ``CREATE TABLE`` statement.

    Attributes:
        name:                  Table name.
        engine:                Storage engine, e.g. ``InnoDB``.
        comment:               Unescaped table comment, or None.
        table_options:         Remaining table options, kept opaque.
        columns:               Column names in physical order.
        column_definition:     Column name → definition (``DEFAULT NULL`` stripped).
        keys:                  Key names in declared order.
        key_definition:        Key name → full key clause.
        constraints:           Constraint names in declared order.
        constraint_definition: Constraint name → :class:`ConstraintDescriptor`.
        primary_key:           Primary-key column names in order.
    """
    name: str
    engine: str
    comment: str | None = None
    table_options: str = ""
    columns: tuple[str, ...] = ()
    column_definition: dict[str, str] = field(default_factory=dict)
    keys: tuple[str, ...] = ()
    key_definition: dict[str, str] = field(default_factory=dict)
    constraints: tuple[str, ...] = ()
    constraint_definition: dict[str, ConstraintDescriptor] = field(default_factory=dict)
    primary_key: tuple[str, ...] = ()

    def has_column(self, name: str) -> bool:
        return name in self.column_definition

    def column(self, name: str) -> str | None:
        return self.column_definition.get(name)
