"""
models/action.py
----------------
Pending DDL actions and the fixed order in which they are applied.

Design Decision:
    The drain order is data (``ACTION_ORDER``), not control flow, so the
    queue simply walks it and tests can assert that every kind is covered.
    Removals that could violate integrity come first; additions go from
    structural (tables, columns) to dependent objects (keys, constraints,
    procedures, triggers).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(str, Enum):
    DROP_CONSTRAINT = "drop_constraint"
    DROP_TRIGGER = "drop_trigger"
    DROP_PROCEDURE = "drop_procedure"
    DROP_KEY = "drop_key"
    DROP_COLUMN = "drop_column"
    DROP_TABLE = "drop_table"
    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    MODIFY_COLUMN = "modify_column"
    ADD_KEY = "add_key"
    ADD_CONSTRAINT = "add_constraint"
    CREATE_PROCEDURE = "create_procedure"
    CREATE_TRIGGER = "create_trigger"


ACTION_ORDER: tuple[ActionKind, ...] = (
    ActionKind.DROP_CONSTRAINT,
    ActionKind.DROP_TRIGGER,
    ActionKind.DROP_PROCEDURE,
    ActionKind.DROP_KEY,
    ActionKind.DROP_COLUMN,
    ActionKind.DROP_TABLE,
    ActionKind.CREATE_TABLE,
    ActionKind.ADD_COLUMN,
    ActionKind.MODIFY_COLUMN,
    ActionKind.ADD_KEY,
    ActionKind.ADD_CONSTRAINT,
    ActionKind.CREATE_PROCEDURE,
    ActionKind.CREATE_TRIGGER,
)


@dataclass(frozen=True)
class Action:
    """One pending statement: what it is, what it says, what it runs."""
    kind: ActionKind
    description: str
    sql: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.description}"
