"""
dbmunger/differ.py
------------------
Compares two table descriptors and emits the DDL actions that turn the
current table into the desired one.

Design Decisions:
    * Pure functions: descriptors in, :class:`Action` list out.  Nothing is
      queued or executed here, and no descriptor is mutated.
    * All fatal checks (primary key, engine) run before any action is
      built, so a failing diff never yields a partial action list.
    * Columns are additive-only unless ``drop_columns`` is set; foreign-key
      constraints are always reconciled, stale ones included.
    * Keys are never altered in place: a changed key is dropped and re-added.
"""
from __future__ import annotations

from dbmunger.errors import (
    EngineMismatchError,
    PrimaryKeyMismatchError,
    TypeFamilyMismatchError,
)
from dbmunger.schema_parser import constraint_sql, create_table_sql
from dbmunger.type_families import families_compatible, type_family
from logger import get_logger
from models.action import Action, ActionKind
from models.schema import TableDescriptor

log = get_logger(__name__)


def _pk_clause(columns: tuple[str, ...]) -> str:
    return "(`" + "`,`".join(columns) + "`)"


def check_primary_key(current: TableDescriptor, desired: TableDescriptor) -> None:
    if current.primary_key != desired.primary_key:
        raise PrimaryKeyMismatchError(
            f"Table `{current.name}` primary key is {_pk_clause(current.primary_key)}, "
            f"not {_pk_clause(desired.primary_key)}; primary key changes are not migrated."
        )


def check_engine(current: TableDescriptor, desired: TableDescriptor) -> None:
    if current.engine != desired.engine:
        raise EngineMismatchError(
            f"Table `{current.name}` engine mismatch {current.engine} vs. {desired.engine}"
        )


def check_column_family(table: str, column: str, current_def: str, desired_def: str) -> None:
    """
    Raise :class:`TypeFamilyMismatchError` if *column* would change type family.
    """
    if not families_compatible(current_def, desired_def):
        raise TypeFamilyMismatchError(
            f"Table {table} column {column} is not a {type_family(desired_def).value} type "
            f"(current: {current_def!r}, desired: {desired_def!r})."
        )


def diff_table(
    current: TableDescriptor,
    desired: TableDescriptor,
    drop_columns: bool = False,
) -> list[Action]:
    """
    Compute the actions that reconcile *current* with *desired*.

    Args:
        current:      Descriptor of the live table.
        desired:      Descriptor of the table as stored in files.
        drop_columns: Drop live columns that are absent from *desired*.

    Returns:
        Actions in discovery order; the queue puts them in drain order.

    Raises:
        PrimaryKeyMismatchError: Primary-key column sequences differ.
        EngineMismatchError:     Storage engines differ.
        TypeFamilyMismatchError: A modified column changes type family.
    """
    check_primary_key(current, desired)
    check_engine(current, desired)

    name = current.name
    actions: list[Action] = []

    # --- Columns ---
    for i, col in enumerate(desired.columns):
        new_def = desired.column_definition[col]
        old_def = current.column_definition.get(col)
        if old_def is None:
            position = "FIRST" if i == 0 else f"AFTER `{desired.columns[i - 1]}`"
            actions.append(Action(
                ActionKind.ADD_COLUMN,
                f"Add column {col} to {name}.",
                f"ALTER TABLE `{name}` ADD COLUMN `{col}` {new_def} {position}",
            ))
        elif old_def != new_def:
            check_column_family(name, col, old_def, new_def)
            actions.append(Action(
                ActionKind.MODIFY_COLUMN,
                f"Modify column {col} in {name}.",
                f"ALTER TABLE `{name}` MODIFY COLUMN `{col}` {new_def}",
            ))

    if drop_columns:
        for col in current.columns:
            if col in desired.column_definition:
                continue
            actions.append(Action(
                ActionKind.DROP_COLUMN,
                f"Drop column {col} from {name}.",
                f"ALTER TABLE `{name}` DROP COLUMN `{col}`",
            ))

    # --- Keys ---
    for key in desired.keys:
        new_def = desired.key_definition[key]
        old_def = current.key_definition.get(key)
        if old_def == new_def:
            continue
        if old_def is not None:
            actions.append(Action(
                ActionKind.DROP_KEY,
                f"Drop key {key} on {name}.",
                f"ALTER TABLE `{name}` DROP KEY `{key}`",
            ))
        actions.append(Action(
            ActionKind.ADD_KEY,
            f"Add key {key} on {name}.",
            f"ALTER TABLE `{name}` ADD {new_def}",
        ))

    # --- Constraints (reconciled regardless of drop_columns) ---
    for constraint in desired.constraints:
        old = current.constraint_definition.get(constraint)
        new = desired.constraint_definition[constraint]
        if old == new:
            continue
        if old is not None:
            actions.append(drop_constraint_action(name, constraint))
        actions.append(add_constraint_action(desired, constraint))

    for constraint in current.constraints:
        if constraint not in desired.constraint_definition:
            actions.append(drop_constraint_action(name, constraint))

    log.debug("Table `%s`: %d action(s) required.", name, len(actions))
    return actions


def diff_new_table(desired: TableDescriptor) -> list[Action]:
    """
    Actions that create *desired* from nothing.

    Constraints are deferred to separate ``add_constraint`` actions so a table
    can be created before the tables its foreign keys reference.
    """
    actions = [Action(
        ActionKind.CREATE_TABLE,
        f"Create table {desired.name}.",
        create_table_sql(desired, sort_keys=True, include_constraints=False),
    )]
    actions.extend(add_constraint_action(desired, c) for c in desired.constraints)
    return actions


def add_constraint_action(table: TableDescriptor, constraint: str) -> Action:
    return Action(
        ActionKind.ADD_CONSTRAINT,
        f"Add constraint {constraint} on {table.name}.",
        f"ALTER TABLE `{table.name}` ADD "
        + constraint_sql(table.constraint_definition[constraint]),
    )


def drop_constraint_action(table_name: str, constraint: str) -> Action:
    return Action(
        ActionKind.DROP_CONSTRAINT,
        f"Drop constraint {constraint} on {table_name}.",
        f"ALTER TABLE `{table_name}` DROP FOREIGN KEY `{constraint}`",
    )


def drop_table_action(name: str) -> Action:
    return Action(ActionKind.DROP_TABLE, f"Drop table {name}.", f"DROP TABLE `{name}`")
