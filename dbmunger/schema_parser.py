"""
dbmunger/schema_parser.py
-------------------------
Parses ``SHOW CREATE TABLE`` output into a :class:`TableDescriptor` and
regenerates canonical ``CREATE TABLE`` text from one.

Input Format (supported)::

    CREATE TABLE `User` (
      `id` int(11) NOT NULL AUTO_INCREMENT,
      `name` varchar(64) DEFAULT NULL,
      `group_id` int(11) NOT NULL,
      PRIMARY KEY (`id`),
      UNIQUE KEY `name` (`name`),
      KEY `group_id` (`group_id`),
      CONSTRAINT `User_ibfk_1` FOREIGN KEY (`group_id`) REFERENCES `Group` (`id`) ON DELETE CASCADE
    ) ENGINE=InnoDB AUTO_INCREMENT=7 DEFAULT CHARSET=utf8 COMMENT='Application user.'

Design Decisions:
    * Only this output grammar is understood; full SQL parsing is out of scope.
    * Parsing is best-effort per line: an unrecognised interior line is
      dropped and reported in ``ParseResult.warnings`` instead of aborting.
    * ``DEFAULT NULL`` is stripped so semantically equal nullable columns
      compare equal, and ``AUTO_INCREMENT=<n>`` is dropped from the options.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from dbmunger.errors import MalformedDescriptorError, UnrecognizedClauseWarning
from logger import get_logger
from models.schema import ConstraintDescriptor, TableDescriptor

log = get_logger(__name__)

_HEADER_RE = re.compile(r"^\s*CREATE TABLE `([^`]+)`")
_FOOTER_RE = re.compile(r"^\s*\)\s*(.*)$")
_ENGINE_RE = re.compile(r"ENGINE=(\S+)\s*")
_AUTO_INCREMENT_RE = re.compile(r"AUTO_INCREMENT=\d+\s*")
_COMMENT_RE = re.compile(r"\s*COMMENT='((?:[^']|'')*)'")

_COLUMN_RE = re.compile(r"^\s*`([^`]+)`\s*(.*)$")
_PRIMARY_KEY_RE = re.compile(r"^\s*PRIMARY KEY \((.*)\)")
_KEY_RE = re.compile(r"^\s*((?:UNIQUE |FULLTEXT |SPATIAL )?KEY `([^`]+)`.*)$")
_CONSTRAINT_RE = re.compile(
    r"^\s*CONSTRAINT\s+`([^`]+)` FOREIGN KEY \((.+?)\) "
    r"REFERENCES `([^`]+)` \((.+?)\)\s*(.*)$"
)
_IDENT_RE = re.compile(r"`([^`]+)`")


@dataclass
class ParseResult:
    """A parsed table plus any clauses that had to be skipped."""
    table: TableDescriptor
    warnings: list[UnrecognizedClauseWarning] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.warnings


def _identifiers(clause: str) -> tuple[str, ...]:
    return tuple(_IDENT_RE.findall(clause))


def _unquote_comment(text: str) -> str:
    return text.replace("''", "'")


def _quote_comment(text: str) -> str:
    return text.replace("'", "''")


def parse_create_table(sql: str) -> ParseResult:
    """
    Parse a ``CREATE TABLE`` statement generated by ``SHOW CREATE TABLE``.

    Args:
        sql: Statement text; leading/trailing blank lines are ignored.

    Returns:
        A :class:`ParseResult` holding the descriptor and parse warnings.

    Raises:
        MalformedDescriptorError: If the first line is not
            ``CREATE TABLE `name` (`` or the last line has no ``ENGINE=``.
    """
    lines = sql.strip("\n").split("\n")
    if len(lines) < 2:
        raise MalformedDescriptorError("Create table SQL does not begin with CREATE TABLE!")

    header = _HEADER_RE.match(lines[0])
    if not header:
        raise MalformedDescriptorError("Create table SQL does not begin with CREATE TABLE!")
    name = header.group(1)

    # ) ENGINE=InnoDB AUTO_INCREMENT=2 DEFAULT CHARSET=utf8 COMMENT='Application User.'
    footer = _FOOTER_RE.match(lines[-1])
    options = footer.group(1) if footer else ""
    engine_match = _ENGINE_RE.search(options)
    if not engine_match:
        raise MalformedDescriptorError(
            f"Table options for `{name}` lack ENGINE specification: {lines[-1]!r}"
        )
    engine = engine_match.group(1)
    options = _ENGINE_RE.sub("", options, count=1)
    options = _AUTO_INCREMENT_RE.sub("", options)

    comment: str | None = None
    comment_match = _COMMENT_RE.search(options)
    if comment_match:
        comment = _unquote_comment(comment_match.group(1)) or None
        options = options[: comment_match.start()] + options[comment_match.end():]

    columns: list[str] = []
    column_definition: dict[str, str] = {}
    keys: list[str] = []
    key_definition: dict[str, str] = {}
    constraints: list[str] = []
    constraint_definition: dict[str, ConstraintDescriptor] = {}
    primary_key: tuple[str, ...] = ()
    warnings: list[UnrecognizedClauseWarning] = []

    for raw in lines[1:-1]:
        line = raw.rstrip()
        if line.endswith(","):
            line = line[:-1]
        line = line.replace(" DEFAULT NULL", "")

        column_match = _COLUMN_RE.match(line)
        if column_match:
            columns.append(column_match.group(1))
            column_definition[column_match.group(1)] = column_match.group(2)
            continue

        pk_match = _PRIMARY_KEY_RE.match(line)
        if pk_match:
            primary_key = _identifiers(pk_match.group(1))
            continue

        key_match = _KEY_RE.match(line)
        if key_match:
            keys.append(key_match.group(2))
            key_definition[key_match.group(2)] = key_match.group(1)
            continue

        fk_match = _CONSTRAINT_RE.match(line)
        if fk_match:
            constraint = ConstraintDescriptor(
                name=fk_match.group(1),
                columns=_identifiers(fk_match.group(2)),
                reference_table=fk_match.group(3),
                reference_columns=_identifiers(fk_match.group(4)),
                cascade_opt=fk_match.group(5).strip(),
            )
            constraints.append(constraint.name)
            constraint_definition[constraint.name] = constraint
            continue

        if line.strip():
            warning = UnrecognizedClauseWarning(name, line.strip())
            log.warning("%s", warning)
            warnings.append(warning)

    table = TableDescriptor(
        name=name,
        engine=engine,
        comment=comment,
        table_options=" ".join(options.split()),
        columns=tuple(columns),
        column_definition=column_definition,
        keys=tuple(keys),
        key_definition=key_definition,
        constraints=tuple(constraints),
        constraint_definition=constraint_definition,
        primary_key=primary_key,
    )
    return ParseResult(table=table, warnings=warnings)


def parse(sql: str) -> TableDescriptor:
    """Parse and return only the descriptor (warnings are still logged)."""
    return parse_create_table(sql).table


def constraint_sql(constraint: ConstraintDescriptor) -> str:
    """Render one ``CONSTRAINT ... FOREIGN KEY ... REFERENCES ...`` clause."""
    sql = (
        f"CONSTRAINT `{constraint.name}` FOREIGN KEY (`"
        + "`,`".join(constraint.columns)
        + f"`) REFERENCES `{constraint.reference_table}` (`"
        + "`,`".join(constraint.reference_columns)
        + "`)"
    )
    if constraint.cascade_opt:
        sql += f" {constraint.cascade_opt}"
    return sql


def create_table_sql(
    table: TableDescriptor,
    sort_keys: bool = False,
    include_constraints: bool = True,
) -> str:
    """
    Generate a ``CREATE TABLE`` statement from a descriptor.

    Emits columns in stored order, then keys, then constraints,
    then the primary key, then the ``ENGINE=... COMMENT='...'`` line.

    Args:
        table:               Descriptor to serialise.
        sort_keys:           Emit keys and constraints sorted by name
                             (stable files on pull).
        include_constraints: False when constraints are added separately.

    Returns:
        Newline-terminated statement text.
    """
    body: list[str] = [
        f"  `{col}` {table.column_definition[col]}" for col in table.columns
    ]

    key_names = sorted(table.keys) if sort_keys else list(table.keys)
    body.extend(f"  {table.key_definition[key]}" for key in key_names)

    if include_constraints:
        constraint_names = sorted(table.constraints) if sort_keys else list(table.constraints)
        body.extend(
            f"  {constraint_sql(table.constraint_definition[name])}"
            for name in constraint_names
        )

    if table.primary_key:
        body.append("  PRIMARY KEY (`" + "`,`".join(table.primary_key) + "`)")

    footer = f") ENGINE={table.engine}"
    if table.table_options:
        footer += f" {table.table_options}"
    if table.comment:
        footer += f" COMMENT='{_quote_comment(table.comment)}'"

    return f"CREATE TABLE `{table.name}` (\n" + ",\n".join(body) + f"\n{footer}\n"


serialize = create_table_sql
