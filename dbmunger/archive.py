"""
dbmunger/archive.py
-------------------
Derives an archive (history) table and its maintenance trigger fragments
from a source table descriptor.

Every insert, update and delete on the source table appends one row to the
archive table, keyed by the source primary key plus the revision column.

Design Decisions:
    * Before-triggers (label ``20-archive``) assign revision and timestamps;
      after-triggers (label ``40-archive``) capture the audit row.  Label
      order guarantees the values are set before they are read.
    * Archive columns are relaxed copies of the source columns: no
      auto-increment, no timestamp auto-update, and (outside the primary
      key) no defaults or NOT NULL, so historic values always fit.
    * Validation raises :class:`ArchiveCapabilityError`; nothing is written
      by this module.
"""
from __future__ import annotations

import re

from dbmunger.differ import check_column_family, check_engine, check_primary_key
from dbmunger.errors import ArchiveCapabilityError
from dbmunger.filters import compile_pattern
from dbmunger.type_families import is_integer_type, is_text_type, is_timestamp_type
from logger import get_logger
from models.archive import ArchiveColumnRoles
from models.schema import TableDescriptor
from models.trigger import TriggerEvent, TriggerFragment, TriggerTiming

log = get_logger(__name__)

ARCHIVE_ENGINE = "InnoDB"
BEFORE_LABEL = "20-archive"
AFTER_LABEL = "40-archive"
EPOCH_ZERO = "'0000-00-00 00:00:00'"

# Audit columns appended to every archive table, in this order.
_AUDIT_ROLES = ("dbuser", "updid", "action", "stmt")
_AUDIT_DEFINITIONS = {
    "dbuser": "varchar(256) NOT NULL COMMENT 'Database user & host that made this change.'",
    "updid": "varchar(256) NOT NULL COMMENT 'Application user that made this change.'",
    "action": "enum('insert','update','delete') NOT NULL COMMENT 'SQL action.'",
    "stmt": "longtext NOT NULL COMMENT 'SQL Statement that initiated this change.'",
}

# Keywords are matched as SHOW CREATE TABLE prints them (uppercase); only
# MariaDB's lowercase current_timestamp() value needs case folding.
_AUTO_INCREMENT_RE = re.compile(r" AUTO_INCREMENT\b")
_ON_UPDATE_RE = re.compile(r" ON UPDATE (?i:current_timestamp)(?:\(\d*\))?")
_DEFAULT_NOW_RE = re.compile(r" DEFAULT (?i:current_timestamp)(?:\(\d*\))?")
_DEFAULT_RE = re.compile(r" DEFAULT (?:'(?:[^']|'')*'|[^\s']+)")
_NOT_NULL_RE = re.compile(r" NOT NULL\b")
_QUOTED_RE = re.compile(r"'(?:[^']|'')*'")
_COMMENT = " COMMENT '"


def _split_comment(definition: str) -> tuple[str, str]:
    """Split a column definition before its ``COMMENT '...'`` clause."""
    pos = 0
    while True:
        comment = definition.find(_COMMENT, pos)
        if comment < 0:
            return definition, ""
        quoted = _QUOTED_RE.search(definition, pos)
        if quoted is None or quoted.start() > comment:
            return definition[:comment], definition[comment:]
        pos = quoted.end()


class ArchiveSynthesizer:
    """
    Builds archive descriptors and trigger fragments for source tables.

    Args:
        roles:        Column-role configuration.
        name_pattern: Archive naming pattern; ``%`` is the source table name.
        updid_var:    Session variable the application sets before writes.

    Example::

        synth = ArchiveSynthesizer(ArchiveColumnRoles(), "%Archive")
        archive, fragments = synth.synthesize(user_table)
    """

    def __init__(
        self,
        roles: ArchiveColumnRoles | None = None,
        name_pattern: str = "%Archive",
        updid_var: str = "@updid",
    ) -> None:
        if "%" not in name_pattern:
            raise ValueError(f"Archive name pattern {name_pattern!r} lacks a '%' placeholder.")
        self.roles = roles or ArchiveColumnRoles()
        self.name_pattern = name_pattern
        self.updid_var = updid_var
        self._name_re = compile_pattern(name_pattern)

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def archive_name(self, source_name: str) -> str:
        return self.name_pattern.replace("%", source_name, 1)

    def is_archive_name(self, name: str) -> bool:
        return bool(self._name_re.match(name))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check_archive_capable(self, table: TableDescriptor) -> None:
        """
        Check that *table* has the bare minimum needed for an archive table.

        Raises:
            ArchiveCapabilityError: Missing primary key, badly typed role
                column, audit column name collision, or unsupported engine.
        """
        name = table.name
        roles = self.roles

        if not table.primary_key:
            raise ArchiveCapabilityError(name, f"{name} lacks a primary key.")

        revision_def = table.column(roles.revision)
        if revision_def is None:
            raise ArchiveCapabilityError(name, f"{name} lacks {roles.revision} column.")
        if not is_integer_type(revision_def):
            raise ArchiveCapabilityError(
                name, f"{name} column {roles.revision} is not an integer type."
            )

        updid_def = table.column(roles.updid)
        if updid_def is not None and not is_text_type(updid_def):
            raise ArchiveCapabilityError(
                name, f"{name} column {roles.updid} is not a string type."
            )

        for col in (roles.ctime, roles.mtime):
            coldef = table.column(col) if col else None
            if coldef is not None and not is_timestamp_type(coldef):
                raise ArchiveCapabilityError(
                    name, f"{name} column {col} is neither a timestamp or datetime field."
                )

        for col in (roles.dbuser, roles.action, roles.stmt):
            if table.has_column(col):
                raise ArchiveCapabilityError(
                    name,
                    f"Archive table column conflict, source table `{name}` has column `{col}`.",
                )

        if table.engine != ARCHIVE_ENGINE:
            raise ArchiveCapabilityError(
                name,
                f"Archive tables require ENGINE={ARCHIVE_ENGINE}; "
                f"table {name} has ENGINE={table.engine}.",
            )

    @staticmethod
    def check_updatable(current: TableDescriptor, desired: TableDescriptor) -> None:
        """
        Check that an existing archive table can be updated to *desired*.

        Raises:
            PrimaryKeyMismatchError, TypeFamilyMismatchError, EngineMismatchError
        """
        check_primary_key(current, desired)
        for col in desired.columns:
            current_def = current.column(col)
            if current_def is None:
                continue
            check_column_family(current.name, col, current_def, desired.column_definition[col])
        check_engine(current, desired)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(
        self, table: TableDescriptor
    ) -> tuple[TableDescriptor, list[TriggerFragment]]:
        """Validate *table* and build its archive descriptor and fragments."""
        self.check_archive_capable(table)
        archive = self.make_archive_table(table)
        return archive, self.make_trigger_fragments(table, archive)

    def _archive_column_definition(self, col: str, definition: str, primary_key: tuple[str, ...]) -> str:
        head, comment = _split_comment(definition)
        head = _AUTO_INCREMENT_RE.sub("", head)
        if head.lower().startswith("timestamp"):
            head = _ON_UPDATE_RE.sub("", head)
            head = _DEFAULT_NOW_RE.sub(f" DEFAULT {EPOCH_ZERO}", head)
        elif col not in primary_key:
            head = _DEFAULT_RE.sub("", head)
            head = _NOT_NULL_RE.sub("", head)
        return head + comment

    def make_archive_table(self, table: TableDescriptor) -> TableDescriptor:
        """Build the archive table descriptor for source *table*."""
        roles = self.roles
        primary_key = table.primary_key + (roles.revision,)

        columns = list(table.columns)
        column_definition = {
            col: self._archive_column_definition(col, table.column_definition[col], primary_key)
            for col in table.columns
        }
        for role in _AUDIT_ROLES:
            col = getattr(roles, role)
            if table.has_column(col):
                continue
            columns.append(col)
            column_definition[col] = _AUDIT_DEFINITIONS[role]

        key_definition = {
            key: re.sub(r"^UNIQUE\s*", "", table.key_definition[key])
            for key in table.keys
        }

        return TableDescriptor(
            name=self.archive_name(table.name),
            engine=table.engine,
            comment=f"{table.name} archive.",
            table_options=table.table_options,
            columns=tuple(columns),
            column_definition=column_definition,
            keys=table.keys,
            key_definition=key_definition,
            primary_key=primary_key,
        )

    def make_trigger_fragments(
        self, table: TableDescriptor, archive: TableDescriptor
    ) -> list[TriggerFragment]:
        """
        Build the two before- and three after-trigger fragments for *table*.
        """
        roles = self.roles
        has_ctime = bool(roles.ctime) and table.has_column(roles.ctime)
        has_mtime = bool(roles.mtime) and table.has_column(roles.mtime)
        has_updid = table.has_column(roles.updid)

        def fragment(timing: TriggerTiming, event: TriggerEvent, body: str) -> TriggerFragment:
            label = BEFORE_LABEL if timing is TriggerTiming.BEFORE else AFTER_LABEL
            return TriggerFragment(label, table.name, event, timing, body)

        # Before insert
        pk_match = " AND ".join(f"`{c}` = NEW.`{c}`" for c in table.primary_key)
        before_insert = (
            f"SET NEW.`{roles.revision}` = (\n"
            f"  SELECT IFNULL( MAX(`{roles.revision}`) + 1, 0 )\n"
            f"  FROM `{archive.name}`\n"
            f"  WHERE {pk_match}\n"
            ");\n"
        )
        if has_ctime:
            before_insert += f"SET NEW.`{roles.ctime}` = CURRENT_TIMESTAMP;\n"
        if has_mtime:
            before_insert += f"SET NEW.`{roles.mtime}` = CURRENT_TIMESTAMP;\n"
        if has_updid:
            before_insert += f"SET NEW.`{roles.updid}` = {self.updid_var};\n"

        # Before update
        before_update = f"SET NEW.`{roles.revision}` = OLD.`{roles.revision}` + 1;\n"
        if has_ctime:
            before_update += f"SET NEW.`{roles.ctime}` = OLD.`{roles.ctime}`;\n"
        if has_mtime:
            before_update += f"SET NEW.`{roles.mtime}` = CURRENT_TIMESTAMP;\n"
        if has_updid:
            before_update += f"SET NEW.`{roles.updid}` = {self.updid_var};\n"

        # Columns copied verbatim, then role columns in role-name order.
        plain = [c for c in table.columns if roles.role_of(c) is None]
        special = [
            role for role in roles.as_dict()
            if not (role == "ctime" and not has_ctime)
            and not (role == "mtime" and not has_mtime)
        ]
        insert_head = (
            "BEGIN DECLARE stmt longtext;\n"
            "SET stmt = ( SELECT info FROM INFORMATION_SCHEMA.PROCESSLIST WHERE id = CONNECTION_ID() );\n"
            f"INSERT INTO `{archive.name}` (\n"
            "  `" + "`, `".join(plain + [getattr(roles, r) for r in special]) + "`\n"
            ") VALUES (\n"
        )

        def after_body(event: TriggerEvent) -> str:
            row = "OLD" if event is TriggerEvent.DELETE else "NEW"
            values = [f"{row}.`{c}`" for c in plain]
            values += [self._role_value(role, event) for role in special]
            return insert_head + "  " + ", ".join(values) + "\n);\nEND;\n"

        return [
            fragment(TriggerTiming.BEFORE, TriggerEvent.INSERT, before_insert),
            fragment(TriggerTiming.BEFORE, TriggerEvent.UPDATE, before_update),
            fragment(TriggerTiming.AFTER, TriggerEvent.INSERT, after_body(TriggerEvent.INSERT)),
            fragment(TriggerTiming.AFTER, TriggerEvent.UPDATE, after_body(TriggerEvent.UPDATE)),
            fragment(TriggerTiming.AFTER, TriggerEvent.DELETE, after_body(TriggerEvent.DELETE)),
        ]

    def _role_value(self, role: str, event: TriggerEvent) -> str:
        """SQL expression for a role column in the archive row."""
        col = getattr(self.roles, role)
        if role == "action":
            return f"'{event.value}'"
        if role == "updid":
            return self.updid_var
        if role == "dbuser":
            return "USER()"
        if role == "stmt":
            return "stmt"
        if event is TriggerEvent.DELETE:
            if role == "ctime":
                return f"OLD.`{col}`"
            if role == "mtime":
                return "CURRENT_TIMESTAMP"
            if role == "revision":
                return f"1 + OLD.`{col}`"
        if role in ("ctime", "mtime", "revision"):
            return f"NEW.`{col}`"
        raise ValueError(f"Unhandled archive column role {role!r}")
