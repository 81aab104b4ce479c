"""
dbmunger/munger.py
------------------
Command engine: pull, push and make-archive.

Design Decisions:
    * The engine is a plain class with injected dependencies (database,
      options, schema directory).  No global state; dry run and removal gates
      arrive in :class:`MungerOptions`.
    * Push builds one :class:`ActionQueue` for the whole command (tables,
      then triggers, then procedures) and drains it once at the end, so the
      fixed action order holds across object types.
    * make-archive works purely on local files.  Every target table is
      validated and synthesized before the first file is written.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from config import CONFIG
from dbmunger.action_queue import ActionQueue, ProgressCallback
from dbmunger.archive import ArchiveSynthesizer
from dbmunger.database import DatabaseManager
from dbmunger.differ import diff_new_table, diff_table, drop_table_action
from dbmunger.errors import ArchiveCapabilityError, MungerError
from dbmunger.filters import TableFilter
from dbmunger.repository import SchemaDirectory
from dbmunger.schema_parser import create_table_sql, parse, parse_create_table
from dbmunger.triggers import assemble, diff_triggers, split, strip_begin_end
from logger import get_logger
from models.action import Action, ActionKind
from models.archive import ArchiveColumnRoles
from models.schema import TableDescriptor
from models.trigger import TriggerFragment

log = get_logger(__name__)


@dataclass
class MungerOptions:
    """Per-invocation switches, defaulting to the application config."""
    dir: Path = field(default_factory=lambda: CONFIG.munger.dir)
    dry_run: bool = False
    drop_columns: bool = False
    remove_table: bool = False
    remove_trigger: bool = False
    remove_procedure: bool = False
    tables: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    init_trigger_name: str | None = field(
        default_factory=lambda: CONFIG.munger.init_trigger_name
    )
    archive_name_pattern: str = field(
        default_factory=lambda: CONFIG.munger.archive_name_pattern
    )
    updid_var: str = field(default_factory=lambda: CONFIG.munger.updid_var)
    roles: ArchiveColumnRoles = field(default_factory=ArchiveColumnRoles)


def create_procedure_action(name: str, sql: str) -> Action:
    return Action(ActionKind.CREATE_PROCEDURE, f"Create procedure {name}.", sql)


def drop_procedure_action(name: str) -> Action:
    return Action(ActionKind.DROP_PROCEDURE, f"Drop procedure {name}.", f"DROP PROCEDURE `{name}`")


class Munger:
    """
    Runs the pull, push and make-archive commands against one schema.

    Args:
        db:          Open database connection; may be None for make-archive.
        options:     Invocation options.
        directory:   Schema directory; defaults to ``options.dir``.
        progress_cb: Forwarded to the action queue on push.

    Example::

        with DatabaseManager.from_config(schema="app") as db:
            Munger(db, MungerOptions(dir=Path("schema"))).pull()
    """

    def __init__(
        self,
        db: DatabaseManager | None,
        options: MungerOptions | None = None,
        directory: SchemaDirectory | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        self._db = db
        self.options = options or MungerOptions()
        self.directory = directory or SchemaDirectory(self.options.dir)
        self.filter = TableFilter(self.options.tables, self.options.exclude)
        self._archiver: ArchiveSynthesizer | None = None
        self._progress_cb = progress_cb

    @property
    def db(self) -> DatabaseManager:
        if self._db is None:
            raise MungerError("This command requires a database connection.")
        return self._db

    @property
    def archiver(self) -> ArchiveSynthesizer:
        """Archive synthesizer, built on first use."""
        if self._archiver is None:
            self._archiver = ArchiveSynthesizer(
                roles=self.options.roles,
                name_pattern=self.options.archive_name_pattern,
                updid_var=self.options.updid_var,
            )
        return self._archiver

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def pull(self) -> None:
        """Write live tables, trigger fragments and procedures to files."""
        self.pull_tables()
        self.pull_triggers()
        self.pull_procedures()

    def pull_tables(self) -> list[str]:
        """Pull table definitions; returns the names written."""
        pulled: list[str] = []
        for name in self.db.list_tables():
            if self.filter.ignores(name):
                continue
            log.info("Pulling table definition for `%s`", name)
            result = parse_create_table(self.db.show_create_table(name))
            self.directory.write_table_sql(
                name, create_table_sql(result.table, sort_keys=True)
            )
            pulled.append(name)

        if self.options.remove_table:
            for name in self.directory.table_names():
                if self.filter.ignores(name) or name in pulled:
                    continue
                self.directory.remove_table_sql(name)
        return pulled

    def pull_triggers(self) -> list[TriggerFragment]:
        """Split live triggers into fragment files; returns the fragments written."""
        found: list[TriggerFragment] = []
        live = [t for t in self.db.list_triggers() if not self.filter.ignores(t.table)]
        for trigger in sorted(live, key=lambda t: t.slot):
            log.debug("Pulling trigger `%s`", trigger.name)
            fragments = split(
                strip_begin_end(trigger.statement),
                trigger.table,
                trigger.event,
                trigger.timing,
                default_label=self.options.init_trigger_name,
            )
            for fragment in fragments:
                self.directory.write_fragment(fragment)
            found.extend(fragments)

        if self.options.remove_trigger:
            keys = {f.key for f in found}
            for fragment in self.directory.trigger_fragments():
                if self.filter.ignores(fragment.table) or fragment.key in keys:
                    continue
                self.directory.remove_fragment(fragment)
        return found

    def pull_procedures(self) -> list[str]:
        names = self.db.list_procedure_names()
        for name in names:
            log.info("Pulling procedure `%s`", name)
            self.directory.write_procedure_sql(name, self.db.show_create_procedure(name))

        if self.options.remove_procedure:
            for name in self.directory.procedure_names():
                if name not in names:
                    self.directory.remove_procedure_sql(name)
        return names

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(self) -> int:
        """
        Reconcile the live schema with the files and drain the queue.

        Returns:
            Number of actions executed (or reported, on dry run).

        Raises:
            PrimaryKeyMismatchError, EngineMismatchError,
            TypeFamilyMismatchError: While diffing; nothing has run yet.
            ActionExecutionError: A statement failed mid-drain.
        """
        queue = self.build_push_queue()
        if not queue:
            log.info("Schema is up to date.")
            return 0
        return queue.drain(self.db)

    def build_push_queue(self) -> ActionQueue:
        queue = ActionQueue(dry_run=self.options.dry_run, progress_cb=self._progress_cb)
        self.queue_push_tables(queue)
        self.queue_push_triggers(queue)
        self.queue_push_procedures(queue)
        return queue

    def queue_push_tables(self, queue: ActionQueue) -> None:
        local = self.filter.apply(self.directory.table_names())
        live = set(self.db.list_tables())

        for name in local:
            desired = self.directory.get_table_desc(name)
            if name in live:
                current = parse(self.db.show_create_table(name))
                queue.extend(diff_table(current, desired, self.options.drop_columns))
            else:
                queue.extend(diff_new_table(desired))

        if self.options.remove_table:
            for name in sorted(live):
                if self.filter.ignores(name) or name in local:
                    continue
                queue.add(drop_table_action(name))

    def queue_push_triggers(self, queue: ActionQueue) -> None:
        fragments = [
            f for f in self.directory.read_fragments() if not self.filter.ignores(f.table)
        ]
        live = {
            t.slot: t for t in self.db.list_triggers() if not self.filter.ignores(t.table)
        }
        queue.extend(diff_triggers(assemble(fragments), live, self.options.remove_trigger))

    def queue_push_procedures(self, queue: ActionQueue) -> None:
        local = self.directory.procedure_names()
        live = set(self.db.list_procedure_names())

        for name in local:
            sql = self.directory.read_procedure_sql(name)
            if name not in live:
                queue.add(create_procedure_action(name, sql))
            elif self.db.show_create_procedure(name) != sql:
                queue.add(drop_procedure_action(name))
                queue.add(create_procedure_action(name, sql))

        if self.options.remove_procedure:
            for name in sorted(live):
                if name not in local:
                    queue.add(drop_procedure_action(name))

    # ------------------------------------------------------------------
    # make-archive
    # ------------------------------------------------------------------

    def archive_sources(self) -> list[TableDescriptor]:
        """
        Source tables to archive.

        Listed tables are taken as given; otherwise every local table with a
        revision column that is not itself an archive table.
        """
        if self.filter.explicit:
            for pattern in self.options.tables:
                if "%" not in pattern and not self.directory.has_table(pattern):
                    raise MungerError(f"No local definition for table `{pattern}`.")

        sources = []
        for name in self.filter.apply(self.directory.table_names()):
            if self.archiver.is_archive_name(name):
                continue
            table = self.directory.get_table_desc(name)
            if not self.filter.explicit and not table.has_column(self.options.roles.revision):
                continue
            sources.append(table)
        return sources

    def make_archive(self) -> list[ArchiveCapabilityError]:
        """
        Write archive table definitions and trigger fragments to files.

        Returns:
            Capability failures for explicitly listed tables (those tables
            are skipped).  Empty when every table was archived.

        Raises:
            ArchiveCapabilityError: First failure in an auto-detected set;
                nothing is written.
            PrimaryKeyMismatchError, TypeFamilyMismatchError,
            EngineMismatchError: An existing archive file cannot be updated.
        """
        failures: list[ArchiveCapabilityError] = []
        plans: list[tuple[TableDescriptor, list[TriggerFragment]]] = []

        for table in self.archive_sources():
            try:
                archive, fragments = self.archiver.synthesize(table)
            except ArchiveCapabilityError as exc:
                if not self.filter.explicit:
                    raise
                log.error("Skipping `%s`: %s", table.name, exc)
                failures.append(exc)
                continue

            if self.directory.has_table(archive.name):
                log.debug("Archive table `%s` found for `%s`.", archive.name, table.name)
                current = self.directory.get_table_desc(archive.name)
                self.archiver.check_updatable(current, archive)
            plans.append((archive, fragments))

        for archive, fragments in plans:
            log.info("Writing archive table `%s` definition.", archive.name)
            self.directory.write_table_sql(archive.name, create_table_sql(archive, sort_keys=True))
            for fragment in fragments:
                self.directory.write_fragment(fragment)

        return failures
