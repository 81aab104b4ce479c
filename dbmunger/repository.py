"""
dbmunger/repository.py
----------------------
The on-disk schema directory: table definitions, trigger fragments and
stored procedures, one file per object.

Layout::

    <dir>/table/<Name>.sql
    <dir>/procedure/<Name>.sql
    <dir>/trigger/<label>.<timing>.<event>.<table>.sql

Design Decisions:
    * Files are written atomically (write-then-rename) so an interrupted
      pull never leaves a half-written definition behind.
    * Sub-directories are created lazily on first write; listing a missing
      directory yields nothing.
    * Listing is sorted so every command walks objects in a stable order.
"""
from __future__ import annotations

import re
from pathlib import Path

from dbmunger.errors import MalformedDescriptorError
from dbmunger.schema_parser import parse_create_table
from logger import get_logger
from models.schema import TableDescriptor
from models.trigger import TriggerEvent, TriggerFragment, TriggerTiming

log = get_logger(__name__)

TABLE_DIR = "table"
TRIGGER_DIR = "trigger"
PROCEDURE_DIR = "procedure"

_FRAGMENT_FILE_RE = re.compile(r"^(.+)\.(before|after)\.(insert|update|delete)\.(.+)\.sql$")


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


class SchemaDirectory:
    """
    Read/write access to a schema directory.

    Example::

        repo = SchemaDirectory("schema")
        for name in repo.table_names():
            table = repo.get_table_desc(name)
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir)

    def _names(self, subdir: str) -> list[str]:
        path = self.base_dir / subdir
        if not path.is_dir():
            return []
        return sorted(p.stem for p in path.glob("*.sql") if p.is_file())

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def table_path(self, name: str) -> Path:
        return self.base_dir / TABLE_DIR / f"{name}.sql"

    def table_names(self) -> list[str]:
        return self._names(TABLE_DIR)

    def has_table(self, name: str) -> bool:
        return self.table_path(name).is_file()

    def read_table_sql(self, name: str) -> str:
        return self.table_path(name).read_text(encoding="utf-8")

    def write_table_sql(self, name: str, sql: str) -> None:
        log.debug("Writing table definition `%s`.", name)
        _write_atomic(self.table_path(name), sql)

    def remove_table_sql(self, name: str) -> None:
        log.info("Removing table definition `%s`.", name)
        self.table_path(name).unlink(missing_ok=True)

    def get_table_desc(self, name: str) -> TableDescriptor:
        """
        Read and parse the stored definition of *name*.

        Raises:
            MalformedDescriptorError: Unparseable SQL, or the file defines a
                differently named table.
            FileNotFoundError: No stored definition.
        """
        sql = self.read_table_sql(name)
        try:
            result = parse_create_table(sql)
        except MalformedDescriptorError as exc:
            raise MalformedDescriptorError(
                f"Error parsing SQL for table `{name}`:\n{exc}"
            ) from exc
        if result.table.name != name:
            raise MalformedDescriptorError(
                f"Table name mismatch while reading SQL for `{name}`, "
                f"got `{result.table.name}` instead!"
            )
        return result.table

    # ------------------------------------------------------------------
    # Trigger fragments
    # ------------------------------------------------------------------

    def fragment_path(self, fragment: TriggerFragment) -> Path:
        return self.base_dir / TRIGGER_DIR / fragment.file_name

    def trigger_fragments(self) -> list[TriggerFragment]:
        """
        List stored fragments (body not loaded) in file-name order.

        Files whose names do not follow the fragment naming scheme are ignored.
        """
        path = self.base_dir / TRIGGER_DIR
        if not path.is_dir():
            return []
        fragments = []
        for file in sorted(path.iterdir()):
            match = _FRAGMENT_FILE_RE.match(file.name)
            if not match or not file.is_file():
                continue
            label, timing, event, table = match.groups()
            fragments.append(TriggerFragment(
                label=label,
                table=table,
                event=TriggerEvent(event),
                timing=TriggerTiming(timing),
                body="",
            ))
        return fragments

    def read_fragments(self) -> list[TriggerFragment]:
        """All stored fragments with their bodies."""
        return [
            TriggerFragment(
                label=f.label,
                table=f.table,
                event=f.event,
                timing=f.timing,
                body=self.fragment_path(f).read_text(encoding="utf-8"),
            )
            for f in self.trigger_fragments()
        ]

    def write_fragment(self, fragment: TriggerFragment) -> None:
        log.debug("Writing trigger fragment %s.", fragment.file_name)
        _write_atomic(self.fragment_path(fragment), fragment.body)

    def remove_fragment(self, fragment: TriggerFragment) -> None:
        log.info("Removing trigger fragment %s.", fragment.file_name)
        self.fragment_path(fragment).unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Procedures
    # ------------------------------------------------------------------

    def procedure_path(self, name: str) -> Path:
        return self.base_dir / PROCEDURE_DIR / f"{name}.sql"

    def procedure_names(self) -> list[str]:
        return self._names(PROCEDURE_DIR)

    def read_procedure_sql(self, name: str) -> str:
        return self.procedure_path(name).read_text(encoding="utf-8")

    def write_procedure_sql(self, name: str, sql: str) -> None:
        log.debug("Writing procedure `%s`.", name)
        _write_atomic(self.procedure_path(name), sql)

    def remove_procedure_sql(self, name: str) -> None:
        log.info("Removing procedure `%s`.", name)
        self.procedure_path(name).unlink(missing_ok=True)
