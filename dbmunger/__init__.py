"""dbmunger/__init__.py"""
from dbmunger.action_queue import ActionQueue
from dbmunger.archive import ArchiveSynthesizer
from dbmunger.database import ConnectionLostError, DatabaseError, DatabaseManager
from dbmunger.differ import diff_new_table, diff_table
from dbmunger.errors import (
    ActionExecutionError,
    ArchiveCapabilityError,
    EngineMismatchError,
    MalformedDescriptorError,
    MungerError,
    PrimaryKeyMismatchError,
    TypeFamilyMismatchError,
    UnlabeledTriggerFragmentError,
    UnrecognizedClauseWarning,
)
from dbmunger.filters import TableFilter
from dbmunger.munger import Munger, MungerOptions
from dbmunger.repository import SchemaDirectory
from dbmunger.schema_parser import ParseResult, create_table_sql, parse, parse_create_table
from dbmunger.triggers import compose, split

__all__ = [
    "ActionQueue",
    "ArchiveSynthesizer",
    "ConnectionLostError",
    "DatabaseError",
    "DatabaseManager",
    "diff_new_table",
    "diff_table",
    "ActionExecutionError",
    "ArchiveCapabilityError",
    "EngineMismatchError",
    "MalformedDescriptorError",
    "MungerError",
    "PrimaryKeyMismatchError",
    "TypeFamilyMismatchError",
    "UnlabeledTriggerFragmentError",
    "UnrecognizedClauseWarning",
    "TableFilter",
    "Munger",
    "MungerOptions",
    "SchemaDirectory",
    "ParseResult",
    "create_table_sql",
    "parse",
    "parse_create_table",
    "compose",
    "split",
]
