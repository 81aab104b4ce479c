"""
main.py
-------
Command-line entry point for mydbmunger.

Usage::

    mydbmunger pull  --schema app --dir schema
    mydbmunger push  --schema app --dir schema --dry-run
    mydbmunger make-archive --dir schema --table User --colname mtime=updated_at

Design Decision:
    Argument parsing only builds :class:`MungerOptions` and opens the
    connection; all behaviour lives in :class:`Munger`.  Errors from the
    engine or the driver are reported as one log line and exit status 1.
"""
from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

from config import CONFIG
from dbmunger.database import DatabaseError, DatabaseManager
from dbmunger.errors import MungerError
from dbmunger.munger import Munger, MungerOptions
from logger import get_logger, set_level
from models.archive import ArchiveColumnRoles

log = get_logger(__name__)

_PROMPT = object()
REMOVABLE = ("table", "trigger", "procedure")


def _role_override(value: str) -> tuple[str, str]:
    role, sep, column = value.partition("=")
    if not sep or not role:
        raise argparse.ArgumentTypeError(f"expected ROLE=COLUMN, got {value!r}")
    return role.strip(), column.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=CONFIG.app_name,
        description="Maintain MySQL/MariaDB table, trigger and procedure definitions as files.",
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {CONFIG.app_version}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-d", "--dir", type=Path, default=CONFIG.munger.dir,
                        help="Schema directory (default: %(default)s)")
    common.add_argument("-t", "--table", dest="tables", action="append", default=[],
                        help="Table name or %%-pattern to include (repeatable)")
    common.add_argument("-x", "--exclude", action="append", default=[],
                        help="Table name or %%-pattern to skip (repeatable)")
    common.add_argument("-v", "--verbose", action="store_true", help="Log SQL and details")

    conn = argparse.ArgumentParser(add_help=False)
    conn.add_argument("-H", "--host", default=CONFIG.db.host)
    conn.add_argument("-P", "--port", type=int, default=CONFIG.db.port)
    conn.add_argument("-u", "--user", default=CONFIG.db.user)
    conn.add_argument("-p", "--password", nargs="?", const=_PROMPT, default=CONFIG.db.password,
                      help="Password; prompts when given without a value")
    conn.add_argument("-s", "--schema", default=CONFIG.db.schema)
    conn.add_argument("--remove", action="append", default=[], choices=REMOVABLE,
                      help="Also remove objects missing on the other side (repeatable)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    pull = subparsers.add_parser("pull", parents=[common, conn],
                                 help="Write live schema objects to files")
    pull.add_argument("--init-trigger-name", default=CONFIG.munger.init_trigger_name,
                      help="Label for unlabeled trigger code")

    push = subparsers.add_parser("push", parents=[common, conn],
                                 help="Apply file definitions to the live schema")
    push.add_argument("-n", "--dry-run", action="store_true",
                      help="Report actions without executing them")
    push.add_argument("--drop-columns", action="store_true",
                      help="Drop live columns missing from table files")

    archive = subparsers.add_parser("make-archive", parents=[common],
                                    help="Generate archive tables and triggers as files")
    archive.add_argument("--archive-name-pattern", default=CONFIG.munger.archive_name_pattern,
                         help="Archive table name; %% is the source name (default: %(default)s)")
    archive.add_argument("--updidvar", dest="updid_var", default=CONFIG.munger.updid_var,
                         help="Session variable holding the update id (default: %(default)s)")
    archive.add_argument("--colname", action="append", default=[], type=_role_override,
                         metavar="ROLE=COLUMN", help="Override an archive column name")
    return parser


def build_options(args: argparse.Namespace) -> MungerOptions:
    """
    Translate parsed arguments into :class:`MungerOptions`.

    Raises:
        ValueError: Unknown archive column role, or an archive name pattern
            without a placeholder.
    """
    removals = set(getattr(args, "remove", []))
    options = MungerOptions(
        dir=args.dir,
        dry_run=getattr(args, "dry_run", False),
        drop_columns=getattr(args, "drop_columns", False),
        remove_table="table" in removals,
        remove_trigger="trigger" in removals,
        remove_procedure="procedure" in removals,
        tables=list(args.tables),
        exclude=list(args.exclude),
    )
    if getattr(args, "init_trigger_name", None):
        options.init_trigger_name = args.init_trigger_name
    if args.command == "make-archive":
        if "%" not in args.archive_name_pattern:
            raise ValueError("--archive-name-pattern must contain a % placeholder")
        options.archive_name_pattern = args.archive_name_pattern
        options.updid_var = args.updid_var
        options.roles = ArchiveColumnRoles.from_overrides(dict(args.colname))
    return options


def connect(args: argparse.Namespace) -> DatabaseManager:
    password = args.password
    if password is _PROMPT:
        password = getpass.getpass("Password: ")
    return DatabaseManager.from_config(
        user=args.user,
        password=password,
        schema=args.schema,
        host=args.host,
        port=args.port,
    )


def run(args: argparse.Namespace, options: MungerOptions) -> int:
    """Execute one parsed command; returns the process exit status."""
    if args.command == "make-archive":
        failures = Munger(None, options).make_archive()
        for failure in failures:
            log.error("Table `%s` cannot be archived: %s", failure.table, failure.reason)
        return 1 if failures else 0

    with connect(args) as db:
        munger = Munger(db, options)
        if args.command == "pull":
            munger.pull()
        else:
            count = munger.push()
            log.info("%d action(s) %s.", count, "reported" if options.dry_run else "executed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        set_level(logging.DEBUG)

    try:
        options = build_options(args)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return run(args, options)
    except (MungerError, DatabaseError) as exc:
        log.error("%s", exc)
    except OSError as exc:
        log.error("File error: %s", exc)
    return 1


if __name__ == "__main__":
    sys.exit(main())
