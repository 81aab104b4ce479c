"""
tests/test_main.py
------------------
Unit tests for the command-line entry point.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import main
from dbmunger.repository import SchemaDirectory

USER_SQL = (
    "CREATE TABLE `User` (\n"
    "  `id` int(11) NOT NULL,\n"
    "  `revision` int(11) NOT NULL,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB\n"
)


def _parse(*argv: str):
    return main.build_parser().parse_args(list(argv))


class TestBuildOptions:
    def test_push_flags(self, tmp_path: Path) -> None:
        args = _parse("push", "--dir", str(tmp_path), "--dry-run", "--drop-columns",
                      "--remove", "table", "--remove", "procedure",
                      "--table", "U%", "--exclude", "UserArchive")
        options = main.build_options(args)
        assert options.dir == tmp_path
        assert options.dry_run and options.drop_columns
        assert options.remove_table and options.remove_procedure
        assert not options.remove_trigger
        assert options.tables == ["U%"]
        assert options.exclude == ["UserArchive"]

    def test_make_archive_roles(self, tmp_path: Path) -> None:
        args = _parse("make-archive", "--dir", str(tmp_path),
                      "--colname", "mtime=updated_at", "--updidvar", "@who",
                      "--archive-name-pattern", "%Log")
        options = main.build_options(args)
        assert options.roles.mtime == "updated_at"
        assert options.updid_var == "@who"
        assert options.archive_name_pattern == "%Log"

    def test_unknown_role_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main.main(["make-archive", "--dir", str(tmp_path), "--colname", "author=x"])
        assert excinfo.value.code == 2

    def test_malformed_colname_rejected(self) -> None:
        with pytest.raises(SystemExit):
            _parse("make-archive", "--colname", "mtime")

    def test_pattern_without_placeholder_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            main.main(["make-archive", "--dir", str(tmp_path), "--archive-name-pattern", "Log"])


class TestRun:
    def test_make_archive_needs_no_database(self, tmp_path: Path) -> None:
        repo = SchemaDirectory(tmp_path)
        repo.write_table_sql("User", USER_SQL)
        with patch.object(main, "DatabaseManager") as manager:
            assert main.main(["make-archive", "--dir", str(tmp_path)]) == 0
        manager.from_config.assert_not_called()
        assert repo.has_table("UserArchive")

    def test_engine_error_exits_1(self, tmp_path: Path) -> None:
        SchemaDirectory(tmp_path).write_table_sql("User", USER_SQL.replace("InnoDB", "MyISAM"))
        assert main.main(["make-archive", "--dir", str(tmp_path)]) == 1

    def test_push_uses_connection(self, tmp_path: Path) -> None:
        db = MagicMock()
        db.__enter__.return_value = db
        db.list_tables.return_value = []
        db.list_triggers.return_value = []
        db.list_procedure_names.return_value = []
        with patch.object(main.DatabaseManager, "from_config", return_value=db) as factory:
            code = main.main(["push", "--dir", str(tmp_path), "--schema", "app",
                              "--user", "root", "--password", "secret"])
        assert code == 0
        assert factory.call_args.kwargs["schema"] == "app"
        assert factory.call_args.kwargs["password"] == "secret"
        db.__exit__.assert_called_once()

    def test_password_prompt(self, tmp_path: Path) -> None:
        db = MagicMock()
        db.__enter__.return_value = db
        with patch.object(main.DatabaseManager, "from_config", return_value=db) as factory, \
                patch.object(main.getpass, "getpass", return_value="typed") as prompt:
            main.main(["pull", "--dir", str(tmp_path), "--schema", "app", "--password"])
        prompt.assert_called_once()
        assert factory.call_args.kwargs["password"] == "typed"
