"""
tests/test_munger.py
--------------------
Unit tests for dbmunger/munger.py using a mock DatabaseManager.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dbmunger.errors import (
    ArchiveCapabilityError,
    MungerError,
    PrimaryKeyMismatchError,
    UnlabeledTriggerFragmentError,
)
from dbmunger.munger import Munger, MungerOptions
from dbmunger.repository import SchemaDirectory
from dbmunger.schema_parser import create_table_sql, parse
from models.trigger import LiveTrigger, TriggerEvent, TriggerFragment, TriggerTiming


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

LIVE_USER = (
    "CREATE TABLE `User` (\n"
    "  `id` int(11) NOT NULL AUTO_INCREMENT,\n"
    "  `name` varchar(64) DEFAULT NULL,\n"
    "  `revision` int(11) NOT NULL,\n"
    "  PRIMARY KEY (`id`),\n"
    "  KEY `name` (`name`)\n"
    ") ENGINE=InnoDB AUTO_INCREMENT=3 DEFAULT CHARSET=utf8\n"
)

GROUP_SQL = (
    "CREATE TABLE `Group` (\n"
    "  `id` int(11) NOT NULL,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB\n"
)

MYISAM_SQL = (
    "CREATE TABLE `Zeta` (\n"
    "  `id` int(11) NOT NULL,\n"
    "  `revision` int(11) NOT NULL,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=MyISAM\n"
)

PROCEDURE_SQL = "CREATE DEFINER=`root`@`%` PROCEDURE `touch`()\nBEGIN\nSELECT 1;\nEND\n"


def _statement(body: str) -> str:
    return f"BEGIN\n{body}END"


@pytest.fixture
def mock_db() -> MagicMock:
    db = MagicMock()
    db.list_tables.return_value = ["User"]
    db.show_create_table.return_value = LIVE_USER
    db.list_triggers.return_value = [
        LiveTrigger(
            name="before_insert_User",
            timing=TriggerTiming.BEFORE,
            event=TriggerEvent.INSERT,
            table="User",
            statement=_statement("/** begin 20-archive */\nSET @a = 1;\n/** end 20-archive */\n"),
        ),
    ]
    db.list_procedure_names.return_value = ["touch"]
    db.show_create_procedure.return_value = PROCEDURE_SQL
    return db


@pytest.fixture
def options(tmp_path: Path) -> MungerOptions:
    return MungerOptions(dir=tmp_path, init_trigger_name=None)


@pytest.fixture
def repo(options: MungerOptions) -> SchemaDirectory:
    return SchemaDirectory(options.dir)


def _executed(db: MagicMock) -> list[str]:
    return [c.args[0] for c in db.execute.call_args_list]


# ---------------------------------------------------------------------------
# pull
# ---------------------------------------------------------------------------

class TestPull:
    def test_writes_normalised_table(self, mock_db, options, repo) -> None:
        Munger(mock_db, options).pull()
        expected = create_table_sql(parse(LIVE_USER), sort_keys=True)
        assert repo.read_table_sql("User") == expected
        assert "AUTO_INCREMENT=3" not in expected

    def test_writes_fragments(self, mock_db, options, repo) -> None:
        Munger(mock_db, options).pull()
        assert repo.read_fragments() == [
            TriggerFragment("20-archive", "User", TriggerEvent.INSERT,
                            TriggerTiming.BEFORE, "SET @a = 1;\n"),
        ]

    def test_writes_procedures(self, mock_db, options, repo) -> None:
        Munger(mock_db, options).pull()
        assert repo.read_procedure_sql("touch") == PROCEDURE_SQL

    def test_unlabeled_trigger_code_fails(self, mock_db, options) -> None:
        mock_db.list_triggers.return_value = [
            LiveTrigger("t", TriggerTiming.AFTER, TriggerEvent.DELETE, "User",
                        _statement("DELETE FROM `Log`;\n")),
        ]
        with pytest.raises(UnlabeledTriggerFragmentError):
            Munger(mock_db, options).pull_triggers()

    def test_unlabeled_trigger_code_with_init_name(self, mock_db, options, repo) -> None:
        mock_db.list_triggers.return_value = [
            LiveTrigger("t", TriggerTiming.AFTER, TriggerEvent.DELETE, "User",
                        _statement("DELETE FROM `Log`;\n")),
        ]
        options.init_trigger_name = "10-init"
        Munger(mock_db, options).pull_triggers()
        assert repo.read_fragments()[0].file_name == "10-init.after.delete.User.sql"
        assert repo.read_fragments()[0].body == "DELETE FROM `Log`;\n"

    def test_stale_files_kept_by_default(self, mock_db, options, repo) -> None:
        repo.write_table_sql("Old", GROUP_SQL)
        Munger(mock_db, options).pull()
        assert repo.table_names() == ["Old", "User"]

    def test_remove_stale_files(self, mock_db, options, repo) -> None:
        repo.write_table_sql("Old", GROUP_SQL)
        repo.write_fragment(TriggerFragment("50-custom", "User", TriggerEvent.UPDATE,
                                            TriggerTiming.AFTER, "SET @b = 2;\n"))
        repo.write_procedure_sql("gone", "x\n")
        options.remove_table = options.remove_trigger = options.remove_procedure = True

        Munger(mock_db, options).pull()

        assert repo.table_names() == ["User"]
        assert [f.label for f in repo.trigger_fragments()] == ["20-archive"]
        assert repo.procedure_names() == ["touch"]

    def test_filtered_tables_untouched(self, mock_db, options, repo) -> None:
        mock_db.list_tables.return_value = ["User", "UserArchive"]
        repo.write_table_sql("Legacy", GROUP_SQL)
        options.exclude = ["%Archive", "Legacy"]
        options.remove_table = True

        Munger(mock_db, options).pull_tables()

        assert repo.table_names() == ["Legacy", "User"]
        mock_db.show_create_table.assert_called_once_with("User")

    def test_requires_database(self, options) -> None:
        with pytest.raises(MungerError):
            Munger(None, options).pull()

    def test_archive_pattern_not_needed(self, mock_db, options, repo) -> None:
        options.archive_name_pattern = "Archive"
        munger = Munger(mock_db, options)
        munger.pull()
        assert repo.table_names() == ["User"]
        with pytest.raises(ValueError):
            munger.make_archive()


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------

class TestPush:
    def test_pull_then_push_is_noop(self, mock_db, options) -> None:
        munger = Munger(mock_db, options)
        munger.pull()
        assert munger.push() == 0
        mock_db.execute.assert_not_called()

    def test_creates_missing_table(self, mock_db, options, repo) -> None:
        repo.write_table_sql("Group", GROUP_SQL)
        mock_db.list_tables.return_value = []
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = []

        assert Munger(mock_db, options).push() == 1
        assert _executed(mock_db) == [create_table_sql(parse(GROUP_SQL), sort_keys=True,
                                                       include_constraints=False)]

    def test_dry_run_executes_nothing(self, mock_db, options, repo) -> None:
        repo.write_table_sql("Group", GROUP_SQL)
        mock_db.list_tables.return_value = []
        options.dry_run = True

        assert Munger(mock_db, options).push() >= 1
        mock_db.execute.assert_not_called()

    def test_alters_changed_table(self, mock_db, options, repo) -> None:
        repo.write_table_sql("User", LIVE_USER.replace(
            "  `revision` int(11) NOT NULL,\n",
            "  `revision` int(11) NOT NULL,\n  `email` varchar(128) DEFAULT NULL,\n",
        ))
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = []

        Munger(mock_db, options).push()
        assert _executed(mock_db) == [
            "ALTER TABLE `User` ADD COLUMN `email` varchar(128) AFTER `revision`",
        ]

    def test_remove_live_table(self, mock_db, options) -> None:
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = []
        options.remove_table = True

        Munger(mock_db, options).push()
        assert _executed(mock_db) == ["DROP TABLE `User`"]

    def test_live_table_kept_without_remove(self, mock_db, options) -> None:
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = []
        assert Munger(mock_db, options).push() == 0

    def test_primary_key_mismatch_runs_nothing(self, mock_db, options, repo) -> None:
        repo.write_table_sql("Group", GROUP_SQL)
        repo.write_table_sql("User", LIVE_USER.replace("PRIMARY KEY (`id`)", "PRIMARY KEY (`id`,`revision`)"))
        mock_db.list_tables.return_value = ["User"]

        with pytest.raises(PrimaryKeyMismatchError):
            Munger(mock_db, options).push()
        mock_db.execute.assert_not_called()

    def test_changed_procedure_replaced(self, mock_db, options, repo) -> None:
        mock_db.list_tables.return_value = []
        mock_db.list_triggers.return_value = []
        new_sql = PROCEDURE_SQL.replace("SELECT 1;", "SELECT 2;")
        repo.write_procedure_sql("touch", new_sql)

        Munger(mock_db, options).push()
        assert _executed(mock_db) == ["DROP PROCEDURE `touch`", new_sql]

    def test_missing_procedure_created_and_extra_dropped(self, mock_db, options, repo) -> None:
        mock_db.list_tables.return_value = []
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = ["old"]
        repo.write_procedure_sql("touch", PROCEDURE_SQL)
        options.remove_procedure = True

        Munger(mock_db, options).push()
        assert _executed(mock_db) == ["DROP PROCEDURE `old`", PROCEDURE_SQL]

    def test_changed_trigger_recreated(self, mock_db, options, repo) -> None:
        mock_db.list_tables.return_value = []
        mock_db.list_procedure_names.return_value = []
        repo.write_fragment(TriggerFragment("20-archive", "User", TriggerEvent.INSERT,
                                            TriggerTiming.BEFORE, "SET @a = 2;\n"))

        Munger(mock_db, options).push()
        executed = _executed(mock_db)
        assert executed[0] == "DROP TRIGGER IF EXISTS `before_insert_User`"
        assert executed[1].startswith("CREATE TRIGGER `before_insert_User` before insert ON `User`")
        assert "SET @a = 2;" in executed[1]

    def test_archive_then_push(self, mock_db, options, repo) -> None:
        mock_db.list_triggers.return_value = []
        mock_db.list_procedure_names.return_value = []
        repo.write_table_sql("User", create_table_sql(parse(LIVE_USER), sort_keys=True))

        munger = Munger(mock_db, options)
        assert munger.make_archive() == []
        munger.push()

        executed = _executed(mock_db)
        assert executed[0].startswith("CREATE TABLE `UserArchive` (\n")
        assert len(executed) == 6
        assert all(sql.startswith("CREATE TRIGGER ") for sql in executed[1:])


# ---------------------------------------------------------------------------
# make-archive
# ---------------------------------------------------------------------------

class TestMakeArchive:
    @pytest.fixture
    def local(self, repo: SchemaDirectory) -> SchemaDirectory:
        repo.write_table_sql("User", LIVE_USER)
        repo.write_table_sql("Group", GROUP_SQL)
        return repo

    def test_auto_detects_revision_tables(self, options, local) -> None:
        assert Munger(None, options).make_archive() == []
        assert local.table_names() == ["Group", "User", "UserArchive"]
        archive = local.get_table_desc("UserArchive")
        assert archive.primary_key == ("id", "revision")
        assert len(local.trigger_fragments()) == 5

    def test_rerun_is_stable(self, options, local) -> None:
        Munger(None, options).make_archive()
        first = local.read_table_sql("UserArchive")
        Munger(None, options).make_archive()
        assert local.read_table_sql("UserArchive") == first
        assert "UserArchiveArchive" not in local.table_names()

    def test_custom_pattern_and_roles(self, options, local) -> None:
        options.archive_name_pattern = "%History"
        options.tables = ["User"]
        Munger(None, options).make_archive()
        assert local.has_table("UserHistory")
        fragment_tables = {f.table for f in local.trigger_fragments()}
        assert fragment_tables == {"User"}

    def test_auto_detected_failure_writes_nothing(self, options, local) -> None:
        local.write_table_sql("Zeta", MYISAM_SQL)
        with pytest.raises(ArchiveCapabilityError):
            Munger(None, options).make_archive()
        assert not local.has_table("UserArchive")
        assert local.trigger_fragments() == []

    def test_explicit_failure_skips_table(self, options, local) -> None:
        local.write_table_sql("Zeta", MYISAM_SQL)
        options.tables = ["User", "Zeta"]
        failures = Munger(None, options).make_archive()
        assert [f.table for f in failures] == ["Zeta"]
        assert local.has_table("UserArchive")
        assert not local.has_table("ZetaArchive")

    def test_explicit_table_without_revision_fails(self, options, local) -> None:
        options.tables = ["Group"]
        failures = Munger(None, options).make_archive()
        assert [f.table for f in failures] == ["Group"]

    def test_explicit_missing_table(self, options, local) -> None:
        options.tables = ["Nope"]
        with pytest.raises(MungerError, match="Nope"):
            Munger(None, options).make_archive()

    def test_incompatible_existing_archive(self, options, local) -> None:
        existing = (
            "CREATE TABLE `UserArchive` (\n"
            "  `id` int(11) NOT NULL,\n"
            "  PRIMARY KEY (`id`)\n"
            ") ENGINE=InnoDB\n"
        )
        local.write_table_sql("UserArchive", existing)
        with pytest.raises(PrimaryKeyMismatchError):
            Munger(None, options).make_archive()
        assert local.read_table_sql("UserArchive") == existing
