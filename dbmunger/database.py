"""
dbmunger/database.py
--------------------
MySQL/MariaDB connection management and the schema queries the engine needs.

Design Decisions:
    * ``DatabaseManager`` is a context manager so callers can use it with
      ``with`` statements and be guaranteed the connection is closed on exit.
    * All identifiers are backtick-quoted; the only data value sent
      (the schema name for ``SHOW PROCEDURE STATUS``) is parameterised.
    * One connection, strictly sequential use.  DDL is non-transactional in
      MySQL, so there is no rollback handling here: a failed statement is
      reported and the caller stops.
    * The engine depends only on ``list_tables``, ``show_create_table``,
      ``list_triggers``, ``list_procedure_names``, ``show_create_procedure``
      and ``execute``; tests substitute a mock exposing the same methods.
"""
from __future__ import annotations

import time

import mysql.connector
from mysql.connector import MySQLConnection
from mysql.connector.cursor import MySQLCursor

from config import CONFIG
from logger import get_logger
from models.trigger import LiveTrigger, TriggerEvent, TriggerTiming

log = get_logger(__name__)


class DatabaseError(Exception):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when the connection to MySQL is detected as lost."""


def _text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return "" if value is None else str(value)


class DatabaseManager:
    """
    MySQL connection wrapper exposing the schema queries used by the munger.

    Example::

        with DatabaseManager.from_config(user="root", password="secret", schema="app") as db:
            for name in db.list_tables():
                print(db.show_create_table(name))
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str | None,
        password: str | None,
        schema: str,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        max_retries: int = 1,
        retry_delay: float = 1.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._charset = charset
        self._connect_timeout = connect_timeout
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self.schema = schema

        self._conn: MySQLConnection | None = None
        self._cursor: MySQLCursor | None = None

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        user: str | None = None,
        password: str | None = None,
        schema: str | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> "DatabaseManager":
        """Convenience factory filling gaps from the application config."""
        schema = schema or CONFIG.db.schema
        if not schema:
            raise DatabaseError("No database schema specified.")
        return cls(
            host=host or CONFIG.db.host,
            port=port or CONFIG.db.port,
            user=user or CONFIG.db.user,
            password=password if password is not None else CONFIG.db.password,
            schema=schema,
            charset=CONFIG.db.charset,
            connect_timeout=CONFIG.db.connect_timeout,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "DatabaseManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False  # Never suppress exceptions

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the MySQL connection.

        Raises:
            DatabaseError: If the connection cannot be established.
        """
        for attempt in range(1, self._max_retries + 1):
            try:
                log.info(
                    "Connecting to %s at %s:%s (attempt %d/%d)",
                    self.schema, self._host, self._port, attempt, self._max_retries,
                )
                self._conn = mysql.connector.connect(
                    host=self._host,
                    port=self._port,
                    user=self._user,
                    password=self._password,
                    database=self.schema,
                    charset=self._charset,
                    connect_timeout=self._connect_timeout,
                    autocommit=True,
                )
                self._cursor = self._conn.cursor()
                log.debug("Connected to MySQL successfully.")
                return
            except mysql.connector.Error as exc:
                log.warning("Connection attempt %d failed: %s", attempt, exc)
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay * attempt)
        raise DatabaseError(
            f"Could not connect to MySQL at {self._host}:{self._port} "
            f"after {self._max_retries} attempt(s)."
        )

    def close(self) -> None:
        """Close cursor and connection, logging any cleanup errors."""
        try:
            if self._cursor:
                self._cursor.close()
        except mysql.connector.Error as exc:
            log.debug("Cursor close failed: %s", exc)
        try:
            if self._conn and self._conn.is_connected():
                self._conn.close()
                log.debug("Database connection closed.")
        except mysql.connector.Error as exc:
            log.debug("Connection close failed: %s", exc)
        self._cursor = None
        self._conn = None

    @property
    def is_connected(self) -> bool:
        return bool(self._conn and self._conn.is_connected())

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionLostError(
                "Database connection is not open. Call connect() first."
            )

    # ------------------------------------------------------------------
    # Public query helpers
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: tuple | None = None) -> MySQLCursor:
        """
        Execute a SQL statement and return the cursor.

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On MySQL execution errors.
        """
        self._ensure_connected()
        assert self._cursor is not None
        try:
            self._cursor.execute(sql, params)
            return self._cursor
        except mysql.connector.Error as exc:
            log.error("SQL execution error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc

    def fetchall(self) -> list[tuple]:
        """Fetch all rows from the last execute."""
        assert self._cursor is not None
        return self._cursor.fetchall() or []

    def fetchone(self) -> tuple | None:
        """Fetch one row from the last execute."""
        assert self._cursor is not None
        return self._cursor.fetchone()

    # ------------------------------------------------------------------
    # Schema queries
    # ------------------------------------------------------------------

    def list_tables(self) -> list[str]:
        """Return table names in the current schema."""
        self.execute("SHOW TABLES")
        return [_text(row[0]) for row in self.fetchall()]

    def show_create_table(self, name: str) -> str:
        """Return ``SHOW CREATE TABLE`` text, newline-terminated."""
        self.execute(f"SHOW CREATE TABLE `{name}`")
        row = self.fetchone()
        if row is None:
            raise DatabaseError(f"SHOW CREATE TABLE `{name}` returned no rows.")
        return _text(row[1]) + "\n"

    def list_triggers(self) -> list[LiveTrigger]:
        """
        Return triggers reported by ``SHOW TRIGGERS``.

        Row layout: Trigger, Event, Table, Statement, Timing, …
        """
        self.execute("SHOW TRIGGERS")
        return [
            LiveTrigger(
                name=_text(row[0]),
                event=TriggerEvent(_text(row[1]).lower()),
                table=_text(row[2]),
                statement=_text(row[3]),
                timing=TriggerTiming(_text(row[4]).lower()),
            )
            for row in self.fetchall()
        ]

    def list_procedure_names(self) -> list[str]:
        """Return stored procedure names in the current schema."""
        self.execute("SHOW PROCEDURE STATUS WHERE Db = %s", (self.schema,))
        return [_text(row[1]) for row in self.fetchall()]

    def show_create_procedure(self, name: str) -> str:
        """Return ``SHOW CREATE PROCEDURE`` text, newline-terminated."""
        self.execute(f"SHOW CREATE PROCEDURE `{name}`")
        row = self.fetchone()
        if row is None or row[2] is None:
            raise DatabaseError(f"SHOW CREATE PROCEDURE `{name}` returned no body.")
        sql = _text(row[2])
        if not sql.endswith("\n"):
            sql += "\n"
        return sql
