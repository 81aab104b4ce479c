"""
dbmunger/errors.py
------------------
Error taxonomy shared by the parser, differencer, queue, trigger composer
and archive synthesizer.

Every fatal condition derives from :class:`MungerError` so the command
boundary can report it as one message.  Unrecognised ``CREATE TABLE`` lines
are not errors: they are collected as :class:`UnrecognizedClauseWarning`.
"""
from __future__ import annotations


class MungerError(Exception):
    """Base class for fatal schema-management errors."""


class MalformedDescriptorError(MungerError):
    """``CREATE TABLE`` text lacks its header/footer, or names the wrong table."""


class PrimaryKeyMismatchError(MungerError):
    """The desired primary key differs from the live one."""


class TypeFamilyMismatchError(MungerError):
    """A column would move between numeric, datetime and string families."""


class EngineMismatchError(MungerError):
    """The desired storage engine differs from the live one."""


class UnlabeledTriggerFragmentError(MungerError):
    """A live trigger body holds SQL outside any begin/end marker."""

    def __init__(self, table: str, event: str, timing: str, sql: str) -> None:
        self.table = table
        self.event = event
        self.timing = timing
        self.sql = sql
        super().__init__(
            f"Found unlabeled trigger code for {timing} {event} `{table}`!\n"
            f"{sql}\n"
            "Do you need to specify --init-trigger-name=NAME?"
        )


class ArchiveCapabilityError(MungerError):
    """A source table cannot carry an archive table."""

    def __init__(self, table: str, reason: str) -> None:
        self.table = table
        self.reason = reason
        super().__init__(reason)


class ActionExecutionError(MungerError):
    """A queued statement failed; the drain stopped at this action."""

    def __init__(self, description: str, sql: str, cause: Exception) -> None:
        self.description = description
        self.sql = sql
        super().__init__(f"Error executing SQL ({description}): {cause}\n{sql}")


class UnrecognizedClauseWarning(UserWarning):
    """An interior ``CREATE TABLE`` line matched no known clause and was dropped."""

    def __init__(self, table: str, line: str) -> None:
        self.table = table
        self.line = line
        super().__init__(f"Don't understand line in CREATE TABLE `{table}`: {line}")
