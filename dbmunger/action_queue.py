"""
dbmunger/action_queue.py
------------------------
Kind-bucketed queue of pending DDL actions, drained in a fixed safe order.

Design Decisions:
    * One FIFO bucket per :class:`ActionKind`; ``drain`` walks
      ``ACTION_ORDER`` and empties each bucket in insertion order.
    * Each action is removed from its bucket before it runs, so an
      interrupted drain never re-runs an action within the same process.
    * Fail-fast: the first SQL error aborts the drain with
      :class:`ActionExecutionError`.  Nothing already executed is rolled back.
    * Dry run is an explicit constructor argument: actions are reported
      and removed but never sent to the database.
"""
from __future__ import annotations

from collections import deque
from typing import Callable, Iterable

from dbmunger.database import DatabaseError, DatabaseManager
from dbmunger.errors import ActionExecutionError
from logger import get_logger
from models.action import ACTION_ORDER, Action, ActionKind

log = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]  # description, current, total


class ActionQueue:
    """
    Ordered action queue owned by one command invocation.

    Args:
        dry_run:     Report actions without executing them.
        progress_cb: Optional callback ``(description, current, total)``.

    Example::

        queue = ActionQueue(dry_run=options.dry_run)
        queue.extend(diff_table(current, desired))
        executed = queue.drain(db)
    """

    def __init__(
        self,
        dry_run: bool = False,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        self._dry_run = dry_run
        self._progress_cb = progress_cb
        self._todo: dict[ActionKind, deque[Action]] = {kind: deque() for kind in ACTION_ORDER}

    # ------------------------------------------------------------------
    # Queue building
    # ------------------------------------------------------------------

    def enqueue(self, kind: ActionKind | str, description: str, sql: str) -> Action:
        action = Action(ActionKind(kind), description, sql)
        self.add(action)
        return action

    def add(self, action: Action) -> None:
        self._todo[action.kind].append(action)

    def extend(self, actions: Iterable[Action]) -> None:
        for action in actions:
            self.add(action)

    def pending(self) -> list[Action]:
        """Snapshot of queued actions in drain order."""
        return [action for kind in ACTION_ORDER for action in self._todo[kind]]

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._todo.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def drain(self, executor: DatabaseManager | None) -> int:
        """
        Run every queued action in ``ACTION_ORDER``.

        Args:
            executor: Object with ``execute(sql)``; may be None on dry run.

        Returns:
            Number of actions processed.

        Raises:
            ActionExecutionError: On the first failing statement.
        """
        total = len(self)
        count = 0
        for kind in ACTION_ORDER:
            bucket = self._todo[kind]
            while bucket:
                action = bucket.popleft()
                count += 1
                log.info("%s", action.description)
                if self._dry_run:
                    log.info("\n%s\n", action.sql)
                else:
                    log.debug("\n%s\n", action.sql)
                    self._execute(executor, action)
                if self._progress_cb:
                    self._progress_cb(action.description, count, total)

        if self._dry_run:
            log.info("Dry run: %d action(s) reported, none executed.", count)
        return count

    @staticmethod
    def _execute(executor: DatabaseManager | None, action: Action) -> None:
        if executor is None:
            raise ActionExecutionError(
                action.description, action.sql, RuntimeError("no database connection")
            )
        try:
            executor.execute(action.sql)
        except DatabaseError as exc:
            raise ActionExecutionError(action.description, action.sql, exc) from exc
