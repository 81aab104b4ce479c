"""
models/trigger.py
-----------------
Trigger fragment model.

A physical trigger (one per table × event × timing) is assembled from any
number of independently authored fragments, each identified by a label.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TriggerTiming(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class TriggerEvent(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


# (table, event, timing): one physical trigger slot
TriggerSlot = tuple[str, TriggerEvent, TriggerTiming]


@dataclass(frozen=True)
class TriggerFragment:
    """
    One labelled SQL snippet contributing to a trigger body.

    Attributes:
        label:  Logical label; fragments are composed in ascending label order.
        table:  Owning table.
        event:  ``insert`` / ``update`` / ``delete``.
        timing: ``before`` / ``after``.
        body:   SQL text placed between the begin/end markers.
    """
    label: str
    table: str
    event: TriggerEvent
    timing: TriggerTiming
    body: str

    @property
    def key(self) -> tuple[str, TriggerEvent, TriggerTiming, str]:
        return (self.table, self.event, self.timing, self.label)

    @property
    def slot(self) -> TriggerSlot:
        return (self.table, self.event, self.timing)

    @property
    def file_name(self) -> str:
        """``<label>.<timing>.<event>.<table>.sql``"""
        return f"{self.label}.{self.timing.value}.{self.event.value}.{self.table}.sql"


@dataclass(frozen=True)
class LiveTrigger:
    """A trigger as reported by ``SHOW TRIGGERS`` (body still wrapped)."""
    name: str
    timing: TriggerTiming
    event: TriggerEvent
    table: str
    statement: str

    @property
    def slot(self) -> TriggerSlot:
        return (self.table, self.event, self.timing)
