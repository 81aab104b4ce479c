"""models/__init__.py"""
from models.action import ACTION_ORDER, Action, ActionKind
from models.archive import ArchiveColumnRoles
from models.schema import ConstraintDescriptor, TableDescriptor
from models.trigger import (
    LiveTrigger,
    TriggerEvent,
    TriggerFragment,
    TriggerSlot,
    TriggerTiming,
)

__all__ = [
    "ACTION_ORDER",
    "Action",
    "ActionKind",
    "ArchiveColumnRoles",
    "ConstraintDescriptor",
    "TableDescriptor",
    "LiveTrigger",
    "TriggerEvent",
    "TriggerFragment",
    "TriggerSlot",
    "TriggerTiming",
]
