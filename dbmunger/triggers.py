"""
dbmunger/triggers.py
--------------------
Composes labelled SQL fragments into physical trigger bodies, splits live
trigger bodies back into fragments, and diffs live against desired triggers.

Body Format::

    /** begin 20-archive */
    SET NEW.`revision` = OLD.`revision` + 1;
    /** end 20-archive */
    /** begin 50-custom */
    ...
    /** end 50-custom */

Design Decisions:
    * Fragments are composed in ascending label order, so label prefixes
      (``20-``, ``40-``) control execution order inside one trigger.
    * ``split(compose(fs)) == fs`` for distinct labels: the begin marker's
      newline and everything after the end marker are the only bytes the
      markers own.
    * MySQL has no ALTER TRIGGER, so any difference is a drop + create.
"""
from __future__ import annotations

import re
from typing import Iterable, Mapping

from dbmunger.errors import UnlabeledTriggerFragmentError
from logger import get_logger
from models.action import Action, ActionKind
from models.trigger import (
    LiveTrigger,
    TriggerEvent,
    TriggerFragment,
    TriggerSlot,
    TriggerTiming,
)

log = get_logger(__name__)

_TAGGED_RE = re.compile(
    r"/\*\* begin (\S+) \*/[ \t]*\n?(.*?)/\*\* end \1 \*/\s*", re.DOTALL
)
_WRAPPER_RE = re.compile(r"^\s*BEGIN\s*(.*)END\s*$", re.DOTALL | re.IGNORECASE)


def wrap_fragment(label: str, body: str) -> str:
    return f"/** begin {label} */\n{body}/** end {label} */\n"


def compose(fragments: Iterable[TriggerFragment]) -> str:
    """Concatenate fragments, ordered by label, into one trigger body."""
    return "".join(
        wrap_fragment(f.label, f.body) for f in sorted(fragments, key=lambda f: f.label)
    )


def assemble(fragments: Iterable[TriggerFragment]) -> dict[TriggerSlot, str]:
    """Group fragments by (table, event, timing) and compose each group."""
    grouped: dict[TriggerSlot, list[TriggerFragment]] = {}
    for fragment in fragments:
        grouped.setdefault(fragment.slot, []).append(fragment)
    return {slot: compose(group) for slot, group in grouped.items()}


def split(
    body: str,
    table: str,
    event: TriggerEvent | str,
    timing: TriggerTiming | str,
    default_label: str | None = None,
) -> list[TriggerFragment]:
    """
    Split a trigger body into its labelled fragments.

    Args:
        body:          Trigger body with the BEGIN/END wrapper already removed.
        table:         Owning table.
        event:         Trigger event.
        timing:        Trigger timing.
        default_label: Label given to untagged leftover SQL, if any.

    Returns:
        Fragments sorted by label.

    Raises:
        UnlabeledTriggerFragmentError: Leftover untagged SQL and no default label.
    """
    event = TriggerEvent(event)
    timing = TriggerTiming(timing)
    fragments: list[TriggerFragment] = []

    remaining = body
    while True:
        match = _TAGGED_RE.search(remaining)
        if not match:
            break
        fragments.append(TriggerFragment(
            label=match.group(1),
            table=table,
            event=event,
            timing=timing,
            body=match.group(2),
        ))
        remaining = remaining[: match.start()] + remaining[match.end():]

    leftover = remaining.strip()
    if leftover:
        if not default_label:
            raise UnlabeledTriggerFragmentError(table, event.value, timing.value, leftover)
        log.info(
            "Assigning unlabeled %s %s `%s` trigger code to '%s'.",
            timing.value, event.value, table, default_label,
        )
        fragments.append(TriggerFragment(
            label=default_label,
            table=table,
            event=event,
            timing=timing,
            body=leftover + "\n",
        ))

    return sorted(fragments, key=lambda f: f.label)


def strip_begin_end(statement: str) -> str:
    """Remove the ``BEGIN`` … ``END`` wrapper from a live trigger statement."""
    match = _WRAPPER_RE.match(statement)
    return match.group(1) if match else statement


def trigger_name(table: str, event: TriggerEvent, timing: TriggerTiming) -> str:
    return f"{timing.value}_{event.value}_{table}"


def create_trigger_sql(
    table: str, event: TriggerEvent, timing: TriggerTiming, body: str
) -> str:
    return (
        f"CREATE TRIGGER `{trigger_name(table, event, timing)}` "
        f"{timing.value} {event.value} ON `{table}` FOR EACH ROW BEGIN\n{body}END"
    )


def _drop_trigger_action(trigger: LiveTrigger) -> Action:
    return Action(
        ActionKind.DROP_TRIGGER,
        f"Drop {trigger.timing.value} {trigger.event.value} on {trigger.table} trigger.",
        f"DROP TRIGGER IF EXISTS `{trigger.name}`",
    )


def diff_triggers(
    desired: Mapping[TriggerSlot, str],
    live: Mapping[TriggerSlot, LiveTrigger],
    remove: bool = False,
) -> list[Action]:
    """
    Compare composed desired bodies with live triggers.

    Args:
        desired: Slot → composed body (see :func:`assemble`).
        live:    Slot → live trigger as reported by the database.
        remove:  Drop live triggers that have no local fragments.

    Returns:
        ``drop_trigger`` / ``create_trigger`` actions.
    """
    actions: list[Action] = []
    for slot in sorted(desired):
        table, event, timing = slot
        body = desired[slot]
        current = live.get(slot)
        if current is not None and strip_begin_end(current.statement) == body:
            continue
        if current is not None:
            actions.append(_drop_trigger_action(current))
        actions.append(Action(
            ActionKind.CREATE_TRIGGER,
            f"Create {timing.value} {event.value} on {table} trigger.",
            create_trigger_sql(table, event, timing, body),
        ))

    if remove:
        for slot in sorted(live):
            if slot not in desired:
                actions.append(_drop_trigger_action(live[slot]))

    return actions
