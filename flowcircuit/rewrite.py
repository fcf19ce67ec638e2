"""
Copy-then-edit rewriting of activities.

Every function here returns a new Activity. The source activity's table,
stop events, events registry and debug table are never touched: the table
is deep-copied (each node's signal mapping is copied too) before any edit
runs.
"""

import logging
from typing import Any, Callable, Hashable, Iterable, Optional

from flowcircuit.activity import Activity
from flowcircuit.node import is_stop_event
from flowcircuit.wiring import Connect, Wiring, resolve_reference

logger = logging.getLogger(__name__)

TableEdit = Callable[[dict[Any, dict[Hashable, Any]], dict[Any, Any]], None]


def copy_wiring(
    activity: Activity,
    debug: Optional[dict[Any, Any]] = None,
    events: Optional[dict[Any, Any]] = None,
) -> tuple[Wiring, dict[Any, Any]]:
    """
    Decompose an activity into an independent, mutable Wiring.

    Args:
        activity: Source activity, left untouched
        debug: Debug names to merge into the copied debug table
        events: Events to merge into the copied events registry

    Returns:
        Tuple of (wiring, debug table)
    """
    circuit, old_events = activity.values()
    table, stop_events, old_debug = circuit.to_fields()

    new_table = {node: dict(outputs) for node, outputs in table.items()}

    wiring = Wiring(
        table=new_table,
        stop_events=list(stop_events),
        events={**old_events, **(events or {})},
        node_attrs={node: dict(attrs) for node, attrs in activity.node_attrs.items()},
        edge_attrs={key: dict(attrs) for key, attrs in activity.edge_attrs.items()},
        start_event=activity.start_event,
    )
    for node in (events or {}).values():
        wiring.register(node, {})

    return wiring, {**old_debug, **(debug or {})}


def rewrite(
    activity: Activity,
    edit: TableEdit,
    debug: Optional[dict[Any, Any]] = None,
    events: Optional[dict[Any, Any]] = None,
) -> Activity:
    """
    Deep-copy an activity's table and let ``edit`` alter the copy.

    Args:
        activity: Source activity
        edit: Called as ``edit(table, events)`` with the copied, mutable table
            and events registry
        debug: Debug names to add
        events: Events to add

    Returns:
        New Activity wrapping the edited copy

    Example:
        >>> extended = rewrite(activity, lambda table, evt: table.update(
        ...     {task: {Right: evt["End.success"]}}))
    """
    wiring, new_debug = copy_wiring(activity, debug, events)
    edit(wiring.table, wiring.events)

    # Ends wired in by the edit halt execution like any other. Edges added
    # by the edit carry empty attrs so later incoming predicates see them.
    for source, outputs in wiring.table.items():
        for signal, target in outputs.items():
            wiring.edge_attrs.setdefault((source, signal), {})
            if is_stop_event(target):
                wiring.register(target, {})

    logger.debug("Rewrote activity %s", activity.circuit.name)
    return Activity.from_wiring(wiring, debug=new_debug, name=activity.circuit.name)


def merge(
    activity: Activity,
    wirings: Iterable[Any],
    debug: Optional[dict[Any, Any]] = None,
) -> Activity:
    """
    Apply wiring instructions to a copy of ``activity``.

    Raises:
        UnknownReferenceError: If an instruction references an unknown id
    """
    wiring, new_debug = copy_wiring(activity, debug)
    wiring.apply(wirings)
    return Activity.from_wiring(wiring, debug=new_debug, name=activity.circuit.name)


def insert_before(
    activity: Activity,
    old_task: Any,
    new_task: Any,
    direction: Hashable,
    debug: Optional[dict[Any, Any]] = None,
) -> Activity:
    """
    Rewire every ``direction`` edge into ``old_task`` to ``new_task``, then
    connect ``new_task --direction--> old_task``.
    """
    def edit(table: dict[Any, dict[Hashable, Any]], events: dict[Any, Any]) -> None:
        old = resolve_reference(old_task, events)
        for source, outputs in table.items():
            if source is not new_task and outputs.get(direction) == old:
                outputs[direction] = new_task
        table.setdefault(new_task, {})[direction] = old

    return rewrite(activity, edit, debug)


def connect(activity: Activity, source: Any, direction: Hashable, target: Any) -> Activity:
    """Copy ``activity`` and wire ``source --direction--> target``."""
    return merge(activity, [Connect(source=source, signal=direction, target=target)])
