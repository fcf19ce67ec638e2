"""
Wiring instructions and the interpreter that turns them into a transition table.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, Optional, Union

from flowcircuit.errors import UnknownReferenceError, WiringError
from flowcircuit.node import Start, is_stop_event

logger = logging.getLogger(__name__)

EdgePredicate = Callable[[dict[str, Any]], bool]


@dataclass
class Attach:
    """
    Add ``target`` with an edge from ``source`` (default: the Start event).

    ``target`` is ``(node, attrs)`` and ``edge`` is ``(signal, attrs)``.
    An ``id`` in the node attrs registers the node in the events registry.
    """

    target: Any
    edge: Any
    source: Any = None


@dataclass
class InsertBefore:
    """Splice ``node`` in front of ``target``, rewiring matching incoming edges."""

    target: Any
    node: Any
    outgoing: Any
    incoming: EdgePredicate


@dataclass
class Connect:
    """Add or overwrite the edge ``(source, signal) -> target``."""

    source: Any
    signal: Hashable
    target: Any
    attrs: dict[str, Any] = field(default_factory=dict)


Instruction = Union[Attach, InsertBefore, Connect]


def split_spec(spec: Any) -> tuple[Any, dict[str, Any]]:
    """
    Split a ``(value, attrs)`` pair.

    A bare value (no attrs) is accepted as well.
    """
    if isinstance(spec, (tuple, list)):
        if len(spec) == 2 and isinstance(spec[1], dict):
            return spec[0], dict(spec[1])
        if len(spec) == 1:
            return spec[0], {}
        raise WiringError(f"Expected (value, attrs), got {spec!r}")
    return spec, {}


def resolve_reference(ref: Any, events: dict[Any, Any]) -> Any:
    """
    Resolve a node reference.

    Strings are ids looked up in the events registry, anything else is the
    node itself.

    Raises:
        UnknownReferenceError: If the id is not registered
    """
    if isinstance(ref, str):
        if ref not in events:
            raise UnknownReferenceError(ref, list(events))
        return events[ref]
    return ref


def _normalize_name(name: Any) -> str:
    return str(name).replace("-", "_").rstrip("!")


def _require(options: dict[str, Any], key: str, name: str) -> Any:
    if key not in options:
        raise WiringError(f"Instruction '{name}!' missing '{key}'")
    return options[key]


def parse_instruction(raw: Any) -> Instruction:
    """
    Convert the tuple form of an instruction into an instruction object.

    Supported forms:
        ("attach!", {"target": ..., "edge": ..., "source": ...})
        ("insert_before!", target, {"node": ..., "outgoing": ..., "incoming": ...})
        ("connect!", {"source": ..., "signal": ..., "target": ...})

    Raises:
        WiringError: If the instruction is unknown or incomplete
    """
    if isinstance(raw, (Attach, InsertBefore, Connect)):
        return raw

    if not isinstance(raw, (tuple, list)) or not raw:
        raise WiringError(f"Invalid wiring instruction: {raw!r}")

    name = _normalize_name(raw[0])
    rest = list(raw[1:])
    options: dict[str, Any] = rest.pop() if rest and isinstance(rest[-1], dict) else {}

    if name == "attach":
        return Attach(
            target=_require(options, "target", name),
            edge=_require(options, "edge", name),
            source=options.get("source"),
        )

    if name == "insert_before":
        target = rest[0] if rest else _require(options, "target", name)
        return InsertBefore(
            target=target,
            node=_require(options, "node", name),
            outgoing=_require(options, "outgoing", name),
            incoming=_require(options, "incoming", name),
        )

    if name == "connect":
        if len(rest) == 3:
            source, signal, target = rest
        else:
            source = _require(options, "source", name)
            signal = _require(options, "signal", name)
            target = _require(options, "target", name)
        return Connect(source=source, signal=signal, target=target, attrs=options.get("attrs", {}))

    raise WiringError(f"Unknown wiring instruction '{raw[0]}'")


class Wiring:
    """
    Mutable working state of a build.

    Instructions are applied strictly in order, each one seeing the effect of
    the previous ones. Ids are resolved to nodes when an instruction is
    applied; the table itself is keyed by node.
    """

    def __init__(
        self,
        table: Optional[dict[Any, dict[Hashable, Any]]] = None,
        stop_events: Optional[list[Any]] = None,
        events: Optional[dict[Any, Any]] = None,
        node_attrs: Optional[dict[Any, dict[str, Any]]] = None,
        edge_attrs: Optional[dict[tuple[Any, Hashable], dict[str, Any]]] = None,
        start_event: Optional[Start] = None,
    ) -> None:
        """
        Initialize the working state.

        With no arguments this is a fresh build: a new Start event is created
        and registered under the id "Start".
        """
        self.table = table if table is not None else {}
        self.stop_events = stop_events if stop_events is not None else []
        self.events = events if events is not None else {}
        self.node_attrs = node_attrs if node_attrs is not None else {}
        self.edge_attrs = edge_attrs if edge_attrs is not None else {}

        if start_event is None:
            start_event = Start("default")
            self.events.setdefault("Start", start_event)
        self.start_event = start_event

    def resolve(self, ref: Any) -> Any:
        return resolve_reference(ref, self.events)

    def apply(self, instructions: Iterable[Any]) -> "Wiring":
        for raw in instructions:
            instruction = parse_instruction(raw)

            if isinstance(instruction, Attach):
                self.attach(instruction)
            elif isinstance(instruction, InsertBefore):
                self.insert_before(instruction)
            else:
                self.connect(instruction)

        return self

    def attach(self, instruction: Attach) -> None:
        if instruction.source is None:
            source = self.start_event
        else:
            source = self.resolve(instruction.source)

        node, node_attrs = split_spec(instruction.target)
        signal, edge_attrs = split_spec(instruction.edge)

        self.register(node, node_attrs)
        self._wire(source, signal, node, edge_attrs)

    def insert_before(self, instruction: InsertBefore) -> None:
        target = self.resolve(instruction.target)
        node, node_attrs = split_spec(instruction.node)
        signal, edge_attrs = split_spec(instruction.outgoing)

        self.register(node, node_attrs)

        # Every matching edge is rewired, across all source nodes.
        matches = [
            (source, edge_signal)
            for source, outputs in self.table.items()
            if source is not node
            for edge_signal, dst in outputs.items()
            if dst == target
            and instruction.incoming(self.edge_attrs.get((source, edge_signal), {}))
        ]
        for source, edge_signal in matches:
            self.table[source][edge_signal] = node

        logger.debug("Inserted %r before %r, rewired %d edge(s)", node, target, len(matches))

        self._wire(node, signal, target, edge_attrs)

    def connect(self, instruction: Connect) -> None:
        source = self.resolve(instruction.source)
        target = self.resolve(instruction.target)

        self.register(target, {})
        self._wire(source, instruction.signal, target, instruction.attrs)

    def register(self, node: Any, attrs: dict[str, Any]) -> None:
        """
        Record node attrs, the node's id and, for an End, its stop event.

        Raises:
            WiringError: If the id is not a string
        """
        if "id" in attrs and not isinstance(attrs["id"], str):
            raise WiringError(f"Node id must be a string, got {attrs['id']!r}")

        if attrs:
            self.node_attrs[node] = {**self.node_attrs.get(node, {}), **attrs}
            if "id" in attrs:
                self.events[attrs["id"]] = node

        if is_stop_event(node) and node not in self.stop_events:
            self.stop_events.append(node)

    def _wire(self, source: Any, signal: Hashable, target: Any, attrs: dict[str, Any]) -> None:
        self.table.setdefault(source, {})[signal] = target
        self.edge_attrs[(source, signal)] = dict(attrs)
