"""
Activities: named circuits with an addressable events registry.
"""

from typing import Any, Hashable, Iterable, Optional

from flowcircuit.circuit import Circuit, RunResult
from flowcircuit.node import Start
from flowcircuit.types import Edge
from flowcircuit.validation import CircuitValidator
from flowcircuit.wiring import Wiring

# Node attributes consumed by the builder, not part of a terminal's outputs.
BUILDER_KEYS = frozenset({"id", "type"})


class Activity:
    """
    A circuit plus the registries used to address and extend it.

    ``events`` maps ids (e.g. "Start", "End.success") to nodes. Node and edge
    attributes given in wiring instructions are kept so later merges can
    select edges by attribute.

    Activities are built once and not changed afterwards; use merge or the
    functions in flowcircuit.rewrite to derive a new one.
    """

    def __init__(
        self,
        circuit: Circuit,
        events: dict[Any, Any],
        start_event: Start,
        node_attrs: Optional[dict[Any, dict[str, Any]]] = None,
        edge_attrs: Optional[dict[tuple[Any, Hashable], dict[str, Any]]] = None,
    ) -> None:
        self.circuit = circuit
        self.start_event = start_event
        self._events = events
        self._node_attrs = node_attrs or {}
        self._edge_attrs = edge_attrs or {}
        self._validator = CircuitValidator()

    @classmethod
    def from_wirings(
        cls,
        wirings: Iterable[Any],
        name: Optional[str] = None,
        debug: Optional[dict[Any, Any]] = None,
    ) -> "Activity":
        """
        Build an activity from wiring instructions.

        A Start event is created for the build and registered as "Start";
        attach instructions without a source hang off it.

        Args:
            wirings: Wiring instructions, applied in order
            name: Circuit name for diagnostics
            debug: node -> display name

        Returns:
            New Activity

        Raises:
            WiringError: If an instruction is malformed
            UnknownReferenceError: If an instruction references an unknown id

        Example:
            >>> activity = Activity.from_wirings([
            ...     ("attach!", {"target": (validate, {"id": "validate"}),
            ...                  "edge": (Right, {"type": "railway"})}),
            ...     ("attach!", {"source": "validate",
            ...                  "target": (End("success"), {"id": "End.success", "role": "success"}),
            ...                  "edge": (Right, {"type": "railway"})}),
            ... ])
        """
        wiring = Wiring().apply(wirings)
        return cls.from_wiring(wiring, debug=debug, name=name)

    @classmethod
    def from_wiring(
        cls,
        wiring: Wiring,
        debug: Optional[dict[Any, Any]] = None,
        name: Optional[str] = None,
    ) -> "Activity":
        """Wrap the state of a finished build."""
        circuit = Circuit(wiring.table, wiring.stop_events, debug or {}, name)
        return cls(
            circuit,
            wiring.events,
            wiring.start_event,
            node_attrs=wiring.node_attrs,
            edge_attrs=wiring.edge_attrs,
        )

    @classmethod
    def merge(
        cls,
        activity: "Activity",
        wirings: Iterable[Any],
        debug: Optional[dict[Any, Any]] = None,
    ) -> "Activity":
        """
        Apply wiring instructions to a copy of ``activity``.

        The given activity is left unchanged.
        """
        from flowcircuit.rewrite import merge

        return merge(activity, wirings, debug=debug)

    @property
    def events(self) -> dict[Any, Any]:
        return self._events

    @property
    def node_attrs(self) -> dict[Any, dict[str, Any]]:
        return self._node_attrs

    @property
    def edge_attrs(self) -> dict[tuple[Any, Hashable], dict[str, Any]]:
        return self._edge_attrs

    def values(self) -> tuple[Circuit, dict[Any, Any]]:
        """Decompose into ``(circuit, events)``."""
        return (self.circuit, self._events)

    def __getitem__(self, event_id: Any) -> Any:
        return self._events[event_id]

    def __call__(
        self,
        options: Any,
        flow_options: Optional[dict[str, Any]] = None,
        *args: Any,
    ) -> tuple[Any, ...]:
        """Run the circuit from the start event."""
        return self.circuit(self.start_event, options, flow_options, *args)

    def run(
        self,
        options: Any,
        flow_options: Optional[dict[str, Any]] = None,
        *args: Any,
    ) -> RunResult:
        """Run the circuit from the start event, capturing wiring errors."""
        return self.circuit.run(self.start_event, options, flow_options, *args)

    @property
    def outputs(self) -> dict[Any, dict[str, Any]]:
        """
        Map each terminal to its declared attributes.

        Attributes are the End's own options overlaid with the node attrs
        given when it was attached, without the builder keys ``id`` and
        ``type``.

        Example:
            >>> activity.outputs
            {End('success'): {'role': 'success'}, End('fail'): {'role': 'failure'}}
        """
        outputs: dict[Any, dict[str, Any]] = {}

        for end in self.circuit.stop_events:
            attrs = {**getattr(end, "options", {}), **self._node_attrs.get(end, {})}
            outputs[end] = {k: v for k, v in attrs.items() if k not in BUILDER_KEYS}

        return outputs

    def edges(self) -> list[Edge]:
        """
        List every wired edge with its attributes.

        Returns:
            Edges in table order
        """
        return [
            Edge(
                source=source,
                signal=signal,
                target=target,
                attrs=dict(self._edge_attrs.get((source, signal), {})),
            )
            for source, outputs in self.circuit.map.items()
            for signal, target in outputs.items()
        ]

    def validate(self) -> None:
        """
        Validate the activity's circuit from its start event.

        Raises:
            GraphError: If the structure is invalid
        """
        self._validator.validate(self.circuit, start_at=self.start_event)

    def __repr__(self) -> str:
        return (
            f"Activity(name={self.circuit.name!r}, nodes={len(self.circuit.map)}, "
            f"stop_events={self.circuit.stop_events!r})"
        )
