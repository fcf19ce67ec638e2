"""
Structural validation of circuits.
"""

from collections import deque
from typing import Any, Optional

from flowcircuit.circuit import Circuit
from flowcircuit.errors import GraphError


def reachable_nodes(circuit: Circuit, start_at: Any) -> list[Any]:
    """
    Collect the nodes reachable from ``start_at``.

    Args:
        circuit: Circuit to traverse
        start_at: Node to start from

    Returns:
        Nodes in breadth-first order, ``start_at`` first
    """
    table = circuit.map
    seen = [start_at]
    queue = deque([start_at])

    while queue:
        current = queue.popleft()
        if circuit.is_terminal(current):
            continue
        for target in table.get(current, {}).values():
            if target not in seen:
                seen.append(target)
                queue.append(target)

    return seen


class CircuitValidator:
    """
    Validates circuit structure and connectivity.
    """

    def validate(self, circuit: Circuit, start_at: Optional[Any] = None) -> None:
        """
        Validate a circuit.

        Args:
            circuit: Circuit to check
            start_at: Optional start node; enables the reachability check

        Raises:
            GraphError: If the structure is invalid
        """
        self._validate_stop_events(circuit)
        self._validate_targets(circuit)
        if start_at is not None:
            self._validate_reachable(circuit, start_at)

    def _validate_stop_events(self, circuit: Circuit) -> None:
        if not circuit.stop_events:
            raise GraphError(
                "Circuit has no stop events",
                circuit_name=circuit.name,
            )

    def _validate_targets(self, circuit: Circuit) -> None:
        """
        Ensure every edge target either has outgoing edges or is a stop event.

        Raises:
            GraphError: If a target would be a dead end
        """
        for source, outputs in circuit.map.items():
            for signal, target in outputs.items():
                if circuit.has_node(target) or circuit.is_terminal(target):
                    continue
                target_name = circuit.name_for(target)
                raise GraphError(
                    f"Node '{target_name}' reached from '{circuit.name_for(source)}' "
                    f"via {signal!r} has no outgoing edges and is not a stop event",
                    circuit_name=circuit.name,
                    node_name=target_name,
                )

    def _validate_reachable(self, circuit: Circuit, start_at: Any) -> None:
        if not circuit.has_node(start_at) and not circuit.is_terminal(start_at):
            raise GraphError(
                f"Start node '{circuit.name_for(start_at)}' is not in the circuit",
                circuit_name=circuit.name,
            )

        reachable = reachable_nodes(circuit, start_at)
        if not any(circuit.is_terminal(node) for node in reachable):
            raise GraphError(
                f"No stop event reachable from '{circuit.name_for(start_at)}'",
                circuit_name=circuit.name,
            )
