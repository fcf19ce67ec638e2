"""Tests for validation logic."""

import pytest

from flowcircuit.circuit import Circuit
from flowcircuit.errors import GraphError
from flowcircuit.node import End, Start
from flowcircuit.types import Left, Right
from flowcircuit.validation import CircuitValidator, reachable_nodes


def a(direction, *args):
    return (Right, *args)


def b(direction, *args):
    return (Right, *args)


class TestReachableNodes:
    """Test reachability traversal."""

    def test_breadth_first(self) -> None:
        """Test nodes are listed breadth-first from the start."""
        start = Start()
        success = End("success")
        failure = End("failure")
        circuit = Circuit(
            {start: {Right: a}, a: {Right: b, Left: failure}, b: {Right: success}},
            [success, failure],
        )

        assert reachable_nodes(circuit, start) == [start, a, b, failure, success]

    def test_cycles_terminate(self) -> None:
        """Test that cycles are visited once."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: a}, a: {Right: b}, b: {Right: a, Left: end}}, [end])

        assert reachable_nodes(circuit, start) == [start, a, b, end]

    def test_stops_at_terminals(self) -> None:
        """Test that edges out of stop events are not followed."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: end}, end: {Right: a}}, [end])

        assert reachable_nodes(circuit, start) == [start, end]


class TestCircuitValidator:
    """Test CircuitValidator."""

    def test_valid_circuit(self) -> None:
        """Test validating a complete circuit."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: a}, a: {Right: end}}, [end])

        CircuitValidator().validate(circuit, start_at=start)

    def test_no_stop_events(self) -> None:
        """Test error when there is nothing to stop at."""
        start = Start()
        circuit = Circuit({start: {Right: a}, a: {Right: start}}, [], name="loop")

        with pytest.raises(GraphError, match="no stop events") as exc_info:
            CircuitValidator().validate(circuit)

        assert exc_info.value.circuit_name == "loop"

    def test_dangling_target(self) -> None:
        """Test error when an edge leads to a node with no edges."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: a}, a: {Right: b, Left: end}}, [end], {b: "B"})

        with pytest.raises(GraphError, match="Node 'B' reached from 'a'") as exc_info:
            CircuitValidator().validate(circuit)

        assert exc_info.value.node_name == "B"

    def test_unknown_start(self) -> None:
        """Test error when the start node is not part of the circuit."""
        end = End("success")
        circuit = Circuit({a: {Right: end}}, [end])

        with pytest.raises(GraphError, match="not in the circuit"):
            CircuitValidator().validate(circuit, start_at=b)

    def test_no_reachable_stop_event(self) -> None:
        """Test error when a cycle never reaches a stop event."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: a}, a: {Right: b}, b: {Right: a}, end: {}}, [end])

        with pytest.raises(GraphError, match="No stop event reachable"):
            CircuitValidator().validate(circuit, start_at=start)
