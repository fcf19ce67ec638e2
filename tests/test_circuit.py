"""Tests for the transition table and execution loop."""

import pytest

from flowcircuit.circuit import Circuit, RunResult, run_task
from flowcircuit.errors import IllegalInputError, IllegalOutputSignalError
from flowcircuit.node import End, Start
from flowcircuit.types import Left, Right, RunStatus


def a(direction, options, flow_options, *args):
    return (Right, {**options, "a": True}, flow_options, *args)


def b(direction, options, flow_options, *args):
    return (Right, {**options, "b": True}, flow_options, *args)


def fail(direction, options, flow_options, *args):
    return (Left, options, flow_options, *args)


def create_circuit(table: dict, stop_events: list, name: str = "test") -> Circuit:
    """Helper to create a circuit."""
    return Circuit(table, stop_events, {}, name)


class TestCircuit:
    """Test Circuit execution."""

    def test_end_to_end(self) -> None:
        """Test running Start -> a -> End returns End and a's payload."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: a}, a: {Right: end}}, [end])

        result = circuit(start, {}, {})

        assert result == (end, {"a": True}, {})
        assert result[0] is end

    def test_payload_is_passed_through_verbatim(self) -> None:
        """Test that the returned payload is exactly what the last task produced."""
        start = Start()
        end = End("success")
        options = {"a": True}
        flow_options = {"context": object()}

        def keep(direction, opts, flow_opts, *args):
            return (Right, options, flow_options, *args)

        circuit = create_circuit({start: {Right: keep}, keep: {Right: end}}, [end])
        result = circuit(start, {}, {})

        assert result[1] is options
        assert result[2] is flow_options

    def test_extra_args_pass_through(self) -> None:
        """Test that free-form extra arguments reach the end."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: a}, a: {Right: end}}, [end])

        direction, options, flow_options, extra, more = circuit(start, {}, {}, "extra", 42)

        assert direction is end
        assert extra == "extra"
        assert more == 42

    def test_flow_options_default(self) -> None:
        """Test that missing flow_options become an empty dict."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: end}}, [end])

        assert circuit(start, {"x": 1}) == (end, {"x": 1}, {})

    def test_branching_on_left(self) -> None:
        """Test that the signal a task returns selects the edge."""
        start = Start()
        success = End("success")
        failure = End("failure")
        circuit = create_circuit(
            {
                start: {Right: fail},
                fail: {Right: success, Left: failure},
            },
            [success, failure],
        )

        assert circuit(start, {}, {})[0] is failure

    def test_arbitrary_signals(self) -> None:
        """Test that any hashable value can label an edge."""
        start = Start()
        end = End("done")
        calls = []

        def retrying(direction, options, flow_options, *args):
            calls.append(direction)
            signal = "retry" if len(calls) < 3 else 200
            return (signal, options, flow_options, *args)

        circuit = create_circuit(
            {start: {Right: retrying}, retrying: {"retry": retrying, 200: end}},
            [end],
        )

        assert circuit(start, {}, {})[0] is end
        assert calls == [Right, "retry", "retry"]

    def test_terminal_precedence(self) -> None:
        """Test that a stop event halts even if it has outgoing edges."""
        start = Start()
        end = End("success")

        def never(direction, options, flow_options, *args):
            raise AssertionError("should not be dispatched")

        circuit = create_circuit(
            {start: {Right: end}, end: {end: never}},
            [end],
        )

        assert circuit(start, {}, {})[0] is end

    def test_terminal_is_dispatched(self) -> None:
        """Test that the stop event's own result is returned."""
        start = Start()

        class Suspend(End):
            def __call__(self, direction, options, flow_options, *args):
                return (self, {**options, "suspended": True}, flow_options, *args)

        suspend = Suspend("suspend")
        circuit = create_circuit({start: {Right: suspend}}, [suspend])

        assert circuit(start, {}, {}) == (suspend, {"suspended": True}, {})

    def test_unwired_signal(self) -> None:
        """Test error on a signal that has no edge."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: fail}, fail: {Right: end}}, [end])

        with pytest.raises(IllegalOutputSignalError, match=r"`fail`===>\[ Signal\(Left\) \]") as exc_info:
            circuit(start, {}, {})

        assert exc_info.value.signal is Left
        assert exc_info.value.node_name == "fail"
        assert exc_info.value.circuit_name == "test"

    def test_unknown_node(self) -> None:
        """Test error when the current node is not in the table."""
        end = End("success")
        circuit = create_circuit({a: {Right: end}}, [end])

        with pytest.raises(IllegalInputError, match="test b") as exc_info:
            circuit(b, {}, {})

        assert exc_info.value.node_name == "b"

    def test_node_without_edges(self) -> None:
        """Test that a non-terminal dead end fails on its first signal."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: a}}, [end])

        with pytest.raises(IllegalInputError):
            circuit(start, {}, {})

    def test_debug_names_in_errors(self) -> None:
        """Test that debug names are used in error messages."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: fail}, fail: {Right: end}}, [end], {fail: "Validate"}, "checkout")

        with pytest.raises(IllegalOutputSignalError, match="from checkout: `Validate`"):
            circuit(start, {}, {})

    def test_unnamed_circuit_messages(self) -> None:
        """Test that an unnamed circuit leaves the name out of error messages."""
        start = Start()
        end = End("success")
        circuit = Circuit({start: {Right: fail}, fail: {Right: end}}, [end])

        with pytest.raises(IllegalOutputSignalError) as exc_info:
            circuit(start, {}, {})
        assert str(exc_info.value) == "from : `fail`===>[ Signal(Left) ]"

        with pytest.raises(IllegalInputError) as exc_info:
            circuit(b, {}, {})
        assert str(exc_info.value) == "b"

    def test_custom_runner(self) -> None:
        """Test that flow_options['runner'] wraps every dispatch."""
        start = Start()
        end = End("success")
        dispatched = []

        def runner(task, direction, *args):
            dispatched.append(task)
            return run_task(task, direction, *args)

        circuit = create_circuit({start: {Right: a}, a: {Right: b}, b: {Right: end}}, [end])
        result = circuit(start, {}, {"runner": runner})

        assert dispatched == [start, a, b, end]
        assert result[1] == {"a": True, "b": True}

    def test_determinism(self) -> None:
        """Test that repeated runs give the same result and path."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: a}, a: {Right: b}, b: {Right: end}}, [end])

        first = circuit.run(start, {}, {})
        second = circuit.run(start, {}, {})

        assert first.unwrap() == second.unwrap()
        assert first.visited == second.visited == [start, a, b, end]

    def test_task_errors_propagate(self) -> None:
        """Test that exceptions raised by tasks are not wrapped."""
        start = Start()
        end = End("success")

        def broken(direction, options, flow_options, *args):
            raise ValueError("boom")

        circuit = create_circuit({start: {Right: broken}, broken: {Right: end}}, [end])

        with pytest.raises(ValueError, match="boom"):
            circuit(start, {}, {})


class TestTable:
    """Test transition table queries."""

    def test_to_fields(self) -> None:
        """Test the external representation."""
        start = Start()
        end = End("success")
        table = {start: {Right: a}, a: {Right: end}}
        circuit = Circuit(table, [end], {a: "A"})

        assert circuit.to_fields() == (table, [end], {a: "A"})

    def test_lookup(self) -> None:
        """Test lookup returns the next node or None."""
        end = End("success")
        circuit = create_circuit({a: {Right: end}}, [end])

        assert circuit.lookup(a, Right) is end
        assert circuit.lookup(a, Left) is None
        assert circuit.lookup(b, Right) is None

    def test_resolve_distinguishes_errors(self) -> None:
        """Test resolve raises different errors for missing node and signal."""
        end = End("success")
        circuit = create_circuit({a: {Right: end}}, [end])

        with pytest.raises(IllegalInputError):
            circuit.resolve(b, Right)
        with pytest.raises(IllegalOutputSignalError):
            circuit.resolve(a, Left)

    def test_is_terminal(self) -> None:
        """Test terminal membership."""
        end = End("success")
        circuit = create_circuit({a: {Right: end}}, [end])

        assert circuit.is_terminal(end) is True
        assert circuit.is_terminal(a) is False


class TestRunResult:
    """Test the result-typed entry point."""

    def test_success(self) -> None:
        """Test a successful run."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: a}, a: {Right: end}}, [end])

        result = circuit.run(start, {}, {})

        assert isinstance(result, RunResult)
        assert result.success
        assert result.status == RunStatus.OK
        assert result.direction is end
        assert result.payload == ({"a": True}, {})
        assert result.error is None
        assert result.duration_ms >= 0

    def test_error_is_captured(self) -> None:
        """Test that wiring errors are returned, not raised."""
        start = Start()
        end = End("success")
        circuit = create_circuit({start: {Right: fail}, fail: {Right: end}}, [end])

        result = circuit.run(start, {}, {})

        assert not result.success
        assert result.status == RunStatus.ERROR
        assert isinstance(result.error, IllegalOutputSignalError)
        assert result.visited == [start, fail]

        with pytest.raises(IllegalOutputSignalError):
            result.unwrap()
