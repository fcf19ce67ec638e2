"""
Transition table and execution loop.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Hashable, Optional

from flowcircuit.errors import CircuitError, IllegalInputError, IllegalOutputSignalError
from flowcircuit.node import debug_name
from flowcircuit.types import NodeCallable, RunStatus

logger = logging.getLogger(__name__)


def run_task(task: NodeCallable, direction: Any, *args: Any) -> tuple[Any, ...]:
    """Default runner: call the task directly."""
    return task(direction, *args)


@dataclass
class RunResult:
    """Result of a circuit run."""

    status: RunStatus
    direction: Any
    payload: tuple[Any, ...]
    started_at: datetime
    finished_at: datetime
    duration_ms: float
    visited: list[Any] = field(default_factory=list)
    error: Optional[CircuitError] = None

    @property
    def success(self) -> bool:
        """Check if run reached a terminal node."""
        return self.status == RunStatus.OK

    def unwrap(self) -> tuple[Any, ...]:
        """
        Return ``(direction, *payload)`` or raise the captured error.

        Raises:
            CircuitError: If the run failed
        """
        if self.error is not None:
            raise self.error
        return (self.direction, *self.payload)


class Circuit:
    """
    Runs tasks sequentially, following the signal each task returns.

    The circuit is a transition table: ``table`` maps every node with outgoing
    edges to a ``{signal: next_node}`` mapping. Execution stops at the first
    dispatched node that is in ``stop_events``.

    Use Activity to build circuits from wiring instructions.
    """

    def __init__(
        self,
        table: dict[Any, dict[Hashable, Any]],
        stop_events: list[Any],
        debug: Optional[dict[Any, Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initialize the circuit.

        Args:
            table: node -> {signal: next_node}
            stop_events: Terminal nodes that halt execution
            debug: node -> display name for diagnostics
            name: Circuit name for diagnostics
        """
        self._table = table
        self._stop_events = stop_events
        self._debug = debug if debug is not None else {}
        self.name = name

    @property
    def map(self) -> dict[Any, dict[Hashable, Any]]:
        return self._table

    @property
    def stop_events(self) -> list[Any]:
        return self._stop_events

    @property
    def debug(self) -> dict[Any, Any]:
        return self._debug

    def to_fields(self) -> tuple[dict[Any, dict[Hashable, Any]], list[Any], dict[Any, Any]]:
        """Return the circuit's components as ``(map, stop_events, debug)``."""
        return (self._table, self._stop_events, self._debug)

    def is_terminal(self, node: Any) -> bool:
        return node in self._stop_events

    def has_node(self, node: Any) -> bool:
        return node in self._table

    def lookup(self, node: Any, signal: Hashable) -> Optional[Any]:
        """Get the node wired to ``signal`` from ``node``, or None."""
        return self._table.get(node, {}).get(signal)

    def resolve(self, node: Any, signal: Hashable) -> Any:
        """
        Get the next node, failing loudly when the wiring is incomplete.

        Raises:
            IllegalInputError: If node is not in the table
            IllegalOutputSignalError: If signal is not wired for node
        """
        node_name = self.name_for(node)
        circuit_name = self.name or ""

        if node not in self._table:
            raise IllegalInputError(
                f"{circuit_name} {node_name}".lstrip(),
                circuit_name=self.name,
                node_name=node_name,
            )

        outputs = self._table[node]
        if signal not in outputs:
            raise IllegalOutputSignalError(
                f"from {circuit_name}: `{node_name}`===>[ {signal!r} ]",
                signal=signal,
                circuit_name=self.name,
                node_name=node_name,
            )

        return outputs[signal]

    def name_for(self, node: Any) -> str:
        return debug_name(node, self._debug)

    def __call__(
        self,
        start_at: Any,
        options: Any,
        flow_options: Optional[dict[str, Any]] = None,
        *args: Any,
    ) -> tuple[Any, ...]:
        """
        Run the circuit from ``start_at`` until a stop event is dispatched.

        Args:
            start_at: Node to dispatch first
            options: First payload element, passed to every task
            flow_options: Second payload element; ``flow_options["runner"]``
                replaces the default dispatch
            *args: Extra payload, passed through

        Returns:
            ``(direction, options, flow_options, *args)`` as returned by the
            stop event

        Raises:
            IllegalInputError: If a dispatched node has no wiring
            IllegalOutputSignalError: If a node emits an unwired signal
        """
        return self._execute(start_at, options, flow_options, args, visited=None)

    def run(
        self,
        start_at: Any,
        options: Any,
        flow_options: Optional[dict[str, Any]] = None,
        *args: Any,
    ) -> RunResult:
        """
        Run the circuit and capture wiring errors in a RunResult.

        Exceptions raised by the tasks themselves are not captured.
        """
        started_at = datetime.now(timezone.utc)
        start_time = time.time()
        visited: list[Any] = []

        try:
            direction, *payload = self._execute(
                start_at, options, flow_options, args, visited=visited
            )
            status = RunStatus.OK
            error = None
        except CircuitError as e:
            logger.debug("Circuit %s failed: %s", self.name, e.message)
            direction, payload = None, []
            status = RunStatus.ERROR
            error = e

        return RunResult(
            status=status,
            direction=direction,
            payload=tuple(payload),
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            duration_ms=(time.time() - start_time) * 1000,
            visited=visited,
            error=error,
        )

    def _execute(
        self,
        start_at: Any,
        options: Any,
        flow_options: Optional[dict[str, Any]],
        args: tuple[Any, ...],
        visited: Optional[list[Any]],
    ) -> tuple[Any, ...]:
        if flow_options is None:
            flow_options = {}
        runner = flow_options.get("runner") or run_task

        task = start_at
        direction: Any = None
        payload: tuple[Any, ...] = (options, flow_options, *args)

        while True:
            if visited is not None:
                visited.append(task)

            logger.debug("%s: dispatching %s", self.name, self.name_for(task))
            direction, *rest = runner(task, direction, *payload)
            payload = tuple(rest)

            # The stop event's own result is the circuit's result.
            if self.is_terminal(task):
                logger.debug("%s: stopped at %s", self.name, self.name_for(task))
                return (direction, *payload)

            next_task = self.resolve(task, direction)
            logger.debug(
                "%s: %s --%r--> %s",
                self.name,
                self.name_for(task),
                direction,
                self.name_for(next_task),
            )
            task = next_task
