"""
Tracing runner and trace events for observable circuit execution.

A Trace wraps dispatch only; the circuit loop is unchanged. Install it by
passing ``trace.runner`` as ``flow_options["runner"]`` or use Trace.call.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from flowcircuit.circuit import run_task
from flowcircuit.node import debug_name

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Types of events emitted while tracing."""

    TASK_INVOKED = "task_invoked"
    TASK_RETURNED = "task_returned"
    TASK_FAILED = "task_failed"


@dataclass
class TraceEvent:
    """Base event structure for all trace events."""

    run_id: str
    node_name: str
    kind: EventKind
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "node_name": self.node_name,
            "meta": self.meta,
        }


@dataclass
class TaskInvokedEvent(TraceEvent):
    """Emitted right before a task is dispatched."""

    kind: EventKind = field(default=EventKind.TASK_INVOKED, init=False)

    def __post_init__(self) -> None:
        self.meta.setdefault("direction", None)
        self.meta.setdefault("step", 0)


@dataclass
class TaskReturnedEvent(TraceEvent):
    """Emitted when a task returns."""

    kind: EventKind = field(default=EventKind.TASK_RETURNED, init=False)

    def __post_init__(self) -> None:
        self.meta.setdefault("direction", None)
        self.meta.setdefault("step", 0)
        self.meta.setdefault("duration_ms", 0)


@dataclass
class TaskFailedEvent(TraceEvent):
    """Emitted when a task raises."""

    kind: EventKind = field(default=EventKind.TASK_FAILED, init=False)

    def __post_init__(self) -> None:
        self.meta.setdefault("error_class", "")
        self.meta.setdefault("error_message", "")
        self.meta.setdefault("step", 0)
        self.meta.setdefault("duration_ms", 0)


class EventEmitter:
    """
    Thread-safe event emitter for in-process subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[TraceEvent], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[TraceEvent], None]) -> None:
        """
        Subscribe to all events.

        Args:
            callback: Function called with each emitted event
        """
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[TraceEvent], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def emit(self, event: TraceEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing subscriber is logged and does not stop the run.
        """
        with self._lock:
            subscribers = self._subscribers.copy()

        # Call subscribers outside the lock to avoid deadlocks
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Trace subscriber %r failed on %s", callback, event.kind.value)

    def clear(self) -> None:
        """Remove all subscribers."""
        with self._lock:
            self._subscribers.clear()


@dataclass
class TraceEntry:
    """One dispatched task."""

    node: Any
    name: str
    direction_in: Any
    direction_out: Any


class Trace:
    """
    Records which node ran with which signal.
    """

    def __init__(
        self,
        debug: Optional[dict[Any, Any]] = None,
        emitter: Optional[EventEmitter] = None,
        run_id: Optional[str] = None,
    ) -> None:
        """
        Initialize the trace.

        Args:
            debug: node -> display name
            emitter: Emitter to publish events on (default: a new one)
            run_id: Identifier stamped on every event (default: random uuid)
        """
        self.run_id = run_id or str(uuid.uuid4())
        self.emitter = emitter or EventEmitter()
        self.debug = dict(debug or {})
        self.stack: list[TraceEntry] = []
        self.logger = logging.LoggerAdapter(logger, {"run_id": self.run_id})

    def runner(self, task: Any, direction: Any, *args: Any) -> tuple[Any, ...]:
        """Dispatch ``task`` like the default runner, emitting trace events."""
        name = debug_name(task, self.debug)
        step = len(self.stack)

        self.emitter.emit(TaskInvokedEvent(
            run_id=self.run_id,
            node_name=name,
            meta={"direction": direction, "step": step},
        ))
        start_time = time.time()

        try:
            result = run_task(task, direction, *args)
        except Exception as e:
            self.emitter.emit(TaskFailedEvent(
                run_id=self.run_id,
                node_name=name,
                meta={
                    "error_class": type(e).__name__,
                    "error_message": str(e),
                    "step": step,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            ))
            raise

        direction_out = result[0]
        self.stack.append(TraceEntry(
            node=task,
            name=name,
            direction_in=direction,
            direction_out=direction_out,
        ))
        self.emitter.emit(TaskReturnedEvent(
            run_id=self.run_id,
            node_name=name,
            meta={
                "direction": direction_out,
                "step": step,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        ))
        self.logger.debug("%s: %r -> %r", name, direction, direction_out)

        return result

    def call(
        self,
        activity: Any,
        options: Any,
        flow_options: Optional[dict[str, Any]] = None,
        *args: Any,
    ) -> tuple[Any, ...]:
        """
        Run an activity with this trace's runner installed.

        Each call starts a fresh stack. The caller's flow_options are copied,
        not modified.
        """
        self.stack = []
        circuit = activity.circuit
        for node, name in circuit.debug.items():
            self.debug.setdefault(node, name)

        flow_options = {**(flow_options or {}), "runner": self.runner}
        return activity(options, flow_options, *args)

    def names(self) -> list[str]:
        """Names of the dispatched nodes in order."""
        return [entry.name for entry in self.stack]
