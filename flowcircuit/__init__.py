"""
flowcircuit: minimal directed-graph execution engine with signal-labeled edges.
"""

__version__ = "0.1.0"

from flowcircuit.activity import Activity
from flowcircuit.circuit import Circuit, RunResult, run_task
from flowcircuit.errors import (
    CircuitError,
    GraphError,
    IllegalInputError,
    IllegalOutputSignalError,
    UnknownReferenceError,
    WiringError,
)
from flowcircuit.node import End, Start, task
from flowcircuit.rewrite import connect, insert_before, merge, rewrite
from flowcircuit.trace import EventEmitter, Trace, TraceEvent
from flowcircuit.types import Edge, Left, Right, RunStatus, Signal
from flowcircuit.validation import CircuitValidator
from flowcircuit.wiring import Attach, Connect, InsertBefore, Wiring

__all__ = [
    # Core
    "Activity",
    "Circuit",
    "RunResult",
    "run_task",
    # Nodes
    "End",
    "Start",
    "task",
    # Wiring
    "Wiring",
    "Attach",
    "InsertBefore",
    "Connect",
    # Rewriting
    "rewrite",
    "merge",
    "insert_before",
    "connect",
    # Types
    "Signal",
    "Right",
    "Left",
    "Edge",
    "RunStatus",
    # Validation
    "CircuitValidator",
    # Tracing
    "Trace",
    "TraceEvent",
    "EventEmitter",
    # Errors
    "CircuitError",
    "GraphError",
    "WiringError",
    "UnknownReferenceError",
    "IllegalInputError",
    "IllegalOutputSignalError",
]
