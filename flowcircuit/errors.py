"""
Exception hierarchy for the flowcircuit execution engine.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class CircuitError(Exception):
    """Base exception for all flowcircuit errors."""

    def __init__(
        self,
        message: str,
        circuit_name: Optional[str] = None,
        node_name: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.circuit_name = circuit_name
        self.node_name = node_name
        self.metadata = metadata or {}
        self.timestamp = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        parts = [f"message={self.message!r}"]
        if self.circuit_name:
            parts.append(f"circuit_name={self.circuit_name!r}")
        if self.node_name:
            parts.append(f"node_name={self.node_name!r}")
        return f"{self.__class__.__name__}({', '.join(parts)})"


class GraphError(CircuitError):
    """Raised when the structure of a circuit is invalid."""

    pass


class WiringError(CircuitError):
    """Raised when a wiring instruction is malformed."""

    pass


class UnknownReferenceError(WiringError):
    """Raised when an instruction references an id missing from the events registry."""

    def __init__(self, reference: Any, known: Optional[list[Any]] = None) -> None:
        super().__init__(
            f"Unknown node reference {reference!r}",
            metadata={"reference": reference, "known": list(known or [])},
        )
        self.reference = reference


class IllegalInputError(CircuitError):
    """Raised when the current node is not a key of the transition table."""

    pass


class IllegalOutputSignalError(CircuitError):
    """Raised when a node emits a signal that has no wired edge."""

    def __init__(
        self,
        message: str,
        signal: Any = None,
        circuit_name: Optional[str] = None,
        node_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            circuit_name=circuit_name,
            node_name=node_name,
            metadata={"signal": signal},
        )
        self.signal = signal
