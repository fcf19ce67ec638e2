"""
Core type system and data structures for flowcircuit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable


# Node callable signature: (direction, options, flow_options, *args)
#   -> (signal, options, flow_options, *args)
NodeCallable = Callable[..., tuple[Any, ...]]


class RunStatus(str, Enum):
    """Status of a circuit run."""
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class Signal:
    """
    Opaque token labeling an edge.

    Signals compare by name, so two ``Signal("Right")`` instances address the
    same edge. Any other hashable value works as an edge key as well.
    """

    name: str

    def __repr__(self) -> str:
        return f"Signal({self.name})"


Right = Signal("Right")
Left = Signal("Left")


@dataclass
class Edge:
    """Represents one wired transition between nodes."""

    source: Any
    signal: Hashable
    target: Any
    attrs: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Edge({self.source!r} --{self.signal!r}--> {self.target!r})"
