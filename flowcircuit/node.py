"""
Terminal nodes and task helpers.
"""

from typing import Any, Callable, Optional

from flowcircuit.types import NodeCallable, Right


class End:
    """
    Terminal node that halts the circuit when reached.

    Calling an End emits the End instance itself as the signal, so the caller
    of a circuit can tell which terminal was hit.
    """

    def __init__(self, name: Any, options: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the terminal.

        Args:
            name: Symbolic name (e.g. "success")
            options: Classification options such as {"role": "success"}
        """
        self.name = name
        self.options = dict(options or {})

    def __call__(self, direction: Any, *args: Any) -> tuple[Any, ...]:
        return (self, *args)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class Start(End):
    """Entry node. Always emits Right and passes the payload through."""

    def __init__(self, name: Any = "default", options: Optional[dict[str, Any]] = None) -> None:
        super().__init__(name, options)

    def __call__(self, direction: Any, *args: Any) -> tuple[Any, ...]:
        return (Right, *args)


def is_stop_event(node: Any) -> bool:
    """Check if a node halts execution (any End that is not a Start)."""
    return isinstance(node, End) and not isinstance(node, Start)


def task(name: Optional[str] = None) -> Callable[[NodeCallable], NodeCallable]:
    """
    Decorator to attach a debug name to a task callable.

    Args:
        name: Display name used in diagnostics and traces

    Returns:
        Decorated function with attached name

    Example:
        @task(name="validate")
        def validate(direction, options, flow_options, *args):
            return (Right, options, flow_options, *args)
    """
    def decorator(func: NodeCallable) -> NodeCallable:
        func.__task_name__ = name or getattr(func, "__name__", repr(func))  # type: ignore
        return func

    return decorator


def debug_name(node: Any, debug: Optional[dict[Any, Any]] = None) -> str:
    """
    Resolve the display name of a node.

    The debug table wins, then a name attached with @task, then End.name,
    then the callable's __name__.
    """
    if debug and node in debug:
        return str(debug[node])
    if hasattr(node, "__task_name__"):
        return str(node.__task_name__)
    if isinstance(node, End):
        return f"{node.__class__.__name__}.{node.name}"
    name = getattr(node, "__name__", None)
    if name and name != "<lambda>":
        return str(name)
    return repr(node)
