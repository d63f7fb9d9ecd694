"""Pipeline node infrastructure.

Every stage node is a ``BaseNode`` whose ``execute`` takes the pipeline
state and returns only the fields it changes. Two decorators wrap it:

- ``handle_node_errors``: an exception becomes
  ``{"errors": [message], "current_step": "failed"}``
- ``log_node_execution``: start/finish/failure lines tagged with the
  workflow id and duration

Both also accept plain ``async def node(state)`` functions.

Example:
    >>> @NodeRegistry.register("summary")
    ... class SummaryNode(BaseNode):
    ...     name = "summary"
    ...
    ...     @handle_node_errors
    ...     @log_node_execution
    ...     async def execute(self, state):
    ...         return {"current_step": "completed"}
"""

import functools
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, TypeVar

from kb_studio.workflow.error_handling import GenerationError
from kb_studio.workflow.graph_state import PipelineState

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[dict[str, Any]]])


class BaseNode(ABC):
    """Contract for pipeline nodes: a name and an async ``execute(state)``."""

    @abstractmethod
    async def execute(self, state: PipelineState) -> dict[str, Any]:
        """Return the state fields this node changes, never the full state."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Node name used in logs and error messages."""


def _bind(func: Callable, first: Any, args: tuple) -> tuple[str, dict, tuple]:
    """Node name, state and positional call args for a method or plain function."""
    if isinstance(first, BaseNode):
        state = args[0] if args else {}
        return first.name, state, (first, *args)
    return getattr(func, "__name__", "unknown_node"), first, (first, *args)


def _failure_message(node_name: str, error: Exception) -> str:
    if isinstance(error, GenerationError):
        return f"Node '{node_name}' failed: {error}"
    return f"Node '{node_name}' failed: {type(error).__name__}: {error}"


def handle_node_errors(func: F) -> F:
    """Turn an exception raised by the node into a failed-state update.

    Example:
        >>> @handle_node_errors
        ... async def broken(state):
        ...     raise ValueError("no request")
        >>> (await broken({}))["current_step"]
        'failed'
    """

    @functools.wraps(func)
    async def wrapper(first, *args, **kwargs) -> dict[str, Any]:
        node_name, _, call_args = _bind(func, first, args)
        try:
            return await func(*call_args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            message = _failure_message(node_name, e)
            logger.error(message, exc_info=True)
            return {"errors": [message], "current_step": "failed"}

    return wrapper  # type: ignore[return-value]


def log_node_execution(func: F) -> F:
    """Log node start and completion (or failure) with its duration.

    Example output:
        [wf-123] Starting execution of node: outline
        [wf-123] Completed execution of node: outline (1.20s)
    """

    @functools.wraps(func)
    async def wrapper(first, *args, **kwargs) -> dict[str, Any]:
        node_name, state, call_args = _bind(func, first, args)
        prefix = f"[{state.get('workflow_id', 'unknown')}]"

        logger.info(f"{prefix} Starting execution of node: {node_name}")
        started = time.perf_counter()
        try:
            result = await func(*call_args, **kwargs)
        except Exception:
            elapsed = time.perf_counter() - started
            logger.error(f"{prefix} Failed execution of node: {node_name} ({elapsed:.2f}s)")
            raise
        elapsed = time.perf_counter() - started
        logger.info(f"{prefix} Completed execution of node: {node_name} ({elapsed:.2f}s)")
        return result

    return wrapper  # type: ignore[return-value]


class NodeRegistry:
    """Name → node class lookup for the stage nodes.

    Example:
        >>> NodeRegistry.list_nodes()
        ['draft', 'outline', 'polish', 'versions']
    """

    _nodes: dict[str, type[BaseNode]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[BaseNode]], type[BaseNode]]:
        """Class decorator registering a node under name.

        Raises:
            ValueError: If the name is taken
        """

        def decorator(node_class: type[BaseNode]) -> type[BaseNode]:
            if name in cls._nodes:
                raise ValueError(f"Node '{name}' is already registered")
            cls._nodes[name] = node_class
            return node_class

        return decorator

    @classmethod
    def get(cls, name: str) -> type[BaseNode]:
        """Registered node class.

        Raises:
            KeyError: If no node is registered under name
        """
        try:
            return cls._nodes[name]
        except KeyError:
            available = ", ".join(sorted(cls._nodes)) or "none"
            raise KeyError(f"Node '{name}' not registered. Available nodes: {available}") from None

    @classmethod
    def list_nodes(cls) -> list[str]:
        return sorted(cls._nodes)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._nodes


# Stage modules register themselves on import
from kb_studio.workflow.nodes import draft, outline, polish, versions  # noqa: E402, F401

__all__ = [
    "BaseNode",
    "handle_node_errors",
    "log_node_execution",
    "NodeRegistry",
]
