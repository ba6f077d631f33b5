"""
Node Executor Registry.

Every node type has exactly one NodeExecutor subclass. Subclasses implement
`run()` and may raise; the public `execute()` never raises across the
dispatch boundary and always returns a NodeResult, so a failing node can be
recorded without disturbing the rest of the run.
"""

from typing import Any, ClassVar, Dict, List, Optional, Type
from dataclasses import dataclass, field
from abc import ABC, abstractmethod
from datetime import datetime, timezone
import logging

from nodeflow.engine.errors import NodeExecutionError
from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext


logger = logging.getLogger(__name__)


@dataclass
class NodeResult:
    """
    Outcome of one node execution.

    Attributes:
        success: Whether the node completed
        data: The node's output (only on success)
        error: Failure message (only on failure)
        error_type: Name of the error class, e.g. "ValidationError"
        logs: Log lines produced while executing
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "error_type": self.error_type,
            "logs": self.logs,
        }


class NodeExecutor(ABC):
    """
    Base class for node executors.

    Subclasses set `node_type` and implement `run()`, appending progress
    lines to `logs` as they go. Lines appended before a failure are kept.
    """

    node_type: ClassVar[NodeType]
    label: ClassVar[str] = ""
    category: ClassVar[str] = "action"
    description: ClassVar[str] = ""

    @abstractmethod
    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Any:
        """Perform the node's work and return its output."""

    async def execute(self, node: Node, context: ExecutionContext) -> NodeResult:
        logs: List[str] = []
        try:
            data = await self.run(node, context, logs)
        except NodeExecutionError as e:
            return NodeResult(
                success=False,
                error=str(e),
                error_type=type(e).__name__,
                logs=logs,
            )
        except Exception as e:
            logger.exception(f"Unexpected failure in {self.node_type.value} node '{node.id}'")
            return NodeResult(
                success=False,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                logs=logs,
            )
        return NodeResult(success=True, data=data, logs=logs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type.value,
            "label": self.label,
            "category": self.category,
            "description": self.description,
        }


# Executor classes known to the default registry, keyed by node type
_builtin_executors: Dict[NodeType, Type[NodeExecutor]] = {}


def register_executor(cls: Type[NodeExecutor]) -> Type[NodeExecutor]:
    """
    Class decorator adding an executor to the built-in set.

    Usage:
        @register_executor
        class DelayExecutor(NodeExecutor):
            node_type = NodeType.DELAY
            ...
    """
    _builtin_executors[cls.node_type] = cls
    logger.debug(f"Registered executor: {cls.node_type.value}")
    return cls


class NodeRegistry:
    """
    Dispatch table from node type to executor instance.

    Usage:
        registry = NodeRegistry.with_builtins()
        result = await registry.execute(node, context)

    Executors built with non-default collaborators (a mock HTTP transport,
    a fake sleep) can be swapped in:

        registry = NodeRegistry.with_builtins(HttpRequestExecutor(transport=transport))
    """

    def __init__(self):
        self._executors: Dict[NodeType, NodeExecutor] = {}

    @classmethod
    def with_builtins(cls, *overrides: NodeExecutor) -> "NodeRegistry":
        registry = cls()
        for executor_cls in _builtin_executors.values():
            registry.register(executor_cls())
        for executor in overrides:
            registry.register(executor)
        return registry

    def register(self, executor: NodeExecutor) -> None:
        self._executors[executor.node_type] = executor

    def get(self, node_type: NodeType) -> Optional[NodeExecutor]:
        return self._executors.get(node_type)

    def has(self, node_type: NodeType) -> bool:
        return node_type in self._executors

    async def execute(self, node: Node, context: ExecutionContext) -> NodeResult:
        """Run the executor registered for the node's type."""
        executor = self.get(node.type)
        if executor is None:
            return NodeResult(
                success=False,
                error=f"Unknown node type: {node.type.value}",
                error_type="ValidationError",
            )
        return await executor.execute(node, context)

    def list_types(self) -> List[Dict[str, Any]]:
        """List all registered executors with their metadata."""
        return [executor.to_dict() for executor in self._executors.values()]

    def __contains__(self, node_type: NodeType) -> bool:
        return self.has(node_type)

    def __len__(self) -> int:
        return len(self._executors)

    def __iter__(self):
        return iter(self._executors.values())


def missing_fields(config: Dict[str, Any], required: List[str]) -> List[str]:
    """Names of required config fields that are absent or blank."""
    return [
        name for name in required
        if config.get(name) is None or str(config.get(name)).strip() == ""
    ]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
