"""
Engine package - Core workflow execution components.
"""

from nodeflow.engine.graph import Graph, Node, Edge, NodeType
from nodeflow.engine.state import ExecutionContext, ExecutionRun, NodeStatus
from nodeflow.engine.reporter import NodeStateBoard, StatusReporter, StatusEvent
from nodeflow.engine.executor import (
    CancellationToken,
    ExecutionResult,
    Executor,
    RunStatus,
    execute_workflow,
)

__all__ = [
    "Graph",
    "Node",
    "Edge",
    "NodeType",
    "ExecutionContext",
    "ExecutionRun",
    "NodeStatus",
    "NodeStateBoard",
    "StatusReporter",
    "StatusEvent",
    "CancellationToken",
    "ExecutionResult",
    "Executor",
    "RunStatus",
    "execute_workflow",
]
