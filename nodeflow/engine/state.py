"""
Execution state for the workflow engine.

ExecutionContext is what a single node sees when it runs. ExecutionRun is
the bookkeeping of one whole run; it is owned by the engine and handed down
each branch walk explicitly, never kept at module level.
"""

from typing import Any, Dict, List, Optional, Set
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum
import uuid


class NodeStatus(str, Enum):
    """Execution status of a single node."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ExecutionContext(BaseModel):
    """
    The input handed to a node executor.

    Built fresh for every node invocation from its predecessors' outputs.

    Attributes:
        workflow_id: Graph the node belongs to
        node_id: Node being executed
        data: Merged output of the node's predecessors
        variables: Run-scoped variables
    """

    workflow_id: str
    node_id: str
    data: Any = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        arbitrary_types_allowed = True


class ExecutionRun:
    """
    Transient state of one engine run.

    Tracks which nodes were already walked, what each node produced, and the
    boolean result of every condition node.
    """

    def __init__(
        self,
        workflow_id: str,
        run_id: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
    ):
        self.run_id = run_id or str(uuid.uuid4())
        self.workflow_id = workflow_id
        self.variables: Dict[str, Any] = dict(variables or {})
        self.visited: Set[str] = set()
        self.visit_order: List[str] = []
        self.outputs: Dict[str, Any] = {}
        self.condition_results: Dict[str, bool] = {}
        self.started_at = datetime.now()
        self.completed_at: Optional[datetime] = None

    def mark_visited(self, node_id: str) -> bool:
        """Mark a node as visited. Returns False if it already was."""
        if node_id in self.visited:
            return False
        self.visited.add(node_id)
        self.visit_order.append(node_id)
        return True

    def record_output(self, node_id: str, output: Any) -> None:
        self.outputs[node_id] = output

    def has_output(self, node_id: str) -> bool:
        return node_id in self.outputs

    def finalize(self) -> None:
        self.completed_at = datetime.now()
