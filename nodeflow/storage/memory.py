"""
In-Memory Storage for workflows and runs.

Workflow documents are kept in the shape the editor persists:
`{id, name, description, nodes, edges, viewport, createdAt, updatedAt}`.
Reads hand out deep copies, so a running engine never sees later edits.
Runs live only as long as the process.
"""

from typing import Any, Dict, List, Optional
from copy import deepcopy
from datetime import datetime
import asyncio
from dataclasses import dataclass, field

from nodeflow.engine.reporter import NodeStateBoard


@dataclass
class StoredWorkflow:
    """A stored workflow document."""
    workflow_id: str
    name: str
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    description: Optional[str] = None
    viewport: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_document(self) -> Dict[str, Any]:
        """The persisted document, as a deep copy."""
        return deepcopy({
            "id": self.workflow_id,
            "name": self.name,
            "description": self.description,
            "nodes": self.nodes,
            "edges": self.edges,
            "viewport": self.viewport,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        })


@dataclass
class StoredRun:
    """A stored execution run."""
    run_id: str
    workflow_id: str
    status: str
    variables: Dict[str, Any] = field(default_factory=dict)
    board: NodeStateBoard = field(default_factory=NodeStateBoard)
    outputs: Dict[str, Any] = field(default_factory=dict)
    visited: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    error: Optional[str] = None
    cause: Optional[str] = None

    @property
    def node_states(self) -> Dict[str, Dict[str, Any]]:
        return self.board.snapshot()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "status": self.status,
            "variables": self.variables,
            "node_states": self.node_states,
            "outputs": self.outputs,
            "visited": self.visited,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_duration_ms": self.total_duration_ms,
            "error": self.error,
            "cause": self.cause,
        }


class WorkflowStorage:
    """
    Async-safe in-memory storage for workflow documents.
    """

    def __init__(self):
        self._workflows: Dict[str, StoredWorkflow] = {}
        self._lock = asyncio.Lock()

    async def save(
        self,
        workflow_id: str,
        name: str,
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        description: Optional[str] = None,
        viewport: Optional[Dict[str, Any]] = None,
    ) -> StoredWorkflow:
        """
        Save a workflow document, replacing any previous one with the same ID.

        Returns:
            The stored workflow
        """
        async with self._lock:
            stored = StoredWorkflow(
                workflow_id=workflow_id,
                name=name,
                nodes=deepcopy(nodes),
                edges=deepcopy(edges),
                description=description,
                viewport=deepcopy(viewport),
            )
            self._workflows[workflow_id] = stored
            return stored

    async def get(self, workflow_id: str) -> Optional[StoredWorkflow]:
        async with self._lock:
            return self._workflows.get(workflow_id)

    async def snapshot(self, workflow_id: str) -> Optional[Dict[str, Any]]:
        """A deep-copied document for the engine to run."""
        async with self._lock:
            stored = self._workflows.get(workflow_id)
            return stored.to_document() if stored else None

    async def update(
        self,
        workflow_id: str,
        name: str,
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
        description: Optional[str] = None,
        viewport: Optional[Dict[str, Any]] = None,
    ) -> Optional[StoredWorkflow]:
        async with self._lock:
            stored = self._workflows.get(workflow_id)
            if stored is None:
                return None
            stored.name = name
            stored.nodes = deepcopy(nodes)
            stored.edges = deepcopy(edges)
            stored.description = description
            stored.viewport = deepcopy(viewport)
            stored.updated_at = datetime.now()
            return stored

    async def delete(self, workflow_id: str) -> bool:
        async with self._lock:
            if workflow_id in self._workflows:
                del self._workflows[workflow_id]
                return True
            return False

    async def list_all(self) -> List[StoredWorkflow]:
        async with self._lock:
            return list(self._workflows.values())

    async def exists(self, workflow_id: str) -> bool:
        async with self._lock:
            return workflow_id in self._workflows

    def __len__(self) -> int:
        return len(self._workflows)


class RunStorage:
    """
    Async-safe in-memory storage for execution runs.

    Each run owns a NodeStateBoard that the engine reports into, so node
    states can be polled while the run is still in progress.
    """

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        run_id: str,
        workflow_id: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> StoredRun:
        async with self._lock:
            stored = StoredRun(
                run_id=run_id,
                workflow_id=workflow_id,
                status="pending",
                variables=dict(variables or {}),
            )
            self._runs[run_id] = stored
            return stored

    async def get(self, run_id: str) -> Optional[StoredRun]:
        async with self._lock:
            return self._runs.get(run_id)

    async def mark_running(self, run_id: str) -> Optional[StoredRun]:
        async with self._lock:
            stored = self._runs.get(run_id)
            if stored is not None:
                stored.status = "running"
            return stored

    async def finish(
        self,
        run_id: str,
        status: str,
        outputs: Dict[str, Any],
        visited: List[str],
        total_duration_ms: Optional[float] = None,
        error: Optional[str] = None,
        cause: Optional[str] = None,
    ) -> Optional[StoredRun]:
        """Record the outcome of a finished run."""
        async with self._lock:
            stored = self._runs.get(run_id)
            if stored is None:
                return None
            stored.status = status
            stored.outputs = outputs
            stored.visited = visited
            stored.total_duration_ms = total_duration_ms
            stored.error = error
            stored.cause = cause
            stored.completed_at = datetime.now()
            return stored

    async def fail(self, run_id: str, error: str) -> Optional[StoredRun]:
        """Mark a run as failed outside the engine (e.g. an invalid graph)."""
        async with self._lock:
            stored = self._runs.get(run_id)
            if stored is None:
                return None
            stored.status = "failed"
            stored.error = error
            stored.completed_at = datetime.now()
            return stored

    async def list_all(self) -> List[StoredRun]:
        async with self._lock:
            return list(self._runs.values())

    async def list_by_workflow(self, workflow_id: str) -> List[StoredRun]:
        async with self._lock:
            return [r for r in self._runs.values() if r.workflow_id == workflow_id]

    async def delete(self, run_id: str) -> bool:
        async with self._lock:
            if run_id in self._runs:
                del self._runs[run_id]
                return True
            return False

    def __len__(self) -> int:
        return len(self._runs)


# Global storage instances
workflow_storage = WorkflowStorage()
run_storage = RunStorage()
