"""
Async Workflow Executor.

The traversal engine: discovers start nodes, walks branches depth-first,
merges predecessor outputs at fan-in points, selects branches after
condition nodes and reports every node transition to a StatusReporter.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union
from dataclasses import dataclass, field
from copy import deepcopy
from datetime import datetime
from enum import Enum
import logging
import time

from nodeflow.engine.errors import NoTriggerFound
from nodeflow.engine.graph import BranchLabel, Graph, Node, NodeType
from nodeflow.engine.reporter import NodeStateBoard, StatusReporter
from nodeflow.engine.state import ExecutionContext, ExecutionRun, NodeStatus

if TYPE_CHECKING:
    from nodeflow.nodes.registry import NodeRegistry


logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Lifecycle of an engine run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class CancellationToken:
    """
    Cooperative cancellation flag for one run.

    Checked before each node is started; a node already executing is never
    interrupted.
    """

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Execution stopped") -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ExecutionResult:
    """Result of a workflow run."""
    run_id: str
    workflow_id: str
    status: RunStatus
    outputs: Dict[str, Any] = field(default_factory=dict)
    condition_results: Dict[str, bool] = field(default_factory=dict)
    visited: List[str] = field(default_factory=list)
    node_states: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    error: Optional[str] = None
    cause: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.status == RunStatus.ABORTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "outputs": self.outputs,
            "condition_results": self.condition_results,
            "visited": self.visited,
            "node_states": self.node_states,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_duration_ms": self.total_duration_ms,
            "error": self.error,
            "cause": self.cause,
        }


class Executor:
    """
    Async workflow executor.

    Runs one workflow at a time:
    - Start nodes (no incoming edges) are walked in declaration order
    - Each branch is walked depth-first and sequentially
    - Every node runs at most once per run, which also makes cycles inert
    - A failed node stops its own subtree only

    Usage:
        executor = Executor()
        result = await executor.run(workflow_document)
    """

    def __init__(
        self,
        registry: Optional["NodeRegistry"] = None,
        reporter: Optional[StatusReporter] = None,
    ):
        """
        Initialize the executor.

        Args:
            registry: Node executor registry (built-in executors if omitted)
            reporter: Status sink (an in-memory NodeStateBoard if omitted)
        """
        if registry is None:
            from nodeflow.nodes import NodeRegistry
            registry = NodeRegistry.with_builtins()
        self.registry = registry
        self.reporter = reporter if reporter is not None else NodeStateBoard()

        self._status = RunStatus.IDLE
        self._token: Optional[CancellationToken] = None
        self.current_node: Optional[str] = None

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == RunStatus.RUNNING

    def stop(self, reason: str = "Execution stopped by user") -> None:
        """Abort the current run after the node in flight (if any) finishes."""
        if self._token is not None:
            logger.info(f"Stop requested: {reason}")
            self._token.cancel(reason)

    async def run(
        self,
        workflow: Union[Graph, Mapping[str, Any]],
        variables: Optional[Dict[str, Any]] = None,
        run_id: Optional[str] = None,
    ) -> Optional[ExecutionResult]:
        """
        Execute a workflow.

        Args:
            workflow: A Graph, or a workflow document to snapshot
            variables: Run-scoped variables visible to condition nodes
            run_id: Optional run ID (generated if not provided)

        Returns:
            ExecutionResult, or None if a run was already in progress
        """
        if self.is_running:
            logger.warning("Execution already in progress, ignoring start request")
            return None

        graph = workflow if isinstance(workflow, Graph) else Graph.from_dict(workflow)

        self._status = RunStatus.RUNNING
        token = CancellationToken()
        self._token = token
        start_time = time.time()
        error: Optional[str] = None

        try:
            run = ExecutionRun(graph.graph_id, run_id=run_id, variables=variables)
            self.reporter.reset(node.id for node in graph.nodes)
            logger.info(f"Starting run {run.run_id} of workflow '{graph.name}' ({len(graph)} nodes)")

            try:
                triggers = graph.start_nodes()
                if not triggers:
                    raise NoTriggerFound()

                for trigger in triggers:
                    if token.cancelled:
                        break
                    await self._walk(graph, trigger.id, run, token)

            except NoTriggerFound as e:
                logger.error(f"Workflow execution failed: {e}")
                error = str(e)
        finally:
            self._status = RunStatus.ABORTED if token.cancelled else RunStatus.COMPLETED
            self._token = None
            self.current_node = None

        run.finalize()
        if token.cancelled:
            logger.info(f"Run {run.run_id} aborted: {token.reason}")
        else:
            logger.info(f"Run {run.run_id} completed, {len(run.visit_order)} node(s) visited")

        return ExecutionResult(
            run_id=run.run_id,
            workflow_id=run.workflow_id,
            status=self._status,
            outputs=run.outputs,
            condition_results=run.condition_results,
            visited=list(run.visit_order),
            node_states=self._node_states(),
            started_at=run.started_at,
            completed_at=run.completed_at,
            total_duration_ms=(time.time() - start_time) * 1000,
            error=error,
            cause=token.reason,
        )

    async def _walk(
        self,
        graph: Graph,
        node_id: str,
        run: ExecutionRun,
        token: CancellationToken,
    ) -> None:
        """Execute a node, then walk its selected successors one by one."""
        if token.cancelled or node_id in run.visited:
            return

        node = graph.node(node_id)
        if node is None:
            return
        run.mark_visited(node_id)
        self.current_node = node_id

        context = ExecutionContext(
            workflow_id=graph.graph_id,
            node_id=node_id,
            data=self._gather_inputs(graph, node_id, run),
            variables=deepcopy(run.variables),
        )

        logger.info(f"Executing node: {node_id} ({node.type.value})")
        self.reporter.set_status(node_id, NodeStatus.RUNNING, [f"Starting execution of {node.display_name}"])

        result = await self.registry.execute(node, context)

        if not result.success:
            logger.error(f"Node {node_id} failed: {result.error}")
            self.reporter.set_status(
                node_id,
                NodeStatus.ERROR,
                [*result.logs, f"Execution failed: {result.error}"],
            )
            return

        run.record_output(node_id, result.data)
        if node.type == NodeType.CONDITION and isinstance(result.data, dict):
            outcome = result.data.get("result")
            if isinstance(outcome, bool):
                run.condition_results[node_id] = outcome

        self.reporter.set_status(
            node_id,
            NodeStatus.SUCCESS,
            [*result.logs, "Completed execution successfully"],
        )

        for next_id in self._next_nodes(graph, node, run):
            if token.cancelled:
                break
            await self._walk(graph, next_id, run, token)

    def _gather_inputs(self, graph: Graph, node_id: str, run: ExecutionRun) -> Any:
        """
        Build a node's input from its predecessors' recorded outputs.

        No incoming edge gives `{}`; one gives that predecessor's output as
        is; several are shallow-merged in edge order, later keys winning.
        Predecessors that have not produced output yet are left out.
        """
        incoming = graph.incoming_edges(node_id)
        if not incoming:
            return {}

        if len(incoming) == 1:
            output = run.outputs.get(incoming[0].source)
            return deepcopy(output) if output is not None else {}

        merged: Dict[str, Any] = {}
        for edge in incoming:
            output = run.outputs.get(edge.source)
            if isinstance(output, Mapping):
                merged.update(output)
        return deepcopy(merged)

    def _next_nodes(self, graph: Graph, node: Node, run: ExecutionRun) -> List[str]:
        """Targets to walk after a node succeeded."""
        edges = graph.outgoing_edges(node.id)

        if node.type != NodeType.CONDITION:
            return [edge.target for edge in edges]

        result = run.condition_results.get(node.id)
        if result is None:
            logger.warning(f"No condition result found for node {node.id}")
            self.reporter.set_status(
                node.id,
                NodeStatus.SUCCESS,
                ["Warning: no condition result recorded, no branch taken"],
            )
            return []

        wanted = BranchLabel.TRUE.value if result else BranchLabel.FALSE.value
        selected = [edge.target for edge in edges if edge.branch_label == wanted]
        logger.debug(f"Condition {node.id} -> {wanted}: {selected}")
        return selected

    def _node_states(self) -> Dict[str, Dict[str, Any]]:
        snapshot = getattr(self.reporter, "snapshot", None)
        return snapshot() if callable(snapshot) else {}


async def execute_workflow(
    workflow: Union[Graph, Mapping[str, Any]],
    variables: Optional[Dict[str, Any]] = None,
    registry: Optional["NodeRegistry"] = None,
    reporter: Optional[StatusReporter] = None,
    run_id: Optional[str] = None,
) -> ExecutionResult:
    """
    Convenience function to execute a workflow with a fresh executor.

    Args:
        workflow: The workflow graph or document
        variables: Run-scoped variables
        registry: Optional node executor registry
        reporter: Optional status reporter
        run_id: Optional run ID

    Returns:
        ExecutionResult
    """
    executor = Executor(registry=registry, reporter=reporter)
    return await executor.run(workflow, variables=variables, run_id=run_id)
