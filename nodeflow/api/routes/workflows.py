"""
Workflow API Routes.

Endpoints for storing workflow documents, running them and inspecting runs.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, BackgroundTasks, status
from uuid import uuid4
import logging

from nodeflow.api.schemas import (
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowListResponse,
    RunRequest,
    RunResponse,
    RunListResponse,
    RunState,
    ErrorResponse,
)
from nodeflow.engine.errors import GraphValidationError
from nodeflow.engine.executor import Executor, RunStatus
from nodeflow.engine.graph import Graph
from nodeflow.storage.memory import StoredRun, StoredWorkflow, workflow_storage, run_storage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Workflows"])


# Executors of runs in progress, keyed by run ID
_active_executors: Dict[str, Executor] = {}


# ============================================================
# Run Helpers
# ============================================================

def build_graph(document: Dict[str, Any]) -> Graph:
    """Snapshot a stored document into a Graph, mapping bad documents to 400."""
    try:
        return Graph.from_dict(document)
    except GraphValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid workflow: {e}")


async def load_graph(workflow_id: str) -> Graph:
    document = await workflow_storage.snapshot(workflow_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    return build_graph(document)


async def execute_run(graph: Graph, run_id: str, variables: Dict[str, Any]) -> Optional[StoredRun]:
    """
    Run a graph and record the outcome under `run_id`.

    Node transitions are reported into the run's own NodeStateBoard, so the
    run can be polled (or streamed) while it is in progress.
    """
    stored = await run_storage.get(run_id)
    if stored is None:
        logger.error(f"Run {run_id} disappeared before it started")
        return None

    executor = Executor(reporter=stored.board)
    _active_executors[run_id] = executor
    await run_storage.mark_running(run_id)

    try:
        result = await executor.run(graph, variables=variables, run_id=run_id)
    except Exception as e:
        logger.exception(f"Execution of run {run_id} failed: {e}")
        return await run_storage.fail(run_id, str(e))
    finally:
        _active_executors.pop(run_id, None)

    if result.error:
        run_status = RunState.FAILED
    elif result.status == RunStatus.ABORTED:
        run_status = RunState.ABORTED
    else:
        run_status = RunState.COMPLETED

    return await run_storage.finish(
        run_id,
        status=run_status.value,
        outputs=result.outputs,
        visited=result.visited,
        total_duration_ms=result.total_duration_ms,
        error=result.error,
        cause=result.cause,
    )


def stop_run(run_id: str, reason: str = "Execution stopped by user") -> bool:
    """Request cancellation of a run in progress."""
    executor = _active_executors.get(run_id)
    if executor is None:
        return False
    executor.stop(reason)
    return True


def _workflow_response(stored: StoredWorkflow) -> WorkflowResponse:
    return WorkflowResponse(**stored.to_document())


def _run_response(stored: StoredRun) -> RunResponse:
    return RunResponse(**stored.to_dict())


# ============================================================
# Workflow CRUD Endpoints
# ============================================================

@router.post(
    "/workflows",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid workflow definition"}},
)
async def create_workflow(request: WorkflowCreateRequest) -> WorkflowResponse:
    """
    Store a workflow document.

    The document is validated by building a graph from it: node types must
    be known and every edge must connect two declared nodes.
    """
    workflow_id = request.id or str(uuid4())
    nodes = request.node_documents()
    edges = request.edge_documents()
    build_graph({"id": workflow_id, "name": request.name, "nodes": nodes, "edges": edges})

    stored = await workflow_storage.save(
        workflow_id=workflow_id,
        name=request.name,
        nodes=nodes,
        edges=edges,
        description=request.description,
        viewport=request.viewport,
    )
    logger.info(f"Created workflow: {workflow_id} ({request.name})")
    return _workflow_response(stored)


@router.get("/workflows", response_model=WorkflowListResponse)
async def list_workflows() -> WorkflowListResponse:
    """List all stored workflows."""
    workflows = [_workflow_response(w) for w in await workflow_storage.list_all()]
    return WorkflowListResponse(workflows=workflows, total=len(workflows))


@router.get(
    "/workflows/{workflow_id}",
    response_model=WorkflowResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_workflow(workflow_id: str) -> WorkflowResponse:
    stored = await workflow_storage.get(workflow_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    return _workflow_response(stored)


@router.put(
    "/workflows/{workflow_id}",
    response_model=WorkflowResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_workflow(workflow_id: str, request: WorkflowCreateRequest) -> WorkflowResponse:
    """Replace the nodes, edges and metadata of a stored workflow."""
    nodes = request.node_documents()
    edges = request.edge_documents()
    build_graph({"id": workflow_id, "name": request.name, "nodes": nodes, "edges": edges})

    stored = await workflow_storage.update(
        workflow_id,
        name=request.name,
        nodes=nodes,
        edges=edges,
        description=request.description,
        viewport=request.viewport,
    )
    if not stored:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    logger.info(f"Updated workflow: {workflow_id}")
    return _workflow_response(stored)


@router.delete(
    "/workflows/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_workflow(workflow_id: str):
    """Delete a workflow."""
    deleted = await workflow_storage.delete(workflow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    logger.info(f"Deleted workflow: {workflow_id}")


# ============================================================
# Execution Endpoints
# ============================================================

@router.post(
    "/workflows/{workflow_id}/run",
    response_model=RunResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid workflow definition"},
        404: {"model": ErrorResponse},
    },
)
async def run_workflow(
    workflow_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[RunRequest] = None,
) -> RunResponse:
    """
    Execute a stored workflow.

    If `async_execution` is True, the workflow runs in the background
    and you can poll the run using GET /runs/{run_id}.
    """
    request = request or RunRequest()
    graph = await load_graph(workflow_id)

    run_id = str(uuid4())
    stored = await run_storage.create(run_id, workflow_id, request.variables)

    if request.async_execution:
        background_tasks.add_task(execute_run, graph, run_id, request.variables)
        return _run_response(stored)

    finished = await execute_run(graph, run_id, request.variables)
    return _run_response(finished or stored)


# ============================================================
# Run Endpoints
# ============================================================

@router.get("/runs", response_model=RunListResponse)
async def list_runs(workflow_id: Optional[str] = None) -> RunListResponse:
    """List all runs, optionally filtered by workflow_id."""
    if workflow_id:
        runs: List[StoredRun] = await run_storage.list_by_workflow(workflow_id)
    else:
        runs = await run_storage.list_all()

    responses = [_run_response(r) for r in runs]
    return RunListResponse(runs=responses, total=len(responses))


@router.get(
    "/runs/{run_id}",
    response_model=RunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str) -> RunResponse:
    """
    Get the current state of a run.

    Use this to poll the status of async executions.
    """
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    return _run_response(stored)


@router.post(
    "/runs/{run_id}/stop",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def stop_workflow_run(run_id: str) -> Dict[str, Any]:
    """
    Stop a run in progress.

    The node currently executing finishes; nothing after it is started.
    """
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    if not stop_run(run_id):
        raise HTTPException(status_code=409, detail=f"Run '{run_id}' is not in progress")
    return {"run_id": run_id, "stop_requested": True}
