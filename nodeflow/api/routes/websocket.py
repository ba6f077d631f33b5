"""
WebSocket Routes for Real-time Execution Streaming.

Provides live node status updates during workflow execution.
"""

from typing import Any, Dict, Set
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from uuid import uuid4
import asyncio
import logging

from nodeflow.api.routes.workflows import execute_run, load_graph, stop_run
from nodeflow.engine.reporter import StatusEvent
from nodeflow.storage.memory import run_storage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

# How long the stream waits for a status event before re-checking the run
POLL_INTERVAL = 0.1

# Runs started from a socket; held until they finish even if the client leaves
_run_tasks: Set["asyncio.Task[Any]"] = set()


@router.websocket("/ws/run/{workflow_id}")
async def websocket_run(websocket: WebSocket, workflow_id: str):
    """
    WebSocket endpoint for real-time workflow execution.

    Connect to this endpoint and send the start message as JSON.
    Every node status transition is pushed as it happens.

    Message format (client -> server):
    ```json
    {"action": "start", "variables": {"threshold": 100}}
    ```

    Message format (server -> client):
    ```json
    {
        "type": "status",
        "node_id": "check",
        "status": "success",
        "logs": ["Final result: true (AND logic)"],
        "timestamp": "..."
    }
    ```
    """
    try:
        graph = await load_graph(workflow_id)
    except HTTPException as e:
        await websocket.close(code=4004, reason=str(e.detail))
        return

    await websocket.accept()
    run_id = str(uuid4())
    logger.info(f"WebSocket connected for workflow: {workflow_id}")

    try:
        data = await websocket.receive_json()
        if data.get("action") != "start":
            await websocket.send_json({
                "type": "error",
                "error": "Expected 'start' action",
            })
            return

        variables: Dict[str, Any] = data.get("variables") or {}
        stored = await run_storage.create(run_id, workflow_id, variables)

        await websocket.send_json({
            "type": "started",
            "run_id": run_id,
            "workflow_id": workflow_id,
        })

        events: "asyncio.Queue[StatusEvent]" = asyncio.Queue()
        listener = events.put_nowait
        stored.board.add_listener(listener)
        task = asyncio.create_task(execute_run(graph, run_id, variables))
        _run_tasks.add(task)
        task.add_done_callback(_run_tasks.discard)

        try:
            while not task.done() or not events.empty():
                try:
                    event = await asyncio.wait_for(events.get(), timeout=POLL_INTERVAL)
                except asyncio.TimeoutError:
                    continue
                await websocket.send_json({"type": "status", "run_id": run_id, **event.to_dict()})

            finished = await task
        finally:
            stored.board.remove_listener(listener)
            if not task.done():
                stop_run(run_id, "Client disconnected")

        await websocket.send_json({
            "type": "completed",
            "run_id": run_id,
            "status": finished.status if finished else "failed",
            "visited": finished.visited if finished else [],
            "node_states": finished.node_states if finished else {},
            "total_duration_ms": finished.total_duration_ms if finished else None,
            "error": finished.error if finished else None,
            "cause": finished.cause if finished else None,
        })

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from run {run_id}")
    finally:
        logger.info(f"WebSocket closed for run: {run_id}")
