"""
Node Type API Routes.

Lists the node executors the engine can dispatch to.
"""

from fastapi import APIRouter, HTTPException

from nodeflow.api.schemas import NodeTypeInfo, NodeTypeListResponse, ErrorResponse
from nodeflow.engine.errors import GraphValidationError
from nodeflow.engine.graph import NodeType
from nodeflow.nodes import NodeRegistry


router = APIRouter(prefix="/node-types", tags=["Node Types"])


@router.get("", response_model=NodeTypeListResponse)
async def list_node_types() -> NodeTypeListResponse:
    """List all registered node types with their palette metadata."""
    registry = NodeRegistry.with_builtins()
    node_types = [NodeTypeInfo(**info) for info in registry.list_types()]
    return NodeTypeListResponse(node_types=node_types, total=len(node_types))


@router.get(
    "/{node_type}",
    response_model=NodeTypeInfo,
    responses={404: {"model": ErrorResponse}},
)
async def get_node_type(node_type: str) -> NodeTypeInfo:
    """Get a single node type; `http_request` and `http-request` are equivalent."""
    try:
        parsed = NodeType.parse(node_type)
    except GraphValidationError:
        raise HTTPException(status_code=404, detail=f"Node type '{node_type}' not found")

    executor = NodeRegistry.with_builtins().get(parsed)
    if executor is None:
        raise HTTPException(status_code=404, detail=f"Node type '{node_type}' not found")
    return NodeTypeInfo(**executor.to_dict())
