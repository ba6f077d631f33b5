"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


# ============================================================
# Enums
# ============================================================

class RunState(str, Enum):
    """Status of a stored workflow run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


# ============================================================
# Workflow Schemas
# ============================================================

class NodeDefinition(BaseModel):
    """Definition of a node in the workflow."""
    id: str = Field(..., description="Unique node ID within the workflow")
    type: str = Field(..., description="Node type, e.g. 'http-request' or 'condition'")
    label: Optional[str] = Field(None, description="Human-readable name")
    config: Optional[Dict[str, Any]] = Field(None, description="Type-specific configuration")
    position: Optional[Dict[str, float]] = Field(None, description="Canvas position (ignored by the engine)")
    data: Optional[Dict[str, Any]] = Field(None, description="Editor payload: {label, type, config}")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "fetch",
                "type": "http-request",
                "label": "Fetch order",
                "config": {"url": "https://api.example.com/orders/42", "method": "GET"},
            }
        }


class EdgeDefinition(BaseModel):
    """Definition of an edge between two nodes."""
    id: str = Field(..., description="Unique edge ID")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    source_handle: Optional[str] = Field(None, alias="sourceHandle", description="Output port of the source")
    target_handle: Optional[str] = Field(None, alias="targetHandle", description="Input port of the target")
    condition: Optional[str] = Field(None, description="'true' or 'false' after a condition node")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "e1",
                "source": "check",
                "target": "notify",
                "sourceHandle": "true",
            }
        }

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WorkflowCreateRequest(BaseModel):
    """Request to create or replace a workflow."""
    id: Optional[str] = Field(None, description="Workflow ID (generated if omitted)")
    name: str = Field(..., description="Name of the workflow")
    description: Optional[str] = Field(None, description="Description of the workflow")
    nodes: List[NodeDefinition] = Field(..., description="List of nodes")
    edges: List[EdgeDefinition] = Field(default_factory=list, description="List of edges")
    viewport: Optional[Dict[str, Any]] = Field(None, description="Editor viewport")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Status check",
                "nodes": [
                    {"id": "start", "type": "manual-trigger", "config": {}},
                    {
                        "id": "check",
                        "type": "condition",
                        "config": {
                            "conditions": '[{"field": "status", "operator": "equals", "value": "200"}]',
                            "logic": "AND",
                        },
                    },
                ],
                "edges": [{"id": "e1", "source": "start", "target": "check"}],
            }
        }

    def node_documents(self) -> List[Dict[str, Any]]:
        return [node.model_dump(exclude_none=True) for node in self.nodes]

    def edge_documents(self) -> List[Dict[str, Any]]:
        return [edge.to_document() for edge in self.edges]


class WorkflowResponse(BaseModel):
    """A stored workflow document."""
    id: str
    name: str
    description: Optional[str] = None
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    viewport: Optional[Dict[str, Any]] = None
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True


class WorkflowListResponse(BaseModel):
    """List of workflows."""
    workflows: List[WorkflowResponse]
    total: int


# ============================================================
# Run Schemas
# ============================================================

class RunRequest(BaseModel):
    """Request to run a workflow."""
    variables: Dict[str, Any] = Field(
        default_factory=dict,
        description="Run-scoped variables, readable by condition nodes",
    )
    async_execution: bool = Field(
        False,
        description="If true, return immediately and run in the background",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "variables": {"threshold": 100},
                "async_execution": False,
            }
        }


class NodeStateEntry(BaseModel):
    """Current status and log of one node."""
    status: str
    logs: List[str] = Field(default_factory=list)


class RunResponse(BaseModel):
    """State of a workflow run."""
    run_id: str
    workflow_id: str
    status: RunState
    variables: Dict[str, Any] = Field(default_factory=dict)
    node_states: Dict[str, NodeStateEntry] = Field(default_factory=dict)
    outputs: Dict[str, Any] = Field(default_factory=dict)
    visited: List[str] = Field(default_factory=list)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    total_duration_ms: Optional[float] = None
    error: Optional[str] = None
    cause: Optional[str] = None


class RunListResponse(BaseModel):
    """List of workflow runs."""
    runs: List[RunResponse]
    total: int


# ============================================================
# Node Type Schemas
# ============================================================

class NodeTypeInfo(BaseModel):
    """A registered node executor."""
    type: str
    label: str
    category: str
    description: str


class NodeTypeListResponse(BaseModel):
    """List of registered node types."""
    node_types: List[NodeTypeInfo]
    total: int


# ============================================================
# Notification Schemas
# ============================================================

class SendEmailRequest(BaseModel):
    """Body of POST /api/send-email. Presence of to/subject/body is checked by the route."""
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    from_name: Optional[str] = Field(None, alias="fromName")
    from_email: Optional[str] = Field(None, alias="fromEmail")
    to_name: Optional[str] = Field(None, alias="toName")
    reply_to: Optional[str] = Field(None, alias="replyTo")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "to": "ops@example.com",
                "subject": "Order alert",
                "body": "Order 42 exceeded the threshold.",
                "fromName": "Workflow Builder",
            }
        }


class SendEmailResponse(BaseModel):
    """Successful email delivery."""
    success: bool = True
    message_id: str = Field(..., alias="messageId")
    to: str
    subject: str
    timestamp: str
    provider: str = "smtp"
    response: Dict[str, Any]

    class Config:
        populate_by_name = True


class EmailHealthResponse(BaseModel):
    """Notification service health."""
    status: str = "healthy"
    service: str
    version: str
    timestamp: str
    email_configured: bool = Field(..., alias="emailConfigured")

    class Config:
        populate_by_name = True


class NotificationErrorResponse(BaseModel):
    """Failure reply of the notification service."""
    success: bool = False
    error: str
    code: Optional[str] = None


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
