"""
Error taxonomy for the workflow engine.

Node-level errors (subclasses of NodeExecutionError) are raised inside node
executors and caught at the executor boundary, where they become the node's
final status. Graph-level errors concern the workflow as a whole.
"""

from typing import Iterable, Optional


class WorkflowError(Exception):
    """Base class for all engine errors."""


# ============================================================
# Graph-level errors
# ============================================================

class GraphValidationError(WorkflowError):
    """A workflow document is structurally invalid (unknown node, bad edge)."""


class NoTriggerFound(WorkflowError):
    """The graph has no zero-indegree node to start from."""

    def __init__(self, message: str = "No trigger nodes found in workflow"):
        super().__init__(message)


# ============================================================
# Node-level errors
# ============================================================

class NodeExecutionError(WorkflowError):
    """Base class for failures local to a single node."""


class ValidationError(NodeExecutionError):
    """Missing or malformed required node input."""

    @classmethod
    def missing_fields(cls, fields: Iterable[str]) -> "ValidationError":
        return cls(f"Missing required fields: {', '.join(fields)}")


class NetworkError(NodeExecutionError):
    """The HTTP request could not reach the remote host."""


class RequestTimeoutError(NodeExecutionError):
    """The HTTP request did not complete within its configured timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout:g} seconds")


class RequestError(NodeExecutionError):
    """The remote host answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: Optional[str] = None):
        self.status_code = status_code
        message = f"HTTP request failed: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class DeliveryError(NodeExecutionError):
    """The notification service did not accept a message."""


class ConditionError(NodeExecutionError):
    """Malformed condition definition or unsupported operator."""
