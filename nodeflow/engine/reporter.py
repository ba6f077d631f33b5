"""
Status reporting for node executions.

The engine pushes every status transition and log line through a
StatusReporter. Reporters must tolerate repeated calls for the same node:
the last status wins and logs are only ever appended.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol
from dataclasses import dataclass, field
from datetime import datetime
import logging

from nodeflow.engine.state import NodeStatus


logger = logging.getLogger(__name__)


class StatusReporter(Protocol):
    """Sink for node status transitions, implemented by the caller."""

    def set_status(self, node_id: str, status: NodeStatus, append_logs: Iterable[str] = ()) -> None:
        ...

    def reset(self, node_ids: Iterable[str]) -> None:
        ...


@dataclass
class StatusEvent:
    """A single status transition as seen by listeners."""
    node_id: str
    status: NodeStatus
    logs: List[str]
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "status": self.status.value,
            "logs": self.logs,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class NodeState:
    """Current status and accumulated log of one node."""
    status: NodeStatus = NodeStatus.PENDING
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "logs": list(self.logs)}


class NodeStateBoard:
    """
    In-memory StatusReporter.

    Keeps the latest status and the full log of every node, and forwards
    each transition to registered listeners (used for live streaming).

    Usage:
        board = NodeStateBoard()
        board.add_listener(lambda event: print(event.node_id, event.status))
        result = await Executor(reporter=board).run(graph)
    """

    def __init__(self):
        self._states: Dict[str, NodeState] = {}
        self._listeners: List[Callable[[StatusEvent], None]] = []

    def add_listener(self, listener: Callable[[StatusEvent], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[StatusEvent], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def reset(self, node_ids: Iterable[str]) -> None:
        """Put every node back to pending with an empty log."""
        self._states = {node_id: NodeState() for node_id in node_ids}

    def set_status(
        self,
        node_id: str,
        status: NodeStatus,
        append_logs: Iterable[str] = (),
    ) -> None:
        state = self._states.setdefault(node_id, NodeState())
        new_logs = list(append_logs)
        state.status = status
        state.logs.extend(new_logs)

        event = StatusEvent(node_id=node_id, status=status, logs=new_logs)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Status listener failed: {e}")

    def status_of(self, node_id: str) -> Optional[NodeStatus]:
        state = self._states.get(node_id)
        return state.status if state else None

    def logs_of(self, node_id: str) -> List[str]:
        state = self._states.get(node_id)
        return list(state.logs) if state else []

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Current state of every node as plain dictionaries."""
        return {node_id: state.to_dict() for node_id, state in self._states.items()}

    def __len__(self) -> int:
        return len(self._states)
