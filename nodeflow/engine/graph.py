"""
Graph Model for the workflow engine.

A workflow is a set of typed nodes joined by edges. The engine never works
on the caller's document directly: Graph.from_dict takes a deep copy, so
edits made to the source while a run is in flight cannot leak into it.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from copy import deepcopy
from enum import Enum
import uuid

from nodeflow.engine.errors import GraphValidationError


class NodeType(str, Enum):
    """The closed set of node types the engine can execute."""
    MANUAL_TRIGGER = "manual-trigger"
    WEBHOOK_TRIGGER = "webhook-trigger"
    HTTP_REQUEST = "http-request"
    EMAIL = "email"
    SMS = "sms"
    DELAY = "delay"
    CONDITION = "condition"
    TRANSFORM = "transform"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        """Accept both `http-request` and `http_request` spellings."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            raise GraphValidationError(f"Unknown node type: {value}") from None


class BranchLabel(str, Enum):
    """Labels carried by the outgoing edges of a condition node."""
    TRUE = "true"
    FALSE = "false"


@dataclass(frozen=True)
class Node:
    """
    A node in the workflow graph.

    Attributes:
        id: Unique identifier within the graph
        type: One of the NodeType values
        config: Type-specific configuration
        label: Human-readable name used in logs
    """
    id: str
    type: NodeType
    config: Dict[str, Any] = field(default_factory=dict)
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Node":
        """
        Build a node from a document entry.

        Both the flat shape `{id, type, config, label}` and the editor shape
        `{id, type, data: {label, config}}` are accepted.
        """
        node_id = raw.get("id")
        if not node_id:
            raise GraphValidationError("Node id cannot be empty")

        data = raw.get("data") or {}
        config = raw.get("config")
        if config is None:
            config = data.get("config", {})
        label = raw.get("label") or data.get("label") or ""

        return cls(
            id=str(node_id),
            type=NodeType.parse(raw.get("type") or data.get("type")),
            config=deepcopy(dict(config or {})),
            label=label,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "config": deepcopy(self.config),
        }


@dataclass(frozen=True)
class Edge:
    """An edge connecting two nodes."""
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    condition: Optional[str] = None

    @property
    def is_unconditional(self) -> bool:
        return self.condition is None and self.source_handle is None

    @property
    def branch_label(self) -> str:
        """
        The effective branch label used when leaving a condition node:
        the edge's condition, else its source handle, else "true".
        """
        return self.condition or self.source_handle or BranchLabel.TRUE.value

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Edge":
        source = raw.get("source")
        target = raw.get("target")
        if not source or not target:
            raise GraphValidationError("Edge must have a source and a target")

        handle = raw.get("sourceHandle", raw.get("source_handle"))
        condition = raw.get("condition") or None
        if condition is not None:
            condition = str(condition).lower()
            if condition not in (BranchLabel.TRUE.value, BranchLabel.FALSE.value):
                raise GraphValidationError(
                    f"Edge condition must be 'true' or 'false', got '{raw.get('condition')}'"
                )

        return cls(
            id=str(raw.get("id") or f"{source}->{target}"),
            source=str(source),
            target=str(target),
            source_handle=str(handle) if handle else None,
            condition=condition,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "sourceHandle": self.source_handle,
            "condition": self.condition,
        }


class Graph:
    """
    Read-only view of a workflow used by the engine.

    Nodes and edges keep their declaration order; that order decides which
    start node is walked first and in which order successors are visited.
    """

    def __init__(
        self,
        nodes: List[Node],
        edges: List[Edge],
        graph_id: Optional[str] = None,
        name: str = "Unnamed Workflow",
    ):
        self.graph_id = graph_id or str(uuid.uuid4())
        self.name = name
        self._nodes: Dict[str, Node] = {}
        self._order: Tuple[str, ...] = ()
        self._edges: Tuple[Edge, ...] = tuple(edges)
        self._outgoing: Dict[str, List[Edge]] = {}
        self._incoming: Dict[str, List[Edge]] = {}

        order = []
        for node in nodes:
            if node.id in self._nodes:
                raise GraphValidationError(f"Node '{node.id}' already exists in the graph")
            self._nodes[node.id] = node
            order.append(node.id)
            self._outgoing[node.id] = []
            self._incoming[node.id] = []
        self._order = tuple(order)

        for edge in self._edges:
            if edge.source not in self._nodes:
                raise GraphValidationError(
                    f"Edge '{edge.id}' source '{edge.source}' not found in graph"
                )
            if edge.target not in self._nodes:
                raise GraphValidationError(
                    f"Edge '{edge.id}' target '{edge.target}' not found in graph"
                )
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> "Graph":
        """
        Build a graph snapshot from a workflow document.

        Args:
            document: `{id, name, nodes, edges, ...}` as stored by the
                persistence layer

        Returns:
            A Graph that shares no mutable state with the document
        """
        document = deepcopy(dict(document))
        return cls(
            nodes=[Node.from_dict(n) for n in document.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in document.get("edges", [])],
            graph_id=document.get("id"),
            name=document.get("name") or "Unnamed Workflow",
        )

    @property
    def nodes(self) -> List[Node]:
        return [self._nodes[node_id] for node_id in self._order]

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    def node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return list(self._outgoing.get(node_id, []))

    def incoming_edges(self, node_id: str) -> List[Edge]:
        return list(self._incoming.get(node_id, []))

    def start_nodes(self) -> List[Node]:
        """All nodes with no incoming edges, in declaration order."""
        return [node for node in self.nodes if not self._incoming[node.id]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.graph_id,
            "name": self.name,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self._edges],
        }

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(name='{self.name}', nodes={list(self._order)}, edges={len(self._edges)})"
