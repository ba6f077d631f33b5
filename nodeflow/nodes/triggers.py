"""
Trigger executors.

Triggers are the entry points of a workflow. They do not wait for anything:
a webhook trigger is a declarative marker whose path and method an external
dispatcher listens on.
"""

from typing import Any, Dict, List

from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.nodes.registry import NodeExecutor, register_executor, utc_timestamp


@register_executor
class ManualTriggerExecutor(NodeExecutor):
    node_type = NodeType.MANUAL_TRIGGER
    label = "Manual Trigger"
    category = "trigger"
    description = "Manually trigger the workflow execution"

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        logs.append("Workflow triggered manually")
        return {
            "triggered": True,
            "timestamp": utc_timestamp(),
            "data": dict(node.config),
        }


@register_executor
class WebhookTriggerExecutor(NodeExecutor):
    node_type = NodeType.WEBHOOK_TRIGGER
    label = "Webhook Trigger"
    category = "trigger"
    description = "Trigger workflow via HTTP webhook"

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        path = node.config.get("path")
        method = node.config.get("method", "POST")
        logs.append(f"Webhook marker: {method} {path}")
        return {
            "triggered": True,
            "webhook_path": path,
            "method": method,
            "timestamp": utc_timestamp(),
            "data": {"message": "Webhook triggered"},
        }
