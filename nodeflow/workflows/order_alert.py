"""
Order Alert Workflow.

The sample workflow registered at startup:
1. Manual trigger carrying an order
2. Condition: is the order total above 100?
3. True branch: text the on-call number
4. False branch: tag the order as routine

It touches no network: SMS delivery is simulated.
"""

from typing import Any, Dict, Optional
import json
import logging

from nodeflow.engine.executor import ExecutionResult, execute_workflow


logger = logging.getLogger(__name__)

DEMO_WORKFLOW_ID = "order-alert-demo"


def create_order_alert_workflow(order_total: float = 250.0) -> Dict[str, Any]:
    """
    Build the Order Alert workflow document.

    Args:
        order_total: Order total carried by the trigger

    Returns:
        A workflow document in the stored `{id, name, nodes, edges}` shape
    """
    return {
        "id": DEMO_WORKFLOW_ID,
        "name": "Order Alert Demo",
        "description": "Text the on-call number when a large order comes in",
        "nodes": [
            {
                "id": "order-received",
                "type": "manual-trigger",
                "data": {
                    "label": "Order received",
                    "config": {"order_id": "ORD-1001", "order_total": order_total},
                },
            },
            {
                "id": "large-order",
                "type": "condition",
                "data": {
                    "label": "Large order?",
                    "config": {
                        "conditions": json.dumps([
                            {"field": "data.order_total", "operator": "greater_than", "value": "100"},
                        ]),
                        "logic": "AND",
                        "dataSource": "previous",
                    },
                },
            },
            {
                "id": "text-on-call",
                "type": "sms",
                "data": {
                    "label": "Text on-call",
                    "config": {"to": "+15550100", "message": "Large order received"},
                },
            },
            {
                "id": "tag-routine",
                "type": "transform",
                "data": {"label": "Tag as routine", "config": {"operation": "tag"}},
            },
        ],
        "edges": [
            {"id": "e-trigger", "source": "order-received", "target": "large-order"},
            {"id": "e-large", "source": "large-order", "target": "text-on-call", "sourceHandle": "true"},
            {"id": "e-routine", "source": "large-order", "target": "tag-routine", "sourceHandle": "false"},
        ],
        "viewport": {"x": 0, "y": 0, "zoom": 1},
    }


async def register_order_alert_workflow() -> Dict[str, Any]:
    """
    Register the Order Alert workflow in storage.

    This makes the workflow available immediately via the API
    without needing to create it first.
    """
    from nodeflow.storage.memory import workflow_storage

    document = create_order_alert_workflow()
    await workflow_storage.save(
        workflow_id=document["id"],
        name=document["name"],
        nodes=document["nodes"],
        edges=document["edges"],
        description=document["description"],
        viewport=document["viewport"],
    )

    logger.info(f"Registered Order Alert workflow with ID: {DEMO_WORKFLOW_ID}")
    return document


async def run_order_alert_demo(order_total: float = 250.0, variables: Optional[Dict[str, Any]] = None) -> ExecutionResult:
    """
    Run the Order Alert workflow once, outside the API.

    Usage:
        import asyncio
        from nodeflow.workflows.order_alert import run_order_alert_demo
        asyncio.run(run_order_alert_demo(42))
    """
    result = await execute_workflow(create_order_alert_workflow(order_total), variables=variables)
    branch = "alert" if result.condition_results.get("large-order") else "routine"
    logger.info(f"Order Alert demo finished on the {branch} branch: {result.visited}")
    return result
