"""
Workflows package - Sample workflow definitions.
"""

from nodeflow.workflows.order_alert import (
    DEMO_WORKFLOW_ID,
    create_order_alert_workflow,
    register_order_alert_workflow,
    run_order_alert_demo,
)

__all__ = [
    "DEMO_WORKFLOW_ID",
    "create_order_alert_workflow",
    "register_order_alert_workflow",
    "run_order_alert_demo",
]
