"""
Nodes package - Node executor registry and the built-in executors.
"""

from nodeflow.nodes.registry import (
    NodeExecutor,
    NodeRegistry,
    NodeResult,
    register_executor,
)
from nodeflow.nodes.triggers import ManualTriggerExecutor, WebhookTriggerExecutor
from nodeflow.nodes.http_request import HttpRequestExecutor
from nodeflow.nodes.messaging import EmailExecutor, SmsExecutor
from nodeflow.nodes.logic import ConditionExecutor, DelayExecutor, TransformExecutor

__all__ = [
    "NodeExecutor",
    "NodeRegistry",
    "NodeResult",
    "register_executor",
    "ManualTriggerExecutor",
    "WebhookTriggerExecutor",
    "HttpRequestExecutor",
    "EmailExecutor",
    "SmsExecutor",
    "ConditionExecutor",
    "DelayExecutor",
    "TransformExecutor",
]
