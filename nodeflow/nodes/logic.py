"""
Logic executors: delay, condition and transform.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import json
import logging

from nodeflow.config import settings
from nodeflow.engine.conditions import DataSource, evaluate_conditions, to_string
from nodeflow.engine.errors import ConditionError
from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.nodes.registry import NodeExecutor, register_executor, utc_timestamp


logger = logging.getLogger(__name__)


UNIT_SECONDS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 60 * 60,
    "days": 24 * 60 * 60,
}


@register_executor
class DelayExecutor(NodeExecutor):
    """
    Executes `delay` nodes.

    The requested wait is `duration x unit`, but the actual suspension is
    capped at DELAY_CEILING_SECONDS. The output reports what was requested.
    """

    node_type = NodeType.DELAY
    label = "Delay"
    category = "action"
    description = "Wait for a specified amount of time"

    def __init__(
        self,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        ceiling_seconds: Optional[float] = None,
    ):
        self._sleep = sleep or asyncio.sleep
        self.ceiling_seconds = settings.DELAY_CEILING_SECONDS if ceiling_seconds is None else ceiling_seconds

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        duration = node.config.get("duration") or 1
        unit = node.config.get("unit") or "seconds"

        requested_ms = float(duration) * UNIT_SECONDS.get(unit, 1) * 1000
        actual_ms = max(0.0, min(requested_ms, self.ceiling_seconds * 1000))

        logs.append(f"Waiting {duration} {unit}")
        if actual_ms < requested_ms:
            logs.append(f"Delay capped at {actual_ms / 1000:g} seconds")

        await self._sleep(actual_ms / 1000)

        return {
            "delayed": True,
            "duration": duration,
            "unit": unit,
            "requested_delay_ms": requested_ms,
            "actual_delay_ms": actual_ms,
        }


@register_executor
class ConditionExecutor(NodeExecutor):
    """
    Executes `condition` nodes.

    Config:
        conditions: JSON list of `{field, operator, value}`
        logic: "AND" (default) or "OR"
        dataSource: "previous" (default), "variables" or "static"
    """

    node_type = NodeType.CONDITION
    label = "Condition"
    category = "logic"
    description = "Branch the workflow on a set of conditions"

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        config = node.config
        data_source = config.get("dataSource") or DataSource.PREVIOUS

        if data_source == DataSource.VARIABLES:
            evaluation_data = context.variables or {}
        elif data_source == DataSource.STATIC:
            evaluation_data = {}
        else:
            evaluation_data = context.data if context.data is not None else {}

        try:
            outcome = evaluate_conditions(
                config.get("conditions"),
                evaluation_data,
                logic=config.get("logic"),
            )
        except ConditionError as e:
            logs.append(f"Error: {e}")
            raise

        logs.append(f"Evaluating {len(outcome.conditions)} condition(s) with {outcome.logic} logic")
        logs.append(f"Data source: {data_source}")
        logs.append(f"Evaluation data: {json.dumps(evaluation_data, indent=2, default=str)}")
        for index, condition in enumerate(outcome.conditions):
            logs.append(
                f"Condition {index + 1}: {condition['field']} {condition['operator']} "
                f"{to_string(condition.get('value'))} -> {to_string(outcome.field_values[index])} "
                f"= {outcome.results[index]}"
            )

        result = outcome.result
        logs.append(f"Final result: {result} ({outcome.logic} logic)")

        return {
            "condition": True,
            "conditions": outcome.conditions,
            "logic": outcome.logic,
            "dataSource": data_source,
            "evaluationData": evaluation_data,
            "individualResults": outcome.results,
            "result": result,
            "branch": "true" if result else "false",
        }


@register_executor
class TransformExecutor(NodeExecutor):
    """
    Executes `transform` nodes.

    Passthrough for now: the configured `operation` and `mapping` are not
    applied yet, the input is echoed with a `transformed` marker.
    """

    node_type = NodeType.TRANSFORM
    label = "Transform Data"
    category = "logic"
    description = "Transform data passing through the workflow"

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        operation = node.config.get("operation")
        if operation:
            logs.append(f"Operation '{operation}' passed through unchanged")

        data = context.data
        if isinstance(data, dict):
            output = {**data, "transformed": True}
        else:
            output = {"value": data, "transformed": True}

        logs.append(f"Transformed at {utc_timestamp()}")
        return output
