"""
Tests for the built-in node executors.
"""

import pytest
import json
from typing import Any, Dict, List

import httpx

from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.nodes import (
    NodeExecutor,
    NodeRegistry,
    ManualTriggerExecutor,
    WebhookTriggerExecutor,
    HttpRequestExecutor,
    EmailExecutor,
    SmsExecutor,
    ConditionExecutor,
    DelayExecutor,
    TransformExecutor,
)


def make_node(node_type: NodeType, **config) -> Node:
    return Node(id="node-1", type=node_type, config=config, label="Test node")


def make_context(data: Any = None, variables: Dict[str, Any] = None) -> ExecutionContext:
    return ExecutionContext(
        workflow_id="wf-test",
        node_id="node-1",
        data={} if data is None else data,
        variables=variables or {},
    )


# ============================================================
# Registry Tests
# ============================================================

class TestNodeRegistry:
    """Tests for executor dispatch."""

    def test_builtins_cover_every_node_type(self):
        registry = NodeRegistry.with_builtins()
        assert len(registry) == len(NodeType)
        for node_type in NodeType:
            assert node_type in registry

    def test_override_replaces_builtin(self):
        custom = HttpRequestExecutor(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        registry = NodeRegistry.with_builtins(custom)
        assert registry.get(NodeType.HTTP_REQUEST) is custom

    def test_list_types(self):
        types = {info["type"]: info for info in NodeRegistry.with_builtins().list_types()}
        assert types["http-request"]["label"] == "HTTP Request"
        assert types["manual-trigger"]["category"] == "trigger"

    @pytest.mark.asyncio
    async def test_unregistered_type_fails_the_node(self):
        result = await NodeRegistry().execute(make_node(NodeType.SMS), make_context())
        assert result.success is False
        assert result.error == "Unknown node type: sms"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_result(self):
        class Broken(NodeExecutor):
            node_type = NodeType.TRANSFORM

            async def run(self, node, context, logs):
                logs.append("about to fail")
                raise RuntimeError("disk on fire")

        result = await Broken().execute(make_node(NodeType.TRANSFORM), make_context())
        assert result.success is False
        assert result.error == "disk on fire"
        assert result.error_type == "RuntimeError"
        assert result.logs == ["about to fail"]


# ============================================================
# Trigger Tests
# ============================================================

class TestTriggers:

    @pytest.mark.asyncio
    async def test_manual_trigger_exposes_config(self):
        result = await ManualTriggerExecutor().execute(
            make_node(NodeType.MANUAL_TRIGGER, order_id="A1"), make_context()
        )
        assert result.success
        assert result.data["triggered"] is True
        assert result.data["data"] == {"order_id": "A1"}
        assert "timestamp" in result.data

    @pytest.mark.asyncio
    async def test_webhook_trigger_defaults_to_post(self):
        result = await WebhookTriggerExecutor().execute(
            make_node(NodeType.WEBHOOK_TRIGGER, path="/hooks/orders"), make_context()
        )
        assert result.data["method"] == "POST"
        assert result.data["webhook_path"] == "/hooks/orders"
        assert result.data["data"] == {"message": "Webhook triggered"}


# ============================================================
# HTTP Request Tests
# ============================================================

class TestHttpRequestExecutor:
    """Tests for the http-request executor."""

    @pytest.mark.asyncio
    async def test_empty_url_fails_before_any_request(self):
        requests: List[httpx.Request] = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        executor = HttpRequestExecutor(transport=httpx.MockTransport(handler))
        result = await executor.execute(make_node(NodeType.HTTP_REQUEST, url="  "), make_context())

        assert result.success is False
        assert result.error_type == "ValidationError"
        assert result.error == "URL is required and cannot be empty"
        assert requests == []

    @pytest.mark.asyncio
    async def test_get_json(self):
        requests: List[httpx.Request] = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": 42, "status": "open"})

        executor = HttpRequestExecutor(transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(NodeType.HTTP_REQUEST, url="https://api.test/orders/42", body='{"ignored": true}'),
            make_context(),
        )

        assert result.success
        assert result.data["status"] == 200
        assert result.data["statusText"] == "OK"
        assert result.data["data"] == {"id": 42, "status": "open"}
        assert result.data["method"] == "GET"
        assert requests[0].content == b""
        assert "Response parsed as JSON" in result.logs

    @pytest.mark.asyncio
    async def test_unparseable_json_falls_back_to_text(self):
        executor = HttpRequestExecutor(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(
                    200, content=b"not json", headers={"content-type": "application/json"}
                )
            )
        )
        result = await executor.execute(
            make_node(NodeType.HTTP_REQUEST, url="https://api.test/broken"), make_context()
        )

        assert result.success
        assert result.data["data"] == "not json"
        assert "Failed to parse JSON, using text response" in result.logs

    @pytest.mark.asyncio
    async def test_post_sends_body_and_merged_headers(self):
        requests: List[httpx.Request] = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, text="created")

        executor = HttpRequestExecutor(transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(
                NodeType.HTTP_REQUEST,
                url="https://api.test/orders",
                method="post",
                headers='{"Authorization": "Bearer token"}',
                body={"total": 120},
            ),
            make_context(),
        )

        assert result.success
        assert result.data["data"] == "created"
        request = requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"total": 120}
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_is_logged_then_raised(self):
        executor = HttpRequestExecutor(
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={"error": "missing"}))
        )
        result = await executor.execute(
            make_node(NodeType.HTTP_REQUEST, url="https://api.test/nothing"), make_context()
        )

        assert result.success is False
        assert result.error_type == "RequestError"
        assert result.error == "HTTP request failed: 404 Not Found"
        assert any(line.startswith("Response:") for line in result.logs)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        executor = HttpRequestExecutor(transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(NodeType.HTTP_REQUEST, url="https://unreachable.test"), make_context()
        )

        assert result.error_type == "NetworkError"
        assert result.error == "Network error - check URL and internet connection"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        executor = HttpRequestExecutor(transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(NodeType.HTTP_REQUEST, url="https://slow.test", timeout=2),
            make_context(),
        )

        assert result.error_type == "RequestTimeoutError"
        assert result.error == "Request timeout after 2 seconds"


# ============================================================
# Messaging Tests
# ============================================================

class TestEmailExecutor:
    """Tests for the email executor."""

    @pytest.mark.asyncio
    async def test_missing_fields_are_listed(self):
        executor = EmailExecutor(service_url="http://notify.test")
        result = await executor.execute(make_node(NodeType.EMAIL, to="ops@example.com"), make_context())

        assert result.success is False
        assert result.error_type == "ValidationError"
        assert result.error == "Missing required fields: subject, body"

    @pytest.mark.asyncio
    async def test_delivers_through_notification_service(self):
        requests: List[httpx.Request] = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={
                "success": True,
                "messageId": "<abc@example.com>",
                "timestamp": "2024-01-01T00:00:00+00:00",
                "provider": "aiosmtplib",
                "response": {"accepted": ["ops@example.com"], "rejected": []},
            })

        executor = EmailExecutor(service_url="http://notify.test/", transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(NodeType.EMAIL, to="ops@example.com", subject="Alert", body="Line 1\nLine 2"),
            make_context(),
        )

        assert result.success
        assert str(requests[0].url) == "http://notify.test/api/send-email"
        payload = json.loads(requests[0].content)
        assert payload["to"] == "ops@example.com"
        assert payload["fromName"] == "Workflow Builder"
        assert result.data["messageId"] == "<abc@example.com>"
        assert result.data["status"] == "delivered"
        assert result.data["response"]["accepted"] == ["ops@example.com"]

    @pytest.mark.asyncio
    async def test_service_failure_is_delivery_error(self):
        executor = EmailExecutor(
            service_url="http://notify.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(
                503, json={"success": False, "error": "Email server not configured"}
            )),
        )
        result = await executor.execute(
            make_node(NodeType.EMAIL, to="a@b.c", subject="s", body="b"), make_context()
        )

        assert result.error_type == "DeliveryError"
        assert result.error == "Failed to send email: Email server not configured"

    @pytest.mark.asyncio
    async def test_unreachable_service_is_delivery_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        executor = EmailExecutor(service_url="http://notify.test", transport=httpx.MockTransport(handler))
        result = await executor.execute(
            make_node(NodeType.EMAIL, to="a@b.c", subject="s", body="b"), make_context()
        )

        assert result.error_type == "DeliveryError"
        assert result.error.startswith("Notification service unreachable")


class TestSmsExecutor:

    @pytest.mark.asyncio
    async def test_missing_fields(self):
        result = await SmsExecutor().execute(make_node(NodeType.SMS, to=""), make_context())
        assert result.error == "Missing required fields: to, message"

    @pytest.mark.asyncio
    async def test_simulated_delivery(self):
        result = await SmsExecutor().execute(
            make_node(NodeType.SMS, to="+15550100", message="Large order"), make_context()
        )

        assert result.success
        assert result.data["simulation"] is True
        assert result.data["status"] == "delivered"
        assert result.data["messageId"].startswith("SIM")
        assert result.data["response"]["sid"] == result.data["messageId"]
        assert result.data["response"]["from"] == "+15551234567"


# ============================================================
# Logic Tests
# ============================================================

class TestDelayExecutor:
    """Tests for the delay executor."""

    @pytest.mark.asyncio
    async def test_long_delay_is_capped(self):
        slept: List[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        result = await DelayExecutor(sleep=fake_sleep).execute(
            make_node(NodeType.DELAY, duration=10, unit="minutes"), make_context()
        )

        assert slept == [5.0]
        assert result.data["duration"] == 10
        assert result.data["unit"] == "minutes"
        assert result.data["requested_delay_ms"] == 600000
        assert result.data["actual_delay_ms"] == 5000

    @pytest.mark.asyncio
    async def test_short_delay_is_not_capped(self):
        slept: List[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        result = await DelayExecutor(sleep=fake_sleep, ceiling_seconds=5).execute(
            make_node(NodeType.DELAY, duration=2), make_context()
        )

        assert slept == [2.0]
        assert result.data["unit"] == "seconds"


class TestConditionExecutor:

    @pytest.mark.asyncio
    async def test_status_equals_200(self):
        node = make_node(
            NodeType.CONDITION,
            conditions='[{"field": "status", "operator": "equals", "value": "200"}]',
            logic="AND",
        )
        result = await ConditionExecutor().execute(node, make_context({"status": "200"}))

        assert result.success
        assert result.data["result"] is True
        assert result.data["branch"] == "true"
        assert result.data["individualResults"] == [True]
        assert result.logs[-1] == "Final result: True (AND logic)"

    @pytest.mark.asyncio
    async def test_static_source_sees_nothing(self):
        node = make_node(
            NodeType.CONDITION,
            conditions=[{"field": "status", "operator": "is_null"}],
            dataSource="static",
        )
        result = await ConditionExecutor().execute(node, make_context({"status": "200"}))
        assert result.data["result"] is True
        assert result.data["evaluationData"] == {}

    @pytest.mark.asyncio
    async def test_malformed_conditions_fail(self):
        node = make_node(NodeType.CONDITION, conditions="not json")
        result = await ConditionExecutor().execute(node, make_context())

        assert result.error_type == "ConditionError"
        assert result.logs == ["Error: Invalid conditions JSON format"]


class TestTransformExecutor:

    @pytest.mark.asyncio
    async def test_marks_dict_input(self):
        result = await TransformExecutor().execute(
            make_node(NodeType.TRANSFORM, operation="uppercase"), make_context({"name": "ada"})
        )
        assert result.data == {"name": "ada", "transformed": True}

    @pytest.mark.asyncio
    async def test_wraps_non_dict_input(self):
        result = await TransformExecutor().execute(make_node(NodeType.TRANSFORM), make_context([1, 2]))
        assert result.data == {"value": [1, 2], "transformed": True}
