"""
Messaging executors: email and SMS.

Email delivery is delegated to the notification service over HTTP
(`POST /api/send-email`). SMS has no carrier behind it yet; the executor
answers with a simulated, provider-shaped response.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import random
import string

import httpx

from nodeflow.config import settings
from nodeflow.engine.errors import DeliveryError, ValidationError
from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.nodes.registry import NodeExecutor, missing_fields, register_executor, utc_timestamp


logger = logging.getLogger(__name__)


@register_executor
class EmailExecutor(NodeExecutor):
    """
    Executes `email` nodes through the notification service.

    Config:
        to, subject, body: Required
        fromName, fromEmail, toName, replyTo: Optional
    """

    node_type = NodeType.EMAIL
    label = "Send Email"
    category = "action"
    description = "Send an email notification"

    REQUIRED = ["to", "subject", "body"]

    def __init__(
        self,
        service_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service_url = (service_url or settings.NOTIFICATION_SERVICE_URL).rstrip("/")
        self.transport = transport

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        config = node.config
        missing = missing_fields(config, self.REQUIRED)
        if missing:
            error = ValidationError.missing_fields(missing)
            logs.append(f"Validation failed: {error}")
            raise error

        body = str(config["body"])
        logs.append(f"Recipient: {config['to']}")
        logs.append(f"Subject: {config['subject']}")
        logs.append(f"Body length: {len(body)} characters")
        logs.append(f"Sending email via notification service at {self.service_url}")

        payload = {
            "to": config["to"],
            "subject": config["subject"],
            "body": body,
            "fromName": config.get("fromName") or settings.EMAIL_FROM_NAME,
            "fromEmail": config.get("fromEmail"),
            "toName": config.get("toName"),
            "replyTo": config.get("replyTo"),
        }

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=settings.HTTP_REQUEST_TIMEOUT) as client:
                response = await client.post(f"{self.service_url}/api/send-email", json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"Notification service unreachable: {e}")
            raise DeliveryError(f"Notification service unreachable: {e}") from None

        try:
            reply = response.json()
        except ValueError:
            reply = {"success": False, "error": response.text or response.reason_phrase}
        if not isinstance(reply, dict):
            reply = {"success": False, "error": str(reply)}

        if not response.is_success or not reply.get("success", False):
            error = reply.get("error") or f"status {response.status_code}"
            logs.append(f"Notification service error: {error}")
            raise DeliveryError(f"Failed to send email: {error}")

        logs.append("Email sent successfully")
        logs.append(f"Message ID: {reply.get('messageId')}")

        return {
            "sent": True,
            "provider": reply.get("provider", "smtp"),
            "to": config["to"],
            "subject": config["subject"],
            "body": body,
            "messageId": reply.get("messageId"),
            "status": "delivered",
            "timestamp": reply.get("timestamp") or utc_timestamp(),
            "response": reply.get("response"),
        }


def mock_message_id() -> str:
    """`SIM` + epoch milliseconds + five uppercase alphanumerics."""
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"SIM{millis}{suffix}"


@register_executor
class SmsExecutor(NodeExecutor):
    """
    Executes `sms` nodes.

    Always simulated; the output mirrors a Twilio message resource so that
    downstream nodes keep working once a real provider is plugged in.
    """

    node_type = NodeType.SMS
    label = "Send SMS"
    category = "action"
    description = "Send an SMS message"

    REQUIRED = ["to", "message"]
    DEFAULT_FROM = "+15551234567"

    async def run(self, node: Node, context: ExecutionContext, logs: List[str]) -> Dict[str, Any]:
        config = node.config
        logs.append("Preparing SMS configuration")

        missing = missing_fields(config, self.REQUIRED)
        if missing:
            error = ValidationError.missing_fields(missing)
            logs.append(f"Validation failed: {error}")
            raise error

        message_id = mock_message_id()
        provider = config.get("provider") or "twilio"
        logs.append(f"Simulating {provider} delivery to {config['to']}")

        result = {
            "sent": True,
            "provider": provider,
            "to": config["to"],
            "message": config["message"],
            "messageId": message_id,
            "status": "delivered",
            "timestamp": utc_timestamp(),
            "cost": "0.00",
            "simulation": True,
            "response": {
                "sid": message_id,
                "status": "sent",
                "direction": "outbound-api",
                "body": config["message"],
                "to": config["to"],
                "from": config.get("from") or self.DEFAULT_FROM,
                "uri": f"/2010-04-01/Accounts/SIMULATED/Messages/{message_id}.json",
            },
        }
        logs.append("SMS simulation completed successfully")
        return result
