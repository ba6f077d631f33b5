"""
Tests for the notification service and the SMTP mailer.
"""

import pytest
from typing import Any, Dict, List

import aiosmtplib
import httpx
from fastapi.testclient import TestClient

from nodeflow.api.routes.notifications import get_mailer
from nodeflow.config import Settings
from nodeflow.engine.graph import Node, NodeType
from nodeflow.engine.state import ExecutionContext
from nodeflow.main import app
from nodeflow.nodes import EmailExecutor
from nodeflow.services.mailer import Mailer, MailerError, MailerNotConfigured


def configured_mailer() -> Mailer:
    return Mailer(config=Settings(EMAIL_USER="bot@example.com", EMAIL_PASS="app-password"))


def unconfigured_mailer() -> Mailer:
    return Mailer(config=Settings(EMAIL_USER=None, EMAIL_PASS=None))


@pytest.fixture
def sent(monkeypatch) -> List[Dict[str, Any]]:
    """Replace the SMTP exchange and capture every message handed to it."""
    messages: List[Dict[str, Any]] = []

    async def fake_send(message, **options):
        messages.append({"message": message, "options": options})
        return {}, "OK"

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return messages


@pytest.fixture
def use_mailer():
    """Install a mailer for the notification routes."""
    def install(mailer: Mailer):
        app.dependency_overrides[get_mailer] = lambda: mailer

    yield install
    app.dependency_overrides.pop(get_mailer, None)


client = TestClient(app)


# ============================================================
# Mailer Tests
# ============================================================

class TestMailer:
    """Tests for the aiosmtplib-backed mailer."""

    def test_build_message(self):
        message = configured_mailer().build_message(
            to="ops@example.com",
            subject="Alert",
            body="Line 1\nLine 2",
            to_name="Ops",
        )

        assert message["To"] == "Ops <ops@example.com>"
        assert message["From"] == "Workflow Builder <bot@example.com>"
        assert message["Reply-To"] == "bot@example.com"
        assert message["Message-ID"].endswith("@example.com>")
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "Line 1<br>Line 2" in html

    def test_connection_options(self):
        options = configured_mailer()._connection_options()
        assert options["hostname"] == "smtp.gmail.com"
        assert options["port"] == 587
        assert options["use_tls"] is False

        secure = Mailer(config=Settings(EMAIL_USER="a@b.c", EMAIL_PASS="x", SMTP_SECURE=True, SMTP_PORT=465))
        assert secure._connection_options()["use_tls"] is True
        assert secure._connection_options()["start_tls"] is False

    @pytest.mark.asyncio
    async def test_send(self, sent):
        info = await configured_mailer().send(to="ops@example.com", subject="Alert", body="Hello")

        assert info["accepted"] == ["ops@example.com"]
        assert info["rejected"] == []
        assert info["envelope"] == {"from": "bot@example.com", "to": ["ops@example.com"]}
        assert sent[0]["options"]["username"] == "bot@example.com"

    @pytest.mark.asyncio
    async def test_send_reports_rejected_recipient(self, monkeypatch):
        async def fake_send(message, **options):
            return {"ops@example.com": (550, "mailbox unavailable")}, "OK"

        monkeypatch.setattr(aiosmtplib, "send", fake_send)
        info = await configured_mailer().send(to="ops@example.com", subject="Alert", body="Hello")

        assert info["accepted"] == []
        assert info["rejected"] == ["ops@example.com"]

    @pytest.mark.asyncio
    async def test_send_without_credentials(self):
        with pytest.raises(MailerNotConfigured):
            await unconfigured_mailer().send(to="ops@example.com", subject="s", body="b")

    @pytest.mark.asyncio
    async def test_authentication_failure(self, monkeypatch):
        async def fake_send(message, **options):
            raise aiosmtplib.SMTPAuthenticationError(535, "bad credentials")

        monkeypatch.setattr(aiosmtplib, "send", fake_send)
        with pytest.raises(MailerError) as excinfo:
            await configured_mailer().send(to="ops@example.com", subject="s", body="b")

        assert excinfo.value.code == "EAUTH"

    @pytest.mark.asyncio
    async def test_connection_failure(self, monkeypatch):
        async def fake_send(message, **options):
            raise OSError("connection refused")

        monkeypatch.setattr(aiosmtplib, "send", fake_send)
        with pytest.raises(MailerError) as excinfo:
            await configured_mailer().send(to="ops@example.com", subject="s", body="b")

        assert excinfo.value.code == "ECONNECTION"


# ============================================================
# Route Tests
# ============================================================

class TestNotificationRoutes:
    """Tests for the /api notification endpoints."""

    def test_send_email(self, sent, use_mailer):
        use_mailer(configured_mailer())
        response = client.post("/api/send-email", json={
            "to": "ops@example.com",
            "subject": "Alert",
            "body": "Order 42 is large",
            "fromName": "Orders",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["messageId"]
        assert data["to"] == "ops@example.com"
        assert data["response"]["accepted"] == ["ops@example.com"]
        assert sent[0]["message"]["From"] == "Orders <bot@example.com>"

    def test_missing_fields(self, use_mailer):
        use_mailer(configured_mailer())
        response = client.post("/api/send-email", json={"to": "ops@example.com"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required fields: to, subject, body",
        }

    def test_not_configured(self, use_mailer):
        use_mailer(unconfigured_mailer())
        response = client.post("/api/send-email", json={"to": "a@b.c", "subject": "s", "body": "b"})

        assert response.status_code == 503
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "ENOTCONFIGURED"

    def test_delivery_failure(self, monkeypatch, use_mailer):
        async def fake_send(message, **options):
            raise aiosmtplib.SMTPAuthenticationError(535, "bad credentials")

        monkeypatch.setattr(aiosmtplib, "send", fake_send)
        use_mailer(configured_mailer())
        response = client.post("/api/send-email", json={"to": "a@b.c", "subject": "s", "body": "b"})

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "EAUTH"
        assert data["error"].startswith("Email sending failed: Authentication failed")

    def test_health(self, use_mailer):
        use_mailer(configured_mailer())
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["emailConfigured"] is True

    def test_config_check(self, monkeypatch, use_mailer):
        calls: List[str] = []

        class FakeSMTP:
            def __init__(self, **options):
                self.is_connected = False

            async def connect(self):
                calls.append("connect")
                self.is_connected = True

            async def login(self, username, password):
                calls.append(f"login {username}")

            async def quit(self):
                calls.append("quit")
                self.is_connected = False

        monkeypatch.setattr(aiosmtplib, "SMTP", FakeSMTP)
        use_mailer(configured_mailer())
        response = client.get("/api/test-email-config")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["user"] == "bot@example.com"
        assert calls == ["connect", "login bot@example.com", "quit"]

    def test_config_check_not_configured(self, use_mailer):
        use_mailer(unconfigured_mailer())
        response = client.get("/api/test-email-config")
        assert response.status_code == 503


# ============================================================
# Email Node Through the Service
# ============================================================

@pytest.mark.asyncio
async def test_email_node_delivers_through_service(sent, use_mailer):
    """The email executor talks to the notification routes over HTTP."""
    use_mailer(configured_mailer())
    executor = EmailExecutor(service_url="http://test", transport=httpx.ASGITransport(app=app))
    node = Node(
        id="notify",
        type=NodeType.EMAIL,
        config={"to": "ops@example.com", "subject": "Alert", "body": "Large order"},
    )

    result = await executor.execute(node, ExecutionContext(workflow_id="wf", node_id="notify"))

    assert result.success, result.error
    assert result.data["sent"] is True
    assert result.data["provider"] == "aiosmtplib"
    assert result.data["messageId"] == sent[0]["message"]["Message-ID"]


@pytest.mark.asyncio
async def test_email_node_reports_unconfigured_service(use_mailer):
    use_mailer(unconfigured_mailer())
    executor = EmailExecutor(service_url="http://test", transport=httpx.ASGITransport(app=app))
    node = Node(id="notify", type=NodeType.EMAIL, config={"to": "a@b.c", "subject": "s", "body": "b"})

    result = await executor.execute(node, ExecutionContext(workflow_id="wf", node_id="notify"))

    assert result.error_type == "DeliveryError"
    assert result.error.startswith("Failed to send email: Email server not configured")
