"""
Notification Service Routes.

The HTTP boundary the email executor delivers through. Failures answer
with `{success: false, error, code?}` rather than FastAPI's `detail` shape,
so any client of the service can read them the same way.
"""

from typing import Optional
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from nodeflow import __version__
from nodeflow.api.schemas import (
    SendEmailRequest,
    SendEmailResponse,
    EmailHealthResponse,
    NotificationErrorResponse,
)
from nodeflow.services.mailer import Mailer, MailerError, MailerNotConfigured


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notifications"])


def get_mailer() -> Mailer:
    """Dependency providing the SMTP mailer (overridden in tests)."""
    return Mailer()


def _failure(status_code: int, error: str, code: Optional[str] = None) -> JSONResponse:
    body = NotificationErrorResponse(error=error, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post(
    "/send-email",
    response_model=SendEmailResponse,
    responses={
        400: {"model": NotificationErrorResponse, "description": "Missing required fields"},
        500: {"model": NotificationErrorResponse, "description": "Delivery failed"},
        503: {"model": NotificationErrorResponse, "description": "Email server not configured"},
    },
)
async def send_email(request: SendEmailRequest, mailer: Mailer = Depends(get_mailer)):
    """Send one email over SMTP."""
    if not request.to or not request.subject or not request.body:
        logger.warning("Rejected send-email request with missing fields")
        return _failure(400, "Missing required fields: to, subject, body")

    try:
        info = await mailer.send(
            to=request.to,
            subject=request.subject,
            body=request.body,
            from_name=request.from_name,
            from_email=request.from_email,
            to_name=request.to_name,
            reply_to=request.reply_to,
        )
    except MailerNotConfigured as e:
        logger.warning("Email requested but SMTP is not configured")
        return _failure(503, str(e), e.code)
    except MailerError as e:
        return _failure(500, f"Email sending failed: {e}", e.code)

    return SendEmailResponse(
        message_id=info["messageId"],
        to=request.to,
        subject=request.subject,
        timestamp=info["timestamp"],
        provider="aiosmtplib",
        response={
            "messageId": info["messageId"],
            "accepted": info["accepted"],
            "rejected": info["rejected"],
            "envelope": info["envelope"],
        },
    )


@router.get("/health", response_model=EmailHealthResponse)
async def notification_health(mailer: Mailer = Depends(get_mailer)) -> EmailHealthResponse:
    return EmailHealthResponse(
        service="nodeflow-notifications",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        email_configured=mailer.is_configured,
    )


@router.get(
    "/test-email-config",
    responses={
        500: {"model": NotificationErrorResponse},
        503: {"model": NotificationErrorResponse},
    },
)
async def test_email_config(mailer: Mailer = Depends(get_mailer)):
    """Verify the SMTP credentials without sending anything."""
    try:
        details = await mailer.verify()
    except MailerNotConfigured as e:
        return _failure(503, str(e), e.code)
    except MailerError as e:
        return _failure(500, f"Email configuration test failed: {e}", e.code)

    return {
        "success": True,
        "message": "Email configuration is valid",
        **details,
    }
