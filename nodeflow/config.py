"""
Configuration settings for the Nodeflow engine.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "Nodeflow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Node executors
    HTTP_REQUEST_TIMEOUT: float = 30.0  # Seconds
    DELAY_CEILING_SECONDS: float = 5.0  # Hard cap on actual delay suspension
    NOTIFICATION_SERVICE_URL: str = "http://localhost:8000"

    # Notification service (SMTP)
    EMAIL_FROM_NAME: str = "Workflow Builder"
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def email_configured(self) -> bool:
        """True when SMTP credentials are present."""
        return bool(self.EMAIL_USER and self.EMAIL_PASS)


# Global settings instance
settings = Settings()
