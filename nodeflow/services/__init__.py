"""
Services package - Outbound delivery backends.
"""

from nodeflow.services.mailer import Mailer, MailerError, MailerNotConfigured

__all__ = [
    "Mailer",
    "MailerError",
    "MailerNotConfigured",
]
