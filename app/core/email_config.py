"""
=============================================================================
CARLORA - CENTRALIZED EMAIL NOTIFICATION CONFIGURATION
=============================================================================

Every constant that shapes outgoing form notifications lives here, together
with the SMTP transport configuration derived from the environment.

To change the sender name, subjects or retry policy, modify ONLY this file.
=============================================================================
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from app.core.config import Settings

logger = structlog.get_logger(__name__)


class EmailConfig:
    """
    Centralized email configuration for all Carlora notifications.

    Usage:
        from app.core.email_config import email_config

        name = email_config.SENDER_NAME
    """

    # =========================================================================
    # SENDER
    # =========================================================================

    # Display name attached to every outgoing message
    SENDER_NAME: str = "Carlora Strategic Innovation"

    # Domain used for List-Unsubscribe when SMTP_FROM is not set
    FALLBACK_DOMAIN: str = "carlora.com"

    # Inbox for form notifications when neither FORM_NOTIFY_EMAIL nor SMTP_USER is set
    DEFAULT_NOTIFY_EMAIL: str = "info@carlora.com"

    # =========================================================================
    # FORM NOTIFICATIONS
    # =========================================================================

    CONTACT_SUBJECT: str = "Contact Form: {name}"
    CONSULTATION_SUBJECT: str = "New Consultation Request: {name} - {company}"
    APPLICATION_SUBJECT: str = "Application Form: {name}"

    # =========================================================================
    # DELIVERY POLICY
    # =========================================================================

    # Fixed-delay retry: MAX_RETRIES extra attempts, RETRY_DELAY_SECONDS apart
    MAX_RETRIES: int = 3
    RETRY_DELAY_SECONDS: float = 1.0

    # =========================================================================
    # SELF-TEST
    # =========================================================================

    TEST_SUBJECT: str = "Email System Test"
    TEST_TEXT: str = (
        "This is a test email to verify the email system is working correctly."
    )
    TEST_HTML: str = (
        "<p>This is a test email to verify the email system is working correctly.</p>"
    )

    # =========================================================================
    # UPLOADS
    # =========================================================================

    RESUME_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    RESUME_CONTENT_TYPE: str = "application/pdf"

    def notify_address(self, settings: Settings) -> str:
        return settings.FORM_NOTIFY_EMAIL or settings.SMTP_USER or self.DEFAULT_NOTIFY_EMAIL

    def sender_domain(self, from_address: Optional[str]) -> str:
        if from_address and "@" in from_address:
            return from_address.split("@", 1)[1]
        return self.FALLBACK_DOMAIN


# Singleton instance - import this in your code
email_config = EmailConfig()


@dataclass(frozen=True)
class SmtpTransportConfig:
    """Immutable SMTP settings. Built once; never partially populated."""

    host: str
    port: int
    username: str
    password: str
    from_address: str
    use_tls: bool = False
    verify_tls: bool = True
    max_connections: int = 5
    max_messages: int = 100
    rate_limit: float = 5.0


def load_transport_config(settings: Settings) -> Optional[SmtpTransportConfig]:
    """Return the transport configuration, or None when any credential is missing."""
    if not settings.SMTP_HOST or not settings.SMTP_USER or not settings.SMTP_PASSWORD:
        logger.warning(
            "email_service_not_configured",
            reason="Missing SMTP credentials",
            environment=settings.ENVIRONMENT,
        )
        return None

    return SmtpTransportConfig(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        from_address=settings.SMTP_FROM or settings.SMTP_USER,
        use_tls=settings.SMTP_PORT == 465,
        verify_tls=settings.is_production,
        max_connections=settings.SMTP_POOL_MAX_CONNECTIONS,
        max_messages=settings.SMTP_POOL_MAX_MESSAGES,
        rate_limit=settings.SMTP_RATE_LIMIT,
    )
