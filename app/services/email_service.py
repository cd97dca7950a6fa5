from __future__ import annotations

import asyncio
import mimetypes
import time
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from app.core.config import Settings
from app.core.email import MailTransport, build_transport
from app.core.email_config import SmtpTransportConfig, email_config, load_transport_config
from app.core.logging import describe_error
from app.core.sanitizer import sanitize_html
from app.services.email_templates import EmailTemplate
from app.utils.validators import is_valid_email

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class EmailAttachment:
    """A file to attach, read from disk when the message is composed."""

    path: Path
    filename: str
    content_type: str = "application/octet-stream"


@dataclass
class EmailOptions:
    to: Union[str, Sequence[str]]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    from_address: Optional[str] = None
    reply_to: Optional[str] = None
    attachments: Sequence[EmailAttachment] = ()
    template: Optional[EmailTemplate] = None
    template_data: Optional[Mapping[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def recipients(self) -> List[str]:
        if isinstance(self.to, str):
            return [self.to]
        return list(self.to)


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str


class EmailService:
    """
    Single point of outbound email.

    Owns the transport, validates recipients, renders templates, sanitizes
    HTML and delivers with a fixed-delay retry. ``send_email`` never raises:
    every failure is logged and reported as ``False``.
    """

    def __init__(
        self,
        transport_config: Optional[SmtpTransportConfig],
        *,
        environment: str = "local",
        transport: Optional[MailTransport] = None,
        sleep: Sleep = asyncio.sleep,
        max_retries: int = email_config.MAX_RETRIES,
        retry_delay: float = email_config.RETRY_DELAY_SECONDS,
    ) -> None:
        self.transport_config = transport_config
        self.environment = environment
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._transport = transport
        self.is_configured = False
        self.configure()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "EmailService":
        return cls(
            load_transport_config(settings),
            environment=settings.ENVIRONMENT,
            **kwargs,
        )

    @property
    def default_from(self) -> str:
        return self.transport_config.from_address if self.transport_config else ""

    @property
    def simulates_delivery(self) -> bool:
        """True when sends are logged instead of delivered."""
        if self.environment == "development":
            return True
        return not self.is_configured and self.environment != "production"

    def configure(self) -> None:
        if self.transport_config is None:
            self.is_configured = False
            return
        if self._transport is None:
            self._transport = build_transport(self.transport_config)
        self.is_configured = True

    async def verify_connection(self) -> bool:
        if not self.is_configured or self._transport is None:
            return False

        try:
            await asyncio.to_thread(self._transport.verify)
        except Exception as exc:
            logger.error("email_connection_verification_failed", **describe_error(exc))
            return False

        logger.info("email_connection_verified", host=self.transport_config.host)
        return True

    def compose(self, options: EmailOptions) -> EmailMessage:
        """Build the MIME message. HTML is always sanitized here."""
        html = options.html
        text = options.text

        if options.template is not None:
            rendered = options.template.render(options.template_data or {})
            html = rendered.html
            text = rendered.text

        if html:
            html = sanitize_html(html)

        sender = options.from_address or self.default_from
        domain = email_config.sender_domain(sender)

        message = EmailMessage()
        message["From"] = formataddr((email_config.SENDER_NAME, sender))
        message["To"] = ", ".join(options.recipients)
        message["Subject"] = options.subject
        if options.reply_to:
            message["Reply-To"] = options.reply_to
        message["Message-ID"] = make_msgid(domain=domain)
        message["X-Entity-Ref-ID"] = str(int(time.time() * 1000))
        message["List-Unsubscribe"] = f"<mailto:unsubscribe@{domain}>"
        for name, value in options.headers.items():
            message[name] = value

        message.set_content(text or "")
        if html:
            message.add_alternative(html, subtype="html")

        for attachment in options.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            if not subtype:
                guessed = mimetypes.guess_type(attachment.filename)[0] or "application/octet-stream"
                maintype, _, subtype = guessed.partition("/")
            message.add_attachment(
                attachment.path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )

        return message

    async def send_with_retry(self, message: EmailMessage, attempt: int = 0) -> bool:
        """Deliver ``message``; on failure wait ``retry_delay`` and try again.

        Up to ``max_retries`` extra attempts are made, one at a time. The last
        transport error propagates once they are exhausted.
        """
        if self._transport is None:
            raise RuntimeError("Email transporter not initialized")

        while True:
            try:
                message_id = await asyncio.to_thread(self._transport.send, message)
            except Exception as exc:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.info(
                    "email_send_retry",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    **describe_error(exc),
                )
                await self._sleep(self.retry_delay)
                continue

            logger.info("email_sent", message_id=message_id, to=message["To"])
            return True

    async def send_email(self, options: EmailOptions) -> bool:
        recipients = options.recipients
        if not recipients or not all(is_valid_email(r) for r in recipients):
            logger.error(
                "email_sending_error",
                error="Invalid email address(es)",
                to=recipients,
                subject=options.subject,
            )
            return False

        if self.simulates_delivery:
            logger.info(
                "email_simulated",
                to=recipients,
                subject=options.subject,
                environment=self.environment,
                fields=sorted(options.template_data or {}),
            )
            return True

        if not self.is_configured:
            logger.error(
                "email_sending_error",
                error="Email transport is not configured",
                to=recipients,
                subject=options.subject,
            )
            return False

        try:
            message = self.compose(options)
            return await self.send_with_retry(message)
        except Exception as exc:
            logger.error(
                "email_sending_error",
                to=recipients,
                subject=options.subject,
                **describe_error(exc),
            )
            return False

    async def test_connection(self) -> ConnectionTestResult:
        """Verify the transport, then send one canned message to the SMTP user."""
        try:
            if not await self.verify_connection():
                return ConnectionTestResult(False, "Failed to connect to email server")

            sent = await self.send_email(
                EmailOptions(
                    to=self.transport_config.username,
                    subject=email_config.TEST_SUBJECT,
                    text=email_config.TEST_TEXT,
                    html=email_config.TEST_HTML,
                )
            )
            if sent:
                return ConnectionTestResult(True, "Email system is working correctly")
            return ConnectionTestResult(False, "Failed to send test email")
        except Exception as exc:
            return ConnectionTestResult(False, str(exc) or "Unknown error occurred")

    def close(self) -> None:
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()
