"""Test doubles for the email pipeline."""
import smtplib
from typing import List, Optional

from app.services.email_service import EmailOptions


class FakeTransport:
    """In-memory MailTransport that can be told to fail the first N sends."""

    def __init__(self, failures: int = 0, verify_error: Optional[Exception] = None):
        self.failures = failures
        self.verify_error = verify_error
        self.attempts = 0
        self.sent = []
        self.closed = False

    def verify(self) -> None:
        if self.verify_error is not None:
            raise self.verify_error

    def send(self, message) -> str:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
        self.sent.append(message)
        return message["Message-ID"]

    def close(self) -> None:
        self.closed = True


class RecordingEmailService:
    """Stands in for EmailService at the route boundary."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[EmailOptions] = []

    async def send_email(self, options: EmailOptions) -> bool:
        self.calls.append(options)
        if self.error is not None:
            raise self.error
        return self.result


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
