"""
Shared request pipeline for the public lead-capture forms.

Each route handler runs the same steps in the same order:

1. capture diagnostics
2. rate limit
3. parse + validate the payload
4. honeypot check
5. notify by email

Any step can end the request by raising a ``SubmissionError``; the registered
exception handler turns it into the JSON response.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

import structlog
from fastapi import Request
from pydantic import ValidationError

from app.core.errors import BotDetected, RateLimitExceeded, TransportFailure, ValidationFailure
from app.core.logging import describe_error
from app.core.rate_limiter import FormRateLimiter
from app.schemas.forms import FormSubmission
from app.services.email_service import EmailAttachment, EmailOptions, EmailService
from app.services.email_templates import EmailTemplate

logger = structlog.get_logger(__name__)

SubmissionT = TypeVar("SubmissionT", bound=FormSubmission)


@dataclass(frozen=True)
class DiagnosticInfo:
    """Request facts captured on entry and attached to every log line."""

    start_time: str
    client_ip: str
    user_agent: Optional[str]

    @classmethod
    def from_request(cls, request: Request) -> "DiagnosticInfo":
        return cls(
            start_time=datetime.now(timezone.utc).isoformat(),
            client_ip=request.headers.get("x-forwarded-for") or "unknown",
            user_agent=request.headers.get("user-agent"),
        )

    def as_log_context(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
        }


class SubmissionService:
    def __init__(
        self,
        email_service: EmailService,
        rate_limiter: FormRateLimiter,
        notify_address: str,
    ) -> None:
        self.email_service = email_service
        self.rate_limiter = rate_limiter
        self.notify_address = notify_address

    async def enforce_rate_limit(
        self, request: Request, diagnostics: DiagnosticInfo, form: str
    ) -> None:
        result = await self.rate_limiter.hit(self.rate_limiter.identify(request))
        if not result.success:
            logger.error("rate_limit_exceeded", form=form, **diagnostics.as_log_context())
            raise RateLimitExceeded()

    async def read_json(
        self, request: Request, diagnostics: DiagnosticInfo, form: str
    ) -> Any:
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            details = [{"field": "body", "message": "Request body must be valid JSON"}]
            raise self.invalid(details, diagnostics, form) from exc

    def validate(
        self,
        schema: Type[SubmissionT],
        payload: Any,
        diagnostics: DiagnosticInfo,
        form: str,
    ) -> SubmissionT:
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise self.invalid(schema.describe_errors(exc), diagnostics, form) from exc

    def invalid(
        self, details: Sequence[Dict[str, str]], diagnostics: DiagnosticInfo, form: str
    ) -> ValidationFailure:
        """Log a validation failure and return the exception to raise."""
        logger.error(
            "form_validation_failed",
            form=form,
            validation_errors=list(details),
            **diagnostics.as_log_context(),
        )
        return ValidationFailure(details=list(details))

    def reject_bots(
        self, submission: FormSubmission, diagnostics: DiagnosticInfo, form: str
    ) -> None:
        if submission.honeypot_triggered:
            logger.error("honeypot_triggered", form=form, **diagnostics.as_log_context())
            raise BotDetected()

    def template_data(
        self, submission: FormSubmission, diagnostics: DiagnosticInfo
    ) -> Dict[str, Any]:
        data = submission.template_fields()
        data.update(
            timestamp=datetime.now(timezone.utc).isoformat(),
            ip=diagnostics.client_ip,
            userAgent=diagnostics.user_agent,
        )
        return data

    async def deliver(
        self,
        *,
        form: str,
        submission: FormSubmission,
        subject: str,
        template: EmailTemplate,
        diagnostics: DiagnosticInfo,
        attachments: Sequence[EmailAttachment] = (),
    ) -> None:
        options = EmailOptions(
            to=self.notify_address,
            subject=subject,
            reply_to=getattr(submission, "email", None),
            template=template,
            template_data=self.template_data(submission, diagnostics),
            attachments=attachments,
        )

        try:
            sent = await self.email_service.send_email(options)
        except Exception as exc:
            logger.error(
                "form_delivery_failed",
                form=form,
                **describe_error(exc),
                **diagnostics.as_log_context(),
            )
            raise TransportFailure() from exc

        if not sent:
            logger.error(
                "form_delivery_failed",
                form=form,
                error="Failed to send email notification",
                **diagnostics.as_log_context(),
            )
            raise TransportFailure()

        logger.info(
            "form_submission_success",
            form=form,
            email=getattr(submission, "email", None),
            **diagnostics.as_log_context(),
        )
