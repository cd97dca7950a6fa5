"""
Public contact form.

Validates the message, screens out bots and forwards it to the firm's inbox.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_submission_service
from app.core.email_config import email_config
from app.schemas.error import SUBMISSION_ERROR_RESPONSES
from app.schemas.forms import ContactRequest, ContactResponse
from app.services.email_templates import contact_form_template
from app.services.submission_service import DiagnosticInfo, SubmissionService

FORM = "contact"

router = APIRouter()


@router.post(
    "/contact",
    response_model=ContactResponse,
    summary="Send a contact message",
    responses=SUBMISSION_ERROR_RESPONSES,
)
async def submit_contact(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> ContactResponse:
    diagnostics = DiagnosticInfo.from_request(request)

    await service.enforce_rate_limit(request, diagnostics, FORM)
    payload = await service.read_json(request, diagnostics, FORM)
    submission = service.validate(ContactRequest, payload, diagnostics, FORM)
    service.reject_bots(submission, diagnostics, FORM)

    await service.deliver(
        form=FORM,
        submission=submission,
        subject=email_config.CONTACT_SUBJECT.format(name=submission.name),
        template=contact_form_template,
        diagnostics=diagnostics,
    )

    return ContactResponse(message="Message sent successfully")
