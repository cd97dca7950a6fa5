"""
Consultation booking form.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_submission_service
from app.core.email_config import email_config
from app.schemas.error import SUBMISSION_ERROR_RESPONSES
from app.schemas.forms import ConsultationRequest, ConsultationResponse
from app.services.email_templates import consultation_booking_template
from app.services.submission_service import DiagnosticInfo, SubmissionService

FORM = "consultation"

router = APIRouter()


@router.post(
    "/book-consultation",
    response_model=ConsultationResponse,
    summary="Request a consultation",
    responses=SUBMISSION_ERROR_RESPONSES,
)
async def book_consultation(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> ConsultationResponse:
    diagnostics = DiagnosticInfo.from_request(request)

    await service.enforce_rate_limit(request, diagnostics, FORM)
    payload = await service.read_json(request, diagnostics, FORM)
    submission = service.validate(ConsultationRequest, payload, diagnostics, FORM)
    service.reject_bots(submission, diagnostics, FORM)

    await service.deliver(
        form=FORM,
        submission=submission,
        subject=email_config.CONSULTATION_SUBJECT.format(
            name=submission.name, company=submission.company
        ),
        template=consultation_booking_template,
        diagnostics=diagnostics,
    )

    return ConsultationResponse(
        success=True, message="Consultation request submitted successfully"
    )
