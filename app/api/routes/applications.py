"""
Careers application form.

Multipart endpoint: applicant details plus an optional PDF résumé (5MB max)
which is staged in the upload directory, attached to the notification and
cleared once the request is finished.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.api.deps import get_submission_service, get_upload_service
from app.core.email_config import email_config
from app.schemas.error import SUBMISSION_ERROR_RESPONSES
from app.schemas.forms import ApplicationRequest, ApplicationResponse
from app.services.email_templates import application_form_template
from app.services.submission_service import DiagnosticInfo, SubmissionService
from app.services.upload_service import StoredUpload, UploadRejected, UploadService

FORM = "application"

router = APIRouter()


@router.post(
    "/applications",
    response_model=ApplicationResponse,
    summary="Submit a job application",
    responses=SUBMISSION_ERROR_RESPONSES,
)
async def submit_application(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
    uploads: UploadService = Depends(get_upload_service),
) -> ApplicationResponse:
    diagnostics = DiagnosticInfo.from_request(request)

    await service.enforce_rate_limit(request, diagnostics, FORM)

    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as exc:
        details = [{"field": "body", "message": "Invalid multipart form data"}]
        raise service.invalid(details, diagnostics, FORM) from exc

    fields = {key: value for key, value in form.items() if isinstance(value, str)}
    resume = form.get("resume")
    if not isinstance(resume, UploadFile) or not resume.filename:
        resume = None

    details: List[Dict[str, str]] = []
    submission: Optional[ApplicationRequest] = None
    try:
        submission = ApplicationRequest.model_validate(fields)
    except ValidationError as exc:
        details.extend(ApplicationRequest.describe_errors(exc))

    content: Optional[bytes] = None
    if resume is not None:
        try:
            content = await uploads.read_resume(resume)
        except UploadRejected as exc:
            details.append({"field": "resume", "message": str(exc)})

    if details or submission is None:
        raise service.invalid(details, diagnostics, FORM)

    service.reject_bots(submission, diagnostics, FORM)

    stored: Optional[StoredUpload] = None
    if content is not None:
        stored = uploads.store(content, resume.filename)

    try:
        await service.deliver(
            form=FORM,
            submission=submission,
            subject=email_config.APPLICATION_SUBJECT.format(name=submission.name),
            template=application_form_template,
            diagnostics=diagnostics,
            attachments=[stored.as_attachment()] if stored else [],
        )
    finally:
        if stored is not None:
            stored.clear()

    return ApplicationResponse(message="Application submitted successfully")
