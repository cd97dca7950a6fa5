from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from app.core.config import settings
from app.core.email_config import email_config
from app.core.rate_limiter import FormRateLimiter
from app.services.email_service import EmailService
from app.services.submission_service import SubmissionService
from app.services.upload_service import UploadService


@lru_cache
def get_email_service() -> EmailService:
    """
    Process-wide email dispatcher, built once from settings.

    Usage:
        @router.post("/contact")
        async def submit(service: EmailService = Depends(get_email_service)):
            ...
    """
    return EmailService.from_settings(settings)


@lru_cache
def get_rate_limiter() -> FormRateLimiter:
    return FormRateLimiter.from_settings(settings)


def get_upload_service() -> UploadService:
    return UploadService(Path(settings.UPLOAD_DIR))


def get_submission_service(
    email_service: EmailService = Depends(get_email_service),
    rate_limiter: FormRateLimiter = Depends(get_rate_limiter),
) -> SubmissionService:
    return SubmissionService(
        email_service=email_service,
        rate_limiter=rate_limiter,
        notify_address=email_config.notify_address(settings),
    )
