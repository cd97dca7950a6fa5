"""
Carlora Services Module.

Services:
    - EmailService: outbound notifications (templates, sanitizing, retry)
    - SubmissionService: shared pipeline behind the public form endpoints
    - UploadService: résumé validation and temporary storage
"""

from .email_service import EmailAttachment, EmailOptions, EmailService
from .submission_service import DiagnosticInfo, SubmissionService
from .upload_service import StoredUpload, UploadRejected, UploadService

__all__ = [
    "DiagnosticInfo",
    "EmailAttachment",
    "EmailOptions",
    "EmailService",
    "StoredUpload",
    "SubmissionService",
    "UploadRejected",
    "UploadService",
]
