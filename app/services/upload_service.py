from __future__ import annotations

import hashlib
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog
from starlette.datastructures import UploadFile

from app.core.email_config import email_config
from app.services.email_service import EmailAttachment

logger = structlog.get_logger(__name__)


class UploadRejected(ValueError):
    """The uploaded file does not meet the attachment policy."""


@dataclass
class StoredUpload:
    """A validated upload written to the temporary upload directory."""

    path: Path
    filename: str
    content_type: str
    size_bytes: int
    sha256: str

    def as_attachment(self) -> EmailAttachment:
        return EmailAttachment(
            path=self.path, filename=self.filename, content_type=self.content_type
        )

    def clear(self) -> None:
        """Truncate the temporary file so no applicant data lingers on disk."""
        try:
            self.path.write_bytes(b"")
        except OSError as exc:
            logger.warning("upload_clear_failed", path=str(self.path), error=str(exc))


class UploadService:
    """Validate and stage the résumé attached to a job application."""

    def __init__(
        self,
        upload_dir: Path,
        max_bytes: int = email_config.RESUME_MAX_BYTES,
        content_type: str = email_config.RESUME_CONTENT_TYPE,
    ) -> None:
        self.upload_dir = upload_dir
        self.max_bytes = max_bytes
        self.content_type = content_type

    async def read_resume(self, upload: UploadFile) -> bytes:
        if upload.content_type != self.content_type:
            raise UploadRejected("Resume must be a PDF file")

        # One byte past the limit is enough to know it is too large
        content = await upload.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            raise UploadRejected("Resume must not exceed 5MB")
        return content

    def store(self, content: bytes, original_name: Optional[str]) -> StoredUpload:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        path = self.upload_dir / f"resume-{unique_suffix}.pdf"
        path.write_bytes(content)

        stored = StoredUpload(
            path=path,
            filename=Path(original_name or "resume.pdf").name,
            content_type=self.content_type,
            size_bytes=len(content),
            sha256=hashlib.sha256(content).hexdigest(),
        )
        logger.info(
            "resume_received",
            filename=stored.filename,
            size_bytes=stored.size_bytes,
            # Shorter than the 32-char hex run that log redaction masks
            sha256_prefix=stored.sha256[:16],
        )
        return stored
