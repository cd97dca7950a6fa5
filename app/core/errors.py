"""
=============================================================================
CARLORA - ERROR HANDLING MODULE
=============================================================================
Submission error taxonomy and global exception handlers.

Features:
- One exception class per way a form submission can fail
- Each maps to a fixed HTTP status and a user-facing message
- Logs full stack trace server-side for unexpected errors
- Never leaks internal detail to the client

Usage:
    # In main.py
    from app.core.errors import register_exception_handlers
    register_exception_handlers(app)
=============================================================================
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings

logger = structlog.get_logger(__name__)

TECHNICAL_DIFFICULTIES = (
    "We're experiencing technical difficulties. "
    "Please try again later or contact support directly."
)


class SubmissionError(Exception):
    """Base class for failures that end a form submission."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = TECHNICAL_DIFFICULTIES

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        self.message = message or self.public_message
        self.details = details
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            content["details"] = self.details
        return content


class RateLimitExceeded(SubmissionError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    public_message = "Too many requests. Please try again in a few minutes."


class ValidationFailure(SubmissionError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Please check your input and try again"


class BotDetected(SubmissionError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Form submission rejected"


class TransportFailure(SubmissionError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = TECHNICAL_DIFFICULTIES


def register_exception_handlers(app: FastAPI) -> None:
    """Register submission and catch-all exception handlers on the FastAPI app."""

    @app.exception_handler(SubmissionError)
    async def submission_error_handler(request: Request, exc: SubmissionError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        - Logs the full traceback for debugging
        - Returns a generic error message to prevent info leakage
        - In debug mode, includes the exception type
        """
        logger.error(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )

        content: Dict[str, Any] = {"error": TECHNICAL_DIFFICULTIES}
        if settings.DEBUG:
            content["error_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)
