"""
Health endpoints for the Carlora API.

- /live: the process answers
- /detailed: whether a form submission could be delivered right now
  (SMTP transport, rate limiter backend, résumé upload directory)
"""
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from app.api.deps import get_email_service, get_rate_limiter, get_upload_service
from app.core.config import settings
from app.core.rate_limiter import FormRateLimiter
from app.services.email_service import EmailService
from app.services.upload_service import UploadService

router = APIRouter(tags=["health"])

Status = Literal["healthy", "degraded", "unhealthy"]

_SEVERITY = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class DependencyStatus(BaseModel):
    status: Status
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class LivenessResponse(BaseModel):
    alive: bool = True
    timestamp: datetime


class SubmissionReadiness(BaseModel):
    """Overall verdict plus one entry per dependency of the form pipeline."""

    status: Status
    version: str
    environment: str
    timestamp: datetime
    dependencies: Dict[str, DependencyStatus]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "degraded",
                "version": "1.0.0",
                "environment": "staging",
                "timestamp": "2026-10-01T09:00:00Z",
                "dependencies": {
                    "email": {"status": "degraded", "message": "SMTP server unreachable"},
                    "rate_limiter": {"status": "healthy", "message": "redis"},
                    "uploads": {"status": "healthy", "message": "tmp"},
                },
            }
        }
    )


def worst(statuses: Iterable[str]) -> Status:
    return max(statuses, key=_SEVERITY.__getitem__, default="healthy")


async def probe_email(email_service: EmailService) -> DependencyStatus:
    if not email_service.is_configured and not email_service.simulates_delivery:
        return DependencyStatus(
            status="unhealthy", message="SMTP not configured; form submissions fail"
        )
    # Simulated delivery still answers the form, so it only degrades
    if not email_service.is_configured:
        return DependencyStatus(
            status="degraded", message="SMTP not configured; emails are logged only"
        )

    started = time.perf_counter()
    reachable = await email_service.verify_connection()
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    if not reachable:
        return DependencyStatus(status="degraded", message="SMTP server unreachable")
    return DependencyStatus(status="healthy", latency_ms=elapsed_ms)


def probe_rate_limiter(rate_limiter: FormRateLimiter) -> DependencyStatus:
    backend = rate_limiter.backend.name
    if backend != "redis":
        backend = f"{backend} (single instance only)"
    return DependencyStatus(status="healthy", message=backend)


def probe_uploads(upload_dir: Path) -> DependencyStatus:
    """Applications with a résumé fail when the staging directory is unusable."""
    target = upload_dir if upload_dir.exists() else upload_dir.parent
    if os.access(target, os.W_OK):
        return DependencyStatus(status="healthy", message=str(upload_dir))
    return DependencyStatus(status="unhealthy", message=f"{upload_dir} is not writable")


@router.get(
    "/detailed",
    response_model=SubmissionReadiness,
    summary="Form delivery readiness",
    description="""
    Reports whether each dependency of the form pipeline is usable.

    - `healthy`: submissions are delivered by email
    - `degraded`: submissions are accepted but email is simulated or failing
    - `unhealthy`: SMTP is missing in production or résumé uploads cannot be staged
    """,
)
async def detailed_health_check(
    email_service: EmailService = Depends(get_email_service),
    rate_limiter: FormRateLimiter = Depends(get_rate_limiter),
    uploads: UploadService = Depends(get_upload_service),
) -> SubmissionReadiness:
    dependencies = {
        "email": await probe_email(email_service),
        "rate_limiter": probe_rate_limiter(rate_limiter),
        "uploads": probe_uploads(uploads.upload_dir),
    }

    return SubmissionReadiness(
        status=worst(d.status for d in dependencies.values()),
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        dependencies=dependencies,
    )


@router.get("/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness_probe() -> LivenessResponse:
    return LivenessResponse(timestamp=datetime.now(timezone.utc))
