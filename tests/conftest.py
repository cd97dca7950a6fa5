from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.config import settings
from app.core.email_config import SmtpTransportConfig
from app.core.rate_limiter import FormRateLimiter, _InMemoryBackend
from app.main import app
from app.services.email_service import EmailService
from tests.fakes import FakeTransport, RecordingEmailService, SleepRecorder

# -----------------------------------------------------------------------------
# Email Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def transport_config() -> SmtpTransportConfig:
    return SmtpTransportConfig(
        host="smtp.test",
        port=587,
        username="notify@carlora.com",
        password="pass",
        from_address="noreply@carlora.com",
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_email_service(transport_config, sleep_recorder):
    """Build a production-mode EmailService over a FakeTransport."""

    def _make(transport: Optional[FakeTransport] = None, environment: str = "production"):
        return EmailService(
            transport_config,
            environment=environment,
            transport=transport or FakeTransport(),
            sleep=sleep_recorder,
        )

    return _make


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def email_spy() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def rate_limiter() -> FormRateLimiter:
    return FormRateLimiter(_InMemoryBackend(), limit=5, window_seconds=60)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(email_spy, rate_limiter, upload_dir, monkeypatch):
    """
    TestClient with the email dispatcher and rate limiter replaced.

    Override ``deps.get_email_service`` again inside a test to exercise a real
    EmailService over a FakeTransport.
    """
    monkeypatch.setattr(settings, "FORM_NOTIFY_EMAIL", "leads@carlora.com")

    app.dependency_overrides[deps.get_email_service] = lambda: email_spy
    app.dependency_overrides[deps.get_rate_limiter] = lambda: rate_limiter

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
