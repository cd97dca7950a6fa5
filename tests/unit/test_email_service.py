"""
Tests for EmailService: recipient validation, simulation, retry policy,
message composition and the self-test.
"""
import smtplib
from email.message import EmailMessage

import pytest
from structlog.testing import capture_logs

from app.core.email_config import email_config
from app.services.email_service import EmailAttachment, EmailOptions, EmailService
from app.services.email_templates import EmailTemplate, contact_form_template
from tests.fakes import FakeTransport


def _options(**overrides) -> EmailOptions:
    values = dict(
        to="leads@carlora.com",
        subject="Contact Form: Jane Doe",
        text="Hello",
        html="<p>Hello</p>",
    )
    values.update(overrides)
    return EmailOptions(**values)


# =============================================================================
# Recipient validation
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "to",
    ["not-an-email", "", [], ["leads@carlora.com", "broken@"], "a@b@c.com"],
)
async def test_invalid_recipients_never_reach_transport(make_email_service, to):
    transport = FakeTransport()
    service = make_email_service(transport)

    with capture_logs() as logs:
        sent = await service.send_email(_options(to=to))

    assert sent is False
    assert transport.attempts == 0
    assert any(log["event"] == "email_sending_error" for log in logs)


@pytest.mark.asyncio
async def test_multiple_valid_recipients_delivered(make_email_service):
    transport = FakeTransport()
    service = make_email_service(transport)

    sent = await service.send_email(_options(to=["leads@carlora.com", "ops@carlora.com"]))

    assert sent is True
    assert transport.sent[0]["To"] == "leads@carlora.com, ops@carlora.com"


# =============================================================================
# Simulation / unconfigured transport
# =============================================================================


@pytest.mark.asyncio
async def test_development_simulates_even_when_configured(make_email_service):
    transport = FakeTransport()
    service = make_email_service(transport, environment="development")

    with capture_logs() as logs:
        sent = await service.send_email(
            _options(template=contact_form_template, template_data={"name": "Jane"})
        )

    assert sent is True
    assert transport.attempts == 0
    simulated = [log for log in logs if log["event"] == "email_simulated"]
    assert len(simulated) == 1
    assert simulated[0]["fields"] == ["name"]


@pytest.mark.asyncio
async def test_unconfigured_outside_production_simulates():
    service = EmailService(None, environment="local")

    assert service.is_configured is False
    assert service.simulates_delivery is True
    assert await service.send_email(_options()) is True


@pytest.mark.asyncio
async def test_unconfigured_in_production_fails():
    service = EmailService(None, environment="production")

    assert service.simulates_delivery is False
    assert await service.send_email(_options()) is False


# =============================================================================
# Retry policy
# =============================================================================


@pytest.mark.asyncio
async def test_retry_succeeds_after_transient_failures(make_email_service, sleep_recorder):
    transport = FakeTransport(failures=2)
    service = make_email_service(transport)

    with capture_logs() as logs:
        sent = await service.send_email(_options())

    assert sent is True
    assert transport.attempts == 3
    retries = [log for log in logs if log["event"] == "email_send_retry"]
    assert [log["attempt"] for log in retries] == [1, 2]
    assert sleep_recorder.delays == [email_config.RETRY_DELAY_SECONDS] * 2
    assert any(log["event"] == "email_sent" for log in logs)


@pytest.mark.asyncio
async def test_retry_exhaustion_reports_failure(make_email_service, sleep_recorder):
    transport = FakeTransport(failures=100)
    service = make_email_service(transport)

    with capture_logs() as logs:
        sent = await service.send_email(_options())

    assert sent is False
    assert transport.attempts == email_config.MAX_RETRIES + 1
    assert len(sleep_recorder.delays) == email_config.MAX_RETRIES
    errors = [log for log in logs if log["event"] == "email_sending_error"]
    assert errors[-1]["error_type"] == "SMTPServerDisconnected"


@pytest.mark.asyncio
async def test_send_with_retry_raises_last_error(make_email_service):
    transport = FakeTransport(failures=100)
    service = make_email_service(transport)
    message = service.compose(_options())

    with pytest.raises(smtplib.SMTPServerDisconnected):
        await service.send_with_retry(message)

    assert transport.attempts == 4


@pytest.mark.asyncio
async def test_send_with_retry_without_transport():
    service = EmailService(None, environment="production")

    with pytest.raises(RuntimeError, match="not initialized"):
        await service.send_with_retry(EmailMessage())


# =============================================================================
# Composition
# =============================================================================


def test_compose_sets_delivery_headers(make_email_service):
    service = make_email_service()

    message = service.compose(_options(reply_to="jane@example.com"))

    assert message["From"] == f"{email_config.SENDER_NAME} <noreply@carlora.com>"
    assert message["To"] == "leads@carlora.com"
    assert message["Subject"] == "Contact Form: Jane Doe"
    assert message["Reply-To"] == "jane@example.com"
    assert message["Message-ID"].endswith("@carlora.com>")
    assert message["X-Entity-Ref-ID"].isdigit()
    assert message["List-Unsubscribe"] == "<mailto:unsubscribe@carlora.com>"


def test_compose_template_overrides_bodies_and_sanitizes(make_email_service):
    service = make_email_service()
    template = EmailTemplate(
        html_source="<p>{{message}}</p>",
        text_source="Message: {{message}}",
    )

    message = service.compose(
        _options(
            text="ignored text",
            html="<p>ignored html</p>",
            template=template,
            template_data={"message": "hi<script>alert(1)</script>"},
        )
    )

    text_part = message.get_body(preferencelist=("plain",)).get_content()
    html_part = message.get_body(preferencelist=("html",)).get_content()
    assert "ignored" not in text_part
    assert text_part.startswith("Message: hi<script>")
    assert "<script" not in html_part
    assert "alert" not in html_part
    assert "<p>hi</p>" in html_part


def test_compose_attaches_files(make_email_service, tmp_path):
    service = make_email_service()
    resume = tmp_path / "cv.pdf"
    resume.write_bytes(b"%PDF-1.4 test")

    message = service.compose(
        _options(attachments=[EmailAttachment(resume, "cv.pdf", "application/pdf")])
    )

    attachments = list(message.iter_attachments())
    assert len(attachments) == 1
    assert attachments[0].get_filename() == "cv.pdf"
    assert attachments[0].get_content_type() == "application/pdf"
    assert attachments[0].get_content() == b"%PDF-1.4 test"


def test_compose_extra_headers(make_email_service):
    service = make_email_service()

    message = service.compose(_options(headers={"X-Form": "contact"}))

    assert message["X-Form"] == "contact"


# =============================================================================
# Connection checks
# =============================================================================


@pytest.mark.asyncio
async def test_verify_connection_unconfigured():
    assert await EmailService(None).verify_connection() is False


@pytest.mark.asyncio
async def test_verify_connection_failure_is_logged(make_email_service):
    transport = FakeTransport(verify_error=smtplib.SMTPAuthenticationError(535, b"bad creds"))
    service = make_email_service(transport)

    with capture_logs() as logs:
        ok = await service.verify_connection()

    assert ok is False
    failure = next(log for log in logs if log["event"] == "email_connection_verification_failed")
    assert failure["error_code"] == 535


@pytest.mark.asyncio
async def test_test_connection_success(make_email_service):
    transport = FakeTransport()
    service = make_email_service(transport)

    result = await service.test_connection()

    assert result.success is True
    assert result.message == "Email system is working correctly"
    assert transport.sent[0]["To"] == "notify@carlora.com"
    assert transport.sent[0]["Subject"] == email_config.TEST_SUBJECT


@pytest.mark.asyncio
async def test_test_connection_verify_failure(make_email_service):
    service = make_email_service(FakeTransport(verify_error=OSError("refused")))

    result = await service.test_connection()

    assert result.success is False
    assert result.message == "Failed to connect to email server"


@pytest.mark.asyncio
async def test_test_connection_send_failure(make_email_service):
    service = make_email_service(FakeTransport(failures=100))

    result = await service.test_connection()

    assert result.success is False
    assert result.message == "Failed to send test email"


@pytest.mark.asyncio
async def test_test_connection_never_raises(make_email_service, monkeypatch):
    service = make_email_service()

    async def _boom():
        raise RuntimeError("pool exhausted")

    monkeypatch.setattr(service, "verify_connection", _boom)

    result = await service.test_connection()

    assert result.success is False
    assert result.message == "pool exhausted"


def test_close_closes_transport(make_email_service):
    transport = FakeTransport()
    service = make_email_service(transport)

    service.close()

    assert transport.closed is True
