"""Tests for the pooled smtplib transport and its configuration loading."""
import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, patch

import pytest

from app.core.config import Settings
from app.core.email import SmtpTransport, build_transport
from app.core.email_config import SmtpTransportConfig, email_config, load_transport_config


def _config(**overrides) -> SmtpTransportConfig:
    values = dict(
        host="smtp.test",
        port=587,
        username="notify@carlora.com",
        password="pass",
        from_address="noreply@carlora.com",
        max_messages=2,
        rate_limit=0,
    )
    values.update(overrides)
    return SmtpTransportConfig(**values)


def _message() -> EmailMessage:
    message = EmailMessage()
    message["Message-ID"] = "<abc@carlora.com>"
    message.set_content("hi")
    return message


@pytest.fixture
def smtp_cls():
    with patch("app.core.email.smtplib.SMTP") as smtp_cls:
        smtp_cls.side_effect = lambda *a, **kw: MagicMock(name="smtp")
        yield smtp_cls


class TestSmtpTransport:
    def test_starttls_and_login(self, smtp_cls):
        transport = SmtpTransport(_config())

        message_id = transport.send(_message())

        assert message_id == "<abc@carlora.com>"
        smtp_cls.assert_called_once_with("smtp.test", 587, timeout=30.0)
        conn = transport._idle[0].smtp
        conn.starttls.assert_called_once()
        conn.login.assert_called_once_with("notify@carlora.com", "pass")

    def test_implicit_tls_on_465(self):
        with patch("app.core.email.smtplib.SMTP_SSL") as smtp_ssl:
            transport = SmtpTransport(_config(port=465, use_tls=True))
            transport.send(_message())

        smtp_ssl.assert_called_once()
        assert smtp_ssl.call_args.args == ("smtp.test", 465)

    def test_connection_reused(self, smtp_cls):
        transport = SmtpTransport(_config(max_messages=10))

        transport.send(_message())
        transport.send(_message())

        assert smtp_cls.call_count == 1

    def test_connection_recycled_after_max_messages(self, smtp_cls):
        transport = SmtpTransport(_config(max_messages=2))

        for _ in range(3):
            transport.send(_message())

        assert smtp_cls.call_count == 2

    def test_failed_connection_discarded(self, smtp_cls):
        broken = MagicMock(name="broken")
        broken.send_message.side_effect = smtplib.SMTPServerDisconnected("gone")
        healthy = MagicMock(name="healthy")
        smtp_cls.side_effect = [broken, healthy]
        transport = SmtpTransport(_config())

        with pytest.raises(smtplib.SMTPServerDisconnected):
            transport.send(_message())
        transport.send(_message())

        broken.quit.assert_called_once()
        healthy.send_message.assert_called_once()

    def test_verify_rejects_bad_noop(self, smtp_cls):
        server = MagicMock()
        server.noop.return_value = (421, b"closing")
        smtp_cls.side_effect = [server]

        with pytest.raises(smtplib.SMTPResponseException):
            SmtpTransport(_config()).verify()

        server.quit.assert_called_once()

    def test_close_quits_idle_connections(self, smtp_cls):
        transport = SmtpTransport(_config(max_messages=10))
        transport.send(_message())
        conn = transport._idle[0].smtp

        transport.close()

        conn.quit.assert_called_once()
        assert not transport._idle

    def test_build_transport_none(self):
        assert build_transport(None) is None


class TestLoadTransportConfig:
    def test_missing_credentials(self):
        settings = Settings(SMTP_HOST="smtp.test", SMTP_USER=None, SMTP_PASSWORD=None)

        assert load_transport_config(settings) is None

    def test_full_configuration(self):
        settings = Settings(
            ENVIRONMENT="production",
            SMTP_HOST="smtp.test",
            SMTP_PORT=465,
            SMTP_USER="notify@carlora.com",
            SMTP_PASSWORD="pass",
        )

        config = load_transport_config(settings)

        assert config.use_tls is True
        assert config.verify_tls is True
        assert config.from_address == "notify@carlora.com"

    def test_relaxed_tls_outside_production(self):
        settings = Settings(
            ENVIRONMENT="staging",
            SMTP_HOST="smtp.test",
            SMTP_USER="notify@carlora.com",
            SMTP_PASSWORD="pass",
            SMTP_FROM="noreply@carlora.com",
        )

        config = load_transport_config(settings)

        assert config.use_tls is False
        assert config.verify_tls is False
        assert config.from_address == "noreply@carlora.com"

    def test_invalid_port_rejected(self):
        with pytest.raises(ValueError):
            Settings(SMTP_PORT=70000)


class TestNotifyAddress:
    def test_explicit_inbox(self):
        settings = Settings(FORM_NOTIFY_EMAIL="leads@carlora.com", SMTP_USER="smtp@carlora.com")
        assert email_config.notify_address(settings) == "leads@carlora.com"

    def test_falls_back_to_smtp_user(self):
        settings = Settings(FORM_NOTIFY_EMAIL=None, SMTP_USER="smtp@carlora.com")
        assert email_config.notify_address(settings) == "smtp@carlora.com"

    def test_default_inbox(self):
        settings = Settings(FORM_NOTIFY_EMAIL=None, SMTP_USER=None)
        assert email_config.notify_address(settings) == "info@carlora.com"
