"""Tests for outbound email."""

import logging
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.config import Settings
from app.services.mailer import Mailer, MailDeliveryError


def _settings(**overrides) -> Settings:
    settings = Settings()
    settings.SMTP_HOST = ""
    settings.EMAIL_FROM = "no-reply@inkpost.test"
    settings.APP_NAME = "Inkpost"
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _smtp_mock(has_starttls: bool = True) -> MagicMock:
    server = MagicMock()
    server.has_extn.return_value = has_starttls
    smtp_class = MagicMock()
    smtp_class.return_value.__enter__.return_value = server
    return smtp_class


class TestMailer:
    """Tests for the SMTP transport and its log-only fallback."""

    def test_log_only_without_smtp(self, caplog: pytest.LogCaptureFixture):
        mailer = Mailer(_settings())
        assert mailer.is_configured is False
        with patch("app.services.mailer.smtplib.SMTP") as smtp_class, caplog.at_level(logging.INFO, logger="inkpost"):
            mailer.send("reader@example.com", "Hello", "<p>Hi</p>", "Hi")
        smtp_class.assert_not_called()
        assert "[MAIL:LOG-ONLY] To: reader@example.com" in caplog.text

    def test_sends_over_smtp_with_starttls(self):
        mailer = Mailer(_settings(SMTP_HOST="smtp.example.com", SMTP_PORT=587, SMTP_USER="u", SMTP_PASS="p"))
        smtp_class = _smtp_mock()
        with patch("app.services.mailer.smtplib.SMTP", smtp_class):
            mailer.send("reader@example.com", "Hello", "<p>Hi</p>")

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=30)
        server = smtp_class.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("u", "p")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "reader@example.com"
        assert message["From"] == "no-reply@inkpost.test"
        assert message["Subject"] == "Hello"

    def test_skips_starttls_and_login_when_unavailable(self):
        mailer = Mailer(_settings(SMTP_HOST="smtp.example.com", SMTP_USER="", SMTP_PASS=""))
        smtp_class = _smtp_mock(has_starttls=False)
        with patch("app.services.mailer.smtplib.SMTP", smtp_class):
            mailer.send("reader@example.com", "Hello", "<p>Hi</p>")

        server = smtp_class.return_value.__enter__.return_value
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    def test_implicit_tls(self):
        mailer = Mailer(_settings(SMTP_HOST="smtp.example.com", SMTP_PORT=465, SMTP_SECURE=True))
        smtp_ssl = _smtp_mock()
        with patch("app.services.mailer.smtplib.SMTP_SSL", smtp_ssl):
            mailer.send("reader@example.com", "Hello", "<p>Hi</p>")
        smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30)
        smtp_ssl.return_value.__enter__.return_value.starttls.assert_not_called()

    def test_transport_failure_raises(self):
        mailer = Mailer(_settings(SMTP_HOST="smtp.example.com"))
        smtp_class = _smtp_mock()
        server = smtp_class.return_value.__enter__.return_value
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({"reader@example.com": (550, b"no")})
        with patch("app.services.mailer.smtplib.SMTP", smtp_class):
            with pytest.raises(MailDeliveryError):
                mailer.send("reader@example.com", "Hello", "<p>Hi</p>")

    def test_connection_failure_raises(self):
        mailer = Mailer(_settings(SMTP_HOST="smtp.example.com"))
        smtp_class = MagicMock(side_effect=ConnectionRefusedError("refused"))
        with patch("app.services.mailer.smtplib.SMTP", smtp_class):
            with pytest.raises(MailDeliveryError):
                mailer.send("reader@example.com", "Hello", "<p>Hi</p>")


class TestPasswordResetEmail:
    """Tests for the password reset message."""

    def test_renders_link_and_expiry(self):
        mailer = Mailer(_settings())
        with patch.object(mailer, "send") as send:
            mailer.send_password_reset_email(
                to="reader@example.com",
                name="Rae Reader",
                reset_url="http://localhost:3000/reset-password/abc123",
                expires_in_minutes=15,
            )

        to, subject, html, text = send.call_args.args
        assert to == "reader@example.com"
        assert subject == "Inkpost - Reset your password"
        assert "http://localhost:3000/reset-password/abc123" in html
        assert "15 minutes" in html
        assert "Rae Reader" in html
        assert "http://localhost:3000/reset-password/abc123" in text
