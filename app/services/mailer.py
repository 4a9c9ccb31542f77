"""Outbound email over SMTP, with a log-only fallback when SMTP is not configured."""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import Settings, get_settings

logger = logging.getLogger("inkpost")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class MailDeliveryError(Exception):
    """The SMTP transport refused or failed to send a message."""


class Mailer:
    """Sends transactional email."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.SMTP_HOST)

    def send(self, to: str, subject: str, html: str, text: str | None = None) -> None:
        """Send one message. Raises MailDeliveryError when the transport fails."""
        sender = self.settings.EMAIL_FROM
        if not self.is_configured:
            logger.info("[MAIL:LOG-ONLY] To: %s From: %s Subject: %s\n%s", to, sender, subject, text or html)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to
        if text:
            msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        logger.info("Sending email to %s via %s:%d", to, self.settings.SMTP_HOST, self.settings.SMTP_PORT)
        try:
            smtp_class = smtplib.SMTP_SSL if self.settings.SMTP_SECURE else smtplib.SMTP
            with smtp_class(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=30) as server:
                if not self.settings.SMTP_SECURE:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls()
                        server.ehlo()
                if self.settings.SMTP_USER and self.settings.SMTP_PASS:
                    server.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            raise MailDeliveryError(str(e)) from e

    def send_password_reset_email(self, to: str, name: str, reset_url: str, expires_in_minutes: int) -> None:
        app_name = self.settings.APP_NAME
        html = self.templates.get_template("password_reset.html").render(
            app_name=app_name,
            name=name,
            email=to,
            reset_url=reset_url,
            expires_in_minutes=expires_in_minutes,
            year=datetime.now().year,
        )
        text = (
            f"Hi {name or to},\n\n"
            f"Reset your {app_name} password: {reset_url}\n"
            f"This link will expire in {expires_in_minutes} minutes.\n"
        )
        self.send(to, f"{app_name} - Reset your password", html, text)


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get singleton mailer instance."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer(get_settings())
    return _mailer
