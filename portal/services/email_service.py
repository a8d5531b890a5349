"""
Email Service

Renders the notification emails (Jinja2 templates under ``templates/emails``)
in the recipient's language and sends them over SMTP.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from portal.config import settings
from portal.localisation import trans

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails with template support"""

    def __init__(self):
        template_dir = Path(__file__).resolve().parent.parent.parent / "templates" / "emails"

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.smtp_from = settings.smtp_from
        self.smtp_starttls = settings.smtp_starttls

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> bool:
        """Send an email using SMTP. Returns False when delivery fails."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.smtp_from
        msg["To"] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.smtp_starttls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception(f"Failed to send '{subject}' to {to_email}")
            return False

        logger.info(f"Sent '{subject}' to {to_email}")
        return True

    def _render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(app_name=settings.app_name, **context)

    def send_verification_email(self, to_email: str, name: str, verification_url: str, locale: str) -> bool:
        subject = trans("passwords.verify_subject", locale)
        html_body = self._render(
            "verify_email.html",
            name=name,
            verification_url=verification_url,
            expire_minutes=settings.email_verification_expire_minutes,
        )
        text_body = f"{subject}\n\n{verification_url}\n"
        return self._send_email(to_email, subject, html_body, text_body)

    def send_password_reset_email(self, to_email: str, name: str, reset_url: str, locale: str) -> bool:
        subject = trans("passwords.reset_subject", locale)
        html_body = self._render(
            "password_reset.html",
            name=name,
            reset_url=reset_url,
            expire_minutes=settings.password_reset_expire_minutes,
        )
        text_body = f"{subject}\n\n{reset_url}\n"
        return self._send_email(to_email, subject, html_body, text_body)


# Global email service instance
email_service = EmailService()
