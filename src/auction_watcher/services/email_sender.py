"""Email notification for newly posted auction listings."""

import logging
import os
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import List, Optional, Sequence

import sendgrid
from jinja2 import Environment, FileSystemLoader
from markupsafe import escape
from sendgrid.helpers.mail import Email, Mail, To

from ..models.listing import ListingRecord

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "New Property Listing Detected!"


class NotifyError(Exception):
    """Notification could not be rendered or dispatched."""


class BaseNotifier(ABC):
    """Dispatches a message about relevant new listings."""

    @abstractmethod
    def notify(self, entries: Sequence[ListingRecord]) -> None:
        """
        Send a notification listing the entries.

        Raises:
            NotifyError: If the message could not be sent
        """
        pass


class EmailService(BaseNotifier):
    """
    Send email notifications with new auction listings.

    Supports:
    - Gmail SMTP (with app password)
    - SendGrid API (alternative)
    """

    def __init__(
        self,
        recipients: Optional[List[str]] = None,
        subject: str = DEFAULT_SUBJECT,
        template_dir: Optional[str] = None,
    ):
        self.recipients = [r for r in (recipients or []) if r and r != "your_email@example.com"]
        self.subject = subject
        self.provider = os.getenv("EMAIL_PROVIDER", "smtp")

        # SMTP config
        self.smtp_host = os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER")
        self.smtp_password = os.getenv("SMTP_PASSWORD")

        # SendGrid config
        self.sendgrid_key = os.getenv("SENDGRID_API_KEY")
        self.sendgrid_from = os.getenv("SENDGRID_FROM_EMAIL")

        if template_dir is None:
            # Default to templates/ relative to project root
            template_dir = Path(__file__).parent.parent.parent.parent / "templates"
        self.template_dir = Path(template_dir)

        if self.template_dir.exists():
            self.jinja_env = Environment(
                loader=FileSystemLoader(str(self.template_dir)),
                autoescape=True,
            )
        else:
            self.jinja_env = None
            logger.warning(f"Template directory not found: {self.template_dir}")

    def is_configured(self) -> bool:
        """Check if email is properly configured."""
        if self.provider == "sendgrid":
            return bool(self.sendgrid_key and self.sendgrid_from)
        return bool(self.smtp_user and self.smtp_password)

    def notify(self, entries: Sequence[ListingRecord]) -> None:
        if not entries:
            logger.info("No new listings to send")
            return
        if not self.recipients:
            raise NotifyError("No email recipients configured")
        if not self.is_configured():
            raise NotifyError("Email not configured - check environment variables")

        context = {
            "entries": list(entries),
            "date": datetime.now().strftime("%d.%m.%Y %H:%M"),
            "total": len(entries),
        }
        html_content = self._render_template("email_template.html", context)
        text_content = self._render_text(entries)

        self._send(self.recipients, self.subject, html_content, text_content)

    def _send(self, recipients: List[str], subject: str, html_content: str, text_content: str = None) -> None:
        if self.provider == "sendgrid":
            self._send_via_sendgrid(recipients, subject, html_content)
        else:
            self._send_via_smtp(recipients, subject, html_content, text_content)

    def _render_template(self, template_name: str, context: dict) -> str:
        """Render Jinja2 template."""
        if self.jinja_env is None:
            return self._generate_fallback_html(context)

        try:
            template = self.jinja_env.get_template(template_name)
            return template.render(**context)
        except Exception as e:
            logger.warning(f"Failed to render template: {e}")
            return self._generate_fallback_html(context)

    def _generate_fallback_html(self, context: dict) -> str:
        """Generate simple HTML email if template is unavailable."""
        rows = ""
        for entry in context["entries"]:
            link = f'<a href="{escape(entry.link)}">Detail</a>' if entry.link else ""
            rows += (
                "<tr>"
                f"<td>{escape(entry.size)}</td>"
                f"<td>{escape(entry.description)}</td>"
                f"<td>{escape(entry.date)}</td>"
                f"<td>{link}</td>"
                "</tr>"
            )

        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 700px; margin: 0 auto;">
            <h1 style="color: #2563eb;">Licitace bytů</h1>
            <p>Found <strong>{context['total']}</strong> new listings ({context['date']}):</p>
            <table border="1" cellpadding="6" style="border-collapse: collapse;">
                <tr><th>Size</th><th>Description</th><th>Date</th><th>Link</th></tr>
                {rows}
            </table>
        </body>
        </html>
        """

    def _render_text(self, entries: Sequence[ListingRecord]) -> str:
        lines = ["New listings found:", ""]
        for entry in entries:
            lines.append(f"{entry.size} | {entry.date} | {entry.description}")
            if entry.link:
                lines.append(f"    {entry.link}")
        return "\n".join(lines)

    def _send_via_smtp(
        self,
        recipients: List[str],
        subject: str,
        html_content: str,
        text_content: str = None,
    ) -> None:
        """Send email via SMTP (Gmail)."""
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.smtp_user
            msg["To"] = ", ".join(recipients)

            if text_content:
                msg.attach(MIMEText(text_content, "plain", "utf-8"))
            msg.attach(MIMEText(html_content, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.smtp_user, recipients, msg.as_string())

        except smtplib.SMTPAuthenticationError as e:
            raise NotifyError(
                "SMTP authentication failed. For Gmail, ensure you're using an App Password "
                "(https://myaccount.google.com/apppasswords)"
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            raise NotifyError(f"Failed to send email via SMTP: {e}") from e

        logger.info(f"Email sent to {len(recipients)} recipient(s)")

    def _send_via_sendgrid(
        self,
        recipients: List[str],
        subject: str,
        html_content: str,
    ) -> None:
        """Send email via SendGrid API."""
        try:
            sg = sendgrid.SendGridAPIClient(api_key=self.sendgrid_key)

            from_email = Email(self.sendgrid_from or "noreply@auctionwatcher.local")
            to_emails = [To(email) for email in recipients]
            mail = Mail(
                from_email=from_email,
                to_emails=to_emails,
                subject=subject,
                html_content=html_content,
            )
            response = sg.client.mail.send.post(request_body=mail.get())
        except Exception as e:
            raise NotifyError(f"Failed to send email via SendGrid: {e}") from e

        if response.status_code not in (200, 201, 202):
            raise NotifyError(f"SendGrid returned status {response.status_code}")

        logger.info(f"Email sent via SendGrid to {len(recipients)} recipient(s)")

    def send_test_email(self, recipient: str) -> bool:
        """Send a test email to verify configuration."""
        test_html = """
        <html>
        <body style="font-family: Arial, sans-serif;">
            <h1 style="color: #2563eb;">Auction Watcher - Test Email</h1>
            <p>Your email configuration is working correctly!</p>
            <p>You will be notified here when new apartment auctions are posted.</p>
        </body>
        </html>
        """

        try:
            self._send([recipient], "Auction Watcher - Test", test_html)
        except NotifyError as e:
            logger.error(str(e))
            return False
        return True
