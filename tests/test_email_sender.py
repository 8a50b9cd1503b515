"""Tests for the email notifier."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from auction_watcher.services.email_sender import EmailService, NotifyError


@pytest.fixture
def smtp_env(monkeypatch):
    monkeypatch.delenv("EMAIL_PROVIDER", raising=False)
    monkeypatch.setenv("SMTP_USER", "watcher@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "app-password")


@pytest.fixture
def email_service(smtp_env):
    return EmailService(recipients=["jenny@example.com"])


class TestEmailService:
    """Tests for EmailService."""

    def test_placeholder_recipients_dropped(self, smtp_env):
        service = EmailService(recipients=["your_email@example.com", "a@example.com", ""])
        assert service.recipients == ["a@example.com"]

    def test_is_configured(self, email_service):
        assert email_service.is_configured() is True

    def test_not_configured_raises(self, monkeypatch, make_record):
        monkeypatch.delenv("EMAIL_PROVIDER", raising=False)
        monkeypatch.delenv("SMTP_USER", raising=False)
        monkeypatch.delenv("SMTP_PASSWORD", raising=False)
        service = EmailService(recipients=["a@example.com"])

        with pytest.raises(NotifyError, match="not configured"):
            service.notify([make_record()])

    def test_no_recipients_raises(self, smtp_env, make_record):
        with pytest.raises(NotifyError, match="recipients"):
            EmailService(recipients=[]).notify([make_record()])

    def test_notify_nothing_is_noop(self, email_service):
        with patch("auction_watcher.services.email_sender.smtplib.SMTP") as smtp:
            email_service.notify([])
        smtp.assert_not_called()

    def test_notify_sends_via_smtp(self, email_service, make_record):
        record = make_record("3+1", link="https://www.mesto-bohumin.cz/cz/licitace/1")

        with patch("auction_watcher.services.email_sender.smtplib.SMTP") as smtp:
            email_service.notify([record])

        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("watcher@example.com", "app-password")
        sender, recipients, message = server.sendmail.call_args[0]
        assert sender == "watcher@example.com"
        assert recipients == ["jenny@example.com"]
        assert "New Property Listing Detected!" in message

    def test_smtp_failure_raises(self, email_service, make_record):
        with patch("auction_watcher.services.email_sender.smtplib.SMTP") as smtp:
            smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")
            with pytest.raises(NotifyError, match="SMTP"):
                email_service.notify([make_record()])

    def test_smtp_auth_failure_raises(self, email_service, make_record):
        with patch("auction_watcher.services.email_sender.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            with pytest.raises(NotifyError, match="authentication"):
                email_service.notify([make_record()])

    def test_template_renders_table(self, email_service, make_record):
        record = make_record("4+1", description="Byt 4+1 <Okružní>", link="https://example.com/a?x=1&y=2")
        html = email_service._render_template(
            "email_template.html",
            {"entries": [record], "date": "01.03.2025 08:00", "total": 1},
        )

        assert "4+1" in html
        assert "Byt 4+1 &lt;Okružní&gt;" in html
        assert "https://example.com/a?x=1&amp;y=2" in html

    def test_fallback_html_without_templates(self, smtp_env, tmp_path, make_record):
        service = EmailService(recipients=["a@example.com"], template_dir=str(tmp_path / "missing"))
        html = service._render_template(
            "email_template.html",
            {"entries": [make_record("1+5", description="<b>x</b>")], "date": "today", "total": 1},
        )

        assert "1+5" in html
        assert "&lt;b&gt;x&lt;/b&gt;" in html

    def test_plain_text_lists_links(self, email_service, make_record):
        record = make_record("3+1", link="https://example.com/detail")
        text = email_service._render_text([record])
        assert "3+1" in text
        assert "https://example.com/detail" in text

    def test_sendgrid_provider(self, monkeypatch, make_record):
        monkeypatch.setenv("EMAIL_PROVIDER", "sendgrid")
        monkeypatch.setenv("SENDGRID_API_KEY", "key")
        monkeypatch.setenv("SENDGRID_FROM_EMAIL", "watcher@example.com")
        service = EmailService(recipients=["a@example.com"])

        with patch("auction_watcher.services.email_sender.sendgrid.SendGridAPIClient") as client:
            client.return_value.client.mail.send.post.return_value = MagicMock(status_code=202)
            service.notify([make_record()])

        client.return_value.client.mail.send.post.assert_called_once()

    def test_sendgrid_error_status(self, monkeypatch, make_record):
        monkeypatch.setenv("EMAIL_PROVIDER", "sendgrid")
        monkeypatch.setenv("SENDGRID_API_KEY", "key")
        monkeypatch.setenv("SENDGRID_FROM_EMAIL", "watcher@example.com")
        service = EmailService(recipients=["a@example.com"])

        with patch("auction_watcher.services.email_sender.sendgrid.SendGridAPIClient") as client:
            client.return_value.client.mail.send.post.return_value = MagicMock(status_code=401)
            with pytest.raises(NotifyError, match="401"):
                service.notify([make_record()])

    def test_send_test_email_failure(self, email_service):
        with patch("auction_watcher.services.email_sender.smtplib.SMTP") as smtp:
            smtp.side_effect = OSError("connection refused")
            assert email_service.send_test_email("a@example.com") is False

    def test_send_test_email_success(self, email_service):
        with patch("auction_watcher.services.email_sender.smtplib.SMTP"):
            assert email_service.send_test_email("a@example.com") is True
