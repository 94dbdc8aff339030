"""
services/email_service.py — Best-effort SMTP delivery.

Every send returns a DeliveryResult instead of raising, so the operation that
triggered the email (share link, password reset) never fails because of it:

  SENT                    — the SMTP server accepted the message
  SKIPPED_NOT_CONFIGURED  — no SMTP credentials; nothing was attempted
  FAILED                  — delivery was attempted and failed (reason attached)

Each attempt is bounded by EMAIL_TIMEOUT_SECONDS.

Layer rules:
  - No Flask imports. init_app() only reads app.config and registers the
    dispatcher under app.extensions.
"""

from __future__ import annotations

import enum
import html
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

logger = logging.getLogger(__name__)

_GMAIL_HOST = "smtp.gmail.com"
_GMAIL_PORT = 587


class DeliveryStatus(str, enum.Enum):
    SENT                   = "sent"
    SKIPPED_NOT_CONFIGURED = "skipped_not_configured"
    FAILED                 = "failed"


@dataclass(frozen=True)
class DeliveryResult:
    status: DeliveryStatus
    reason: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status is DeliveryStatus.SENT

    def to_dict(self) -> dict:
        payload = {"status": self.status.value}
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


class EmailDispatcher:
    """SMTP client settings plus the two message templates the API sends."""

    def __init__(self, app=None) -> None:
        self.host: str = ""
        self.port: int = _GMAIL_PORT
        self.use_tls: bool = True
        self.username: str = ""
        self.password: str = ""
        self.sender: str = "noreply@bockdocs.com"
        self.timeout: int = 10
        self.frontend_url: str = "http://localhost:5000"
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        config = app.config
        service = (config.get("EMAIL_SERVICE") or "").lower()
        if service == "gmail":
            self.host = _GMAIL_HOST
            self.port = _GMAIL_PORT
        else:
            self.host = config.get("EMAIL_HOST") or ""
            self.port = int(config.get("EMAIL_PORT") or _GMAIL_PORT)
        self.use_tls = bool(config.get("EMAIL_USE_TLS", True))
        self.username = config.get("EMAIL_USER") or ""
        self.password = config.get("EMAIL_PASSWORD") or ""
        self.sender = config.get("EMAIL_FROM") or self.username or self.sender
        self.timeout = int(config.get("EMAIL_TIMEOUT_SECONDS") or 10)
        self.frontend_url = config.get("FRONTEND_URL") or self.frontend_url
        app.extensions["email_dispatcher"] = self

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    # ── Transport ─────────────────────────────────────────────────────────

    def send(
            self,
            to_email: str,
            subject: str,
            text_body: str,
            html_body: str | None = None,
    ) -> DeliveryResult:
        """Sends one message. Never raises for SMTP or network failures."""
        if not self.is_configured:
            logger.warning(
                "Email not configured; skipped %r to %s. "
                "Set EMAIL_SERVICE/EMAIL_HOST, EMAIL_USER and EMAIL_PASSWORD.",
                subject,
                to_email,
            )
            return DeliveryResult(DeliveryStatus.SKIPPED_NOT_CONFIGURED)

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = formataddr(("BockDocs", self.sender))
        message["To"] = to_email
        message.attach(MIMEText(text_body, "plain", "utf-8"))
        if html_body is not None:
            message.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.username, self.password)
                server.sendmail(self.sender, [to_email], message.as_string())
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("SMTP authentication failed sending to %s: %s", to_email, exc)
            return DeliveryResult(
                DeliveryStatus.FAILED,
                reason="Email server rejected the configured credentials.",
            )
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send %r to %s: %s", subject, to_email, exc)
            return DeliveryResult(
                DeliveryStatus.FAILED,
                reason=f"Email delivery failed ({type(exc).__name__}).",
            )

        logger.info("Sent %r to %s", subject, to_email)
        return DeliveryResult(DeliveryStatus.SENT)

    # ── Templates ─────────────────────────────────────────────────────────

    def send_password_reset(self, to_email: str, reset_token: str) -> DeliveryResult:
        reset_link = f"{self.frontend_url.rstrip('/')}/#/reset-password?token={reset_token}"
        subject = "Reset Your BockDocs Password"
        text_body = (
            "You requested to reset your password for your BockDocs account.\n\n"
            f"Open this link to choose a new password:\n{reset_link}\n\n"
            "This link will expire in 1 hour.\n\n"
            "If you didn't request this, ignore this email. "
            "Your password will remain unchanged.\n"
        )
        html_body = _wrap_html(
            "<h2>Reset Your Password</h2>"
            "<p>You requested to reset your password for your BockDocs account.</p>"
            f'<p><a href="{html.escape(reset_link)}">Reset Password</a></p>'
            "<p><strong>This link will expire in 1 hour.</strong></p>"
            "<p>If you didn't request this, ignore this email. "
            "Your password will remain unchanged.</p>"
        )
        return self.send(to_email, subject, text_body, html_body)

    def send_share_notification(
            self,
            to_email: str,
            share_url: str,
            document_title: str,
            sharer_name: str,
            permission: str,
    ) -> DeliveryResult:
        verb = "edit" if permission == "edit" else "view"
        subject = f'{sharer_name} shared "{document_title}" with you'
        text_body = (
            f'{sharer_name} has shared the document "{document_title}" with you.\n\n'
            f"You have been granted {verb} access to this document.\n\n"
            f"Open the document:\n{share_url}\n\n"
            "This link will expire in 24 hours.\n"
        )
        html_body = _wrap_html(
            f"<h2>{html.escape(sharer_name)} shared a document with you</h2>"
            f"<p>{html.escape(sharer_name)} has shared "
            f"<strong>&quot;{html.escape(document_title)}&quot;</strong> with you.</p>"
            f"<p>You have been granted <strong>{verb}</strong> access to this document.</p>"
            f'<p><a href="{html.escape(share_url)}">Open Document</a></p>'
            "<p>This link will expire in 24 hours.</p>"
        )
        return self.send(to_email, subject, text_body, html_body)


def _wrap_html(inner: str) -> str:
    year = datetime.now(timezone.utc).year
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head>'
        '<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{inner}"
        '<p style="font-size: 12px; color: #666;">'
        "This is an automated message. Please do not reply to this email.<br>"
        f"&copy; {year} BockDocs.</p>"
        "</body></html>"
    )
