"""Service for sending notification emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional, Tuple

from subtracker.domain.ports.collaborators import NotificationResult

logger = logging.getLogger(__name__)


def _welcome(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        "Welcome to Subscription Tracker",
        f"Hi {data.get('name', '')},\n\nYour account is ready. Start adding your subscriptions "
        f"at {data.get('base_url', '')}/dashboard.",
    )


def _password_changed(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        "Your password was changed",
        f"Hi {data.get('name', '')},\n\nThe password for your account was just changed. "
        "If this wasn't you, reset your password immediately.",
    )


def _password_reset(data: Dict[str, Any]) -> Tuple[str, str]:
    link = f"{data.get('base_url', '')}/reset-password?token={data['token']}&email={data.get('email', '')}"
    return (
        "Reset your password",
        f"Hi {data.get('name', '')},\n\nUse the link below to choose a new password. "
        f"It expires in one hour.\n\n{link}",
    )


def _email_changed(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        "Your account email was changed",
        f"Hi {data.get('name', '')},\n\nThe email on your account was changed from "
        f"{data.get('previous_email')} to {data.get('new_email')}"
        f" (request from {data.get('ip_address') or 'unknown'}).",
    )


def _email_change_confirmation(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        "Email address updated",
        f"Hi {data.get('name', '')},\n\nThis address is now the email for your account. "
        f"It replaces {data.get('previous_email')}.",
    )


def _payment_reminder(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        f"Upcoming payment: {data.get('subscription_name')}",
        f"Hi {data.get('name', '')},\n\n{data.get('subscription_name')} will charge "
        f"{data.get('price')} on {data.get('next_payment')}.",
    )


def _monthly_report(data: Dict[str, Any]) -> Tuple[str, str]:
    return (
        f"Your spending report for {data.get('month', 'this month')}",
        f"Hi {data.get('name', '')},\n\nYou have {data.get('subscription_count', 0)} active "
        f"subscriptions totalling {data.get('total_monthly_spend', '0.00')} per month.",
    )


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], Tuple[str, str]]] = {
    "welcome": _welcome,
    "password-changed": _password_changed,
    "password-reset": _password_reset,
    "email-changed": _email_changed,
    "email-change-confirmation": _email_change_confirmation,
    "payment-reminder": _payment_reminder,
    "monthly-report": _monthly_report,
}


class EmailService:
    """Notification sender delivering email via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Subscription Tracker",
        base_url: str = "http://localhost:3000",
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send(self, kind: str, recipient: str, data: Dict[str, Any]) -> NotificationResult:
        """
        Render and deliver one notification.

        Args:
            kind: Notification kind, one of TEMPLATES
            recipient: Destination address
            data: Template values

        Returns:
            NotificationResult; delivery problems are reported, never raised
        """
        template = TEMPLATES.get(kind)
        if template is None:
            return NotificationResult(success=False, error=f"Unknown notification kind: {kind}")
        try:
            subject, text_body = template({"base_url": self.base_url, **data})
        except KeyError as exc:
            return NotificationResult(success=False, error=f"Missing template value: {exc}")

        if not self.enabled:
            # Development fallback: no SMTP configured.
            logger.info("[EMAIL] %s to %s: %s\n%s", kind, recipient, subject, text_body)
            return NotificationResult(success=True)

        return self._send_email(recipient, subject, text_body)

    def _send_email(self, to_email: str, subject: str, text_body: str) -> NotificationResult:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            html_body = "<html><body>{}</body></html>".format(
                "".join(f"<p>{line}</p>" for line in text_body.split("\n\n"))
            )
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            return NotificationResult(success=True)

        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Failed to send email to %s: %s", to_email, exc)
            return NotificationResult(success=False, error=str(exc))
