import logging
import smtplib

import pytest

from subtracker.domain.exceptions import BestEffortFailure
from subtracker.domain.ports.collaborators import NOTIFICATION_KINDS, NotificationResult
from subtracker.services import email_service
from subtracker.services.email_service import TEMPLATES, EmailService
from subtracker.services.notification_dispatcher import NotificationDispatcher


class RaisingSender:
    def send(self, kind, recipient, data):
        raise RuntimeError("smtp exploded")


class RefusingSender:
    def send(self, kind, recipient, data):
        return NotificationResult(success=False, error="mailbox full")


class FakeSMTP:
    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        if password != "right":
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _smtp_service(password="right"):
    return EmailService(
        smtp_host="smtp.example.com",
        smtp_username="mailer",
        smtp_password=password,
        from_email="noreply@example.com",
        base_url="https://app.example.com/",
    )


# ----------------------------------------------------------------------
# EmailService
# ----------------------------------------------------------------------
def test_every_kind_has_a_template():
    assert set(TEMPLATES) == set(NOTIFICATION_KINDS)


def test_without_smtp_messages_are_logged(caplog):
    service = EmailService()
    assert not service.enabled

    with caplog.at_level(logging.INFO, logger="subtracker.services.email_service"):
        result = service.send("welcome", "a@x.com", {"name": "A"})

    assert result.success
    assert "[EMAIL] welcome to a@x.com" in caplog.text


def test_unknown_kind_is_reported_not_raised():
    result = EmailService().send("carrier-pigeon", "a@x.com", {})
    assert not result.success
    assert "carrier-pigeon" in result.error


def test_reset_email_needs_a_token():
    result = EmailService().send("password-reset", "a@x.com", {"name": "A"})
    assert not result.success
    assert "token" in result.error


def test_reset_link_points_at_frontend(fake_smtp):
    result = _smtp_service().send("password-reset", "a@x.com", {"name": "A", "email": "a@x.com", "token": "abc"})

    assert result.success
    message = fake_smtp.sent[0]
    assert message["To"] == "a@x.com"
    assert message["From"] == "Subscription Tracker <noreply@example.com>"
    plain = message.get_payload()[0].get_payload(decode=True).decode("utf-8")
    assert "https://app.example.com/reset-password?token=abc&email=a@x.com" in plain


def test_smtp_failure_becomes_a_failed_result(fake_smtp):
    result = _smtp_service(password="wrong").send("welcome", "a@x.com", {"name": "A"})
    assert not result.success
    assert fake_smtp.sent == []


# ----------------------------------------------------------------------
# NotificationDispatcher
# ----------------------------------------------------------------------
def test_raising_sender_is_contained(caplog):
    dispatcher = NotificationDispatcher(RaisingSender(), max_workers=1)
    try:
        with caplog.at_level(logging.ERROR, logger="subtracker.services.notification_dispatcher"):
            future = dispatcher.submit("welcome", "a@x.com", {"name": "A"})
            result = future.result(timeout=5)
    finally:
        dispatcher.shutdown()

    assert not result.success
    assert result.error == "smtp exploded"
    assert "Notification sender raised for welcome to a@x.com" in caplog.text


def test_failed_result_is_logged(caplog):
    dispatcher = NotificationDispatcher(RefusingSender(), max_workers=1)
    try:
        with caplog.at_level(logging.ERROR, logger="subtracker.services.notification_dispatcher"):
            dispatcher.submit("welcome", "a@x.com").result(timeout=5)
    finally:
        dispatcher.shutdown()

    assert "mailbox full" in caplog.text
    [record] = [record for record in caplog.records if hasattr(record, "failure")]
    assert isinstance(record.failure, BestEffortFailure)
    assert record.failure.details == {"kind": "welcome", "recipient": "a@x.com", "error": "mailbox full"}


def test_submit_after_shutdown_is_dropped(sender):
    dispatcher = NotificationDispatcher(sender, max_workers=1)
    dispatcher.shutdown()
    dispatcher.shutdown()

    assert dispatcher.submit("welcome", "a@x.com") is None
    assert sender.sent == []


def test_wait_idle_drains_pending(dispatcher, sender):
    for index in range(5):
        dispatcher.submit("welcome", f"u{index}@x.com", {"name": str(index)})

    assert dispatcher.wait_idle(timeout=5)
    assert len(sender.of_kind("welcome")) == 5


def test_submit_copies_data(dispatcher, sender):
    data = {"name": "A"}
    dispatcher.submit("welcome", "a@x.com", data)
    data["name"] = "changed"

    dispatcher.wait_idle(timeout=5)
    assert sender.sent == [("welcome", "a@x.com", {"name": "A"})]
