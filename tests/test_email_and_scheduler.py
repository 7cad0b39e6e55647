import smtplib

import pytest

from app.core import email_service as email_module
from app.core.email_service import EmailService
from app.core.scheduler import purge_dedup_stores
from app.services.workflow.dedup import InMemoryDedupStore, RedisDedupStore


class RecordingSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.sent = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        pass

    def sendmail(self, from_email, to_emails, body):
        self.sent.append((from_email, to_emails, body))


class FailingSMTP(RecordingSMTP):
    def sendmail(self, from_email, to_emails, body):
        raise smtplib.SMTPRecipientsRefused({to_emails[0]: (550, b"no such user")})


def test_disabled_sending_is_a_noop(monkeypatch):
    monkeypatch.setattr(email_module.settings, "SEND_EMAILS", False)
    monkeypatch.setattr(email_module.smtplib, "SMTP", FailingSMTP)

    assert EmailService().send_notification_email("a@example.com", "Title", "Body") is True


def test_notification_email_is_rendered_and_sent(monkeypatch):
    RecordingSMTP.instances.clear()
    monkeypatch.setattr(email_module.settings, "SEND_EMAILS", True)
    monkeypatch.setattr(email_module.smtplib, "SMTP", RecordingSMTP)

    sent = EmailService().send_notification_email(
        "alice@example.com",
        "Travel Request TSR-1 is now Pending HOD",
        "Moved <forward>",
        action_url="http://frontend.test/trf/view/TSR-1",
        data={"request_id": "TSR-1", "department": "Engineering"},
    )

    assert sent is True
    [(from_email, to_emails, body)] = RecordingSMTP.instances[0].sent
    assert to_emails == ["alice@example.com"]
    assert "Request Id: TSR-1" in body
    assert "&lt;forward&gt;" in body


def test_smtp_failure_reports_false(monkeypatch):
    monkeypatch.setattr(email_module.settings, "SEND_EMAILS", True)
    monkeypatch.setattr(email_module.smtplib, "SMTP", FailingSMTP)

    assert EmailService().send_notification_email("ghost@example.com", "Title", "Body") is False


@pytest.mark.asyncio
async def test_purge_job_only_touches_memory_stores(clock):
    store = InMemoryDedupStore(clock=clock)
    await store.put("stale", clock() - 1)
    await store.put("live", clock() + 10)

    assert purge_dedup_stores([store, RedisDedupStore("redis://localhost:6379/0")]) == 1
    assert store.pending_count() == 1
