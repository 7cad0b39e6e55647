"""Notification dispatcher and worker tests."""

import asyncio
import time

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.services.notification_service import (
    ApprovalEvent,
    NotificationDispatcher,
    RejectionEvent,
    SubmissionEvent,
    build_messages,
    event_fields,
)
from app.tasks.notification_worker import NotificationWorker
from tests.conftest import ROLE_EMAILS, FakeMailer
from tests.factories import notifications

REQUEST = {
    "id": "TSR-20260302-0905-ASH-AB2C",
    "requestor_name": "Alice Tan",
    "email": "alice@example.com",
    "department": "Engineering",
    "purpose": "Site visit",
    "estimated_cost": 1200,
}


def approval_event(**overrides):
    values = dict(
        event_fields("TSR", REQUEST, "Department Focal", "Dan Focal", notify_roles=["Line Manager"]),
        old_status="Pending Department Focal",
        new_status="Pending Line Manager",
        next_approver_label="Line Manager",
    )
    values.update(overrides)
    return ApprovalEvent(**values)


def test_rejection_requires_reason():
    fields = event_fields("TSR", REQUEST, "HOD", "Hana Hod")
    for reason in ("", "   "):
        with pytest.raises(PydanticValidationError):
            RejectionEvent(**fields, old_status="Pending HOD", reason=reason)


def test_build_messages_addresses_requestor_and_roles():
    messages = build_messages(approval_event(), ROLE_EMAILS, "http://frontend.test/")

    assert [m.user_email for m in messages] == ["alice@example.com", None]
    assert [m.recipient_role for m in messages] == [None, "Line Manager"]
    assert messages[1].email_to == "line.manager@example.com"
    assert messages[0].action_url == "http://frontend.test/trf/view/TSR-20260302-0905-ASH-AB2C"
    assert "Pending Line Manager" in messages[0].body
    assert messages[0].data["amount"] == "1200"


def test_rejection_message_carries_reason():
    event = RejectionEvent(
        **event_fields("CLAIM", dict(REQUEST, id="CLM-1"), "HOD", "Hana Hod"),
        old_status="Pending HOD Approval",
        reason="Receipts missing",
    )
    [message] = build_messages(event)
    assert message.notification_type == "REQUEST_REJECTED"
    assert message.priority == "HIGH"
    assert "Receipts missing" in message.body


def test_submission_message_for_next_approver():
    event = SubmissionEvent(
        **event_fields("VISA", dict(REQUEST, id="VIS-1", destination="Germany"), "Requestor", "Alice Tan",
                       notify_roles=["Department Focal"]),
        status="Pending Department Focal",
        next_approver_label="Department Focal",
    )
    requestor, focal = build_messages(event, ROLE_EMAILS)
    assert requestor.title == "Visa Application VIS-1 submitted"
    assert focal.title == "Action required: Visa Application VIS-1"
    assert "Visa for Germany" in focal.body


@pytest.mark.asyncio
async def test_dispatcher_persists_and_emails(dispatcher, mailer, session_factory):
    assert dispatcher.notify_approval(approval_event()) is True
    assert dispatcher.pending == 1

    handled = await dispatcher.drain()

    assert handled == 1
    assert dispatcher.stats() == {"delivered": 2, "failed": 0, "pending": 0, "dropped": 0}
    assert [sent["to"] for sent in mailer.sent] == ["alice@example.com", "line.manager@example.com"]
    rows = notifications(session_factory)
    assert [row["user_email"] for row in rows] == ["alice@example.com", None]
    assert rows[1]["recipient_role"] == "Line Manager"
    assert {row["notification_type"] for row in rows} == {"REQUEST_APPROVED"}


@pytest.mark.asyncio
async def test_email_failures_are_retried(session_factory):
    mailer = FakeMailer(failures=2)
    dispatcher = NotificationDispatcher(session_factory=session_factory, mailer=mailer, max_attempts=3,
                                        retry_delay=0)
    dispatcher.notify_approval(approval_event(notify_roles=[]))

    await dispatcher.drain()

    assert mailer.attempts == 3
    assert dispatcher.delivered == 1
    assert len(notifications(session_factory)) == 1


@pytest.mark.asyncio
async def test_exhausted_retries_are_counted_not_raised(session_factory):
    mailer = FakeMailer(failures=10)
    dispatcher = NotificationDispatcher(session_factory=session_factory, mailer=mailer, max_attempts=2,
                                        retry_delay=0)
    dispatcher.notify_approval(approval_event(notify_roles=[]))

    await dispatcher.drain()

    assert mailer.attempts == 2
    assert dispatcher.stats()["failed"] == 1
    # The in-app row is still written once
    assert len(notifications(session_factory)) == 1


def test_full_queue_drops_events(session_factory, mailer):
    dispatcher = NotificationDispatcher(session_factory=session_factory, mailer=mailer, queue_size=1)
    assert dispatcher.notify_approval(approval_event()) is True
    assert dispatcher.notify_approval(approval_event()) is False
    assert dispatcher.stats()["dropped"] == 1


@pytest.mark.asyncio
async def test_worker_delivers_in_background(dispatcher, mailer, session_factory):
    worker = NotificationWorker(dispatcher)
    await worker.start()
    try:
        dispatcher.notify_approval(approval_event())
        await asyncio.wait_for(dispatcher.queue.join(), 5)
    finally:
        await worker.stop()

    assert worker.running is False
    assert len(mailer.sent) == 2
    assert len(notifications(session_factory)) == 2


@pytest.mark.asyncio
async def test_worker_stop_drains_leftovers(dispatcher, mailer):
    dispatcher.notify_approval(approval_event(notify_roles=[]))
    worker = NotificationWorker(dispatcher)
    await worker.start()
    await worker.stop()

    assert dispatcher.pending == 0
    assert dispatcher.delivered == 1


class SlowMailer(FakeMailer):
    def send_notification_email(self, *args, **kwargs):
        time.sleep(0.2)
        return super().send_notification_email(*args, **kwargs)


@pytest.mark.asyncio
async def test_worker_stop_finishes_event_in_flight(session_factory):
    mailer = SlowMailer()
    dispatcher = NotificationDispatcher(session_factory=session_factory, mailer=mailer, retry_delay=0)
    worker = NotificationWorker(dispatcher)
    await worker.start()
    dispatcher.notify_approval(approval_event(notify_roles=[]))
    while dispatcher.pending:
        await asyncio.sleep(0.01)

    await worker.stop()

    assert len(mailer.sent) == 1
    assert dispatcher.stats() == {"delivered": 1, "failed": 0, "pending": 0, "dropped": 0}
