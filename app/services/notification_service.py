"""Workflow notification events and the queue-backed dispatcher.

``notify_*`` only enqueue and return; ``NotificationWorker`` consumes the queue
after the HTTP response has gone out, writes in-app notifications and sends
email. Delivery failures are retried, then logged. They never reach the caller.
"""
import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email_service import EmailService, email_service
from app.core.exceptions import NotificationError
from app.crud.notification import notification as crud_notification
from app.db.database import SessionLocal
from app.models.notification import NotificationPriority, NotificationType

logger = logging.getLogger(__name__)

REQUEST_LABELS = {
    "TSR": "Travel Request",
    "CLAIM": "Expense Claim",
    "VISA": "Visa Application",
    "ACCOMMODATION": "Accommodation Request",
    "TRANSPORT": "Transport Request",
}

REQUEST_PATHS = {
    "TSR": "trf/view",
    "CLAIM": "claims/view",
    "VISA": "visa/view",
    "ACCOMMODATION": "accommodation/view",
    "TRANSPORT": "transport/view",
}


# ===== Events =====

class WorkflowEvent(BaseModel):
    request_type: str
    request_id: str
    requestor_name: str
    requestor_email: Optional[str] = None
    department: Optional[str] = None
    approver_name: str
    approver_role: str
    entity_title: str
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notify_roles: List[str] = []


class ApprovalEvent(WorkflowEvent):
    """Request moved forward (approved, cancelled or processed)."""
    action: str = "approve"
    old_status: str
    new_status: str
    next_approver_label: str
    comments: Optional[str] = None


class RejectionEvent(WorkflowEvent):
    old_status: str
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Rejection reason is required")
        return v


class SubmissionEvent(WorkflowEvent):
    status: str
    next_approver_label: str
    resubmitted: bool = False


Event = Union[ApprovalEvent, RejectionEvent, SubmissionEvent]


def event_fields(request_type: str, request: Dict, approver_role: str, approver_name: str,
                 notify_roles: Iterable[str] = ()) -> Dict:
    """Common event fields taken from a request row snapshot."""
    title = request.get("purpose")
    if request_type == "VISA":
        title = f"Visa for {request.get('destination')}"
    elif request_type == "ACCOMMODATION":
        title = title or f"Accommodation at {request.get('location')}"
    amount = request.get("estimated_cost") or request.get("total_amount") or request.get("total_estimated_cost")
    return dict(
        request_type=request_type,
        request_id=request["id"],
        requestor_name=request.get("requestor_name") or "Requestor",
        requestor_email=request.get("email"),
        department=request.get("department"),
        approver_name=approver_name,
        approver_role=approver_role,
        entity_title=title or f"{REQUEST_LABELS.get(request_type, 'Request')} {request['id']}",
        amount=amount,
        start_date=request.get("trip_start_date") or request.get("check_in_date"),
        end_date=request.get("trip_end_date") or request.get("check_out_date"),
        notify_roles=list(notify_roles),
    )


class NotificationMessage(BaseModel):
    request_type: str
    request_id: str
    title: str
    body: str
    notification_type: str
    priority: str = NotificationPriority.MEDIUM.value
    user_email: Optional[str] = None
    recipient_role: Optional[str] = None
    email_to: Optional[str] = None
    action_url: Optional[str] = None
    triggered_by: Optional[str] = None
    data: Dict[str, str] = {}


def _event_data(event: WorkflowEvent) -> Dict[str, str]:
    data = {
        "request_id": event.request_id,
        "requestor": event.requestor_name,
        "department": event.department,
        "amount": event.amount,
        "start_date": event.start_date,
        "end_date": event.end_date,
    }
    return {key: str(value) for key, value in data.items() if value is not None}


def build_messages(event: Event, role_emails: Optional[Dict[str, str]] = None,
                   frontend_url: Optional[str] = None) -> List[NotificationMessage]:
    """Expand an event into one message for the requestor and one per notified role."""
    role_emails = role_emails or {}
    label = REQUEST_LABELS.get(event.request_type, "Request")
    subject = f"{label} {event.request_id}"
    action_url = None
    if frontend_url:
        action_url = f"{frontend_url.rstrip('/')}/{REQUEST_PATHS.get(event.request_type, 'requests')}/{event.request_id}"

    common = dict(
        request_type=event.request_type,
        request_id=event.request_id,
        action_url=action_url,
        triggered_by=event.approver_name,
        data=_event_data(event),
    )
    messages: List[NotificationMessage] = []

    if isinstance(event, RejectionEvent):
        requestor_title = f"{subject} rejected"
        requestor_body = (
            f"Your {label.lower()} '{event.entity_title}' was rejected by "
            f"{event.approver_name} ({event.approver_role}). Reason: {event.reason}"
        )
        notification_type = NotificationType.REQUEST_REJECTED.value
        priority = NotificationPriority.HIGH.value
        role_title = requestor_title
        role_body = f"{subject} ('{event.entity_title}') was rejected by {event.approver_name}."
    elif isinstance(event, SubmissionEvent):
        verb = "resubmitted" if event.resubmitted else "submitted"
        requestor_title = f"{subject} {verb}"
        requestor_body = (
            f"Your {label.lower()} '{event.entity_title}' has been {verb} and is now "
            f"{event.status}. Next: {event.next_approver_label}."
        )
        notification_type = NotificationType.REQUEST_SUBMITTED.value
        priority = NotificationPriority.MEDIUM.value
        role_title = f"Action required: {subject}"
        role_body = f"{event.requestor_name} {verb} '{event.entity_title}'. It is awaiting your review."
    else:
        if event.new_status == "Cancelled":
            notification_type = NotificationType.REQUEST_CANCELLED.value
        elif event.action == "approve":
            notification_type = NotificationType.REQUEST_APPROVED.value
        else:
            notification_type = NotificationType.REQUEST_PROCESSED.value
        priority = NotificationPriority.MEDIUM.value
        requestor_title = f"{subject} is now {event.new_status}"
        requestor_body = (
            f"Your {label.lower()} '{event.entity_title}' moved from {event.old_status} to "
            f"{event.new_status} by {event.approver_name} ({event.approver_role}). "
            f"Next: {event.next_approver_label}."
        )
        if event.comments:
            requestor_body += f" Comments: {event.comments}"
        if event.new_status == "Cancelled":
            role_title = f"{subject} cancelled"
            role_body = f"{subject} ('{event.entity_title}') was cancelled by {event.approver_name}."
        elif event.new_status == "Approved":
            role_title = f"{subject} approved, ready for processing"
            role_body = f"{event.requestor_name}'s '{event.entity_title}' is fully approved and awaits processing."
        else:
            role_title = f"Action required: {subject}"
            role_body = (
                f"{event.requestor_name}'s '{event.entity_title}' is now {event.new_status} "
                f"and awaits your review."
            )

    if event.requestor_email:
        messages.append(NotificationMessage(
            title=requestor_title,
            body=requestor_body,
            notification_type=notification_type,
            priority=priority,
            user_email=event.requestor_email,
            email_to=event.requestor_email,
            **common,
        ))

    for role in event.notify_roles:
        messages.append(NotificationMessage(
            title=role_title,
            body=role_body,
            notification_type=notification_type,
            priority=priority,
            recipient_role=role,
            email_to=role_emails.get(role),
            **common,
        ))

    return messages


# ===== Dispatcher =====

class NotificationDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        mailer: EmailService = email_service,
        queue_size: int = 1000,
        max_attempts: int = 3,
        retry_delay: float = 2,
        role_emails: Optional[Dict[str, str]] = None,
        frontend_url: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.mailer = mailer
        self.queue_size = queue_size
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.role_emails = role_emails or {}
        self.frontend_url = frontend_url
        self._queue: Optional[asyncio.Queue] = None
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.queue_size)
        return self._queue

    def open(self) -> None:
        """Bind a fresh queue to the running event loop, carrying over queued events."""
        pending: List[Event] = []
        if self._queue is not None:
            while not self._queue.empty():
                pending.append(self._queue.get_nowait())
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        for event in pending:
            self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def stats(self) -> Dict[str, int]:
        return {
            "delivered": self.delivered,
            "failed": self.failed,
            "pending": self.pending,
            "dropped": self.dropped,
        }

    def _enqueue(self, event: Event) -> bool:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.error(f"Notification queue full, dropping {type(event).__name__} for {event.request_id}")
            return False
        logger.info(f"Queued {type(event).__name__} for {event.request_type} {event.request_id}")
        return True

    def notify_approval(self, event: ApprovalEvent) -> bool:
        return self._enqueue(event)

    def notify_rejection(self, event: RejectionEvent) -> bool:
        return self._enqueue(event)

    def notify_submission(self, event: SubmissionEvent) -> bool:
        return self._enqueue(event)

    async def handle(self, event: Event) -> None:
        for message in build_messages(event, self.role_emails, self.frontend_url):
            if await self._deliver_with_retry(message):
                self.delivered += 1
            else:
                self.failed += 1

    async def drain(self) -> int:
        """Deliver everything currently queued. Used on shutdown and in tests."""
        handled = 0
        while self._queue is not None and not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                await self.handle(event)
            finally:
                self._queue.task_done()
            handled += 1
        return handled

    async def _deliver_with_retry(self, message: NotificationMessage) -> bool:
        persisted = False
        for attempt in range(1, self.max_attempts + 1):
            try:
                if not persisted:
                    await asyncio.to_thread(self._persist, message)
                    persisted = True
                if message.email_to:
                    sent = await asyncio.to_thread(
                        self.mailer.send_notification_email,
                        message.email_to,
                        message.title,
                        message.body,
                        message.action_url,
                        message.data,
                    )
                    if not sent:
                        raise NotificationError(f"Email delivery to {message.email_to} failed")
                return True
            except (NotificationError, SQLAlchemyError) as e:
                logger.warning(
                    f"Notification attempt {attempt}/{self.max_attempts} for "
                    f"{message.request_type} {message.request_id} failed: {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)

        logger.error(
            f"Giving up on notification '{message.title}' for "
            f"{message.user_email or message.recipient_role} after {self.max_attempts} attempts"
        )
        return False

    def _persist(self, message: NotificationMessage) -> None:
        with self.session_factory() as db:
            with db.begin():
                crud_notification.create_in_app(
                    db,
                    title=message.title,
                    message=message.body,
                    user_email=message.user_email,
                    recipient_role=message.recipient_role,
                    notification_type=message.notification_type,
                    priority=message.priority,
                    request_type=message.request_type,
                    request_id=message.request_id,
                    send_email=bool(message.email_to),
                    action_url=message.action_url,
                    triggered_by=message.triggered_by,
                )


notification_dispatcher = NotificationDispatcher(
    queue_size=settings.NOTIFICATION_QUEUE_SIZE,
    max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS,
    retry_delay=settings.NOTIFICATION_RETRY_DELAY_SECONDS,
    role_emails=settings.ROLE_NOTIFICATION_EMAILS,
    frontend_url=settings.FRONTEND_URL,
)


def get_notification_dispatcher() -> NotificationDispatcher:
    return notification_dispatcher
