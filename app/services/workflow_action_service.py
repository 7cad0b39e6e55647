"""Approval and processing actions on any workflow request.

Flow per call: dedup check, one transaction that re-reads the status under a
row lock and writes the new status together with its approval step, dedup
clearance, then a queued notification. Only the first two are awaited.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DuplicateActionError, NotFoundError, PersistenceError
from app.crud.approval_step import approval_step as crud_approval_step
from app.crud.request import get_request_crud, request_to_dict
from app.db.database import SessionLocal
from app.services.notification_service import (
    ApprovalEvent,
    NotificationDispatcher,
    REQUEST_LABELS,
    RejectionEvent,
    event_fields,
    notification_dispatcher,
)
from app.services.workflow.dedup import DedupGuard, build_dedup_store
from app.services.workflow.engine import TransitionResult, compute_processing_transition, compute_transition
from app.services.workflow.statuses import Action, RequestType, WorkflowDefinition, get_workflow

logger = logging.getLogger(__name__)

DEFAULT_COMMENTS = {
    Action.APPROVE.value: "Approved.",
    Action.CANCEL.value: "Cancelled by user/admin.",
}

PAST_TENSE = {
    "approve": "approved",
    "reject": "rejected",
    "cancel": "cancelled",
    "book_flight": "flights booked",
    "mark_processing": "marked as processing",
    "upload_visa": "visa uploaded",
    "process": "processed",
    "complete": "completed",
}

# Extra writes performed inside the action transaction, e.g. recording a flight booking
RowHook = Callable[[Session, Any, TransitionResult], None]


@dataclass
class ActionOutcome:
    request_type: RequestType
    request: Dict[str, Any]
    transition: TransitionResult
    notification_queued: bool

    @property
    def message(self) -> str:
        done = PAST_TENSE.get(self.transition.action, self.transition.action.replace("_", " "))
        return f"{self.request_type.value} {done} successfully."


class WorkflowActionService:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        dedup_guard: Optional[DedupGuard] = None,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ):
        self.session_factory = session_factory
        self.dedup_guard = dedup_guard or DedupGuard(
            build_dedup_store(settings.DEDUP_BACKEND, settings.REDIS_URL),
            settings.ACTION_DEDUP_TTL_SECONDS,
        )
        self.dispatcher = dispatcher

    async def perform_action(
        self,
        request_type: RequestType,
        request_id: str,
        action: str,
        approver_role: str,
        approver_name: str,
        comments: Optional[str] = None,
    ) -> ActionOutcome:
        """Approve, reject or cancel a request."""
        definition = get_workflow(request_type)

        def compute(row: Any) -> TransitionResult:
            return compute_transition(
                definition,
                row.status,
                action,
                approver_role=approver_role,
                details=request_to_dict(row),
                comments=comments,
            )

        def record(db: Session, row: Any, transition: TransitionResult) -> None:
            if transition.next_status == "Rejected" and hasattr(row, "rejection_reason"):
                row.rejection_reason = comments

        return await self._run(definition, request_id, action, approver_role, approver_name,
                               comments, compute, record)

    async def perform_processing(
        self,
        request_type: RequestType,
        request_id: str,
        processing_action: str,
        approver_role: Optional[str],
        approver_name: str,
        comments: Optional[str] = None,
        fields: Optional[Mapping[str, Any]] = None,
        hook: Optional[RowHook] = None,
    ) -> ActionOutcome:
        """Post-approval admin action (book_flight, mark_processing, upload_visa, process, complete)."""
        definition = get_workflow(request_type)
        transition_def = definition.processing.get(processing_action)
        if approver_role is None and transition_def is not None:
            approver_role = transition_def.actor_role

        def compute(row: Any) -> TransitionResult:
            return compute_processing_transition(
                definition,
                row.status,
                processing_action,
                details=request_to_dict(row),
                fields=fields,
            )

        def record(db: Session, row: Any, transition: TransitionResult) -> None:
            for name, value in (fields or {}).items():
                if hasattr(row, name):
                    setattr(row, name, value)
            if hook is not None:
                hook(db, row, transition)

        return await self._run(definition, request_id, processing_action, approver_role or "Admin",
                               approver_name, comments, compute, record)

    async def _run(
        self,
        definition: WorkflowDefinition,
        request_id: str,
        action: str,
        approver_role: str,
        approver_name: str,
        comments: Optional[str],
        compute: Callable[[Any], TransitionResult],
        record: RowHook,
    ) -> ActionOutcome:
        fingerprint = self.dedup_guard.fingerprint(request_id, action, approver_role, approver_name)
        check = await self.dedup_guard.check_and_mark(fingerprint)
        if check.is_duplicate:
            raise DuplicateActionError(check.time_remaining)

        try:
            snapshot, transition = await run_in_threadpool(
                self._apply, definition, request_id, approver_role, approver_name, comments, compute, record
            )
        finally:
            await self.dedup_guard.mark_completed(fingerprint)

        queued = self._notify(definition, snapshot, transition, approver_role, approver_name, comments)
        return ActionOutcome(
            request_type=definition.request_type,
            request=snapshot,
            transition=transition,
            notification_queued=queued,
        )

    def _apply(
        self,
        definition: WorkflowDefinition,
        request_id: str,
        approver_role: str,
        approver_name: str,
        comments: Optional[str],
        compute: Callable[[Any], TransitionResult],
        record: RowHook,
    ) -> Tuple[Dict[str, Any], TransitionResult]:
        request_type = definition.request_type.value
        crud = get_request_crud(definition.request_type)
        try:
            with self.session_factory() as db:
                with db.begin():
                    row = crud.get_for_update(db, request_id)
                    if row is None:
                        raise NotFoundError(f"{REQUEST_LABELS[request_type]} {request_id} not found.")

                    transition = compute(row)
                    row.status = transition.next_status
                    record(db, row, transition)
                    crud_approval_step.log_step(
                        db,
                        request_type=request_type,
                        request_id=row.id,
                        role=approver_role,
                        name=approver_name,
                        status=transition.step_status,
                        comments=comments or DEFAULT_COMMENTS.get(transition.action),
                    )
                    db.flush()
                    snapshot = request_to_dict(row)
        except SQLAlchemyError as e:
            logger.error(f"Transaction failed for {request_type} {request_id}: {str(e)}")
            raise PersistenceError(f"Failed to process {request_type} action.", {"reason": str(e)}) from e

        logger.info(
            f"{request_type} {request_id}: {transition.previous_status} -> {transition.next_status} "
            f"({transition.action} by {approver_name}, {approver_role})"
        )
        return snapshot, transition

    def _notify(
        self,
        definition: WorkflowDefinition,
        snapshot: Dict[str, Any],
        transition: TransitionResult,
        approver_role: str,
        approver_name: str,
        comments: Optional[str],
    ) -> bool:
        fields = event_fields(
            definition.request_type.value,
            snapshot,
            approver_role,
            approver_name,
            definition.notify_roles(transition.previous_status, transition.next_status),
        )
        try:
            if transition.next_status == "Rejected":
                return self.dispatcher.notify_rejection(
                    RejectionEvent(old_status=transition.previous_status, reason=comments or "", **fields)
                )
            return self.dispatcher.notify_approval(
                ApprovalEvent(
                    action=transition.action,
                    old_status=transition.previous_status,
                    new_status=transition.next_status,
                    next_approver_label=transition.next_approver_label,
                    comments=comments,
                    **fields,
                )
            )
        except ValueError as e:
            logger.error(f"Could not queue notification for {snapshot.get('id')}: {str(e)}")
            return False


workflow_action_service = WorkflowActionService()


def get_workflow_action_service() -> WorkflowActionService:
    return workflow_action_service
