"""Submission and retrieval of workflow requests.

``RequestService`` holds the flow shared by every domain (duplicate guard,
id generation, initial status, ``Submitted`` step, submission notification);
subclasses map their create payload onto ORM rows.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, List, Optional, Type

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import CurrentUser
from app.core.exceptions import DuplicateActionError, NotFoundError, PersistenceError
from app.crud.approval_step import approval_step as crud_approval_step
from app.crud.request import get_request_crud, request_to_dict
from app.db.database import SessionLocal
from app.models.accommodation_request import AccommodationRequest
from app.models.claim import ClaimItem, ExpenseClaim
from app.models.transport_request import TransportLeg, TransportRequest
from app.models.visa_application import VisaApplication
from app.schemas.accommodation_request import AccommodationRequestCreate, AccommodationRequestResponse
from app.schemas.claim import ExpenseClaimCreate, ExpenseClaimResponse
from app.schemas.transport_request import TransportRequestCreate, TransportRequestResponse
from app.schemas.visa_application import VisaApplicationCreate, VisaApplicationResponse
from app.schemas.workflow import ApprovalStepResponse
from app.services.notification_service import (
    NotificationDispatcher,
    REQUEST_LABELS,
    SubmissionEvent,
    event_fields,
    notification_dispatcher,
)
from app.services.workflow.dedup import DedupGuard, build_dedup_store
from app.services.workflow.request_ids import generate_request_id
from app.services.workflow.statuses import RequestType, StepStatus, WorkflowDefinition, get_workflow

logger = logging.getLogger(__name__)

DRAFT = "Draft"

_submission_guard: Optional[DedupGuard] = None


def get_submission_guard() -> DedupGuard:
    global _submission_guard
    if _submission_guard is None:
        _submission_guard = DedupGuard(
            build_dedup_store(settings.DEDUP_BACKEND, settings.REDIS_URL),
            settings.SUBMISSION_DEDUP_TTL_SECONDS,
        )
    return _submission_guard


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


class RequestService:
    request_type: RequestType
    response_schema: Type[BaseModel]

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        submission_guard: Optional[DedupGuard] = None,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ):
        self.session_factory = session_factory
        self.submission_guard = submission_guard or get_submission_guard()
        self.dispatcher = dispatcher

    @property
    def definition(self) -> WorkflowDefinition:
        return get_workflow(self.request_type)

    @property
    def label(self) -> str:
        return REQUEST_LABELS[self.request_type.value]

    # ----- per-domain mapping -----

    def build(self, payload: Any) -> Any:
        raise NotImplementedError

    def id_context(self, payload: Any) -> Optional[str]:
        return None

    # ----- submission -----

    async def submit(self, payload: Any, user: CurrentUser) -> str:
        """Persist a new request and queue its submission notification. Returns the new id."""
        fingerprint = self.submission_guard.submission_fingerprint(
            user.user_id,
            f"{self.request_type.value.lower()}_submission",
            payload.model_dump(mode="json"),
        )
        check = await self.submission_guard.check_and_mark(fingerprint)
        if check.is_duplicate:
            raise DuplicateActionError(check.time_remaining)

        try:
            snapshot = await run_in_threadpool(self._create, payload, user)
        finally:
            await self.submission_guard.mark_completed(fingerprint)

        if snapshot["status"] != DRAFT:
            self.queue_submission(snapshot, user)
        return snapshot["id"]

    async def create(self, payload: Any, user: CurrentUser) -> BaseModel:
        request_id = await self.submit(payload, user)
        return self.get(request_id)

    def _create(self, payload: Any, user: CurrentUser) -> dict:
        definition = self.definition
        crud = get_request_crud(self.request_type)
        status = definition.initial_status if payload.submit else DRAFT
        now = datetime.now(timezone.utc)
        try:
            with self.session_factory() as db:
                with db.begin():
                    if payload.submit and payload.staff_id:
                        self._check_recent_submission(db, crud, payload, now)

                    row = self.build(payload)
                    row.id = generate_request_id(definition.id_prefix, self.id_context(payload))
                    row.status = status
                    row.submitted_at = now if payload.submit else None
                    row.created_by = user.email
                    db.add(row)
                    db.flush()

                    if payload.submit:
                        crud_approval_step.log_step(
                            db,
                            request_type=self.request_type.value,
                            request_id=row.id,
                            role="Requestor",
                            name=row.requestor_name,
                            status=StepStatus.SUBMITTED.value,
                            comments=f"{self.label} submitted.",
                        )
                    snapshot = request_to_dict(row)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create {self.label.lower()}: {str(e)}")
            raise PersistenceError(f"Failed to create {self.label.lower()}.", {"reason": str(e)}) from e

        logger.info(f"Created {self.request_type.value} {snapshot['id']} in status {status} by {user.email}")
        return snapshot

    def _check_recent_submission(self, db: Session, crud, payload: Any, now: datetime) -> None:
        window = timedelta(minutes=settings.DUPLICATE_SUBMISSION_WINDOW_MINUTES)
        existing = crud.find_recent_submission(
            db, staff_id=payload.staff_id, purpose=getattr(payload, "purpose", None), since=now - window
        )
        if existing is not None:
            remaining = (_as_utc(existing.submitted_at) + window - now).total_seconds()
            logger.warning(f"Duplicate {self.request_type.value} submission by {payload.staff_id}, matches {existing.id}")
            raise DuplicateActionError(max(1, math.ceil(remaining)))

    def queue_submission(self, snapshot: dict, user: CurrentUser, resubmitted: bool = False) -> bool:
        definition = self.definition
        status = snapshot["status"]
        role = definition.next_approver_role(status)
        try:
            event = SubmissionEvent(
                status=status,
                next_approver_label=definition.next_approver_label(status),
                resubmitted=resubmitted,
                **event_fields(
                    self.request_type.value,
                    snapshot,
                    "Requestor",
                    snapshot.get("requestor_name") or user.name,
                    [role] if role else [],
                ),
            )
        except ValueError as e:
            logger.error(f"Could not queue submission notification for {snapshot['id']}: {str(e)}")
            return False
        return self.dispatcher.notify_submission(event)

    # ----- retrieval -----

    def get(self, request_id: str) -> BaseModel:
        with self.session_factory() as db:
            row = get_request_crud(self.request_type).get(db, request_id)
            if row is None:
                raise NotFoundError(f"{self.label} {request_id} not found.")
            response = self.response_schema.model_validate(row)
            return response.model_copy(update={"approval_steps": self._steps(db, request_id)})

    def approval_steps(self, request_id: str) -> List[ApprovalStepResponse]:
        with self.session_factory() as db:
            if get_request_crud(self.request_type).get(db, request_id) is None:
                raise NotFoundError(f"{self.label} {request_id} not found.")
            return self._steps(db, request_id)

    def _steps(self, db: Session, request_id: str) -> List[ApprovalStepResponse]:
        steps = crud_approval_step.get_for_request(db, request_type=self.request_type.value, request_id=request_id)
        return [ApprovalStepResponse.model_validate(step) for step in steps]


class ClaimService(RequestService):
    request_type = RequestType.CLAIM
    response_schema = ExpenseClaimResponse

    def build(self, payload: ExpenseClaimCreate) -> ExpenseClaim:
        items = [ClaimItem(**item.model_dump()) for item in payload.items]
        return ExpenseClaim(
            **payload.model_dump(exclude={"items", "submit"}),
            total_amount=sum((item.amount for item in payload.items), Decimal("0")),
            items=items,
        )


class VisaService(RequestService):
    request_type = RequestType.VISA
    response_schema = VisaApplicationResponse

    def build(self, payload: VisaApplicationCreate) -> VisaApplication:
        return VisaApplication(**payload.model_dump(exclude={"submit"}))

    def id_context(self, payload: VisaApplicationCreate) -> Optional[str]:
        return payload.destination[:5]


class AccommodationService(RequestService):
    request_type = RequestType.ACCOMMODATION
    response_schema = AccommodationRequestResponse

    def build(self, payload: AccommodationRequestCreate) -> AccommodationRequest:
        return AccommodationRequest(**payload.model_dump(exclude={"submit"}))

    def id_context(self, payload: AccommodationRequestCreate) -> Optional[str]:
        return payload.location[:5]


class TransportService(RequestService):
    request_type = RequestType.TRANSPORT
    response_schema = TransportRequestResponse

    def build(self, payload: TransportRequestCreate) -> TransportRequest:
        legs = [TransportLeg(**leg.model_dump()) for leg in payload.legs]
        return TransportRequest(**payload.model_dump(exclude={"legs", "submit"}), legs=legs)

    def id_context(self, payload: TransportRequestCreate) -> Optional[str]:
        return payload.legs[0].transport_type if payload.legs else None


claim_service = ClaimService()
visa_service = VisaService()
accommodation_service = AccommodationService()
transport_service = TransportService()


def get_claim_service() -> ClaimService:
    return claim_service


def get_visa_service() -> VisaService:
    return visa_service


def get_accommodation_service() -> AccommodationService:
    return accommodation_service


def get_transport_service() -> TransportService:
    return transport_service
