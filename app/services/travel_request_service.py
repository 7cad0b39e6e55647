"""Travel service request lifecycle: create, edit and resubmit, read, book flights."""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Type

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import CurrentUser
from app.core.exceptions import DuplicateActionError, InvalidTransition, NotFoundError, PersistenceError
from app.crud.approval_step import approval_step as crud_approval_step
from app.crud.request import request_to_dict, travel_request as crud_travel_request
from app.db.database import SessionLocal
from app.models.travel_request import (
    ItinerarySegment,
    TravelRequest,
    TrfAccommodationDetail,
    TrfCompanyTransportDetail,
    TrfFlightBooking,
)
from app.schemas.travel_request import (
    ChildRequestsResponse,
    FlightBookingRequest,
    TravelRequestCreate,
    TravelRequestResponse,
    TravelRequestUpdate,
    TravelRequestWriteResponse,
)
from app.schemas.workflow import AutoGenerationResult
from app.services.auto_generation_service import AutoGenerationService, auto_generation_service
from app.services.notification_service import NotificationDispatcher, notification_dispatcher
from app.services.request_service import DRAFT, RequestService
from app.services.workflow.dedup import DedupGuard
from app.services.workflow.engine import TransitionResult
from app.services.workflow.statuses import RequestType, StepStatus, TsrStatus
from app.services.workflow_action_service import ActionOutcome, WorkflowActionService, workflow_action_service

logger = logging.getLogger(__name__)

DEFAULT_TSR_CONTEXT = "TRF"


def flight_booking_hook(booking: FlightBookingRequest, booked_by: str) -> Callable[[Session, Any, TransitionResult], None]:
    """Row hook recording the flight booking in the ``book_flight`` transaction."""
    def add_booking(db: Session, row: TravelRequest, transition: TransitionResult) -> None:
        db.add(TrfFlightBooking(trf_id=row.id, booked_by=booked_by, **booking.booking_fields()))

    return add_booking


def _replace_details(existing: List[Any], incoming: List[Any], model: Type[Any]) -> List[Any]:
    """Rebuild a detail collection, updating rows whose id is resent and creating the rest."""
    by_id = {row.id: row for row in existing}
    rows = []
    for item in incoming:
        values = item.model_dump(exclude={"id"})
        row = by_id.get(item.id) if item.id is not None else None
        if row is None:
            row = model(**values)
        else:
            for name, value in values.items():
                setattr(row, name, value)
        rows.append(row)
    return rows


class TravelRequestService(RequestService):
    request_type = RequestType.TSR
    response_schema = TravelRequestResponse

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        submission_guard: Optional[DedupGuard] = None,
        dispatcher: NotificationDispatcher = notification_dispatcher,
        auto_generation: Optional[AutoGenerationService] = None,
        action_service: Optional[WorkflowActionService] = None,
    ):
        super().__init__(session_factory, submission_guard, dispatcher)
        self.auto_generation = auto_generation or auto_generation_service
        self.action_service = action_service or workflow_action_service

    def build(self, payload: TravelRequestCreate) -> TravelRequest:
        return TravelRequest(
            **self._scalar_fields(payload),
            itinerary=[ItinerarySegment(**s.model_dump(exclude={"id"})) for s in payload.itinerary],
            accommodation_details=[
                TrfAccommodationDetail(**d.model_dump(exclude={"id"})) for d in payload.accommodation_details
            ],
            company_transport_details=[
                TrfCompanyTransportDetail(**d.model_dump(exclude={"id"})) for d in payload.company_transport_details
            ],
        )

    @staticmethod
    def _scalar_fields(payload: TravelRequestCreate) -> dict:
        values = payload.model_dump(
            exclude={"itinerary", "accommodation_details", "company_transport_details", "submit"}
        )
        values["travel_type"] = payload.travel_type.value
        return values

    def id_context(self, payload: TravelRequestCreate) -> Optional[str]:
        if payload.itinerary:
            return payload.itinerary[0].to_location[:3]
        return DEFAULT_TSR_CONTEXT

    @property
    def editable_statuses(self) -> set:
        return {TsrStatus.DRAFT.value, TsrStatus.REJECTED.value} | set(self.definition.cancellable)

    async def create_tsr(self, payload: TravelRequestCreate, user: CurrentUser) -> TravelRequestWriteResponse:
        request_id = await self.submit(payload, user)
        auto = await self._reconcile(request_id, user)
        message = "TSR submitted successfully." if payload.submit else "TSR saved as draft."
        return TravelRequestWriteResponse(message=message, trf=self.get(request_id), auto_generation=auto)

    async def update_tsr(
        self, request_id: str, payload: TravelRequestUpdate, user: CurrentUser
    ) -> TravelRequestWriteResponse:
        """Edit a draft, rejected or still-pending TSR and restart its approval chain."""
        fingerprint = self.submission_guard.submission_fingerprint(
            user.user_id, f"tsr_update:{request_id}", payload.model_dump(mode="json")
        )
        check = await self.submission_guard.check_and_mark(fingerprint)
        if check.is_duplicate:
            raise DuplicateActionError(check.time_remaining)

        try:
            snapshot = await run_in_threadpool(self._update, request_id, payload, user)
        finally:
            await self.submission_guard.mark_completed(fingerprint)

        if snapshot["status"] != DRAFT:
            self.queue_submission(snapshot, user, resubmitted=True)
        auto = await self._reconcile(request_id, user)
        message = "TSR updated and resubmitted successfully." if payload.submit else "TSR draft updated."
        return TravelRequestWriteResponse(message=message, trf=self.get(request_id), auto_generation=auto)

    def _update(self, request_id: str, payload: TravelRequestUpdate, user: CurrentUser) -> dict:
        now = datetime.now(timezone.utc)
        try:
            with self.session_factory() as db:
                with db.begin():
                    row = crud_travel_request.get_for_update(db, request_id)
                    if row is None:
                        raise NotFoundError(f"TSR {request_id} not found.")
                    if row.status not in self.editable_statuses:
                        raise InvalidTransition(f"TSR cannot be edited in status: {row.status}.", row.status)
                    if not payload.submit and row.status != DRAFT:
                        raise InvalidTransition(
                            f"TSR cannot be returned to draft from status: {row.status}.", row.status
                        )

                    previous_status = row.status
                    for name, value in self._scalar_fields(payload).items():
                        setattr(row, name, value)
                    row.itinerary = _replace_details(row.itinerary, payload.itinerary, ItinerarySegment)
                    row.accommodation_details = _replace_details(
                        row.accommodation_details, payload.accommodation_details, TrfAccommodationDetail
                    )
                    row.company_transport_details = _replace_details(
                        row.company_transport_details, payload.company_transport_details, TrfCompanyTransportDetail
                    )

                    crud_approval_step.delete_for_request(db, request_type=self.request_type.value, request_id=row.id)
                    if payload.submit:
                        row.status = self.definition.initial_status
                        row.submitted_at = now
                        crud_approval_step.log_step(
                            db,
                            request_type=self.request_type.value,
                            request_id=row.id,
                            role="Requestor",
                            name=row.requestor_name,
                            status=StepStatus.EDITED.value,
                            comments="TSR edited and resubmitted.",
                        )
                    else:
                        row.status = DRAFT
                    db.flush()
                    snapshot = request_to_dict(row)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update TSR {request_id}: {str(e)}")
            raise PersistenceError("Failed to update TSR.", {"reason": str(e)}) from e

        logger.info(f"TSR {request_id} edited by {user.email}: {previous_status} -> {snapshot['status']}")
        return snapshot

    async def _reconcile(self, request_id: str, user: CurrentUser) -> AutoGenerationResult:
        return await run_in_threadpool(self.auto_generation.reconcile_child_requests, request_id, user.user_id)

    def children(self, request_id: str) -> ChildRequestsResponse:
        with self.session_factory() as db:
            if crud_travel_request.get(db, request_id) is None:
                raise NotFoundError(f"TSR {request_id} not found.")
            return self.auto_generation.get_children(db, request_id)

    async def book_flight(self, request_id: str, booking: FlightBookingRequest, user: CurrentUser) -> ActionOutcome:
        booked_by = booking.approver_name or user.name
        return await self.action_service.perform_processing(
            RequestType.TSR,
            request_id,
            "book_flight",
            approver_role=booking.approver_role,
            approver_name=booked_by,
            comments=booking.comments or f"Flight {booking.flight_number} booked.",
            hook=flight_booking_hook(booking, booked_by),
        )


travel_request_service = TravelRequestService()


def get_travel_request_service() -> TravelRequestService:
    return travel_request_service
