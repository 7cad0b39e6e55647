"""Derives transport and accommodation requests from a TSR's detail payload.

Runs after the parent TSR commit, in its own transaction. Reconciliation is
an idempotent upsert: children are matched to the stay or leg they cover,
refreshed while still actionable and never deleted.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AutoGenerationError
from app.crud.approval_step import approval_step as crud_approval_step
from app.crud.request import accommodation_request as crud_accommodation
from app.crud.request import transport_request as crud_transport
from app.crud.request import travel_request as crud_travel_request
from app.db.database import SessionLocal
from app.models.accommodation_request import AccommodationRequest
from app.models.transport_request import TransportLeg, TransportRequest
from app.models.travel_request import TravelRequest
from app.schemas.travel_request import ChildRequestsResponse, ChildRequestSummary
from app.schemas.workflow import AutoGenerationResult
from app.services.workflow.request_ids import generate_request_id
from app.services.workflow.statuses import (
    ACCOMMODATION_WORKFLOW,
    StepStatus,
    TRANSPORT_WORKFLOW,
    TSR_WORKFLOW,
    TsrStatus,
)

logger = logging.getLogger(__name__)

LOCATION_MAP = {
    "ashgabat": "Ashgabat",
    "kiyanly": "Kiyanly",
    "turkmenbashy": "Turkmenbashy",
}
DEFAULT_LOCATION = "Kiyanly"
DEFAULT_ACCOMMODATION_TYPE = "Staff House/PKC Kampung/Kiyanly camp"

DEFAULT_DEPARTURE_TIME = "09:00"
DEFAULT_TRANSPORT_TYPE = "Local"
DEFAULT_PASSENGERS = 1


def normalize_location(location: Optional[str]) -> str:
    if not location:
        return DEFAULT_LOCATION
    return LOCATION_MAP.get(location.strip().lower(), DEFAULT_LOCATION)


class AutoGenerationService:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def reconcile_child_requests(self, trf_id: str, user_id: Optional[str] = None) -> AutoGenerationResult:
        """Upsert the transport and accommodation requests implied by TSR ``trf_id``.

        Never raises: failures are logged and reported in the returned result.
        """
        try:
            with self.session_factory() as db:
                with db.begin():
                    tsr = crud_travel_request.get(db, trf_id)
                    if tsr is None:
                        raise AutoGenerationError(f"TSR {trf_id} not found.")

                    if tsr.status == TsrStatus.DRAFT.value or TSR_WORKFLOW.is_terminal_or_processing(tsr.status):
                        logger.info(f"Skipping child reconciliation for TSR {trf_id} in status {tsr.status}")
                        return self._existing(db, trf_id)

                    transport_ids = self._reconcile_transport(db, tsr, user_id)
                    accommodation_ids = self._reconcile_accommodation(db, tsr, user_id)

            logger.info(
                f"Reconciled TSR {trf_id}: {len(transport_ids)} transport and "
                f"{len(accommodation_ids)} accommodation requests"
            )
            return AutoGenerationResult(
                ok=True,
                transport_requests=transport_ids,
                accommodation_requests=accommodation_ids,
            )
        except AutoGenerationError as e:
            logger.error(f"Auto-generation failed for TSR {trf_id}: {e.message}")
            return AutoGenerationResult(ok=False, error=e.message)
        except Exception as e:
            error = AutoGenerationError(f"Failed to reconcile child requests for TSR {trf_id}: {str(e)}")
            logger.exception(error.message)
            return AutoGenerationResult(ok=False, error=error.message)

    def get_children(self, db: Session, trf_id: str) -> ChildRequestsResponse:
        def summary(row) -> ChildRequestSummary:
            return ChildRequestSummary(
                id=row.id, status=row.status, requestor_name=row.requestor_name, created_at=row.created_at
            )

        return ChildRequestsResponse(
            transport_requests=[summary(r) for r in crud_transport.get_by_trf(db, trf_id=trf_id)],
            accommodation_requests=[summary(r) for r in crud_accommodation.get_by_trf(db, trf_id=trf_id)],
        )

    def _existing(self, db: Session, trf_id: str) -> AutoGenerationResult:
        return AutoGenerationResult(
            ok=True,
            transport_requests=[r.id for r in crud_transport.get_by_trf(db, trf_id=trf_id)],
            accommodation_requests=[r.id for r in crud_accommodation.get_by_trf(db, trf_id=trf_id)],
        )

    def _log_generated(self, db: Session, request_type: str, request_id: str, tsr: TravelRequest) -> None:
        crud_approval_step.log_step(
            db,
            request_type=request_type,
            request_id=request_id,
            role="Requestor",
            name=tsr.requestor_name,
            status=StepStatus.SUBMITTED.value,
            comments=f"Auto-generated from TSR {tsr.id}.",
        )

    def _reconcile_transport(self, db: Session, tsr: TravelRequest, user_id: Optional[str]) -> List[str]:
        existing = crud_transport.get_by_trf(db, trf_id=tsr.id)
        details = [
            d for d in tsr.company_transport_details
            if d.transport_date and d.from_location and d.to_location
        ]
        if not details:
            return [r.id for r in existing]

        child: Optional[TransportRequest] = existing[0] if existing else None
        if child is None:
            child = TransportRequest(
                id=generate_request_id("TRN", DEFAULT_TRANSPORT_TYPE),
                status=TRANSPORT_WORKFLOW.initial_status,
                trf_id=tsr.id,
                submitted_at=datetime.now(timezone.utc),
                created_by=user_id,
            )
            db.add(child)
            self._apply_requestor(child, tsr)
            db.flush()
            self._log_generated(db, TRANSPORT_WORKFLOW.request_type.value, child.id, tsr)
            existing.append(child)
            logger.info(f"Created transport request {child.id} from TSR {tsr.id}")
        elif TRANSPORT_WORKFLOW.is_terminal_or_processing(child.status):
            logger.info(f"Transport request {child.id} is {child.status}, leaving it unchanged")
            return [r.id for r in existing]
        else:
            self._apply_requestor(child, tsr)

        legs = {(leg.leg_date, leg.from_location, leg.to_location): leg for leg in child.legs}
        for detail in details:
            key = (detail.transport_date, detail.from_location, detail.to_location)
            leg = legs.get(key)
            if leg is None:
                leg = TransportLeg(
                    leg_date=detail.transport_date,
                    from_location=detail.from_location,
                    to_location=detail.to_location,
                    departure_time=DEFAULT_DEPARTURE_TIME,
                    transport_type=DEFAULT_TRANSPORT_TYPE,
                    number_of_passengers=DEFAULT_PASSENGERS,
                )
                child.legs.append(leg)
                legs[key] = leg
            leg.purpose = tsr.purpose
            leg.remarks = detail.remarks
        db.flush()
        return [r.id for r in existing]

    def _reconcile_accommodation(self, db: Session, tsr: TravelRequest, user_id: Optional[str]) -> List[str]:
        # Stays match on (check-in, check-out, location); the source detail id
        # only re-links a stay whose dates or location were edited in place.
        children = crud_accommodation.get_by_trf(db, trf_id=tsr.id)
        by_stay = {(c.check_in_date, c.check_out_date, c.location): c for c in children}
        by_detail = {c.source_detail_id: c for c in children if c.source_detail_id is not None}
        matched = set()

        for detail in tsr.accommodation_details:
            if not (detail.check_in_date and detail.check_out_date):
                logger.info(f"Skipping accommodation detail {detail.id} without dates for TSR {tsr.id}")
                continue

            location = normalize_location(detail.location)
            child = by_stay.get((detail.check_in_date, detail.check_out_date, location))
            if child is None or child.id in matched:
                child = by_detail.get(detail.id)
            if child is not None and child.id in matched:
                child = None

            if child is None:
                child = AccommodationRequest(
                    id=generate_request_id("ACCOM", location[:5].upper()),
                    status=ACCOMMODATION_WORKFLOW.initial_status,
                    trf_id=tsr.id,
                    source_detail_id=detail.id,
                    submitted_at=datetime.now(timezone.utc),
                    created_by=user_id,
                )
                db.add(child)
                created = True
            elif ACCOMMODATION_WORKFLOW.is_terminal_or_processing(child.status):
                matched.add(child.id)
                logger.info(f"Accommodation request {child.id} is {child.status}, leaving it unchanged")
                continue
            else:
                created = False

            matched.add(child.id)
            child.source_detail_id = detail.id
            self._apply_requestor(child, tsr)
            child.accommodation_type = detail.accommodation_type or DEFAULT_ACCOMMODATION_TYPE
            child.location = location
            child.place_of_stay = detail.place_of_stay or ""
            child.check_in_date = detail.check_in_date
            child.check_out_date = detail.check_out_date
            child.estimated_cost_per_night = detail.estimated_cost_per_night or 0
            child.remarks = detail.remarks or "Auto-generated from TSR"
            db.flush()

            if created:
                self._log_generated(db, ACCOMMODATION_WORKFLOW.request_type.value, child.id, tsr)
                logger.info(f"Created accommodation request {child.id} from TSR {tsr.id}")

        return [r.id for r in crud_accommodation.get_by_trf(db, trf_id=tsr.id)]

    @staticmethod
    def _apply_requestor(child, tsr: TravelRequest) -> None:
        child.requestor_name = tsr.requestor_name
        child.staff_id = tsr.staff_id
        child.department = tsr.department
        child.position = tsr.position
        child.email = tsr.email
        child.purpose = f"Auto-generated from TSR: {tsr.purpose}"
        if isinstance(child, TransportRequest):
            child.additional_comments = f"Automatically generated from Travel Service Request {tsr.id}"


auto_generation_service = AutoGenerationService()
