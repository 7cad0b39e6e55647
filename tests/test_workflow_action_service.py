"""Approval and processing actions against a real (in-memory) database."""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    DuplicateActionError,
    InvalidTransition,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.accommodation_request import AccommodationRequest
from app.models.claim import ExpenseClaim
from app.models.travel_request import TravelRequest, TrfFlightBooking
from app.models.visa_application import VisaApplication
from app.schemas.travel_request import FlightBookingRequest
from app.services.notification_service import ApprovalEvent, RejectionEvent
from app.services.workflow.statuses import RequestType
from tests.factories import (
    accommodation_row,
    claim_row,
    queued_events,
    status_of,
    steps_for,
    transport_row,
    tsr_row,
    visa_row,
)

TSR = RequestType.TSR


def booking(**overrides):
    values = dict(
        flightNumber="TK 345",
        departureAirport="IST",
        arrivalAirport="ASB",
        departureDateTime=datetime(2026, 3, 2, 8, 0),
        arrivalDateTime=datetime(2026, 3, 2, 12, 30),
        approverRole="Ticketing Admin",
        approverName="Tom Tickets",
    )
    values.update(overrides)
    return FlightBookingRequest(**values)


@pytest.mark.asyncio
async def test_tsr_full_approval_chain(action_service, dispatcher, seed, session_factory):
    request_id = seed(tsr_row("TSR-001", "Pending Department Focal"))

    chain = [("Department Focal", "Dan Focal"), ("Line Manager", "Lina Manager"), ("HOD", "Hana Hod")]
    outcomes = []
    for role, name in chain:
        outcomes.append(await action_service.perform_action(TSR, request_id, "approve", role, name))

    assert [o.transition.next_status for o in outcomes] == ["Pending Line Manager", "Pending HOD", "Approved"]
    assert outcomes[-1].request["status"] == "Approved"
    assert outcomes[-1].message == "TSR approved successfully."
    assert status_of(session_factory, TravelRequest, request_id) == "Approved"
    assert steps_for(session_factory, "TSR", request_id) == [
        ("Department Focal", "Dan Focal", "Approved", "Approved."),
        ("Line Manager", "Lina Manager", "Approved", "Approved."),
        ("HOD", "Hana Hod", "Approved", "Approved."),
    ]

    events = queued_events(dispatcher)
    assert all(isinstance(event, ApprovalEvent) for event in events)
    assert [event.notify_roles for event in events] == [
        ["Line Manager"],
        ["HOD"],
        ["Ticketing Admin", "Accommodation Admin"],
    ]
    assert events[-1].next_approver_label == "Admin Teams (Flights/Accommodation) & Requestor"


@pytest.mark.asyncio
async def test_claim_cannot_be_rejected_twice(action_service, dispatcher, seed, session_factory):
    request_id = seed(claim_row("CLM-010", "Pending HOD Approval"))

    outcome = await action_service.perform_action(
        RequestType.CLAIM, request_id, "reject", "HOD", "Hana Hod", comments="Receipts missing"
    )
    assert outcome.transition.next_status == "Rejected"
    assert outcome.message == "CLAIM rejected successfully."

    with pytest.raises(InvalidTransition) as exc:
        await action_service.perform_action(
            RequestType.CLAIM, request_id, "reject", "HOD", "Hana Hod", comments="Receipts missing"
        )
    assert exc.value.details == {"current_status": "Rejected"}

    assert status_of(session_factory, ExpenseClaim, request_id) == "Rejected"
    assert steps_for(session_factory, "CLAIM", request_id) == [("HOD", "Hana Hod", "Rejected", "Receipts missing")]
    [event] = queued_events(dispatcher)
    assert isinstance(event, RejectionEvent)
    assert event.reason == "Receipts missing"


@pytest.mark.asyncio
async def test_reject_without_comments_changes_nothing(action_service, seed, session_factory):
    request_id = seed(tsr_row("TSR-002", "Pending HOD"))

    with pytest.raises(ValidationError):
        await action_service.perform_action(TSR, request_id, "reject", "HOD", "Hana Hod", comments="  ")

    assert status_of(session_factory, TravelRequest, request_id) == "Pending HOD"
    assert steps_for(session_factory, "TSR", request_id) == []


@pytest.mark.asyncio
async def test_duplicate_action_in_flight_is_refused(action_service, dedup_guard, seed, session_factory):
    request_id = seed(tsr_row("TSR-003", "Pending HOD"))
    await dedup_guard.check_and_mark(dedup_guard.fingerprint(request_id, "approve", "HOD", "Hana Hod"))

    with pytest.raises(DuplicateActionError) as exc:
        await action_service.perform_action(TSR, request_id, "approve", "HOD", "Hana Hod")

    assert exc.value.time_remaining == 15
    assert exc.value.status_code == 429
    assert status_of(session_factory, TravelRequest, request_id) == "Pending HOD"


@pytest.mark.asyncio
async def test_concurrent_identical_actions_apply_once(action_service, seed, session_factory):
    request_id = seed(tsr_row("TSR-004", "Pending Department Focal"))

    results = await asyncio.gather(
        action_service.perform_action(TSR, request_id, "approve", "Department Focal", "Dan Focal"),
        action_service.perform_action(TSR, request_id, "approve", "Department Focal", "Dan Focal"),
        return_exceptions=True,
    )

    assert sum(isinstance(result, DuplicateActionError) for result in results) == 1
    assert status_of(session_factory, TravelRequest, request_id) == "Pending Line Manager"
    assert len(steps_for(session_factory, "TSR", request_id)) == 1


@pytest.mark.asyncio
async def test_failed_transaction_leaves_no_trace(action_service, dispatcher, seed, session_factory):
    request_id = seed(claim_row("CLM-011", "Approved"))

    def failing_hook(db, row, transition):
        raise SQLAlchemyError("disk full")

    with pytest.raises(PersistenceError) as exc:
        await action_service.perform_processing(
            RequestType.CLAIM, request_id, "process", None, "Fiona Finance", hook=failing_hook
        )
    assert exc.value.retryable is True
    assert status_of(session_factory, ExpenseClaim, request_id) == "Approved"
    assert steps_for(session_factory, "CLAIM", request_id) == []
    assert queued_events(dispatcher) == []

    # The dedup entry was cleared, so an immediate retry goes through
    outcome = await action_service.perform_processing(RequestType.CLAIM, request_id, "process", None, "Fiona Finance")
    assert outcome.transition.next_status == "Processed"
    assert steps_for(session_factory, "CLAIM", request_id) == [
        ("Finance Clerk", "Fiona Finance", "Processed", None)
    ]


@pytest.mark.asyncio
async def test_missing_request(action_service):
    with pytest.raises(NotFoundError):
        await action_service.perform_action(RequestType.VISA, "VIS-404", "approve", "HOD", "Hana Hod")


@pytest.mark.asyncio
async def test_cancel_notifies_the_pending_approver(action_service, dispatcher, seed):
    request_id = seed(transport_row("TRN-001", "Pending Line Manager"))

    outcome = await action_service.perform_action(RequestType.TRANSPORT, request_id, "cancel", "Requestor", "Alice Tan")

    assert outcome.transition.next_status == "Cancelled"
    [event] = queued_events(dispatcher)
    assert event.notify_roles == ["Line Manager"]
    assert event.next_approver_label == "Requestor & Relevant Approvers"


@pytest.mark.asyncio
async def test_late_rejection_by_ticketing(action_service, dispatcher, seed, session_factory):
    request_id = seed(tsr_row("TSR-005", "Approved"))

    outcome = await action_service.perform_action(
        TSR, request_id, "reject", "Ticketing Admin", "Tom Tickets", comments="No seats available"
    )

    assert outcome.transition.override_applied is True
    assert status_of(session_factory, TravelRequest, request_id) == "Rejected"
    [event] = queued_events(dispatcher)
    assert isinstance(event, RejectionEvent)


@pytest.mark.asyncio
async def test_visa_embassy_processing_and_upload(action_service, seed, session_factory):
    request_id = seed(visa_row("VIS-001", "Pending Visa Clerk"))

    outcome = await action_service.perform_action(RequestType.VISA, request_id, "approve", "Visa Clerk", "Vic Clerk")
    assert outcome.transition.next_status == "Processing with Embassy"

    with pytest.raises(ValidationError):
        await action_service.perform_processing(RequestType.VISA, request_id, "upload_visa", None, "Vic Clerk")

    outcome = await action_service.perform_processing(
        RequestType.VISA, request_id, "upload_visa", None, "Vic Clerk",
        fields={"visa_copy_filename": "alice-visa.pdf"},
    )
    assert outcome.transition.next_status == "Approved"
    assert outcome.request["visa_copy_filename"] == "alice-visa.pdf"
    assert status_of(session_factory, VisaApplication, request_id) == "Approved"
    assert [step[2] for step in steps_for(session_factory, "VISA", request_id)] == ["Approved", "Visa Uploaded"]


@pytest.mark.asyncio
async def test_visa_rejection_keeps_reason(action_service, seed, session_factory):
    request_id = seed(visa_row("VIS-002", "Pending Department Focal"))

    outcome = await action_service.perform_action(
        RequestType.VISA, request_id, "reject", "Department Focal", "Dan Focal", comments="Passport expired"
    )

    assert outcome.request["rejection_reason"] == "Passport expired"


@pytest.mark.asyncio
@pytest.mark.parametrize("travel_type, expected", [("Overseas", "Awaiting Visa"), ("Domestic", "TRF Processed")])
async def test_book_flight(travel_service, requestor, seed, session_factory, travel_type, expected):
    request_id = seed(tsr_row(f"TSR-BF-{travel_type}", "Approved", travel_type=travel_type))

    outcome = await travel_service.book_flight(request_id, booking(), requestor)

    assert outcome.transition.next_status == expected
    assert outcome.message == "TSR flights booked successfully."
    assert steps_for(session_factory, "TSR", request_id) == [
        ("Ticketing Admin", "Tom Tickets", "Flights Booked", "Flight TK 345 booked.")
    ]
    with session_factory() as db:
        [flight] = db.query(TrfFlightBooking).filter(TrfFlightBooking.trf_id == request_id).all()
        assert flight.booked_by == "Tom Tickets"
        assert flight.arrival_airport == "ASB"


@pytest.mark.asyncio
async def test_book_flight_requires_approved_tsr(travel_service, requestor, seed, session_factory):
    request_id = seed(tsr_row("TSR-006", "Pending HOD"))

    with pytest.raises(InvalidTransition):
        await travel_service.book_flight(request_id, booking(), requestor)

    with session_factory() as db:
        assert db.query(TrfFlightBooking).count() == 0


@pytest.mark.asyncio
async def test_accommodation_processing_stages(action_service, seed, session_factory):
    request_id = seed(accommodation_row("ACCOM-001", "Approved"))

    processing = await action_service.perform_processing(
        RequestType.ACCOMMODATION, request_id, "process", None, "Ada Admin"
    )
    completed = await action_service.perform_processing(
        RequestType.ACCOMMODATION, request_id, "complete", None, "Ada Admin", comments="Room 12 allocated"
    )

    assert processing.message == "ACCOMMODATION processed successfully."
    assert completed.transition.next_status == "Completed"
    assert status_of(session_factory, AccommodationRequest, request_id) == "Completed"
    assert steps_for(session_factory, "ACCOMMODATION", request_id) == [
        ("Accommodation Admin", "Ada Admin", "Processing", None),
        ("Accommodation Admin", "Ada Admin", "Completed", "Room 12 allocated"),
    ]
