"""Travel service request (TSR) API endpoints."""
from fastapi import APIRouter, Depends, status
from typing import List
import logging

from app.core.deps import CurrentUser, get_current_user
from app.schemas.travel_request import (
    ChildRequestsResponse,
    FlightBookingRequest,
    TravelRequestCreate,
    TravelRequestResponse,
    TravelRequestUpdate,
    TravelRequestWriteResponse,
)
from app.schemas.workflow import ActionRequest, ActionResponse, ApprovalStepResponse
from app.services.travel_request_service import TravelRequestService, get_travel_request_service
from app.services.workflow.statuses import RequestType
from app.services.workflow_action_service import WorkflowActionService, get_workflow_action_service
from app.api.v1.endpoints.workflow_actions import action_response, run_action

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=TravelRequestWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_travel_request(
    request_data: TravelRequestCreate,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a TSR and derive its transport and accommodation requests."""
    return await service.create_tsr(request_data, current_user)


@router.put("/{request_id}", response_model=TravelRequestWriteResponse)
async def update_travel_request(
    request_id: str,
    request_data: TravelRequestUpdate,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Edit and resubmit a TSR. The approval chain starts again."""
    return await service.update_tsr(request_id, request_data, current_user)


@router.get("/{request_id}", response_model=TravelRequestResponse)
async def get_travel_request(
    request_id: str,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.get(request_id)


@router.get("/{request_id}/approvals", response_model=List[ApprovalStepResponse])
async def get_travel_request_approvals(
    request_id: str,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.approval_steps(request_id)


@router.get("/{request_id}/children", response_model=ChildRequestsResponse)
async def get_travel_request_children(
    request_id: str,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Transport and accommodation requests generated from this TSR."""
    return service.children(request_id)


@router.post("/{request_id}/action", response_model=ActionResponse)
async def act_on_travel_request(
    request_id: str,
    payload: ActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await run_action(service, RequestType.TSR, request_id, payload, current_user)


@router.post("/{request_id}/book-flight", response_model=ActionResponse)
async def book_flight(
    request_id: str,
    booking: FlightBookingRequest,
    service: TravelRequestService = Depends(get_travel_request_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Record the flight booking for an approved TSR."""
    outcome = await service.book_flight(request_id, booking, current_user)
    return action_response(outcome)
