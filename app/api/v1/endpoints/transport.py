"""Transport request API endpoints."""
from fastapi import APIRouter, Depends, status
from typing import List

from app.core.deps import CurrentUser, get_current_user
from app.schemas.transport_request import TransportRequestCreate, TransportRequestResponse
from app.schemas.workflow import ActionRequest, ActionResponse, ApprovalStepResponse, ProcessActionRequest
from app.services.request_service import TransportService, get_transport_service
from app.services.workflow.statuses import RequestType
from app.services.workflow_action_service import WorkflowActionService, get_workflow_action_service
from app.api.v1.endpoints.workflow_actions import run_action, run_processing

router = APIRouter()


@router.post("/", response_model=TransportRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_transport_request(
    request_data: TransportRequestCreate,
    service: TransportService = Depends(get_transport_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await service.create(request_data, current_user)


@router.get("/{request_id}", response_model=TransportRequestResponse)
async def get_transport_request(
    request_id: str,
    service: TransportService = Depends(get_transport_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.get(request_id)


@router.get("/{request_id}/approvals", response_model=List[ApprovalStepResponse])
async def get_transport_approvals(
    request_id: str,
    service: TransportService = Depends(get_transport_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.approval_steps(request_id)


@router.post("/{request_id}/action", response_model=ActionResponse)
async def act_on_transport_request(
    request_id: str,
    payload: ActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await run_action(service, RequestType.TRANSPORT, request_id, payload, current_user)


@router.post("/{request_id}/process", response_model=ActionResponse)
async def process_transport_request(
    request_id: str,
    payload: ProcessActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Transport admin: ``process`` (Approved -> Processing) then ``complete``."""
    return await run_processing(service, RequestType.TRANSPORT, request_id, payload, current_user)
