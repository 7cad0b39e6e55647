"""Visa application API endpoints."""
from fastapi import APIRouter, Depends, status
from typing import List

from app.core.deps import CurrentUser, get_current_user
from app.schemas.visa_application import VisaApplicationCreate, VisaApplicationResponse
from app.schemas.workflow import ActionRequest, ActionResponse, ApprovalStepResponse, ProcessActionRequest
from app.services.request_service import VisaService, get_visa_service
from app.services.workflow.statuses import RequestType
from app.services.workflow_action_service import WorkflowActionService, get_workflow_action_service
from app.api.v1.endpoints.workflow_actions import run_action, run_processing

router = APIRouter()


@router.post("/", response_model=VisaApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_visa_application(
    application: VisaApplicationCreate,
    service: VisaService = Depends(get_visa_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await service.create(application, current_user)


@router.get("/{visa_id}", response_model=VisaApplicationResponse)
async def get_visa_application(
    visa_id: str,
    service: VisaService = Depends(get_visa_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.get(visa_id)


@router.get("/{visa_id}/approvals", response_model=List[ApprovalStepResponse])
async def get_visa_approvals(
    visa_id: str,
    service: VisaService = Depends(get_visa_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.approval_steps(visa_id)


@router.post("/{visa_id}/action", response_model=ActionResponse)
async def act_on_visa_application(
    visa_id: str,
    payload: ActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await run_action(service, RequestType.VISA, visa_id, payload, current_user)


@router.post("/{visa_id}/process", response_model=ActionResponse)
async def process_visa_application(
    visa_id: str,
    payload: ProcessActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Visa clerk actions: ``mark_processing`` or ``upload_visa`` (needs ``visaCopyFilename``)."""
    return await run_processing(service, RequestType.VISA, visa_id, payload, current_user)
