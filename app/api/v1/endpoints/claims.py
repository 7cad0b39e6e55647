"""Expense claim API endpoints."""
from fastapi import APIRouter, Depends, status
from typing import List

from app.core.deps import CurrentUser, get_current_user
from app.schemas.claim import ExpenseClaimCreate, ExpenseClaimResponse
from app.schemas.workflow import ActionRequest, ActionResponse, ApprovalStepResponse, ProcessActionRequest
from app.services.request_service import ClaimService, get_claim_service
from app.services.workflow.statuses import RequestType
from app.services.workflow_action_service import WorkflowActionService, get_workflow_action_service
from app.api.v1.endpoints.workflow_actions import run_action, run_processing

router = APIRouter()


@router.post("/", response_model=ExpenseClaimResponse, status_code=status.HTTP_201_CREATED)
async def create_claim(
    claim_data: ExpenseClaimCreate,
    service: ClaimService = Depends(get_claim_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Submit an expense claim; the total is the sum of its items."""
    return await service.create(claim_data, current_user)


@router.get("/{claim_id}", response_model=ExpenseClaimResponse)
async def get_claim(
    claim_id: str,
    service: ClaimService = Depends(get_claim_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.get(claim_id)


@router.get("/{claim_id}/approvals", response_model=List[ApprovalStepResponse])
async def get_claim_approvals(
    claim_id: str,
    service: ClaimService = Depends(get_claim_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return service.approval_steps(claim_id)


@router.post("/{claim_id}/action", response_model=ActionResponse)
async def act_on_claim(
    claim_id: str,
    payload: ActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await run_action(service, RequestType.CLAIM, claim_id, payload, current_user)


@router.post("/{claim_id}/process", response_model=ActionResponse)
async def process_claim(
    claim_id: str,
    payload: ProcessActionRequest,
    service: WorkflowActionService = Depends(get_workflow_action_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Finance marks an approved claim as paid out."""
    return await run_processing(service, RequestType.CLAIM, claim_id, payload, current_user)
