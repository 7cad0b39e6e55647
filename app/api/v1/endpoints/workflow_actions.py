"""Shared handlers behind every ``/{id}/action`` and ``/{id}/process`` endpoint."""
import logging

from app.core.deps import CurrentUser
from app.schemas.workflow import ActionRequest, ActionResponse, ProcessActionRequest
from app.services.workflow.statuses import RequestType
from app.services.workflow_action_service import ActionOutcome, WorkflowActionService

logger = logging.getLogger(__name__)


def action_response(outcome: ActionOutcome) -> ActionResponse:
    if not outcome.notification_queued:
        logger.warning(f"Notification not queued for {outcome.request_type.value} {outcome.request.get('id')}")
    return ActionResponse(message=outcome.message, trf=outcome.request)


async def run_action(
    service: WorkflowActionService,
    request_type: RequestType,
    request_id: str,
    payload: ActionRequest,
    current_user: CurrentUser,
) -> ActionResponse:
    outcome = await service.perform_action(
        request_type,
        request_id,
        payload.action.value,
        approver_role=payload.approver_role or current_user.role,
        approver_name=payload.approver_name or current_user.name,
        comments=payload.comments,
    )
    return action_response(outcome)


async def run_processing(
    service: WorkflowActionService,
    request_type: RequestType,
    request_id: str,
    payload: ProcessActionRequest,
    current_user: CurrentUser,
) -> ActionResponse:
    fields = {}
    if payload.visa_copy_filename:
        fields["visa_copy_filename"] = payload.visa_copy_filename

    outcome = await service.perform_processing(
        request_type,
        request_id,
        payload.action,
        approver_role=payload.approver_role,
        approver_name=payload.approver_name or current_user.name,
        comments=payload.comments,
        fields=fields,
    )
    return action_response(outcome)
