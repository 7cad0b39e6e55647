"""Pure transition functions over a ``WorkflowDefinition``.

Nothing here touches the database: callers read the current status inside
their transaction, ask the engine for the outcome and then write the new
status together with one approval step row.
"""
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from app.core.exceptions import InvalidTransition, ValidationError
from app.services.workflow.statuses import Action, StepStatus, WorkflowDefinition

APPROVED = "Approved"
REJECTED = "Rejected"
CANCELLED = "Cancelled"


@dataclass(frozen=True)
class TransitionResult:
    action: str
    previous_status: str
    next_status: str
    step_status: str
    next_approver_role: Optional[str]
    next_approver_label: str
    requires_comments: bool = False
    override_applied: bool = False


def _parse_action(action: Any) -> Action:
    try:
        return Action(action)
    except ValueError:
        raise ValidationError(
            f"Invalid action '{action}'.",
            {"action": [f"Must be one of: {', '.join(a.value for a in Action)}"]},
        )


def _result(definition: WorkflowDefinition, action: str, current: str, next_status: str,
            step_status: str, requires_comments: bool = False, override: bool = False) -> TransitionResult:
    return TransitionResult(
        action=action,
        previous_status=current,
        next_status=next_status,
        step_status=step_status,
        next_approver_role=definition.next_approver_role(next_status),
        next_approver_label=definition.next_approver_label(next_status),
        requires_comments=requires_comments,
        override_applied=override,
    )


def is_late_rejection(definition: WorkflowDefinition, current_status: str, approver_role: Optional[str]) -> bool:
    return (
        current_status in definition.late_rejection_statuses
        and approver_role in definition.late_rejection_roles
    )


def compute_transition(
    definition: WorkflowDefinition,
    current_status: str,
    action: Any,
    approver_role: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    comments: Optional[str] = None,
) -> TransitionResult:
    """Resolve an approve/reject/cancel action against ``current_status``.

    Raises ``ValidationError`` for an unknown action or a rejection without
    comments, and ``InvalidTransition`` when the action is not legal from the
    current status.
    """
    parsed = _parse_action(action)
    details = details or {}

    if not definition.is_valid(current_status):
        raise InvalidTransition(
            f"Unknown {definition.request_type.value} status: {current_status}.",
            current_status=current_status,
        )

    if parsed is Action.REJECT and not (comments and comments.strip()):
        raise ValidationError(
            "Rejection comments are required.",
            {"comments": ["Comments are required when rejecting a request."]},
        )

    if parsed is Action.REJECT and is_late_rejection(definition, current_status, approver_role):
        return _result(definition, parsed.value, current_status, REJECTED,
                       StepStatus.REJECTED.value, requires_comments=True, override=True)

    if definition.is_terminal_or_processing(current_status):
        raise InvalidTransition(
            f"Request is already in a terminal or processing state: {current_status}.",
            current_status=current_status,
        )

    if parsed is Action.APPROVE:
        if current_status not in definition.approval_sequence:
            raise InvalidTransition(
                f"Cannot approve a request with status: {current_status}.",
                current_status=current_status,
            )
        mapped = definition.approval_sequence[current_status]
        if mapped is None:
            next_status = APPROVED
        elif mapped == definition.hod_status and not definition.requires_hod(details):
            next_status = APPROVED
        else:
            next_status = mapped
        return _result(definition, parsed.value, current_status, next_status, StepStatus.APPROVED.value)

    if parsed is Action.REJECT:
        return _result(definition, parsed.value, current_status, REJECTED,
                       StepStatus.REJECTED.value, requires_comments=True)

    if not definition.is_cancellable(current_status):
        raise InvalidTransition(
            f"Cannot cancel a request with status: {current_status}.",
            current_status=current_status,
        )
    return _result(definition, parsed.value, current_status, CANCELLED, StepStatus.CANCELLED.value)


def compute_processing_transition(
    definition: WorkflowDefinition,
    current_status: str,
    processing_action: str,
    details: Optional[Mapping[str, Any]] = None,
    fields: Optional[Mapping[str, Any]] = None,
) -> TransitionResult:
    """Resolve a post-approval processing action (book_flight, upload_visa, ...)."""
    transition = definition.processing.get(processing_action)
    if transition is None:
        raise ValidationError(
            f"Unsupported action '{processing_action}' for {definition.request_type.value} requests.",
            {"action": sorted(definition.processing)},
        )

    if current_status not in transition.from_statuses:
        raise InvalidTransition(
            f"Cannot {processing_action.replace('_', ' ')} a request with status: {current_status}.",
            current_status=current_status,
        )

    fields = fields or {}
    missing = [name for name in transition.required_fields if not fields.get(name)]
    if missing:
        raise ValidationError(
            f"Missing required fields for {processing_action}: {', '.join(missing)}.",
            {name: ["This field is required."] for name in missing},
        )

    next_status = transition.resolve(details or {})
    return _result(definition, transition.name, current_status, next_status, transition.step_status)


def replay_status(
    definition: WorkflowDefinition,
    step_statuses: Iterable[str],
    details: Optional[Mapping[str, Any]] = None,
) -> str:
    """Derive the current status from an ordered sequence of approval step statuses."""
    status = definition.initial_status
    for step_status in step_statuses:
        if step_status in (StepStatus.SUBMITTED.value, StepStatus.EDITED.value):
            status = definition.initial_status
        elif step_status == StepStatus.APPROVED.value:
            mapped = definition.approval_sequence.get(status)
            if mapped is None or (mapped == definition.hod_status and not definition.requires_hod(details or {})):
                status = APPROVED
            else:
                status = mapped
        elif step_status == StepStatus.REJECTED.value:
            status = REJECTED
        elif step_status == StepStatus.CANCELLED.value:
            status = CANCELLED
        else:
            for transition in definition.processing.values():
                if transition.step_status == step_status and status in transition.from_statuses:
                    status = transition.resolve(details or {})
                    break
    return status
