"""Status taxonomy and static workflow definitions for every request domain.

Each domain declares an explicit status enum and registers one frozen
``WorkflowDefinition`` describing its approval sequence, the cancellable and
terminal-or-processing partitions, HOD requirement rule, next-approver roles
and post-approval processing transitions. Definitions are read-only at runtime.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple, Type, Union


class RequestType(str, Enum):
    TSR = "TSR"
    CLAIM = "CLAIM"
    VISA = "VISA"
    ACCOMMODATION = "ACCOMMODATION"
    TRANSPORT = "TRANSPORT"


class Action(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class StepStatus(str, Enum):
    """Status recorded on an approval step row."""
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    EDITED = "Edited"
    FLIGHTS_BOOKED = "Flights Booked"
    VISA_UPLOADED = "Visa Uploaded"
    PROCESSING = "Processing"
    PROCESSED = "Processed"
    COMPLETED = "Completed"


class TsrStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_DEPARTMENT_FOCAL = "Pending Department Focal"
    PENDING_LINE_MANAGER = "Pending Line Manager"
    PENDING_HOD = "Pending HOD"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    PROCESSING_FLIGHTS = "Processing Flights"
    PROCESSING_ACCOMMODATION = "Processing Accommodation"
    AWAITING_VISA = "Awaiting Visa"
    TRF_PROCESSED = "TRF Processed"


class ClaimStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_VERIFICATION = "Pending Verification"
    PENDING_HOD_APPROVAL = "Pending HOD Approval"
    PENDING_FINANCE_APPROVAL = "Pending Finance Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    PROCESSED = "Processed"


class VisaStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_DEPARTMENT_FOCAL = "Pending Department Focal"
    PENDING_LINE_MANAGER_HOD = "Pending Line Manager/HOD"
    PENDING_VISA_CLERK = "Pending Visa Clerk"
    PROCESSING_WITH_EMBASSY = "Processing with Embassy"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class AccommodationStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_DEPARTMENT_FOCAL = "Pending Department Focal"
    PENDING_LINE_MANAGER = "Pending Line Manager"
    PENDING_HOD = "Pending HOD"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    PROCESSING = "Processing"
    COMPLETED = "Completed"


class TransportStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_DEPARTMENT_FOCAL = "Pending Department Focal"
    PENDING_LINE_MANAGER = "Pending Line Manager"
    PENDING_HOD = "Pending HOD"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    PROCESSING = "Processing"
    COMPLETED = "Completed"


REJECTED_LABEL = "Requestor"
CANCELLED_LABEL = "Requestor & Relevant Approvers"

# Target status of a processing transition, fixed or resolved from request details
StatusResolver = Union[str, Callable[[Mapping[str, Any]], str]]


def always_requires_hod(details: Mapping[str, Any]) -> bool:
    return True


@dataclass(frozen=True)
class ProcessingTransition:
    """Post-approval admin action such as booking flights or uploading a visa."""
    name: str
    from_statuses: FrozenSet[str]
    to_status: StatusResolver
    step_status: str
    actor_role: str
    required_fields: Tuple[str, ...] = ()

    def resolve(self, details: Mapping[str, Any]) -> str:
        if callable(self.to_status):
            return self.to_status(details)
        return self.to_status


@dataclass(frozen=True)
class WorkflowDefinition:
    request_type: RequestType
    statuses: Type[Enum]
    id_prefix: str
    initial_status: str
    # current pending status -> next status; None means the final stage (resolves to Approved)
    approval_sequence: Mapping[str, Optional[str]]
    cancellable: FrozenSet[str]
    terminal_or_processing: FrozenSet[str]
    next_approver_roles: Mapping[str, str]
    approved_label: str
    processing_roles: Tuple[str, ...] = ()
    hod_status: Optional[str] = None
    requires_hod: Callable[[Mapping[str, Any]], bool] = always_requires_hod
    late_rejection_statuses: FrozenSet[str] = frozenset()
    late_rejection_roles: FrozenSet[str] = frozenset()
    processing: Mapping[str, ProcessingTransition] = field(default_factory=dict)

    @property
    def status_values(self) -> FrozenSet[str]:
        return frozenset(member.value for member in self.statuses)

    def is_valid(self, status: str) -> bool:
        return status in self.status_values

    def is_cancellable(self, status: str) -> bool:
        return status in self.cancellable

    def is_terminal_or_processing(self, status: str) -> bool:
        return status in self.terminal_or_processing

    def is_pending(self, status: str) -> bool:
        return status in self.approval_sequence

    def next_approver_label(self, status: str) -> str:
        if status == "Approved":
            return self.approved_label
        if status == "Rejected":
            return REJECTED_LABEL
        if status == "Cancelled":
            return CANCELLED_LABEL
        return self.next_approver_roles.get(status, "Requestor")

    def next_approver_role(self, status: str) -> Optional[str]:
        """Role expected to act next, or None once the approval path is over."""
        if status in self.approval_sequence:
            return self.next_approver_roles.get(status)
        return None

    def notify_roles(self, previous_status: str, next_status: str) -> Tuple[str, ...]:
        """Roles that receive a notification alongside the requestor."""
        role = self.next_approver_role(next_status)
        if role:
            return (role,)
        if next_status == "Approved":
            return self.processing_roles
        if next_status == "Cancelled":
            previous_role = self.next_approver_role(previous_status)
            return (previous_role,) if previous_role else ()
        return ()


def _tsr_after_flights(details: Mapping[str, Any]) -> str:
    if details.get("travel_type") in ("Overseas", "Home Leave Passage"):
        return TsrStatus.AWAITING_VISA.value
    return TsrStatus.TRF_PROCESSED.value


_STANDARD_ROLES = {
    "Pending Department Focal": "Department Focal",
    "Pending Line Manager": "Line Manager",
    "Pending HOD": "HOD",
}

TSR_WORKFLOW = WorkflowDefinition(
    request_type=RequestType.TSR,
    statuses=TsrStatus,
    id_prefix="TSR",
    initial_status=TsrStatus.PENDING_DEPARTMENT_FOCAL.value,
    approval_sequence={
        "Pending Department Focal": "Pending Line Manager",
        "Pending Line Manager": "Pending HOD",
        "Pending HOD": None,
    },
    cancellable=frozenset({"Draft", "Pending Department Focal", "Pending Line Manager", "Pending HOD"}),
    terminal_or_processing=frozenset({
        "Approved", "Rejected", "Cancelled", "Processing Flights",
        "Processing Accommodation", "Awaiting Visa", "TRF Processed",
    }),
    next_approver_roles={
        **_STANDARD_ROLES,
        "Processing Flights": "Ticketing Admin",
        "Processing Accommodation": "Accommodation Admin",
        "Awaiting Visa": "Visa Clerk & Requestor",
        "TRF Processed": "Requestor",
    },
    approved_label="Admin Teams (Flights/Accommodation) & Requestor",
    processing_roles=("Ticketing Admin", "Accommodation Admin"),
    hod_status="Pending HOD",
    late_rejection_statuses=frozenset({"Approved"}),
    late_rejection_roles=frozenset({"Ticketing Admin", "Flight Admin"}),
    processing={
        "book_flight": ProcessingTransition(
            name="book_flight",
            from_statuses=frozenset({"Approved"}),
            to_status=_tsr_after_flights,
            step_status=StepStatus.FLIGHTS_BOOKED.value,
            actor_role="Ticketing Admin",
        ),
    },
)

CLAIM_WORKFLOW = WorkflowDefinition(
    request_type=RequestType.CLAIM,
    statuses=ClaimStatus,
    id_prefix="CLM",
    initial_status=ClaimStatus.PENDING_VERIFICATION.value,
    approval_sequence={
        "Pending Verification": "Pending HOD Approval",
        "Pending HOD Approval": "Pending Finance Approval",
        "Pending Finance Approval": None,
    },
    cancellable=frozenset({"Draft", "Pending Verification", "Pending HOD Approval", "Pending Finance Approval"}),
    terminal_or_processing=frozenset({"Approved", "Rejected", "Cancelled", "Processed"}),
    next_approver_roles={
        "Pending Verification": "Department Focal",
        "Pending HOD Approval": "HOD",
        "Pending Finance Approval": "Finance Clerk",
        "Processed": "Requestor",
    },
    approved_label="Admin Teams (Finance) & Requestor",
    processing_roles=("Finance Clerk",),
    hod_status="Pending HOD Approval",
    processing={
        "process": ProcessingTransition(
            name="process",
            from_statuses=frozenset({"Approved"}),
            to_status=ClaimStatus.PROCESSED.value,
            step_status=StepStatus.PROCESSED.value,
            actor_role="Finance Clerk",
        ),
    },
)

VISA_WORKFLOW = WorkflowDefinition(
    request_type=RequestType.VISA,
    statuses=VisaStatus,
    id_prefix="VIS",
    initial_status=VisaStatus.PENDING_DEPARTMENT_FOCAL.value,
    approval_sequence={
        "Pending Department Focal": "Pending Line Manager/HOD",
        "Pending Line Manager/HOD": "Pending Visa Clerk",
        "Pending Visa Clerk": "Processing with Embassy",
    },
    cancellable=frozenset({"Draft", "Pending Department Focal", "Pending Line Manager/HOD", "Pending Visa Clerk"}),
    terminal_or_processing=frozenset({"Approved", "Rejected", "Cancelled", "Processing with Embassy"}),
    next_approver_roles={
        "Pending Department Focal": "Department Focal",
        "Pending Line Manager/HOD": "Line Manager/HOD",
        "Pending Visa Clerk": "Visa Clerk",
        "Processing with Embassy": "Visa Clerk & Requestor",
    },
    approved_label="Admin Teams (Visa) & Requestor",
    processing_roles=("Visa Clerk",),
    processing={
        "mark_processing": ProcessingTransition(
            name="mark_processing",
            from_statuses=frozenset({"Pending Visa Clerk"}),
            to_status=VisaStatus.PROCESSING_WITH_EMBASSY.value,
            step_status=StepStatus.PROCESSING.value,
            actor_role="Visa Clerk",
        ),
        "upload_visa": ProcessingTransition(
            name="upload_visa",
            from_statuses=frozenset({"Processing with Embassy", "Approved"}),
            to_status=VisaStatus.APPROVED.value,
            step_status=StepStatus.VISA_UPLOADED.value,
            actor_role="Visa Clerk",
            required_fields=("visa_copy_filename",),
        ),
    },
)


def _admin_processing(team_role: str) -> Dict[str, ProcessingTransition]:
    return {
        "process": ProcessingTransition(
            name="process",
            from_statuses=frozenset({"Approved"}),
            to_status="Processing",
            step_status=StepStatus.PROCESSING.value,
            actor_role=team_role,
        ),
        "complete": ProcessingTransition(
            name="complete",
            from_statuses=frozenset({"Processing"}),
            to_status="Completed",
            step_status=StepStatus.COMPLETED.value,
            actor_role=team_role,
        ),
    }


ACCOMMODATION_WORKFLOW = WorkflowDefinition(
    request_type=RequestType.ACCOMMODATION,
    statuses=AccommodationStatus,
    id_prefix="ACCOM",
    initial_status=AccommodationStatus.PENDING_DEPARTMENT_FOCAL.value,
    approval_sequence={
        "Pending Department Focal": "Pending Line Manager",
        "Pending Line Manager": "Pending HOD",
        "Pending HOD": None,
    },
    cancellable=frozenset({"Draft", "Pending Department Focal", "Pending Line Manager", "Pending HOD"}),
    terminal_or_processing=frozenset({"Approved", "Rejected", "Cancelled", "Processing", "Completed"}),
    next_approver_roles={**_STANDARD_ROLES, "Processing": "Accommodation Admin", "Completed": "Requestor"},
    approved_label="Admin Teams (Accommodation) & Requestor",
    processing_roles=("Accommodation Admin",),
    hod_status="Pending HOD",
    processing=_admin_processing("Accommodation Admin"),
)

TRANSPORT_WORKFLOW = WorkflowDefinition(
    request_type=RequestType.TRANSPORT,
    statuses=TransportStatus,
    id_prefix="TRN",
    initial_status=TransportStatus.PENDING_DEPARTMENT_FOCAL.value,
    approval_sequence={
        "Pending Department Focal": "Pending Line Manager",
        "Pending Line Manager": "Pending HOD",
        "Pending HOD": None,
    },
    cancellable=frozenset({"Draft", "Pending Department Focal", "Pending Line Manager", "Pending HOD"}),
    terminal_or_processing=frozenset({"Approved", "Rejected", "Cancelled", "Processing", "Completed"}),
    next_approver_roles={**_STANDARD_ROLES, "Processing": "Transport Admin", "Completed": "Requestor"},
    approved_label="Admin Teams (Transport) & Requestor",
    processing_roles=("Transport Admin",),
    hod_status="Pending HOD",
    processing=_admin_processing("Transport Admin"),
)

WORKFLOWS: Dict[RequestType, WorkflowDefinition] = {
    definition.request_type: definition
    for definition in (TSR_WORKFLOW, CLAIM_WORKFLOW, VISA_WORKFLOW, ACCOMMODATION_WORKFLOW, TRANSPORT_WORKFLOW)
}


def get_workflow(request_type: Union[RequestType, str]) -> WorkflowDefinition:
    return WORKFLOWS[RequestType(request_type)]
