from typing import Any, Dict, List, Mapping, Optional

from app.services.workflow.statuses import RequestType


class Roles:
    ACCOMMODATION_ADMIN = "Accommodation Admin"
    TICKETING_ADMIN = "Ticketing Admin"
    TRANSPORT_ADMIN = "Transport Admin"
    VISA_CLERK = "Visa Clerk"
    FINANCE_CLERK = "Finance Clerk"
    DEPARTMENT_FOCAL = "Department Focal"
    LINE_MANAGER = "Line Manager"
    HOD = "HOD"
    REQUESTOR = "Requestor"
    ADMIN = "Admin"
    SYSTEM_ADMINISTRATOR = "System Administrator"


APPROVAL_ROLES = [
    Roles.DEPARTMENT_FOCAL,
    Roles.LINE_MANAGER,
    Roles.HOD,
    Roles.FINANCE_CLERK,
    Roles.VISA_CLERK,
    Roles.ADMIN,
    Roles.SYSTEM_ADMINISTRATOR,
]

# Roles that see every request, not just their own
ADMIN_ROLES = [
    Roles.ADMIN,
    Roles.SYSTEM_ADMINISTRATOR,
]

# Specialist admins see every request of their domain
SPECIALIST_DOMAINS: Dict[str, List[str]] = {
    Roles.FINANCE_CLERK: [RequestType.CLAIM.value],
    Roles.VISA_CLERK: [RequestType.VISA.value],
    Roles.TICKETING_ADMIN: [RequestType.TSR.value],
    Roles.ACCOMMODATION_ADMIN: [RequestType.ACCOMMODATION.value],
    Roles.TRANSPORT_ADMIN: [RequestType.TRANSPORT.value],
}

ALL_PENDING_STATUSES = [
    "Pending Department Focal",
    "Pending Verification",
    "Pending Line Manager",
    "Pending Line Manager/HOD",
    "Pending HOD",
    "Pending HOD Approval",
    "Pending Finance Approval",
    "Pending Visa Clerk",
]

QUEUE_STATUSES: Dict[str, List[str]] = {
    Roles.DEPARTMENT_FOCAL: ["Pending Department Focal", "Pending Verification"],
    Roles.LINE_MANAGER: ["Pending Line Manager", "Pending Line Manager/HOD"],
    Roles.HOD: ["Pending HOD", "Pending HOD Approval", "Pending Line Manager/HOD"],
    Roles.FINANCE_CLERK: ["Pending Finance Approval", "Approved"],
    Roles.VISA_CLERK: ["Pending Visa Clerk", "Processing with Embassy"],
    # Specialist admins: approved requests of their domain awaiting processing
    Roles.TICKETING_ADMIN: ["Approved"],
    Roles.ACCOMMODATION_ADMIN: ["Approved", "Processing"],
    Roles.TRANSPORT_ADMIN: ["Approved", "Processing"],
    Roles.ADMIN: ALL_PENDING_STATUSES,
    Roles.SYSTEM_ADMINISTRATOR: ALL_PENDING_STATUSES,
}


def get_approval_queue_filters(role: Optional[str]) -> Dict[str, Any]:
    """Statuses that belong in ``role``'s approval queue and whether it may approve them"""
    if not role:
        return {"role_specific_statuses": [], "can_approve": False, "role_context": ""}

    return {
        "role_specific_statuses": list(QUEUE_STATUSES.get(role, [])),
        "can_approve": role in APPROVAL_ROLES,
        "role_context": role,
    }


def is_own_request(request: Mapping[str, Any], user_id: str) -> bool:
    return user_id in (request.get("created_by"), request.get("staff_id"), request.get("email"))


def should_show_request(role: Optional[str], request: Mapping[str, Any], user_id: Optional[str]) -> bool:
    """Visibility rule for one request dict carrying ``request_type`` and ``status``"""
    if not role or not user_id:
        return False

    if role in ADMIN_ROLES:
        return True

    domains = SPECIALIST_DOMAINS.get(role)
    if domains:
        return request.get("request_type") in domains or is_own_request(request, user_id)

    if role in APPROVAL_ROLES:
        statuses = get_approval_queue_filters(role)["role_specific_statuses"]
        return request.get("status") in statuses or is_own_request(request, user_id)

    return is_own_request(request, user_id)
