import pytest

from app.core.permissions import (
    ALL_PENDING_STATUSES,
    get_approval_queue_filters,
    is_own_request,
    should_show_request,
)


def request(request_type="TSR", status="Pending HOD", **owner):
    values = {"request_type": request_type, "status": status, "created_by": None, "staff_id": None, "email": None}
    values.update(owner)
    return values


def test_queue_filters_per_role():
    assert get_approval_queue_filters("HOD") == {
        "role_specific_statuses": ["Pending HOD", "Pending HOD Approval", "Pending Line Manager/HOD"],
        "can_approve": True,
        "role_context": "HOD",
    }
    assert get_approval_queue_filters("Visa Clerk")["role_specific_statuses"] == [
        "Pending Visa Clerk", "Processing with Embassy",
    ]
    assert get_approval_queue_filters("Accommodation Admin")["role_specific_statuses"] == ["Approved", "Processing"]
    assert get_approval_queue_filters("Transport Admin")["role_specific_statuses"] == ["Approved", "Processing"]
    assert get_approval_queue_filters("Ticketing Admin")["can_approve"] is False
    assert get_approval_queue_filters("Admin")["role_specific_statuses"] == ALL_PENDING_STATUSES
    assert get_approval_queue_filters(None) == {"role_specific_statuses": [], "can_approve": False, "role_context": ""}


def test_filters_are_copies():
    get_approval_queue_filters("Admin")["role_specific_statuses"].append("Approved")
    assert "Approved" not in ALL_PENDING_STATUSES


def test_is_own_request_matches_any_identity_field():
    assert is_own_request(request(staff_id="S1001"), "S1001")
    assert is_own_request(request(email="alice@example.com"), "alice@example.com")
    assert is_own_request(request(created_by="alice@example.com"), "alice@example.com")
    assert not is_own_request(request(staff_id="S1002"), "S1001")


@pytest.mark.parametrize(
    "role, item, visible",
    [
        ("Admin", request(status="Draft"), True),
        ("System Administrator", request("CLAIM", "Pending Verification"), True),
        ("Finance Clerk", request("CLAIM", "Pending Verification"), True),
        ("Finance Clerk", request("TSR", "Pending HOD"), False),
        ("Ticketing Admin", request("TSR", "Approved"), True),
        ("Ticketing Admin", request("VISA", "Approved"), False),
        ("Finance Clerk", request("TSR", "Approved"), False),
        ("Finance Clerk", request("TSR", "Approved", staff_id="S2002"), True),
        ("Accommodation Admin", request("ACCOMMODATION", "Processing"), True),
        ("Transport Admin", request("ACCOMMODATION", "Approved"), False),
        ("HOD", request("TSR", "Pending HOD"), True),
        ("HOD", request("TSR", "Pending Line Manager"), False),
        ("HOD", request("TSR", "Pending Line Manager", staff_id="S2002"), True),
        ("Requestor", request("TSR", "Pending HOD"), False),
        ("Requestor", request("TSR", "Pending HOD", staff_id="S2002"), True),
        (None, request(), False),
    ],
)
def test_should_show_request(role, item, visible):
    assert should_show_request(role, item, "S2002") is visible


def test_should_show_request_needs_identity():
    assert should_show_request("Admin", request(), None) is False
