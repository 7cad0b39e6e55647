from .notification import notification
from .approval_step import approval_step
from .request import (
    travel_request,
    expense_claim,
    visa_application,
    accommodation_request,
    transport_request,
    get_request_crud,
)

__all__ = ["notification", "approval_step", "travel_request", "expense_claim", "visa_application", "accommodation_request", "transport_request", "get_request_crud"]
