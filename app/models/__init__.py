from .base import BaseModel, WorkflowRequestMixin
from .travel_request import (
    TravelRequest, TravelType, ItinerarySegment, TrfAccommodationDetail,
    TrfCompanyTransportDetail, TrfFlightBooking,
)
from .claim import ExpenseClaim, ClaimItem
from .visa_application import VisaApplication
from .accommodation_request import AccommodationRequest
from .transport_request import TransportRequest, TransportLeg
from .approval_step import RequestApprovalStep
from .notification import Notification, NotificationType, NotificationPriority

__all__ = [
    "BaseModel", "WorkflowRequestMixin",
    "TravelRequest", "TravelType", "ItinerarySegment", "TrfAccommodationDetail",
    "TrfCompanyTransportDetail", "TrfFlightBooking",
    "ExpenseClaim", "ClaimItem", "VisaApplication", "AccommodationRequest",
    "TransportRequest", "TransportLeg", "RequestApprovalStep",
    "Notification", "NotificationType", "NotificationPriority",
]
