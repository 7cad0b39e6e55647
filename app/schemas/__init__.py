# File: app/schemas/__init__.py
from .workflow import (
    ActionRequest, ProcessActionRequest, ActionResponse, ErrorResponse,
    ApprovalStepResponse, AutoGenerationResult, ApprovalQueueItem
)
from .travel_request import (
    RequestorInfo, ItinerarySegmentIn, AccommodationDetailIn, CompanyTransportDetailIn,
    TravelRequestCreate, TravelRequestUpdate, TravelRequestResponse, TravelRequestWriteResponse,
    FlightBookingRequest, FlightBookingResponse, ChildRequestSummary, ChildRequestsResponse
)
from .claim import ClaimItemBase, ClaimItemResponse, ExpenseClaimCreate, ExpenseClaimResponse
from .visa_application import VisaApplicationCreate, VisaApplicationResponse
from .accommodation_request import AccommodationRequestCreate, AccommodationRequestResponse
from .transport_request import TransportLegBase, TransportLegResponse, TransportRequestCreate, TransportRequestResponse
from .notification import NotificationResponse, NotificationStats
