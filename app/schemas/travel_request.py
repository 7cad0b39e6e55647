"""Pydantic schemas for travel service request (TSR) API."""
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal

from app.models.travel_request import TravelType
from app.schemas.workflow import ApprovalStepResponse, AutoGenerationResult


# ===== Requestor Schemas =====

class RequestorInfo(BaseModel):
    """Identity block shared by every request form."""
    requestor_name: str = Field(..., min_length=1, max_length=255)
    staff_id: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=255)
    position: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None


# ===== Detail Schemas =====

class ItinerarySegmentIn(BaseModel):
    """Travel leg on a TSR."""
    id: Optional[int] = None
    segment_date: Optional[date] = None
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    etd: Optional[str] = None
    eta: Optional[str] = None
    flight_number: Optional[str] = None
    flight_class: Optional[str] = None
    remarks: Optional[str] = None


class AccommodationDetailIn(BaseModel):
    """Stay block on a TSR."""
    id: Optional[int] = None
    accommodation_type: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    location: Optional[str] = None
    place_of_stay: Optional[str] = None
    estimated_cost_per_night: Optional[Decimal] = Field(None, ge=0)
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_in_date and self.check_out_date and self.check_out_date < self.check_in_date:
            raise ValueError("check_out_date must not be before check_in_date")
        return self


class CompanyTransportDetailIn(BaseModel):
    """Company transport leg on a TSR."""
    id: Optional[int] = None
    transport_date: Optional[date] = None
    day_of_week: Optional[str] = None
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    bt_no_required: Optional[str] = None
    address: Optional[str] = None
    remarks: Optional[str] = None


# ===== Travel Request Schemas =====

class TravelRequestCreate(RequestorInfo):
    """Schema for creating a TSR. ``submit=False`` keeps it as a draft."""
    travel_type: TravelType = TravelType.DOMESTIC
    purpose: str = Field(..., min_length=1)
    cost_center: Optional[str] = None
    estimated_cost: Optional[Decimal] = Field(None, ge=0)
    additional_comments: Optional[str] = None
    itinerary: List[ItinerarySegmentIn] = []
    accommodation_details: List[AccommodationDetailIn] = []
    company_transport_details: List[CompanyTransportDetailIn] = []
    submit: bool = True


class TravelRequestUpdate(TravelRequestCreate):
    """Schema for editing and resubmitting a TSR. Replaces the whole detail payload."""
    pass


class ItinerarySegmentResponse(ItinerarySegmentIn):
    id: int

    class Config:
        from_attributes = True


class AccommodationDetailResponse(AccommodationDetailIn):
    id: int

    class Config:
        from_attributes = True


class CompanyTransportDetailResponse(CompanyTransportDetailIn):
    id: int

    class Config:
        from_attributes = True


class FlightBookingResponse(BaseModel):
    id: int
    pnr: Optional[str] = None
    airline: Optional[str] = None
    flight_number: str
    flight_class: Optional[str] = None
    departure_airport: str
    arrival_airport: str
    departure_at: datetime
    arrival_at: datetime
    cost: Optional[Decimal] = None
    booked_by: Optional[str] = None

    class Config:
        from_attributes = True


class TravelRequestResponse(BaseModel):
    """Schema for TSR response with details and approval history."""
    id: str
    status: str
    requestor_name: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    travel_type: str
    purpose: Optional[str] = None
    cost_center: Optional[str] = None
    estimated_cost: Optional[Decimal] = None
    additional_comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    itinerary: List[ItinerarySegmentResponse] = []
    accommodation_details: List[AccommodationDetailResponse] = []
    company_transport_details: List[CompanyTransportDetailResponse] = []
    flight_bookings: List[FlightBookingResponse] = []
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True


class TravelRequestWriteResponse(BaseModel):
    """Create/edit outcome: the committed TSR plus the auxiliary auto-generation result."""
    message: str
    trf: TravelRequestResponse
    auto_generation: AutoGenerationResult


class ChildRequestSummary(BaseModel):
    id: str
    status: str
    requestor_name: str
    created_at: Optional[datetime] = None


class ChildRequestsResponse(BaseModel):
    transport_requests: List[ChildRequestSummary] = []
    accommodation_requests: List[ChildRequestSummary] = []


# ===== Flight Booking Schemas =====

class FlightBookingRequest(BaseModel):
    """Ticketing admin books flights for an approved TSR."""
    pnr: Optional[str] = None
    airline: Optional[str] = None
    flight_number: str = Field(..., alias="flightNumber", min_length=1)
    flight_class: str = Field("Economy", alias="flightClass")
    departure_airport: str = Field(..., alias="departureAirport", min_length=1)
    arrival_airport: str = Field(..., alias="arrivalAirport", min_length=1)
    departure_at: datetime = Field(..., alias="departureDateTime")
    arrival_at: datetime = Field(..., alias="arrivalDateTime")
    cost: Optional[Decimal] = Field(None, ge=0)
    remarks: Optional[str] = None
    comments: Optional[str] = None
    approver_role: Optional[str] = Field(None, alias="approverRole")
    approver_name: Optional[str] = Field(None, alias="approverName")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_times(self):
        if self.departure_at >= self.arrival_at:
            raise ValueError("Departure time must be before arrival time")
        return self

    def booking_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"comments", "approver_role", "approver_name"})
