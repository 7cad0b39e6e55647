"""Travel service request (TSR) models and their detail payload tables."""
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Date, Numeric
from sqlalchemy.orm import relationship

from app.db.database import Base
from app.models.base import BaseModel, WorkflowRequestMixin


class TravelType(str, PyEnum):
    """Travel type options."""
    DOMESTIC = "Domestic"
    OVERSEAS = "Overseas"
    HOME_LEAVE_PASSAGE = "Home Leave Passage"
    EXTERNAL_PARTIES = "External Parties"


class TravelRequest(WorkflowRequestMixin, Base):
    """Travel service request model."""
    __tablename__ = "travel_requests"

    travel_type = Column(String(50), nullable=False, default=TravelType.DOMESTIC.value)
    cost_center = Column(String(100), nullable=True)
    estimated_cost = Column(Numeric(12, 2), nullable=True)
    additional_comments = Column(Text, nullable=True)

    # Relationships
    itinerary = relationship("ItinerarySegment", back_populates="travel_request", cascade="all, delete-orphan", order_by="ItinerarySegment.segment_date")
    accommodation_details = relationship("TrfAccommodationDetail", back_populates="travel_request", cascade="all, delete-orphan", order_by="TrfAccommodationDetail.id")
    company_transport_details = relationship("TrfCompanyTransportDetail", back_populates="travel_request", cascade="all, delete-orphan", order_by="TrfCompanyTransportDetail.transport_date")
    flight_bookings = relationship("TrfFlightBooking", back_populates="travel_request", cascade="all, delete-orphan")


class ItinerarySegment(BaseModel):
    """Flight/travel leg of a TSR."""
    __tablename__ = "trf_itinerary_segments"

    trf_id = Column(String(64), ForeignKey("travel_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    segment_date = Column(Date, nullable=True)
    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    etd = Column(String(10), nullable=True)
    eta = Column(String(10), nullable=True)
    flight_number = Column(String(50), nullable=True)
    flight_class = Column(String(50), nullable=True)
    remarks = Column(Text, nullable=True)

    travel_request = relationship("TravelRequest", back_populates="itinerary")


class TrfAccommodationDetail(BaseModel):
    """Stay block on a TSR; each one implies an accommodation request."""
    __tablename__ = "trf_accommodation_details"

    trf_id = Column(String(64), ForeignKey("travel_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    accommodation_type = Column(String(100), nullable=True)
    check_in_date = Column(Date, nullable=True)
    check_out_date = Column(Date, nullable=True)
    location = Column(String(100), nullable=True)
    place_of_stay = Column(String(255), nullable=True)
    estimated_cost_per_night = Column(Numeric(12, 2), nullable=True)
    remarks = Column(Text, nullable=True)

    travel_request = relationship("TravelRequest", back_populates="accommodation_details")


class TrfCompanyTransportDetail(BaseModel):
    """Company transport leg on a TSR; together they imply one transport request."""
    __tablename__ = "trf_company_transport_details"

    trf_id = Column(String(64), ForeignKey("travel_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    transport_date = Column(Date, nullable=True)
    day_of_week = Column(String(20), nullable=True)
    from_location = Column(String(255), nullable=True)
    to_location = Column(String(255), nullable=True)
    bt_no_required = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    travel_request = relationship("TravelRequest", back_populates="company_transport_details")


class TrfFlightBooking(BaseModel):
    """Flight booked by the ticketing admin for an approved TSR."""
    __tablename__ = "trf_flight_bookings"

    trf_id = Column(String(64), ForeignKey("travel_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    pnr = Column(String(50), nullable=True)
    airline = Column(String(100), nullable=True)
    flight_number = Column(String(50), nullable=False)
    flight_class = Column(String(50), default="Economy")
    departure_airport = Column(String(100), nullable=False)
    arrival_airport = Column(String(100), nullable=False)
    departure_at = Column(DateTime, nullable=False)
    arrival_at = Column(DateTime, nullable=False)
    cost = Column(Numeric(12, 2), nullable=True)
    remarks = Column(Text, nullable=True)
    booked_by = Column(String(255), nullable=True)

    travel_request = relationship("TravelRequest", back_populates="flight_bookings")
