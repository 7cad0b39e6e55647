from sqlalchemy import Column, String, Integer, ForeignKey, Date, Text, Numeric
from sqlalchemy.orm import relationship
from app.db.database import Base
from app.models.base import BaseModel, WorkflowRequestMixin


class TransportRequest(WorkflowRequestMixin, Base):
    __tablename__ = "transport_requests"

    # Parent TSR when auto-generated from company transport details
    trf_id = Column(String(64), ForeignKey("travel_requests.id"), nullable=True, index=True)
    total_estimated_cost = Column(Numeric(12, 2), nullable=True)
    additional_comments = Column(Text, nullable=True)

    # Relationships
    legs = relationship("TransportLeg", back_populates="transport_request", cascade="all, delete-orphan", order_by="TransportLeg.leg_date")


class TransportLeg(BaseModel):
    __tablename__ = "transport_legs"

    transport_request_id = Column(String(64), ForeignKey("transport_requests.id", ondelete="CASCADE"), nullable=False, index=True)

    # Route
    leg_date = Column(Date, nullable=False)
    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)

    # Trip details
    departure_time = Column(String(10), default="09:00")
    transport_type = Column(String(50), default="Local")  # Local, Intercity, Airport
    number_of_passengers = Column(Integer, default=1)
    purpose = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    transport_request = relationship("TransportRequest", back_populates="legs")
