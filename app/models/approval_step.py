"""Request approval step model."""
from sqlalchemy import Column, String, DateTime, Text, Index
from sqlalchemy.sql import func
from app.models.base import BaseModel


class RequestApprovalStep(BaseModel):
    """Append-only audit row written with every workflow action on any request type."""
    __tablename__ = "request_approval_steps"
    __table_args__ = (
        Index("ix_request_approval_steps_request", "request_type", "request_id"),
    )

    request_type = Column(String(20), nullable=False)  # TSR, CLAIM, VISA, ACCOMMODATION, TRANSPORT
    request_id = Column(String(64), nullable=False)
    role = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False)  # Submitted, Approved, Rejected, Cancelled, Edited, Flights Booked, ...
    step_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    comments = Column(Text, nullable=True)
