from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from app.schemas.travel_request import RequestorInfo
from app.schemas.workflow import ApprovalStepResponse

TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class TransportLegBase(BaseModel):
    leg_date: date
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    departure_time: str = Field("09:00", pattern=TIME_PATTERN)
    transport_type: str = "Local"
    number_of_passengers: int = Field(1, ge=1)
    purpose: Optional[str] = None
    remarks: Optional[str] = None


class TransportLegResponse(TransportLegBase):
    id: int

    class Config:
        from_attributes = True


class TransportRequestCreate(RequestorInfo):
    purpose: str = Field(..., min_length=1)
    trf_id: Optional[str] = None
    total_estimated_cost: Optional[Decimal] = Field(None, ge=0)
    additional_comments: Optional[str] = None
    legs: List[TransportLegBase] = Field(..., min_length=1)
    submit: bool = True


class TransportRequestResponse(BaseModel):
    id: str
    status: str
    requestor_name: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    purpose: Optional[str] = None
    trf_id: Optional[str] = None
    additional_comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    legs: List[TransportLegResponse] = []
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True
