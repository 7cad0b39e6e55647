from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from app.schemas.travel_request import RequestorInfo
from app.schemas.workflow import ApprovalStepResponse


class AccommodationRequestCreate(RequestorInfo):
    purpose: Optional[str] = None
    trf_id: Optional[str] = None
    accommodation_type: Optional[str] = None
    location: str = Field("Kiyanly", min_length=1)
    place_of_stay: Optional[str] = None
    check_in_date: date
    check_out_date: date
    estimated_cost_per_night: Optional[Decimal] = Field(None, ge=0)
    remarks: Optional[str] = None
    submit: bool = True

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out_date < self.check_in_date:
            raise ValueError("check_out_date must not be before check_in_date")
        return self


class AccommodationRequestResponse(BaseModel):
    id: str
    status: str
    requestor_name: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    purpose: Optional[str] = None
    trf_id: Optional[str] = None
    source_detail_id: Optional[int] = None
    accommodation_type: Optional[str] = None
    location: str
    place_of_stay: Optional[str] = None
    check_in_date: date
    check_out_date: date
    estimated_cost_per_night: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True
