from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date, datetime

from app.schemas.travel_request import RequestorInfo
from app.schemas.workflow import ApprovalStepResponse


class VisaApplicationCreate(RequestorInfo):
    purpose: str = Field(..., min_length=1)
    trf_id: Optional[str] = None
    nationality: Optional[str] = None
    passport_number: Optional[str] = None
    destination: str = Field(..., min_length=1, max_length=255)
    visa_type: Optional[str] = None
    trip_start_date: Optional[date] = None
    trip_end_date: Optional[date] = None
    submit: bool = True

    @model_validator(mode="after")
    def check_trip_dates(self):
        if self.trip_start_date and self.trip_end_date and self.trip_end_date < self.trip_start_date:
            raise ValueError("trip_end_date must not be before trip_start_date")
        return self


class VisaApplicationResponse(BaseModel):
    id: str
    status: str
    requestor_name: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    email: Optional[str] = None
    purpose: Optional[str] = None
    trf_id: Optional[str] = None
    destination: str
    visa_type: Optional[str] = None
    trip_start_date: Optional[date] = None
    trip_end_date: Optional[date] = None
    visa_copy_filename: Optional[str] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True
