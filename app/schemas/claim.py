from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from app.schemas.travel_request import RequestorInfo
from app.schemas.workflow import ApprovalStepResponse


class ClaimItemBase(BaseModel):
    item_date: Optional[date] = None
    description: Optional[str] = None
    category: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class ClaimItemResponse(ClaimItemBase):
    id: int

    class Config:
        from_attributes = True


class ExpenseClaimCreate(RequestorInfo):
    purpose: str = Field(..., min_length=1)
    document_type: Optional[str] = None
    trf_id: Optional[str] = None
    currency: str = Field("USD", min_length=3, max_length=3)
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    items: List[ClaimItemBase] = Field(..., min_length=1)
    submit: bool = True


class ExpenseClaimResponse(BaseModel):
    id: str
    status: str
    requestor_name: str
    staff_id: Optional[str] = None
    department: Optional[str] = None
    email: Optional[str] = None
    purpose: Optional[str] = None
    document_type: Optional[str] = None
    trf_id: Optional[str] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[ClaimItemResponse] = []
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True
