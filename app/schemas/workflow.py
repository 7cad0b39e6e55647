"""Pydantic schemas shared by every workflow action endpoint."""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.services.workflow.statuses import Action


# ===== Action Schemas =====

class ActionRequest(BaseModel):
    """Body of ``POST /{domain}/{id}/action``.

    ``approverRole``/``approverName`` default to the authenticated user when omitted.
    """
    action: Action
    comments: Optional[str] = None
    approver_role: Optional[str] = Field(None, alias="approverRole", min_length=1)
    approver_name: Optional[str] = Field(None, alias="approverName", min_length=1)

    class Config:
        populate_by_name = True


class ProcessActionRequest(BaseModel):
    """Body of ``POST /{domain}/{id}/process`` for post-approval admin actions."""
    action: str = Field("process", min_length=1)
    comments: Optional[str] = None
    approver_role: Optional[str] = Field(None, alias="approverRole", min_length=1)
    approver_name: Optional[str] = Field(None, alias="approverName", min_length=1)
    visa_copy_filename: Optional[str] = Field(None, alias="visaCopyFilename")

    class Config:
        populate_by_name = True


class ActionResponse(BaseModel):
    """Successful action. The updated row is returned under ``trf`` for every domain."""
    message: str
    trf: Dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Any] = None
    retryable: bool = False


# ===== Approval Step Schemas =====

class ApprovalStepResponse(BaseModel):
    id: int
    request_type: str
    request_id: str
    role: str
    name: str
    status: str
    step_date: Optional[datetime] = None
    comments: Optional[str] = None

    class Config:
        from_attributes = True


# ===== Auxiliary Outcome Schemas =====

class AutoGenerationResult(BaseModel):
    """Outcome of child request reconciliation, reported separately from the parent write."""
    ok: bool = True
    transport_requests: List[str] = []
    accommodation_requests: List[str] = []
    error: Optional[str] = None


class ApprovalQueueItem(BaseModel):
    request_type: str
    id: str
    status: str
    requestor_name: str
    department: Optional[str] = None
    purpose: Optional[str] = None
    submitted_at: Optional[datetime] = None
