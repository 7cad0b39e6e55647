from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from app.db.database import Base


class BaseModel(Base):
    """Integer-keyed base for detail and bookkeeping tables."""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class WorkflowRequestMixin:
    """Columns shared by every request that moves through an approval workflow.

    Ids are domain-prefixed strings (TSR-..., CLM-..., VIS-..., ACCOM-..., TRN-...)
    so they are unique across request tables.
    """

    id = Column(String(64), primary_key=True, index=True)
    status = Column(String(50), nullable=False, index=True)
    requestor_name = Column(String(255), nullable=False)
    staff_id = Column(String(100), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    purpose = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
