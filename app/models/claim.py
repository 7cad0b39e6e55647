from sqlalchemy import Column, Integer, String, Date, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.db.database import Base
from app.models.base import BaseModel, WorkflowRequestMixin


class ExpenseClaim(WorkflowRequestMixin, Base):
    __tablename__ = "expense_claims"

    document_type = Column(String(50), nullable=True)  # TR01, ADVANCE, ...
    trf_id = Column(String(64), ForeignKey("travel_requests.id"), nullable=True, index=True)
    total_amount = Column(Numeric(12, 2), default=0)
    currency = Column(String(3), default="USD")  # ISO 4217 currency code
    bank_name = Column(String(255), nullable=True)
    account_number = Column(String(100), nullable=True)

    # Relationships
    items = relationship("ClaimItem", back_populates="claim", cascade="all, delete-orphan", order_by="ClaimItem.item_date")


class ClaimItem(BaseModel):
    __tablename__ = "expense_claim_items"

    claim_id = Column(String(64), ForeignKey("expense_claims.id", ondelete="CASCADE"), nullable=False, index=True)
    item_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD")

    # Relationships
    claim = relationship("ExpenseClaim", back_populates="items")
