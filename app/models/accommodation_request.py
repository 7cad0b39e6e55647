from sqlalchemy import Column, Integer, String, Date, Text, ForeignKey, Numeric
from app.db.database import Base
from app.models.base import WorkflowRequestMixin


class AccommodationRequest(WorkflowRequestMixin, Base):
    """Staff accommodation request, standalone or auto-generated from a TSR stay."""
    __tablename__ = "accommodation_requests"

    # Parent TSR and the stay block this request was derived from
    trf_id = Column(String(64), ForeignKey("travel_requests.id"), nullable=True, index=True)
    source_detail_id = Column(Integer, nullable=True, index=True)

    accommodation_type = Column(String(100), nullable=True)
    location = Column(String(100), nullable=False, default="Kiyanly")
    place_of_stay = Column(String(255), nullable=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    estimated_cost_per_night = Column(Numeric(12, 2), nullable=True)
    remarks = Column(Text, nullable=True)
