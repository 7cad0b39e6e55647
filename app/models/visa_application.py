from sqlalchemy import Column, String, Date, Text, ForeignKey
from app.db.database import Base
from app.models.base import WorkflowRequestMixin


class VisaApplication(WorkflowRequestMixin, Base):
    __tablename__ = "visa_applications"

    trf_id = Column(String(64), ForeignKey("travel_requests.id"), nullable=True, index=True)
    nationality = Column(String(100), nullable=True)
    passport_number = Column(String(50), nullable=True)
    destination = Column(String(255), nullable=False)
    visa_type = Column(String(100), nullable=True)
    trip_start_date = Column(Date, nullable=True)
    trip_end_date = Column(Date, nullable=True)
    visa_copy_filename = Column(String(500), nullable=True)
    rejection_reason = Column(Text, nullable=True)
