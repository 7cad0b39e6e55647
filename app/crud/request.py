from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from sqlalchemy import inspect
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase, ModelType
from app.models.travel_request import TravelRequest
from app.models.claim import ExpenseClaim
from app.models.visa_application import VisaApplication
from app.models.accommodation_request import AccommodationRequest
from app.models.transport_request import TransportRequest
from app.services.workflow.statuses import RequestType


class CRUDWorkflowRequest(CRUDBase[ModelType, Any, Any]):

    def get_for_update(self, db: Session, id: str) -> Optional[ModelType]:
        """Load a request row locked for the rest of the transaction."""
        return db.query(self.model).filter(self.model.id == id).with_for_update().first()

    def get_by_statuses(self, db: Session, *, statuses: Iterable[str], limit: int = 200) -> List[ModelType]:
        return (
            db.query(self.model)
            .filter(self.model.status.in_(list(statuses)))
            .order_by(self.model.submitted_at)
            .limit(limit)
            .all()
        )

    def get_by_requestor(self, db: Session, *, staff_id: Optional[str], email: Optional[str], limit: int = 200) -> List[ModelType]:
        query = db.query(self.model)
        if staff_id:
            query = query.filter(self.model.staff_id == staff_id)
        elif email:
            query = query.filter(self.model.email == email)
        else:
            return []
        return query.order_by(self.model.submitted_at.desc()).limit(limit).all()

    def get_by_trf(self, db: Session, *, trf_id: str) -> List[ModelType]:
        return (
            db.query(self.model)
            .filter(self.model.trf_id == trf_id)
            .order_by(self.model.created_at, self.model.id)
            .all()
        )

    def find_recent_submission(
        self, db: Session, *, staff_id: str, purpose: Optional[str], since: datetime
    ) -> Optional[ModelType]:
        """Same requestor and purpose submitted after ``since``."""
        return (
            db.query(self.model)
            .filter(
                self.model.staff_id == staff_id,
                self.model.purpose == purpose,
                self.model.submitted_at > since,
            )
            .first()
        )


travel_request = CRUDWorkflowRequest(TravelRequest)
expense_claim = CRUDWorkflowRequest(ExpenseClaim)
visa_application = CRUDWorkflowRequest(VisaApplication)
accommodation_request = CRUDWorkflowRequest(AccommodationRequest)
transport_request = CRUDWorkflowRequest(TransportRequest)

REQUEST_CRUD: Dict[RequestType, CRUDWorkflowRequest] = {
    RequestType.TSR: travel_request,
    RequestType.CLAIM: expense_claim,
    RequestType.VISA: visa_application,
    RequestType.ACCOMMODATION: accommodation_request,
    RequestType.TRANSPORT: transport_request,
}


def get_request_crud(request_type: Union[RequestType, str]) -> CRUDWorkflowRequest:
    return REQUEST_CRUD[RequestType(request_type)]


def request_to_dict(row: Any) -> Dict[str, Any]:
    """Column values of a request row, detached from the session."""
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}
