from datetime import datetime, timezone
from typing import Any, List, Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.approval_step import RequestApprovalStep


class CRUDApprovalStep(CRUDBase[RequestApprovalStep, Any, Any]):

    def log_step(
        self,
        db: Session,
        *,
        request_type: str,
        request_id: str,
        role: str,
        name: str,
        status: str,
        comments: Optional[str] = None
    ) -> RequestApprovalStep:
        """Append one audit row. Steps are never updated afterwards."""
        step = RequestApprovalStep(
            request_type=request_type,
            request_id=request_id,
            role=role,
            name=name,
            status=status,
            step_date=datetime.now(timezone.utc),
            comments=comments,
        )
        db.add(step)
        db.flush()
        return step

    def get_for_request(self, db: Session, *, request_type: str, request_id: str) -> List[RequestApprovalStep]:
        return (
            db.query(RequestApprovalStep)
            .filter(
                RequestApprovalStep.request_type == request_type,
                RequestApprovalStep.request_id == request_id,
            )
            .order_by(RequestApprovalStep.step_date, RequestApprovalStep.id)
            .all()
        )

    def delete_for_request(self, db: Session, *, request_type: str, request_id: str) -> int:
        """Only used when a request is fully edited and resubmitted."""
        return (
            db.query(RequestApprovalStep)
            .filter(
                RequestApprovalStep.request_type == request_type,
                RequestApprovalStep.request_id == request_id,
            )
            .delete(synchronize_session=False)
        )


approval_step = CRUDApprovalStep(RequestApprovalStep)
