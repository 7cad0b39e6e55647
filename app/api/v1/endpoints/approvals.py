"""Cross-domain approval queue."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime, timezone
import logging

from app.core.deps import CurrentUser, get_current_user
from app.core.permissions import get_approval_queue_filters, should_show_request
from app.crud.request import REQUEST_CRUD, request_to_dict
from app.db.database import get_db
from app.schemas.workflow import ApprovalQueueItem
from app.services.workflow.statuses import get_workflow

router = APIRouter()
logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _submitted_key(item: ApprovalQueueItem) -> datetime:
    if item.submitted_at is None:
        return _OLDEST
    if item.submitted_at.tzinfo is None:
        return item.submitted_at.replace(tzinfo=timezone.utc)
    return item.submitted_at


@router.get("/", response_model=List[ApprovalQueueItem])
async def get_approval_queue(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Requests of every domain waiting on the current user's role, oldest first."""
    filters = get_approval_queue_filters(current_user.role)
    statuses = filters["role_specific_statuses"]
    if not statuses:
        return []

    items: List[ApprovalQueueItem] = []
    for request_type, crud_request in REQUEST_CRUD.items():
        definition = get_workflow(request_type)
        domain_statuses = [s for s in statuses if definition.is_valid(s)]
        if not domain_statuses:
            continue

        for row in crud_request.get_by_statuses(db, statuses=domain_statuses):
            data = {**request_to_dict(row), "request_type": request_type.value}
            if should_show_request(current_user.role, data, current_user.user_id):
                items.append(ApprovalQueueItem(**data))

    items.sort(key=_submitted_key)
    logger.info(f"Approval queue for {filters['role_context']}: {len(items)} requests")
    return items
