from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.models.complaint import ComplaintStatus
from marketplace.schemas.common import Envelope, ListResponse
from marketplace.schemas.complaint import ComplaintCreate, ComplaintRead, ComplaintStatusUpdate
from marketplace.services.complaints import complaints
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/complaints", tags=["complaints"])


@router.post("", response_model=Envelope[ComplaintRead], status_code=status.HTTP_201_CREATED)
def file_complaint(
    payload: ComplaintCreate,
    auth=Depends(require_role("user")),
    db: Session = Depends(get_db),
):
    return success_response(complaints.create(db, auth["user_id"], payload), "Complaint filed")


@router.get("", response_model=ListResponse[ComplaintRead])
def list_complaints(
    status_filter: ComplaintStatus | None = Query(default=None, alias="status"),
    provider_id: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = complaints.list(db, auth, status=status_filter, provider_id=provider_id, limit=limit, offset=offset)
    total = complaints.count(db, auth, status=status_filter, provider_id=provider_id)
    return list_response(items, limit, offset, total=total)


@router.get("/{complaint_id}", response_model=Envelope[ComplaintRead])
def get_complaint(complaint_id: str, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(complaints.get(db, complaint_id, auth))


@router.patch(
    "/{complaint_id}/status",
    response_model=Envelope[ComplaintRead],
    dependencies=[Depends(require_role("admin"))],
)
def update_complaint_status(complaint_id: str, payload: ComplaintStatusUpdate, db: Session = Depends(get_db)):
    return success_response(complaints.update_status(db, complaint_id, payload))
