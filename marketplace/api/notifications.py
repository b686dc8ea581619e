from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.schemas.common import Envelope, ListResponse, MessageResponse
from marketplace.schemas.notification import NotificationCreate, NotificationRead, UnreadCount
from marketplace.services.notifications import notifications
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ListResponse[NotificationRead])
def list_notifications(
    unread_only: bool = False,
    include_archived: bool = False,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = notifications.list(
        db,
        auth["user_id"],
        unread_only=unread_only,
        include_archived=include_archived,
        limit=limit,
        offset=offset,
    )
    total = notifications.count(db, auth["user_id"], unread_only=unread_only, include_archived=include_archived)
    return list_response(items, limit, offset, total=total)


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return {"unread_count": notifications.unread_count(db, auth["user_id"])}


@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(auth=Depends(get_current_user), db: Session = Depends(get_db)):
    updated = notifications.mark_all_read(db, auth["user_id"])
    return {"message": f"{updated} notifications marked as read"}


@router.patch("/{notification_id}/read", response_model=Envelope[NotificationRead])
def mark_read(notification_id: str, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(notifications.mark_read(db, auth["user_id"], notification_id))


@router.patch("/{notification_id}/archive", response_model=Envelope[NotificationRead])
def archive(notification_id: str, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(notifications.archive(db, auth["user_id"], notification_id))


@router.post(
    "",
    response_model=Envelope[NotificationRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role("admin"))],
)
def create_notification(payload: NotificationCreate, db: Session = Depends(get_db)):
    return success_response(notifications.create(db, payload))
