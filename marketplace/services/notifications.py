from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from marketplace.errors import NotFoundError
from marketplace.models.notification import Notification, NotificationType
from marketplace.schemas.notification import NotificationCreate
from marketplace.services.common import apply_pagination, coerce_uuid

logger = logging.getLogger(__name__)


class Notifications:
    @staticmethod
    def notify(
        db: Session,
        user_id,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Queue a notification on the session; the caller commits."""
        notification = Notification(
            user_id=coerce_uuid(user_id),
            type=notification_type,
            title=title,
            message=message,
            data=data,
        )
        db.add(notification)
        return notification

    @staticmethod
    def create(db: Session, payload: NotificationCreate) -> Notification:
        notification = Notification(**payload.model_dump())
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def _owned(db: Session, user_id: str, unread_only: bool = False, include_archived: bool = False):
        query = db.query(Notification).filter(Notification.user_id == coerce_uuid(user_id))
        if not include_archived:
            query = query.filter(Notification.is_archived.is_(False))
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query

    @staticmethod
    def list(
        db: Session,
        user_id: str,
        unread_only: bool = False,
        include_archived: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Notification]:
        query = Notifications._owned(db, user_id, unread_only, include_archived).order_by(
            Notification.created_at.desc()
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count(db: Session, user_id: str, unread_only: bool = False, include_archived: bool = False) -> int:
        return Notifications._owned(db, user_id, unread_only, include_archived).count()

    @staticmethod
    def unread_count(db: Session, user_id: str) -> int:
        return Notifications._owned(db, user_id, unread_only=True).count()

    @staticmethod
    def _get_owned(db: Session, user_id: str, notification_id: str) -> Notification:
        notification = (
            db.query(Notification)
            .filter(
                Notification.id == coerce_uuid(notification_id),
                Notification.user_id == coerce_uuid(user_id),
            )
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found")
        return notification

    @staticmethod
    def mark_read(db: Session, user_id: str, notification_id: str) -> Notification:
        notification = Notifications._get_owned(db, user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            db.commit()
            db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        updated = (
            Notifications._owned(db, user_id, unread_only=True)
            .update(
                {Notification.is_read: True, Notification.read_at: datetime.now(UTC)},
                synchronize_session="fetch",
            )
        )
        db.commit()
        logger.info("Marked %d notifications read for user=%s", updated, user_id)
        return updated

    @staticmethod
    def archive(db: Session, user_id: str, notification_id: str) -> Notification:
        notification = Notifications._get_owned(db, user_id, notification_id)
        notification.is_archived = True
        db.commit()
        db.refresh(notification)
        return notification


notifications = Notifications()
