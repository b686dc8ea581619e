from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.notification import NotificationType


class NotificationCreate(BaseModel):
    user_id: UUID
    type: NotificationType = NotificationType.system
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    data: dict | None = None


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    data: dict | None = None
    is_read: bool
    read_at: datetime | None = None
    is_archived: bool
    created_at: datetime


class UnreadCount(BaseModel):
    success: bool = True
    unread_count: int
