from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    provider_id: UUID
    scheduled_at: datetime
    service_type: str = Field(min_length=2, max_length=160)
    notes: str | None = Field(default=None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    cancellation_reason: str | None = Field(default=None, max_length=500)


class AppointmentCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    provider_id: UUID
    scheduled_at: datetime
    service_type: str
    notes: str | None = None
    status: AppointmentStatus
    responded_at: datetime | None = None
    total_amount: Decimal
    has_review: bool
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
