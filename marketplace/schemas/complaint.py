from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.complaint import ComplaintCategory, ComplaintSeverity, ComplaintStatus


class ComplaintCreate(BaseModel):
    appointment_id: UUID
    category: ComplaintCategory
    severity: ComplaintSeverity = ComplaintSeverity.medium
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=2000)


class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatus
    resolution_text: str | None = Field(default=None, max_length=2000)


class ComplaintRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    provider_id: UUID
    appointment_id: UUID
    category: ComplaintCategory
    severity: ComplaintSeverity
    title: str
    description: str
    status: ComplaintStatus
    resolution_text: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
