from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    appointment_id: UUID
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=10, max_length=1000)
    tags: list[str] | None = None


class ReviewUpdate(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = Field(default=None, min_length=10, max_length=1000)
    tags: list[str] | None = None


class ReviewReportCreate(BaseModel):
    reason: str = Field(min_length=3, max_length=500)


class ReviewResponseCreate(BaseModel):
    response_text: str = Field(min_length=1, max_length=1000)


class ReviewModerationRequest(BaseModel):
    is_visible: bool
    reason: str | None = Field(default=None, min_length=5, max_length=500)


class ReviewRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    provider_id: UUID
    appointment_id: UUID
    rating: int
    comment: str
    tags: list[str] | None = None
    is_verified: bool
    is_visible: bool
    report_count: int
    is_reported: bool
    response_text: str | None = None
    responded_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
