from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from marketplace.models.quality import QualityPeriod
from marketplace.services.quality.classification import QualityTier


class QualityCalculateRequest(BaseModel):
    period: QualityPeriod | None = None


class QualityScoreRead(BaseModel):
    id: str
    provider_id: str
    user_id: str | None = None
    sqi: float = Field(ge=0, le=100)
    classification: QualityTier
    review_rating: float
    appointment_completion_rate: float
    response_speed: float
    complaint_rate: float
    total_appointments: int
    completed_appointments: int
    responded_appointments: int
    total_reviews: int
    total_complaints: int
    period: QualityPeriod
    period_start: datetime
    period_end: datetime
    is_active: bool
    created_at: datetime


class Recommendation(BaseModel):
    category: str
    priority: str
    title: str
    description: str
    current_value: float
    target_value: float
    actions: list[str]


class RecommendationSummary(BaseModel):
    total: int
    high_priority: int
    medium_priority: int
    low_priority: int


class RecommendationsRead(BaseModel):
    current_score: QualityScoreRead
    recommendations: list[Recommendation]
    summary: RecommendationSummary
