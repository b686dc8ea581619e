import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db import Base


class QualityPeriod(enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class QualityScore(Base):
    __tablename__ = "quality_scores"
    __table_args__ = (
        Index("ix_quality_scores_provider_period_start", "provider_id", "period", "period_start"),
        Index("ix_quality_scores_provider_period_active", "provider_id", "period", "is_active"),
        Index("ix_quality_scores_sqi", "sqi"),
        Index("ix_quality_scores_window", "period_start", "period_end"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("service_providers.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"))

    sqi: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    review_rating: Mapped[float] = mapped_column(Numeric(3, 2), nullable=False, default=0)
    appointment_completion_rate: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    response_speed: Mapped[float] = mapped_column(Numeric(8, 2), nullable=False, default=0)
    complaint_rate: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0)

    total_appointments: Mapped[int] = mapped_column(Integer, default=0)
    completed_appointments: Mapped[int] = mapped_column(Integer, default=0)
    responded_appointments: Mapped[int] = mapped_column(Integer, default=0)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    total_complaints: Mapped[int] = mapped_column(Integer, default=0)

    period: Mapped[QualityPeriod] = mapped_column(Enum(QualityPeriod), default=QualityPeriod.monthly, nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    provider = relationship("ServiceProvider")
