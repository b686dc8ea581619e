from __future__ import annotations

import builtins
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.models.appointment import Appointment, AppointmentStatus
from marketplace.models.complaint import Complaint
from marketplace.models.provider import ServiceProvider
from marketplace.models.quality import QualityPeriod, QualityScore
from marketplace.models.review import Review
from marketplace.observability import SQI_COMPUTATION_TIME, SQI_COMPUTATIONS
from marketplace.services.common import as_utc, coerce_uuid, get_or_404, to_float
from marketplace.services.quality.classification import classify_sqi
from marketplace.services.quality.periods import ScoreWindow, parse_period, window_for

logger = logging.getLogger(__name__)

# Blend weights; they sum to 1.0 so the composite stays on the 0-100 scale.
REVIEW_RATING_WEIGHT = 0.4
COMPLETION_RATE_WEIGHT = 0.3
RESPONSE_SPEED_WEIGHT = 0.2
COMPLAINT_RATE_WEIGHT = 0.1

MAX_REVIEW_RATING = 5.0
# A response slower than this scores zero on the response component.
RESPONSE_SPEED_HORIZON_HOURS = 24.0
# Used when no appointment in the window got a provider decision: the midpoint
# of the horizon, which scores 50 on the response component.
DEFAULT_RESPONSE_SPEED_HOURS = 12.0


@dataclass
class QualityInputs:
    total_appointments: int
    completed_appointments: int
    responded_appointments: int
    avg_response_hours: float | None
    total_reviews: int
    avg_review_rating: float | None
    total_complaints: int


@dataclass(frozen=True)
class QualityMetrics:
    review_rating: float
    appointment_completion_rate: float
    response_speed: float
    complaint_rate: float


def _safe_div(num: float, den: float) -> float:
    if den <= 0:
        return 0.0
    return num / den


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def derive_metrics(inputs: QualityInputs) -> QualityMetrics:
    total = float(inputs.total_appointments)
    return QualityMetrics(
        review_rating=round(_clamp(inputs.avg_review_rating or 0.0, 0.0, MAX_REVIEW_RATING), 2),
        appointment_completion_rate=round(_clamp(_safe_div(inputs.completed_appointments * 100.0, total)), 2),
        response_speed=round(
            max(inputs.avg_response_hours, 0.0)
            if inputs.avg_response_hours is not None
            else DEFAULT_RESPONSE_SPEED_HOURS,
            2,
        ),
        complaint_rate=round(_clamp(_safe_div(inputs.total_complaints * 100.0, total)), 2),
    )


def compute_sqi(metrics: QualityMetrics) -> tuple[float, dict[str, float]]:
    """Blend the four component metrics into a 0-100 Service Quality Index.

    Every component is first normalized onto 0-100 where higher is better:
    rating is scaled from the five-star range, response speed falls linearly
    to zero at the horizon, complaint rate is inverted. Returns the composite
    together with each weighted contribution.
    """
    rating_component = _clamp(metrics.review_rating / MAX_REVIEW_RATING * 100.0)
    completion_component = _clamp(metrics.appointment_completion_rate)
    response_component = _clamp(100.0 - (metrics.response_speed / RESPONSE_SPEED_HORIZON_HOURS) * 100.0)
    complaint_component = _clamp(100.0 - metrics.complaint_rate)

    weighted = {
        "review_rating": rating_component * REVIEW_RATING_WEIGHT,
        "appointment_completion_rate": completion_component * COMPLETION_RATE_WEIGHT,
        "response_speed": response_component * RESPONSE_SPEED_WEIGHT,
        "complaint_rate": complaint_component * COMPLAINT_RATE_WEIGHT,
    }
    sqi = round(_clamp(sum(weighted.values())), 2)
    return sqi, {key: round(value, 2) for key, value in weighted.items()}


def _build_inputs(db: Session, provider_id: str, window: ScoreWindow) -> QualityInputs:
    pid = coerce_uuid(provider_id)
    appointments = (
        db.query(Appointment)
        .filter(
            Appointment.provider_id == pid,
            Appointment.created_at >= window.start_at,
            Appointment.created_at < window.end_at,
        )
        .all()
    )
    completed = sum(1 for appointment in appointments if appointment.status == AppointmentStatus.completed)

    response_hours: list[float] = []
    for appointment in appointments:
        responded_at = as_utc(appointment.responded_at)
        created_at = as_utc(appointment.created_at)
        if responded_at and created_at:
            response_hours.append(max((responded_at - created_at).total_seconds() / 3600, 0.0))

    review_count, review_avg = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(
            Review.provider_id == pid,
            Review.is_visible.is_(True),
            Review.created_at >= window.start_at,
            Review.created_at < window.end_at,
        )
        .one()
    )
    complaint_count = (
        db.query(func.count(Complaint.id))
        .filter(
            Complaint.provider_id == pid,
            Complaint.created_at >= window.start_at,
            Complaint.created_at < window.end_at,
        )
        .scalar()
    )

    return QualityInputs(
        total_appointments=len(appointments),
        completed_appointments=completed,
        responded_appointments=len(response_hours),
        avg_response_hours=(sum(response_hours) / len(response_hours)) if response_hours else None,
        total_reviews=int(review_count or 0),
        avg_review_rating=to_float(review_avg) if review_avg is not None else None,
        total_complaints=int(complaint_count or 0),
    )


def serialize_score(score: QualityScore) -> dict[str, Any]:
    sqi = to_float(score.sqi)
    return {
        "id": str(score.id),
        "provider_id": str(score.provider_id),
        "user_id": str(score.user_id) if score.user_id else None,
        "sqi": sqi,
        "classification": classify_sqi(sqi).value,
        "review_rating": to_float(score.review_rating),
        "appointment_completion_rate": to_float(score.appointment_completion_rate),
        "response_speed": to_float(score.response_speed),
        "complaint_rate": to_float(score.complaint_rate),
        "total_appointments": score.total_appointments or 0,
        "completed_appointments": score.completed_appointments or 0,
        "responded_appointments": score.responded_appointments or 0,
        "total_reviews": score.total_reviews or 0,
        "total_complaints": score.total_complaints or 0,
        "period": score.period.value,
        "period_start": as_utc(score.period_start),
        "period_end": as_utc(score.period_end),
        "is_active": bool(score.is_active),
        "created_at": as_utc(score.created_at),
    }


class QualityScoringService:
    def calculate_and_save(
        self,
        db: Session,
        provider_id: str,
        period: str | QualityPeriod | None = None,
        reference: datetime | None = None,
    ) -> QualityScore:
        """Compute the provider's SQI for the current window and make it the active score.

        Any active score already stored for the same provider and period is
        deactivated in the same commit, so exactly one row stays active.
        """
        period = parse_period(period)
        provider = get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        window = window_for(period, reference)

        started = time.perf_counter()
        inputs = _build_inputs(db, str(provider.id), window)
        metrics = derive_metrics(inputs)
        sqi, _components = compute_sqi(metrics)

        superseded = (
            db.query(QualityScore)
            .filter(
                QualityScore.provider_id == provider.id,
                QualityScore.period == period,
                QualityScore.is_active.is_(True),
            )
            .update({QualityScore.is_active: False}, synchronize_session="fetch")
        )

        score = QualityScore(
            provider_id=provider.id,
            user_id=provider.user_id,
            sqi=sqi,
            review_rating=metrics.review_rating,
            appointment_completion_rate=metrics.appointment_completion_rate,
            response_speed=metrics.response_speed,
            complaint_rate=metrics.complaint_rate,
            total_appointments=inputs.total_appointments,
            completed_appointments=inputs.completed_appointments,
            responded_appointments=inputs.responded_appointments,
            total_reviews=inputs.total_reviews,
            total_complaints=inputs.total_complaints,
            period=period,
            period_start=window.start_at,
            period_end=window.end_at,
            is_active=True,
        )
        db.add(score)
        db.commit()
        db.refresh(score)

        classification = classify_sqi(sqi).value
        SQI_COMPUTATIONS.labels(period=period.value, classification=classification).inc()
        SQI_COMPUTATION_TIME.labels(period=period.value).observe(time.perf_counter() - started)
        logger.info(
            "SQI computed provider=%s period=%s sqi=%.2f class=%s superseded=%d",
            provider.id,
            period.value,
            sqi,
            classification,
            superseded,
        )
        return score

    def get_current(
        self,
        db: Session,
        provider_id: str,
        period: str | QualityPeriod | None = None,
        reference: datetime | None = None,
    ) -> QualityScore | None:
        """Active score whose window lies inside the current period window."""
        period = parse_period(period)
        window = window_for(period, reference)
        return (
            db.query(QualityScore)
            .filter(
                QualityScore.provider_id == coerce_uuid(provider_id),
                QualityScore.period == period,
                QualityScore.is_active.is_(True),
                QualityScore.period_start >= window.start_at,
                QualityScore.period_end <= window.end_at,
            )
            .order_by(QualityScore.created_at.desc())
            .first()
        )

    @staticmethod
    def _filtered(
        db: Session,
        provider_id: str | None,
        period: QualityPeriod,
        min_sqi: float | None,
        max_sqi: float | None,
    ):
        query = db.query(QualityScore).filter(QualityScore.period == period, QualityScore.is_active.is_(True))
        if provider_id:
            query = query.filter(QualityScore.provider_id == coerce_uuid(provider_id))
        if min_sqi is not None:
            query = query.filter(QualityScore.sqi >= min_sqi)
        if max_sqi is not None:
            query = query.filter(QualityScore.sqi <= max_sqi)
        return query

    def list(
        self,
        db: Session,
        provider_id: str | None = None,
        period: str | QualityPeriod | None = None,
        min_sqi: float | None = None,
        max_sqi: float | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[QualityScore]:
        query = self._filtered(db, provider_id, parse_period(period), min_sqi, max_sqi)
        return query.order_by(QualityScore.sqi.desc()).limit(limit).offset(offset).all()

    def count(
        self,
        db: Session,
        provider_id: str | None = None,
        period: str | QualityPeriod | None = None,
        min_sqi: float | None = None,
        max_sqi: float | None = None,
    ) -> int:
        return self._filtered(db, provider_id, parse_period(period), min_sqi, max_sqi).count()

    def history(
        self,
        db: Session,
        provider_id: str,
        period: str | QualityPeriod | None = None,
        limit: int = 24,
    ) -> builtins.list[QualityScore]:
        get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        return (
            db.query(QualityScore)
            .filter(
                QualityScore.provider_id == coerce_uuid(provider_id),
                QualityScore.period == parse_period(period),
            )
            .order_by(QualityScore.created_at.desc())
            .limit(max(1, min(limit, 120)))
            .all()
        )


quality_scoring = QualityScoringService()
