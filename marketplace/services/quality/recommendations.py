from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.orm import Session

from marketplace.errors import NotFoundError
from marketplace.models.quality import QualityPeriod, QualityScore
from marketplace.services.common import to_float
from marketplace.services.quality.scoring import quality_scoring, serialize_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationRule:
    category: str
    metric: str
    compare: Callable[[float, float], bool]
    threshold: float
    priority: str
    title: str
    description: str
    target_value: float
    actions: tuple[str, ...]


RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        category="review_rating",
        metric="review_rating",
        compare=operator.lt,
        threshold=4.0,
        priority="high",
        title="Improve Review Ratings",
        description=(
            "Your average review rating is below 4.0. "
            "Focus on improving service quality and customer satisfaction."
        ),
        target_value=4.5,
        actions=(
            "Follow up with customers after service",
            "Address negative feedback promptly",
            "Implement customer feedback suggestions",
            "Train staff on customer service best practices",
        ),
    ),
    RecommendationRule(
        category="completion_rate",
        metric="appointment_completion_rate",
        compare=operator.lt,
        threshold=85.0,
        priority="high",
        title="Improve Appointment Completion Rate",
        description=(
            "Your appointment completion rate is below 85%. Focus on reducing cancellations and no-shows."
        ),
        target_value=90.0,
        actions=(
            "Send appointment reminders",
            "Implement flexible rescheduling policies",
            "Follow up on missed appointments",
            "Improve appointment booking process",
        ),
    ),
    RecommendationRule(
        category="response_speed",
        metric="response_speed",
        compare=operator.gt,
        threshold=4.0,
        priority="medium",
        title="Improve Response Speed",
        description=(
            "Your average response time is over 4 hours. Faster responses improve customer satisfaction."
        ),
        target_value=2.0,
        actions=(
            "Set up automated responses for common inquiries",
            "Enable mobile notifications for new bookings",
            "Agree on a response protocol with your team",
            "Review pending appointments several times a day",
        ),
    ),
    RecommendationRule(
        category="complaint_rate",
        metric="complaint_rate",
        compare=operator.gt,
        threshold=5.0,
        priority="high",
        title="Reduce Complaint Rate",
        description="Your complaint rate is above 5%. Focus on addressing service issues proactively.",
        target_value=2.0,
        actions=(
            "Implement quality control measures",
            "Train staff on service standards",
            "Address complaints immediately",
            "Conduct regular service audits",
        ),
    ),
    RecommendationRule(
        category="overall_quality",
        metric="sqi",
        compare=operator.lt,
        threshold=70.0,
        priority="high",
        title="Overall Quality Improvement Needed",
        description=(
            "Your Service Quality Index is below 70. Focus on comprehensive quality improvements."
        ),
        target_value=80.0,
        actions=(
            "Conduct comprehensive service review",
            "Implement quality management system",
            "Regular staff training and development",
            "Customer feedback integration",
            "Continuous improvement processes",
        ),
    ),
)


def build_recommendations(score: QualityScore) -> list[dict[str, Any]]:
    """Evaluate every rule against a stored score, in table order."""
    items: list[dict[str, Any]] = []
    for rule in RECOMMENDATION_RULES:
        current = to_float(getattr(score, rule.metric))
        if not rule.compare(current, rule.threshold):
            continue
        items.append(
            {
                "category": rule.category,
                "priority": rule.priority,
                "title": rule.title,
                "description": rule.description,
                "current_value": current,
                "target_value": rule.target_value,
                "actions": list(rule.actions),
            }
        )
    return items


def summarize(items: list[dict[str, Any]]) -> dict[str, int]:
    return {
        "total": len(items),
        "high_priority": sum(1 for item in items if item["priority"] == "high"),
        "medium_priority": sum(1 for item in items if item["priority"] == "medium"),
        "low_priority": sum(1 for item in items if item["priority"] == "low"),
    }


class QualityRecommendationsService:
    def for_provider(
        self,
        db: Session,
        provider_id: str,
        period: str | QualityPeriod | None = None,
        reference: datetime | None = None,
    ) -> dict[str, Any]:
        """Recommendations for the score of the period window containing ``reference``."""
        score = quality_scoring.get_current(db, provider_id, period, reference)
        if not score:
            raise NotFoundError("No quality score found for this provider")
        items = build_recommendations(score)
        logger.debug("Recommendations provider=%s count=%d", provider_id, len(items))
        return {
            "current_score": serialize_score(score),
            "recommendations": items,
            "summary": summarize(items),
        }


quality_recommendations = QualityRecommendationsService()
