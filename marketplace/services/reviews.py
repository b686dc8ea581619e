from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import AuthorizationError, ConflictError, ValidationError
from marketplace.models.appointment import Appointment, AppointmentStatus
from marketplace.models.notification import NotificationType
from marketplace.models.provider import ServiceProvider
from marketplace.models.review import Review, ReviewReport
from marketplace.schemas.review import ReviewCreate, ReviewUpdate
from marketplace.services.auth_dependencies import is_admin
from marketplace.services.common import apply_ordering, apply_pagination, coerce_uuid, get_or_404
from marketplace.services.notifications import notifications

logger = logging.getLogger(__name__)


def recompute_provider_rating(db: Session, provider_id) -> ServiceProvider | None:
    """Refresh the provider's denormalized rating from its visible reviews."""
    provider = db.get(ServiceProvider, coerce_uuid(provider_id))
    if not provider:
        return None
    count, average = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(Review.provider_id == provider.id, Review.is_visible.is_(True))
        .one()
    )
    provider.review_count = int(count or 0)
    provider.rating = round(float(average), 2) if average is not None else 0
    return provider


class Reviews:
    @staticmethod
    def create(db: Session, user_id: str, payload: ReviewCreate) -> Review:
        appointment = get_or_404(db, Appointment, payload.appointment_id, detail="Appointment not found")
        if str(appointment.user_id) != str(user_id):
            raise AuthorizationError("Not authorized to review this appointment")
        if appointment.status != AppointmentStatus.completed:
            raise ValidationError("Can only review completed appointments")
        existing = db.query(Review.id).filter(Review.appointment_id == appointment.id).first()
        if existing:
            raise ConflictError("Review already exists for this appointment")

        review = Review(
            user_id=appointment.user_id,
            provider_id=appointment.provider_id,
            appointment_id=appointment.id,
            rating=payload.rating,
            comment=payload.comment.strip(),
            tags=payload.tags,
            is_verified=True,
        )
        db.add(review)
        appointment.has_review = True
        db.flush()
        provider = recompute_provider_rating(db, appointment.provider_id)
        if provider is not None:
            notifications.notify(
                db,
                provider.user_id,
                NotificationType.review,
                "New review received",
                f"You received a {payload.rating}-star review",
                {"review_id": str(review.id)},
            )
        db.commit()
        db.refresh(review)
        logger.info("Review created id=%s provider=%s rating=%d", review.id, review.provider_id, review.rating)
        return review

    @staticmethod
    def get(db: Session, review_id: str) -> Review:
        return get_or_404(db, Review, review_id, detail="Review not found")

    @staticmethod
    def _visible_for_provider(db: Session, provider_id: str, min_rating: int | None = None):
        query = db.query(Review).filter(
            Review.provider_id == coerce_uuid(provider_id),
            Review.is_visible.is_(True),
        )
        if min_rating is not None:
            query = query.filter(Review.rating >= min_rating)
        return query

    @staticmethod
    def list_for_provider(
        db: Session,
        provider_id: str,
        min_rating: int | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> list[Review]:
        get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        query = Reviews._visible_for_provider(db, provider_id, min_rating)
        query = apply_ordering(
            query, order_by, order_dir, {"created_at": Review.created_at, "rating": Review.rating}
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count_for_provider(db: Session, provider_id: str, min_rating: int | None = None) -> int:
        return Reviews._visible_for_provider(db, provider_id, min_rating).count()

    @staticmethod
    def update(db: Session, review_id: str, user_id: str, payload: ReviewUpdate) -> Review:
        review = get_or_404(db, Review, review_id, detail="Review not found")
        if str(review.user_id) != str(user_id):
            raise AuthorizationError("Not authorized to update this review")
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(review, field, value)
        db.flush()
        recompute_provider_rating(db, review.provider_id)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def report(db: Session, review_id: str, user_id: str, reason: str) -> Review:
        review = get_or_404(db, Review, review_id, detail="Review not found")
        if str(review.user_id) == str(user_id):
            raise ValidationError("Cannot report your own review")
        already = (
            db.query(ReviewReport.id)
            .filter(ReviewReport.review_id == review.id, ReviewReport.user_id == coerce_uuid(user_id))
            .first()
        )
        if already:
            raise ConflictError("You have already reported this review")

        db.add(ReviewReport(review_id=review.id, user_id=coerce_uuid(user_id), reason=reason.strip()))
        review.report_count = (review.report_count or 0) + 1
        review.is_reported = True
        if review.report_count >= settings.review_report_hide_threshold and review.is_visible:
            review.is_visible = False
            db.flush()
            recompute_provider_rating(db, review.provider_id)
            logger.warning("Review hidden after %d reports id=%s", review.report_count, review.id)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def respond(db: Session, review_id: str, auth: dict, response_text: str) -> Review:
        review = get_or_404(db, Review, review_id, detail="Review not found")
        provider = db.get(ServiceProvider, review.provider_id)
        if provider is None or str(provider.user_id) != str(auth.get("user_id")):
            raise AuthorizationError("Only the reviewed provider can respond to this review")
        review.response_text = response_text.strip()
        review.responded_at = datetime.now(UTC)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def moderate(db: Session, review_id: str, is_visible: bool, reason: str | None = None) -> Review:
        review = get_or_404(db, Review, review_id, detail="Review not found")
        review.is_visible = is_visible
        db.flush()
        recompute_provider_rating(db, review.provider_id)
        outcome = "approved" if is_visible else "hidden"
        message = f"Your review has been {outcome} by an administrator."
        if reason:
            message = f"{message} Reason: {reason.strip()}"
        notifications.notify(
            db,
            review.user_id,
            NotificationType.review,
            "Review moderation",
            message,
            {"review_id": str(review.id), "is_visible": is_visible, "reason": reason},
        )
        db.commit()
        db.refresh(review)
        logger.info("Review moderated id=%s visible=%s", review.id, is_visible)
        return review

    @staticmethod
    def delete(db: Session, review_id: str, auth: dict) -> None:
        review = get_or_404(db, Review, review_id, detail="Review not found")
        if not is_admin(auth) and str(review.user_id) != str(auth.get("user_id")):
            raise AuthorizationError("Not authorized to delete this review")
        appointment = db.get(Appointment, review.appointment_id)
        if appointment is not None:
            appointment.has_review = False
        provider_id = review.provider_id
        db.delete(review)
        db.flush()
        recompute_provider_rating(db, provider_id)
        db.commit()
        logger.info("Review deleted id=%s", review_id)


reviews = Reviews()
