from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import AuthorizationError, ConflictError, ValidationError
from marketplace.models.appointment import Appointment, AppointmentStatus
from marketplace.models.complaint import Complaint
from marketplace.models.notification import NotificationType
from marketplace.models.provider import ApprovalStatus, ServiceProvider
from marketplace.models.review import Review
from marketplace.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from marketplace.services.auth_dependencies import is_admin
from marketplace.services.common import apply_pagination, as_utc, coerce_uuid, get_or_404
from marketplace.services.notifications import notifications
from marketplace.services.providers import service_providers

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AppointmentStatus.pending, AppointmentStatus.confirmed)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.pending: {AppointmentStatus.confirmed, AppointmentStatus.cancelled},
    AppointmentStatus.confirmed: {
        AppointmentStatus.completed,
        AppointmentStatus.cancelled,
        AppointmentStatus.no_show,
    },
    AppointmentStatus.completed: set(),
    AppointmentStatus.cancelled: set(),
    AppointmentStatus.no_show: set(),
}


def _is_provider_of(db: Session, appointment: Appointment, auth: dict) -> bool:
    provider = db.get(ServiceProvider, appointment.provider_id)
    return provider is not None and str(provider.user_id) == str(auth.get("user_id"))


class Appointments:
    @staticmethod
    def create(db: Session, user_id: str, payload: AppointmentCreate, now: datetime | None = None) -> Appointment:
        now = now or datetime.now(UTC)
        provider = db.get(ServiceProvider, payload.provider_id)
        if (
            not provider
            or not provider.is_active
            or provider.approval_status != ApprovalStatus.approved
        ):
            raise ValidationError("Service provider is not available for booking")
        if str(provider.user_id) == str(user_id):
            raise ValidationError("Providers cannot book their own services")

        scheduled_at = as_utc(payload.scheduled_at)
        if scheduled_at <= now:
            raise ValidationError(
                "Validation errors",
                errors=[{"field": "scheduled_at", "message": "Appointment date must be in the future"}],
            )

        conflict = (
            db.query(Appointment.id)
            .filter(
                Appointment.provider_id == provider.id,
                Appointment.scheduled_at == scheduled_at,
                Appointment.status.in_(OPEN_STATUSES),
            )
            .first()
        )
        if conflict:
            raise ConflictError("Time slot is already booked")

        appointment = Appointment(
            user_id=coerce_uuid(user_id),
            provider_id=provider.id,
            scheduled_at=scheduled_at,
            service_type=payload.service_type,
            notes=payload.notes,
            total_amount=provider.price or 0,
        )
        db.add(appointment)
        db.flush()
        notifications.notify(
            db,
            provider.user_id,
            NotificationType.appointment,
            "New appointment request",
            f"New booking for {payload.service_type} on {scheduled_at:%Y-%m-%d %H:%M} UTC",
            {"appointment_id": str(appointment.id)},
        )
        db.commit()
        db.refresh(appointment)
        logger.info("Appointment booked id=%s provider=%s", appointment.id, provider.id)
        return appointment

    @staticmethod
    def get(db: Session, appointment_id: str, auth: dict) -> Appointment:
        appointment = get_or_404(db, Appointment, appointment_id, detail="Appointment not found")
        if is_admin(auth) or str(appointment.user_id) == str(auth.get("user_id")):
            return appointment
        if _is_provider_of(db, appointment, auth):
            return appointment
        raise AuthorizationError("Not authorized to view this appointment")

    @staticmethod
    def _scoped(db: Session, auth: dict, status: AppointmentStatus | None = None):
        query = db.query(Appointment)
        if not is_admin(auth):
            roles = set(auth.get("roles") or [])
            provider = service_providers.get_for_user(db, auth["user_id"]) if "provider" in roles else None
            if provider is not None:
                query = query.filter(Appointment.provider_id == provider.id)
            else:
                query = query.filter(Appointment.user_id == coerce_uuid(auth["user_id"]))
        if status is not None:
            query = query.filter(Appointment.status == status)
        return query

    @staticmethod
    def list(
        db: Session,
        auth: dict,
        status: AppointmentStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Appointment]:
        query = Appointments._scoped(db, auth, status).order_by(Appointment.scheduled_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count(db: Session, auth: dict, status: AppointmentStatus | None = None) -> int:
        return Appointments._scoped(db, auth, status).count()

    @staticmethod
    def update_status(
        db: Session,
        appointment_id: str,
        auth: dict,
        payload: AppointmentStatusUpdate,
        now: datetime | None = None,
    ) -> Appointment:
        now = now or datetime.now(UTC)
        appointment = get_or_404(db, Appointment, appointment_id, detail="Appointment not found")
        acting_provider = _is_provider_of(db, appointment, auth)
        if not acting_provider and not is_admin(auth):
            raise AuthorizationError("Not authorized to update this appointment")

        current = appointment.status
        target = payload.status
        if target not in ALLOWED_TRANSITIONS[current]:
            raise ValidationError(f"Cannot change appointment status from {current.value} to {target.value}")

        # Only the first provider decision on a pending booking counts toward response speed.
        if acting_provider and current == AppointmentStatus.pending and appointment.responded_at is None:
            appointment.responded_at = now
        if target == AppointmentStatus.cancelled:
            appointment.cancelled_by = "provider" if acting_provider else "admin"
            appointment.cancelled_at = now
            appointment.cancellation_reason = payload.cancellation_reason
        appointment.status = target

        notifications.notify(
            db,
            appointment.user_id,
            NotificationType.appointment,
            "Appointment updated",
            f"Your appointment for {appointment.service_type} is now {target.value}",
            {"appointment_id": str(appointment.id), "status": target.value},
        )
        db.commit()
        db.refresh(appointment)
        logger.info("Appointment %s status %s -> %s", appointment.id, current.value, target.value)
        return appointment

    @staticmethod
    def cancel(
        db: Session,
        appointment_id: str,
        auth: dict,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        now = now or datetime.now(UTC)
        appointment = get_or_404(db, Appointment, appointment_id, detail="Appointment not found")
        owner = str(appointment.user_id) == str(auth.get("user_id"))
        if not owner and not is_admin(auth):
            raise AuthorizationError("Not authorized to cancel this appointment")

        if appointment.status == AppointmentStatus.confirmed:
            notice = timedelta(hours=settings.cancellation_notice_hours)
            if as_utc(appointment.scheduled_at) - now <= notice:
                raise ValidationError(
                    f"Appointments can only be cancelled at least {settings.cancellation_notice_hours} hours in advance"
                )
        elif appointment.status != AppointmentStatus.pending:
            raise ValidationError(f"Cannot cancel an appointment that is {appointment.status.value}")

        appointment.status = AppointmentStatus.cancelled
        appointment.cancelled_by = "user" if owner else "admin"
        appointment.cancelled_at = now
        appointment.cancellation_reason = reason

        provider = db.get(ServiceProvider, appointment.provider_id)
        if provider is not None:
            notifications.notify(
                db,
                provider.user_id,
                NotificationType.appointment,
                "Appointment cancelled",
                f"The appointment for {appointment.service_type} was cancelled",
                {"appointment_id": str(appointment.id)},
            )
        db.commit()
        db.refresh(appointment)
        logger.info("Appointment cancelled id=%s by=%s", appointment.id, appointment.cancelled_by)
        return appointment

    @staticmethod
    def delete(db: Session, appointment_id: str) -> None:
        appointment = get_or_404(db, Appointment, appointment_id, detail="Appointment not found")
        has_dependents = (
            db.query(Review.id).filter(Review.appointment_id == appointment.id).first()
            or db.query(Complaint.id).filter(Complaint.appointment_id == appointment.id).first()
        )
        if has_dependents:
            raise ValidationError("Cannot delete an appointment that has reviews or complaints")
        db.delete(appointment)
        db.commit()
        logger.info("Appointment deleted id=%s", appointment_id)


appointments = Appointments()
