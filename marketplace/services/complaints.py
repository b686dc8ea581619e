from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from marketplace.errors import AuthorizationError, ConflictError
from marketplace.models.appointment import Appointment
from marketplace.models.complaint import Complaint, ComplaintStatus
from marketplace.models.notification import NotificationType
from marketplace.models.provider import ServiceProvider
from marketplace.schemas.complaint import ComplaintCreate, ComplaintStatusUpdate
from marketplace.services.auth_dependencies import is_admin
from marketplace.services.common import apply_pagination, coerce_uuid, get_or_404
from marketplace.services.notifications import notifications

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (ComplaintStatus.resolved, ComplaintStatus.dismissed)


class Complaints:
    @staticmethod
    def create(db: Session, user_id: str, payload: ComplaintCreate) -> Complaint:
        appointment = get_or_404(db, Appointment, payload.appointment_id, detail="Appointment not found")
        if str(appointment.user_id) != str(user_id):
            raise AuthorizationError("Not authorized to file a complaint for this appointment")
        duplicate = (
            db.query(Complaint.id)
            .filter(
                Complaint.appointment_id == appointment.id,
                Complaint.user_id == coerce_uuid(user_id),
                Complaint.status.notin_(CLOSED_STATUSES),
            )
            .first()
        )
        if duplicate:
            raise ConflictError("An open complaint already exists for this appointment")

        complaint = Complaint(
            user_id=appointment.user_id,
            provider_id=appointment.provider_id,
            appointment_id=appointment.id,
            **payload.model_dump(exclude={"appointment_id"}),
        )
        db.add(complaint)
        db.flush()
        provider = db.get(ServiceProvider, appointment.provider_id)
        if provider is not None:
            notifications.notify(
                db,
                provider.user_id,
                NotificationType.complaint,
                "Complaint filed",
                f"A complaint was filed: {complaint.title}",
                {"complaint_id": str(complaint.id)},
            )
        db.commit()
        db.refresh(complaint)
        logger.info(
            "Complaint filed id=%s provider=%s severity=%s",
            complaint.id,
            complaint.provider_id,
            complaint.severity.value,
        )
        return complaint

    @staticmethod
    def get(db: Session, complaint_id: str, auth: dict) -> Complaint:
        complaint = get_or_404(db, Complaint, complaint_id, detail="Complaint not found")
        if is_admin(auth) or str(complaint.user_id) == str(auth.get("user_id")):
            return complaint
        provider = db.get(ServiceProvider, complaint.provider_id)
        if provider is not None and str(provider.user_id) == str(auth.get("user_id")):
            return complaint
        raise AuthorizationError("Not authorized to view this complaint")

    @staticmethod
    def _scoped(db: Session, auth: dict, status: ComplaintStatus | None = None, provider_id: str | None = None):
        query = db.query(Complaint)
        if not is_admin(auth):
            query = query.filter(Complaint.user_id == coerce_uuid(auth["user_id"]))
        elif provider_id:
            query = query.filter(Complaint.provider_id == coerce_uuid(provider_id))
        if status is not None:
            query = query.filter(Complaint.status == status)
        return query

    @staticmethod
    def list(
        db: Session,
        auth: dict,
        status: ComplaintStatus | None = None,
        provider_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Complaint]:
        query = Complaints._scoped(db, auth, status, provider_id).order_by(Complaint.created_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count(db: Session, auth: dict, status: ComplaintStatus | None = None, provider_id: str | None = None) -> int:
        return Complaints._scoped(db, auth, status, provider_id).count()

    @staticmethod
    def update_status(db: Session, complaint_id: str, payload: ComplaintStatusUpdate) -> Complaint:
        complaint = get_or_404(db, Complaint, complaint_id, detail="Complaint not found")
        complaint.status = payload.status
        if payload.resolution_text is not None:
            complaint.resolution_text = payload.resolution_text
        if payload.status in CLOSED_STATUSES:
            complaint.resolved_at = complaint.resolved_at or datetime.now(UTC)
        else:
            complaint.resolved_at = None
        notifications.notify(
            db,
            complaint.user_id,
            NotificationType.complaint,
            "Complaint updated",
            f"Your complaint is now {payload.status.value}",
            {"complaint_id": str(complaint.id), "status": payload.status.value},
        )
        db.commit()
        db.refresh(complaint)
        logger.info("Complaint %s status=%s", complaint.id, complaint.status.value)
        return complaint


complaints = Complaints()
