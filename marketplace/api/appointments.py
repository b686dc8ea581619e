from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.models.appointment import AppointmentStatus
from marketplace.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
)
from marketplace.schemas.common import Envelope, ListResponse, MessageResponse
from marketplace.services.appointments import appointments
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=Envelope[AppointmentRead], status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: AppointmentCreate,
    auth=Depends(require_role("user")),
    db: Session = Depends(get_db),
):
    return success_response(appointments.create(db, auth["user_id"], payload), "Appointment booked")


@router.get("", response_model=ListResponse[AppointmentRead])
def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = appointments.list(db, auth, status=status_filter, limit=limit, offset=offset)
    return list_response(items, limit, offset, total=appointments.count(db, auth, status=status_filter))


@router.get("/{appointment_id}", response_model=Envelope[AppointmentRead])
def get_appointment(appointment_id: str, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(appointments.get(db, appointment_id, auth))


@router.patch("/{appointment_id}/status", response_model=Envelope[AppointmentRead])
def update_appointment_status(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    return success_response(appointments.update_status(db, appointment_id, auth, payload))


@router.post("/{appointment_id}/cancel", response_model=Envelope[AppointmentRead])
def cancel_appointment(
    appointment_id: str,
    payload: AppointmentCancel | None = None,
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    return success_response(appointments.cancel(db, appointment_id, auth, reason), "Appointment cancelled")


@router.delete(
    "/{appointment_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_role("admin"))],
)
def delete_appointment(appointment_id: str, db: Session = Depends(get_db)):
    appointments.delete(db, appointment_id)
    return {"message": "Appointment deleted"}
