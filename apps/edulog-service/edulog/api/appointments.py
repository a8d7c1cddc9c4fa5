"""
Appointment endpoints exposed to users and instructors.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from edulog import audit
from edulog.audit import AuditAction
from edulog.db import crud
from edulog.db.database import get_db
from edulog.api.deps import get_current_user_context
from edulog.services.calendar_service import build_download_ics

router = APIRouter(tags=["appointments"])


@router.get("/{appointment_id}/calendar")
def download_appointment_calendar(
    appointment_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """Download the appointment as an iCalendar file (parties only)."""
    identity, current_user = user_context
    appointment = crud.get_appointment_with_details(db, appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if identity.id not in (appointment.user_id, appointment.instructor_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    content = build_download_ics(appointment)
    audit.log_appointment_notification(
        db, actor_id=identity.id, appointment_id=appointment.id, action=AuditAction.CALENDAR_EXPORTED
    )
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="appointment-{appointment.id}.ics"',
            "Cache-Control": "no-cache",
        },
    )
