"""
Scheduling notification actions.

A single action-dispatch endpoint drives every appointment lifecycle
notification; GET/PUT expose the caller's scheduling preferences and the
notifications attached to an appointment.
"""
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.orm import Session

from edulog import audit
from edulog.db import crud, models, schemas
from edulog.db.database import get_db
from edulog.api.deps import get_current_user_context
from edulog.services.notification_service import CATEGORY_SCHEDULE, NotificationService
from edulog.services.scheduling_notification_service import SchedulingNotificationService
from edulog.utils.role_permissions import is_admin

router = APIRouter(tags=["scheduling-notifications"])


def _load_appointment(db: Session, appointment_id: Optional[uuid.UUID], identity: models.Identity) -> models.Appointment:
    if appointment_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="appointmentId is required")
    appointment = crud.get_appointment_with_details(db, appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if identity.id not in (appointment.user_id, appointment.instructor_id) and not is_admin(identity):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return appointment


def _respond(result: Dict[str, Any], ok_message: str, failed_message: str) -> schemas.SchedulingActionResponse:
    errors = result.get('errors') or []
    return schemas.SchedulingActionResponse(
        success=result.get('success', False),
        message=ok_message if result.get('success') else failed_message,
        data=jsonable_encoder(result),
        error=', '.join(errors) or None,
    )


def _booking_confirmation(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.send_booking_confirmation(appointment, req.config, actor_id=identity.id)
    return _respond(result, 'Booking confirmation sent successfully', 'Failed to send booking confirmation')


def _appointment_confirmation(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.send_appointment_confirmation(appointment, req.config, actor_id=identity.id)
    return _respond(result, 'Appointment confirmation sent successfully', 'Failed to send appointment confirmation')


def _schedule_reminders(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.schedule_reminder_notifications(appointment, req.config, actor_id=identity.id)
    return _respond(
        result,
        f"{result['reminders_scheduled']} reminders scheduled",
        'Failed to schedule reminders',
    )


def _cancellation(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.send_cancellation_notification(
        appointment, cancelled_by=req.cancelled_by, reason=req.reason, actor_id=identity.id
    )
    return _respond(result, 'Cancellation notification sent successfully', 'Failed to send cancellation notification')


def _reschedule(service, db, identity, req):
    original = _load_appointment(db, req.original_appointment_id, identity)
    new = _load_appointment(db, req.new_appointment_id, identity)
    result = service.send_reschedule_notification(
        original, new, rescheduled_by=req.rescheduled_by, actor_id=identity.id
    )
    return _respond(result, 'Reschedule notification sent successfully', 'Failed to send reschedule notification')


def _completion(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.send_completion_notification(appointment, completed_by=req.completed_by, actor_id=identity.id)
    return _respond(result, 'Completion notification sent successfully', 'Failed to send completion notification')


def _no_show(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    result = service.send_no_show_notification(appointment, no_show_by=req.no_show_by, actor_id=identity.id)
    return _respond(result, 'No-show notification sent successfully', 'Failed to send no-show notification')


def _waitlist_available(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    users = crud.get_identities(db, req.waitlisted_user_ids)
    result = service.send_waitlist_available_notification(appointment, users, actor_id=identity.id)
    return _respond(
        result,
        f"Waitlist notifications sent to {result['notified_users']} users",
        'Failed to send waitlist notifications',
    )


def _calendar_file(service, db, identity, req):
    appointment = _load_appointment(db, req.appointment_id, identity)
    return Response(
        content=service.generate_ics_file(appointment),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="appointment-{appointment.id}.ics"'},
    )


ACTIONS: Dict[str, Callable] = {
    'send_booking_confirmation': _booking_confirmation,
    'send_appointment_confirmation': _appointment_confirmation,
    'schedule_reminders': _schedule_reminders,
    'send_cancellation': _cancellation,
    'send_reschedule': _reschedule,
    'send_completion': _completion,
    'send_no_show': _no_show,
    'send_waitlist_available': _waitlist_available,
    'generate_calendar_file': _calendar_file,
}


@router.post("")
def run_scheduling_action(
    payload: Dict[str, Any],
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """
    Dispatch a scheduling notification action.

    Body: ``{"action": "<name>", "appointmentId": "...", ...}``.
    """
    identity, current_user = user_context
    action = payload.get('action')
    handler = ACTIONS.get(action)
    if handler is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported action: {action}")
    try:
        req = schemas.SchedulingActionRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=jsonable_encoder(e.errors()))

    service = SchedulingNotificationService(db)
    return handler(service, db, identity, req)


@router.get("", response_model=schemas.SchedulingActionResponse)
def get_scheduling_data(
    action: str,
    appointment_id: Optional[uuid.UUID] = Query(default=None, alias="appointmentId"),
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    identity, current_user = user_context
    if action == 'get_notification_preferences':
        prefs = NotificationService(db).get_preferences(identity.id, CATEGORY_SCHEDULE)
        return schemas.SchedulingActionResponse(success=True, data=jsonable_encoder(prefs))
    if action == 'get_appointment_notifications':
        if appointment_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="appointmentId is required")
        rows = crud.get_related_notifications(
            db, identity.id, related_content_id=appointment_id, category=CATEGORY_SCHEDULE
        )
        notifications = [schemas.Notification.model_validate(row) for row in rows]
        return schemas.SchedulingActionResponse(
            success=True,
            data={'notifications': jsonable_encoder(notifications)},
        )
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported action: {action}")


@router.put("", response_model=schemas.SchedulingActionResponse)
def update_scheduling_preferences(
    payload: Dict[str, Any],
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    identity, current_user = user_context
    action = payload.get('action')
    if action != 'update_notification_preferences':
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported action: {action}")
    fields = {k: v for k, v in payload.items() if k != 'action'}
    try:
        update = schemas.SchedulingPreferencesUpdate.model_validate(fields)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=jsonable_encoder(e.errors()))

    pref = NotificationService(db).update_preferences(identity.id, update, CATEGORY_SCHEDULE)
    audit.log_preferences_update(
        db, actor_id=identity.id, category=CATEGORY_SCHEDULE, changed=update.model_dump(exclude_unset=True)
    )
    return schemas.SchedulingActionResponse(
        success=True,
        message='Notification preferences updated successfully',
        data=jsonable_encoder(schemas.SchedulingPreferences.model_validate(pref)),
    )
