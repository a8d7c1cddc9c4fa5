"""
Scheduling notification dispatch.

Turns appointment lifecycle events (booking, confirmation, reminders,
cancellation, reschedule, completion, no-show, waitlist) into in-app
notification rows for the user and the instructor, and sends the email
channel through the shared email pipeline. Per-user scheduling preferences
gate the email channel and the reminder schedule.
"""

import logging
import uuid
from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from edulog import audit
from edulog.audit import AuditAction, AuditStatus
from edulog.db import models, schemas
from edulog.identity import get_display_name
from edulog.services import calendar_service
from edulog.services.notification_service import (
    CATEGORY_SCHEDULE,
    CHANNEL_EMAIL,
    CHANNEL_IN_APP,
    CHANNEL_PUSH,
    CHANNEL_SMS,
    PRIORITY_HIGH,
    PRIORITY_NORMAL,
    PRIORITY_URGENT,
    NotificationService,
)
from edulog.utils.formatting import format_korean_date, format_korean_time, korean_day_name
from edulog.utils.urls import appointment_urls

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = 'appointment_created'
INSTRUCTOR_NEW_BOOKING = 'instructor_new_booking'
APPOINTMENT_CONFIRMED = 'appointment_confirmed'
APPOINTMENT_REMINDER_24H = 'appointment_reminder_24h'
APPOINTMENT_REMINDER_1H = 'appointment_reminder_1h'
APPOINTMENT_REMINDER_15M = 'appointment_reminder_15m'
APPOINTMENT_CANCELLED = 'appointment_cancelled'
APPOINTMENT_RESCHEDULED = 'appointment_rescheduled'
APPOINTMENT_COMPLETED = 'appointment_completed'
APPOINTMENT_NO_SHOW = 'appointment_no_show'
WAITLIST_AVAILABLE = 'waitlist_available'

NOTIFICATION_TYPES = (
    APPOINTMENT_CREATED,
    INSTRUCTOR_NEW_BOOKING,
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_REMINDER_24H,
    APPOINTMENT_REMINDER_1H,
    APPOINTMENT_REMINDER_15M,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_RESCHEDULED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_NO_SHOW,
    WAITLIST_AVAILABLE,
)

SITE_NAME = 'AIedulog'
SUPPORT_EMAIL = 'support@aiedulog.com'
SYSTEM_NAME_KO = '시스템'
WAITLIST_HOLD_MINUTES = 30

# (type, offset before start, channels, config flag, preference flag)
REMINDER_SCHEDULE = (
    (APPOINTMENT_REMINDER_24H, timedelta(hours=24), (CHANNEL_IN_APP, CHANNEL_EMAIL), 'reminder_24h', 'appointment_reminders_24h'),
    (APPOINTMENT_REMINDER_1H, timedelta(hours=1), (CHANNEL_IN_APP, CHANNEL_PUSH), 'reminder_1h', 'appointment_reminders_1h'),
    (APPOINTMENT_REMINDER_15M, timedelta(minutes=15), (CHANNEL_IN_APP, CHANNEL_PUSH, CHANNEL_SMS), 'reminder_15m', 'appointment_reminders_15m'),
)

TITLES: Dict[str, Dict[str, str]] = {
    APPOINTMENT_CREATED: {'ko': '예약이 완료되었습니다', 'en': 'Booking Confirmed'},
    INSTRUCTOR_NEW_BOOKING: {'ko': '새로운 예약이 있습니다', 'en': 'New Booking Received'},
    APPOINTMENT_CONFIRMED: {'ko': '예약이 확정되었습니다', 'en': 'Appointment Confirmed'},
    APPOINTMENT_REMINDER_24H: {'ko': '내일 약속이 있습니다', 'en': 'Appointment Tomorrow'},
    APPOINTMENT_REMINDER_1H: {'ko': '1시간 후 약속이 있습니다', 'en': 'Appointment in 1 Hour'},
    APPOINTMENT_REMINDER_15M: {'ko': '곧 약속 시간입니다', 'en': 'Appointment Starting Soon'},
    APPOINTMENT_CANCELLED: {'ko': '예약이 취소되었습니다', 'en': 'Appointment Cancelled'},
    APPOINTMENT_RESCHEDULED: {'ko': '예약 시간이 변경되었습니다', 'en': 'Appointment Rescheduled'},
    APPOINTMENT_COMPLETED: {'ko': '수업이 완료되었습니다', 'en': 'Session Completed'},
    APPOINTMENT_NO_SHOW: {'ko': '약속에 참석하지 않았습니다', 'en': 'No Show Recorded'},
    WAITLIST_AVAILABLE: {'ko': '원하시는 시간대가 예약 가능합니다', 'en': 'Slot Available'},
}

MESSAGES: Dict[str, Dict[str, str]] = {
    APPOINTMENT_CREATED: {
        'ko': '{appointment_type} 예약이 완료되었습니다. 일시: {formatted_datetime}',
        'en': 'Your {appointment_type} booking is confirmed for {formatted_datetime}',
    },
    INSTRUCTOR_NEW_BOOKING: {
        'ko': '{user_name}님이 {appointment_type}을 예약했습니다. 일시: {formatted_datetime}',
        'en': '{user_name} booked {appointment_type} for {formatted_datetime}',
    },
    APPOINTMENT_CONFIRMED: {
        'ko': '{instructor_name} 강사님이 예약을 확정했습니다. 준비해주세요!',
        'en': '{instructor_name} confirmed your appointment. Get ready!',
    },
    APPOINTMENT_REMINDER_24H: {
        'ko': '내일 {appointment_time}에 {appointment_type} 약속이 있습니다.',
        'en': 'You have {appointment_type} tomorrow at {appointment_time}',
    },
    APPOINTMENT_REMINDER_1H: {
        'ko': '1시간 후 {appointment_type} 약속이 시작됩니다.',
        'en': 'Your {appointment_type} starts in 1 hour',
    },
    APPOINTMENT_REMINDER_15M: {
        'ko': '15분 후 {appointment_type} 약속이 시작됩니다. 준비해주세요!',
        'en': 'Your {appointment_type} starts in 15 minutes. Get ready!',
    },
    APPOINTMENT_CANCELLED: {
        'ko': '{appointment_type} 예약이 취소되었습니다.',
        'en': 'Your {appointment_type} appointment has been cancelled',
    },
    APPOINTMENT_RESCHEDULED: {
        'ko': '예약이 {appointment_date} {appointment_time}으로 변경되었습니다.',
        'en': 'Your appointment has been rescheduled to {appointment_date} {appointment_time}',
    },
    APPOINTMENT_COMPLETED: {
        'ko': '{appointment_type} 수업이 완료되었습니다. 후기를 남겨주세요!',
        'en': 'Your {appointment_type} session is complete. Please leave feedback!',
    },
    APPOINTMENT_NO_SHOW: {
        'ko': '예약하신 {appointment_type}에 참석하지 않으셨습니다.',
        'en': 'You missed your {appointment_type} appointment',
    },
    WAITLIST_AVAILABLE: {
        'ko': '{appointment_type} - {formatted_datetime} 시간대가 예약 가능합니다!',
        'en': '{appointment_type} slot available for {formatted_datetime}!',
    },
}


def localized_title(notification_type: str, language: str = 'ko') -> str:
    titles = TITLES.get(notification_type, {})
    return titles.get(language) or titles.get('ko') or notification_type


def localized_message(notification_type: str, language: str, data: Dict[str, Any]) -> str:
    messages = MESSAGES.get(notification_type, {})
    template = messages.get(language) or messages.get('ko')
    if template is None:
        return f"Notification: {notification_type}"
    return template.format_map(_Blank(data))


class _Blank(dict):
    """format_map source that renders missing keys as empty strings."""

    def __missing__(self, key):
        return ''


def appointment_reference(appointment_id: uuid.UUID) -> str:
    return f"APT-{str(appointment_id)[-8:].upper()}"


def build_template_data(appointment: models.Appointment) -> Dict[str, Any]:
    """Context shared by in-app copy and email templates for one appointment."""
    appointment_type = appointment.appointment_type
    type_name = appointment_type.type_name if appointment_type else appointment.title
    date_text = format_korean_date(appointment.appointment_date)
    time_text = format_korean_time(appointment.start_time)
    price = None
    if appointment_type is not None and appointment_type.price is not None:
        price = f"{int(appointment_type.price):,} {appointment_type.currency or 'KRW'}"

    data = {
        'appointment_id': str(appointment.id),
        'appointment_reference': appointment_reference(appointment.id),
        'appointment_title': appointment.title,
        'appointment_date': date_text,
        'appointment_time': time_text,
        'appointment_end_time': format_korean_time(appointment.end_time) if appointment.end_time else '',
        'appointment_duration': f"{appointment.duration_minutes}분",
        'appointment_type': type_name,
        'appointment_description': appointment.description or '',
        'appointment_price': price,
        'user_name': get_display_name(appointment.user),
        'user_email': appointment.user.email if appointment.user else '',
        'instructor_name': get_display_name(appointment.instructor),
        'instructor_email': appointment.instructor.email if appointment.instructor else '',
        'meeting_type': appointment.meeting_type,
        'meeting_link': appointment.meeting_link or '',
        'meeting_location': appointment.meeting_location or '',
        'appointment_status': appointment.status,
        'appointment_notes': appointment.user_notes or '',
        'site_name': SITE_NAME,
        'support_email': SUPPORT_EMAIL,
        'formatted_datetime': f"{date_text} {time_text}",
        'day_of_week': korean_day_name(appointment.appointment_date),
    }
    data.update(appointment_urls(appointment.id))
    return data


class SchedulingNotificationService:
    """Dispatches appointment notifications to users and instructors."""

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.db = db
        self.notifications = notification_service or NotificationService(db)
        self.clock = clock

    # === Public operations ===

    def send_booking_confirmation(
        self,
        appointment: models.Appointment,
        config: Optional[schemas.NotificationConfig] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        config = config or schemas.NotificationConfig()
        data = build_template_data(appointment)
        channels = self._configured_channels(config)
        errors: List[str] = []

        attachments = None
        if config.include_calendar_file:
            attachments = [self._invitation_attachment(appointment)]

        self._notify(
            appointment.user,
            appointment,
            APPOINTMENT_CREATED,
            data,
            channels=channels,
            priority=PRIORITY_HIGH,
            link=f"/dashboard/appointments/{appointment.id}",
            action_data={
                'appointment_id': str(appointment.id),
                'action_type': 'booking_confirmation',
                'calendar_integration': config.include_calendar_file,
            },
            attachments=attachments,
            errors=errors,
        )
        self._notify(
            appointment.instructor,
            appointment,
            INSTRUCTOR_NEW_BOOKING,
            data,
            channels=channels,
            priority=PRIORITY_HIGH,
            link=f"/instructor/appointments/{appointment.id}",
            action_data={
                'appointment_id': str(appointment.id),
                'action_type': 'new_booking_alert',
                'requires_confirmation': appointment.status == 'pending',
            },
            errors=errors,
        )

        if config.reminder_24h or config.reminder_1h or config.reminder_15m:
            reminders = self.schedule_reminder_notifications(appointment, config)
            if not reminders['success']:
                errors.extend(reminders.get('errors', []))

        if not errors:
            appointment.confirmation_sent = True
            self.db.commit()
        self._audit(appointment, AuditAction.BOOKING_CONFIRMATION_SENT, actor_id, errors)
        return {'success': not errors, 'errors': errors}

    def send_appointment_confirmation(
        self,
        appointment: models.Appointment,
        config: Optional[schemas.NotificationConfig] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        config = config or schemas.NotificationConfig()
        channels = [CHANNEL_IN_APP, CHANNEL_EMAIL]
        if config.push:
            channels.append(CHANNEL_PUSH)
        errors: List[str] = []
        self._notify(
            appointment.user,
            appointment,
            APPOINTMENT_CONFIRMED,
            build_template_data(appointment),
            channels=channels,
            priority=PRIORITY_HIGH,
            link=f"/dashboard/appointments/{appointment.id}",
            action_data={
                'appointment_id': str(appointment.id),
                'action_type': 'confirmation',
                'meeting_ready': True,
            },
            errors=errors,
        )
        self._audit(appointment, AuditAction.APPOINTMENT_CONFIRMATION_SENT, actor_id, errors)
        return {'success': not errors, 'errors': errors}

    def schedule_reminder_notifications(
        self,
        appointment: models.Appointment,
        config: Optional[schemas.NotificationConfig] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """
        Create scheduled reminder rows for both parties.

        Only reminders whose send time is still in the future are created; the
        user's scheduling preferences override the config toggles.
        """
        config = config or schemas.NotificationConfig()
        start, _ = calendar_service.appointment_window(appointment)
        now = self.clock()
        data = build_template_data(appointment)
        prefs = self.notifications.get_preferences(appointment.user_id)
        scheduled = 0
        errors: List[str] = []

        for notification_type, offset, channels, config_flag, pref_flag in REMINDER_SCHEDULE:
            if not (getattr(config, config_flag) and getattr(prefs, pref_flag)):
                continue
            send_at = start - offset
            if send_at <= now:
                continue
            priority = PRIORITY_URGENT if notification_type == APPOINTMENT_REMINDER_15M else PRIORITY_HIGH
            created_any = False
            for recipient, link in (
                (appointment.user, f"/dashboard/appointments/{appointment.id}"),
                (appointment.instructor, f"/instructor/appointments/{appointment.id}"),
            ):
                created = self._notify(
                    recipient,
                    appointment,
                    notification_type,
                    data,
                    channels=list(channels),
                    priority=priority,
                    link=link,
                    action_data={
                        'appointment_id': str(appointment.id),
                        'action_type': 'reminder',
                        'reminder_type': notification_type,
                    },
                    scheduled_for=send_at,
                    errors=errors,
                )
                created_any = created_any or created is not None
            # One per reminder type, however many parties got a row
            if created_any:
                scheduled += 1

        logger.info(
            "Scheduled appointment reminders",
            extra={"appointment_id": str(appointment.id), "reminders_scheduled": scheduled},
        )
        if actor_id is not None:
            self._audit(appointment, AuditAction.REMINDERS_SCHEDULED, actor_id, errors,
                        extra={'reminders_scheduled': scheduled})
        result = {'success': not errors, 'reminders_scheduled': scheduled}
        if errors:
            result['errors'] = errors
        return result

    def send_cancellation_notification(
        self,
        appointment: models.Appointment,
        cancelled_by: str = 'system',
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        data = build_template_data(appointment)
        if cancelled_by == 'user':
            cancelled_by_name = data['user_name']
        elif cancelled_by == 'instructor':
            cancelled_by_name = data['instructor_name']
        else:
            cancelled_by_name = SYSTEM_NAME_KO
        data.update({
            'cancelled_by': cancelled_by,
            'cancelled_by_name': cancelled_by_name,
            'cancellation_reason': reason or appointment.cancellation_reason or '',
        })
        channels = [CHANNEL_IN_APP, CHANNEL_EMAIL]
        errors: List[str] = []
        notified = 0

        if cancelled_by != 'user':
            if self._notify(
                appointment.user,
                appointment,
                APPOINTMENT_CANCELLED,
                data,
                channels=channels,
                priority=PRIORITY_HIGH,
                link="/dashboard/appointments",
                action_data={
                    'appointment_id': str(appointment.id),
                    'action_type': 'cancellation',
                    'can_rebook': True,
                },
                errors=errors,
            ) is not None:
                notified += 1
        if cancelled_by != 'instructor':
            if self._notify(
                appointment.instructor,
                appointment,
                APPOINTMENT_CANCELLED,
                data,
                channels=channels,
                priority=PRIORITY_HIGH,
                link="/instructor/appointments",
                action_data={
                    'appointment_id': str(appointment.id),
                    'action_type': 'cancellation',
                    'time_slot_available': True,
                },
                errors=errors,
            ) is not None:
                notified += 1

        self._audit(appointment, AuditAction.CANCELLATION_SENT, actor_id, errors,
                    extra={'cancelled_by': cancelled_by})
        return {'success': not errors, 'errors': errors, 'notified': notified}

    def send_reschedule_notification(
        self,
        original: models.Appointment,
        new: models.Appointment,
        rescheduled_by: str = 'user',
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        data = build_template_data(new)
        data.update({
            'original_date': format_korean_date(original.appointment_date),
            'original_time': format_korean_time(original.start_time),
            'rescheduled_by': rescheduled_by,
        })
        channels = [CHANNEL_IN_APP, CHANNEL_EMAIL]
        errors: List[str] = []
        for recipient, link in (
            (new.user, f"/dashboard/appointments/{new.id}"),
            (new.instructor, f"/instructor/appointments/{new.id}"),
        ):
            self._notify(
                recipient,
                new,
                APPOINTMENT_RESCHEDULED,
                data,
                channels=channels,
                priority=PRIORITY_HIGH,
                link=link,
                action_data={
                    'appointment_id': str(new.id),
                    'original_appointment_id': str(original.id),
                    'action_type': 'reschedule',
                },
                errors=errors,
            )
        self._audit(new, AuditAction.RESCHEDULE_SENT, actor_id, errors,
                    extra={'original_appointment_id': str(original.id), 'rescheduled_by': rescheduled_by})
        return {'success': not errors, 'errors': errors}

    def send_completion_notification(
        self,
        appointment: models.Appointment,
        completed_by: str = 'instructor',
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        feedback_link = f"/appointments/{appointment.id}/feedback"
        data = build_template_data(appointment)
        data.update({'completed_by': completed_by, 'feedback_url': feedback_link})
        errors: List[str] = []
        self._notify(
            appointment.user,
            appointment,
            APPOINTMENT_COMPLETED,
            data,
            channels=[CHANNEL_IN_APP, CHANNEL_EMAIL],
            priority=PRIORITY_NORMAL,
            link=feedback_link,
            action_data={
                'appointment_id': str(appointment.id),
                'action_type': 'completion',
                'feedback_requested': True,
            },
            errors=errors,
        )
        self._audit(appointment, AuditAction.COMPLETION_SENT, actor_id, errors)
        return {'success': not errors, 'errors': errors}

    def send_no_show_notification(
        self,
        appointment: models.Appointment,
        no_show_by: str = 'user',
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """Notify the party that showed up about the other party's absence."""
        data = build_template_data(appointment)
        data['no_show_by'] = no_show_by
        if no_show_by == 'user':
            recipient, link = appointment.instructor, f"/instructor/appointments/{appointment.id}"
        else:
            recipient, link = appointment.user, f"/dashboard/appointments/{appointment.id}"
        errors: List[str] = []
        self._notify(
            recipient,
            appointment,
            APPOINTMENT_NO_SHOW,
            data,
            channels=[CHANNEL_IN_APP, CHANNEL_EMAIL],
            priority=PRIORITY_NORMAL,
            link=link,
            action_data={
                'appointment_id': str(appointment.id),
                'action_type': 'no_show',
                'no_show_by': no_show_by,
            },
            errors=errors,
        )
        self._audit(appointment, AuditAction.NO_SHOW_SENT, actor_id, errors, extra={'no_show_by': no_show_by})
        return {'success': not errors, 'errors': errors}

    def send_waitlist_available_notification(
        self,
        appointment: models.Appointment,
        waitlisted_users: List[models.Identity],
        actor_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        data = build_template_data(appointment)
        expires_at = self.clock() + timedelta(minutes=WAITLIST_HOLD_MINUTES)
        errors: List[str] = []
        notified = 0
        for user in waitlisted_users:
            if self._notify(
                user,
                appointment,
                WAITLIST_AVAILABLE,
                data,
                channels=[CHANNEL_IN_APP, CHANNEL_PUSH, CHANNEL_EMAIL],
                priority=PRIORITY_URGENT,
                link=f"/scheduling/book/{appointment.id}",
                action_data={
                    'appointment_id': str(appointment.id),
                    'action_type': 'waitlist_available',
                    'expires_at': expires_at.isoformat(),
                },
                expires_at=expires_at,
                errors=errors,
            ) is not None:
                notified += 1
        self._audit(appointment, AuditAction.WAITLIST_SENT, actor_id, errors, extra={'notified_users': notified})
        return {'success': not errors, 'errors': errors, 'notified_users': notified}

    def generate_ics_file(self, appointment: models.Appointment) -> str:
        return calendar_service.build_invitation_ics(appointment, now=self.clock())

    # === Internals ===

    @staticmethod
    def _configured_channels(config: schemas.NotificationConfig) -> List[str]:
        channels = [CHANNEL_IN_APP]
        if config.email:
            channels.append(CHANNEL_EMAIL)
        if config.push:
            channels.append(CHANNEL_PUSH)
        if config.sms:
            channels.append(CHANNEL_SMS)
        return channels

    def _invitation_attachment(self, appointment: models.Appointment) -> Dict[str, Any]:
        return {
            'filename': f"appointment-{appointment.id}.ics",
            'content': self.generate_ics_file(appointment),
            'content_type': 'text/calendar',
        }

    def _gate_channels(self, recipient: models.Identity, channels: List[str]) -> List[str]:
        prefs = self.notifications.get_preferences(recipient.id)
        if not prefs.is_active or not prefs.schedule_notifications:
            return [c for c in channels if c != CHANNEL_EMAIL] or [CHANNEL_IN_APP]
        return channels

    def _notify(
        self,
        recipient: Optional[models.Identity],
        appointment: models.Appointment,
        notification_type: str,
        data: Dict[str, Any],
        *,
        channels: List[str],
        priority: str,
        link: str,
        action_data: Dict[str, Any],
        errors: List[str],
        scheduled_for: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Optional[models.Notification]:
        """Create one notification (and email, when due now). Failures land in ``errors``."""
        if recipient is None:
            errors.append(f"{notification_type}: recipient not found")
            return None

        language = recipient.preferred_language or 'ko'
        channels = self._gate_channels(recipient, channels)
        title = localized_title(notification_type, language)
        message = localized_message(notification_type, language, data)
        try:
            notification = self.notifications.create_notification(
                recipient.id,
                notification_type,
                title,
                message,
                category=CATEGORY_SCHEDULE,
                priority=priority,
                channels=channels,
                link=link,
                related_content_type='appointment',
                related_content_id=appointment.id,
                template_key=notification_type,
                template_data=data,
                action_data=action_data,
                scheduled_for=scheduled_for,
                expires_at=expires_at,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(
                "Failed to create scheduling notification",
                extra={"type": notification_type, "appointment_id": str(appointment.id), "error": str(e)},
            )
            errors.append(f"{notification_type}: {e}")
            return None

        # Scheduled rows are delivered by the external job at send time
        if CHANNEL_EMAIL in channels and scheduled_for is None and recipient.email:
            result = self.notifications.deliver_email(
                user_id=recipient.id,
                email_address=recipient.email,
                event_type=notification_type,
                subject=f"[{SITE_NAME}] {title}",
                template_name=notification_type,
                template_context={**data, 'recipient_name': recipient.display_name, 'title': title,
                                  'message': message},
                notification_id=notification.id,
                attachments=attachments,
            )
            if not result.get('success'):
                logger.warning(
                    "Scheduling email not delivered",
                    extra={"type": notification_type, "recipient": str(recipient.id)},
                )
        return notification

    def _audit(
        self,
        appointment: models.Appointment,
        action: AuditAction,
        actor_id: Optional[uuid.UUID],
        errors: List[str],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        metadata = {'errors': errors} if errors else {}
        metadata.update(extra or {})
        audit.log_appointment_notification(
            self.db,
            actor_id=actor_id,
            appointment_id=appointment.id,
            action=action,
            status=AuditStatus.FAILURE if errors else AuditStatus.SUCCESS,
            metadata=metadata,
        )
