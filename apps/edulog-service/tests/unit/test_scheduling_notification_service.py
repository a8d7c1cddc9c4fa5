from datetime import UTC, datetime, timedelta, time

import pytest

from edulog.db import models, schemas
from edulog.services import calendar_service
from edulog.services.notification_service import NotificationService
from edulog.services.scheduling_notification_service import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CREATED,
    APPOINTMENT_NO_SHOW,
    APPOINTMENT_REMINDER_15M,
    APPOINTMENT_REMINDER_1H,
    APPOINTMENT_REMINDER_24H,
    APPOINTMENT_RESCHEDULED,
    INSTRUCTOR_NEW_BOOKING,
    WAITLIST_AVAILABLE,
    SchedulingNotificationService,
    appointment_reference,
    build_template_data,
    localized_message,
    localized_title,
)


def _rows(db, **filters):
    return db.query(models.Notification).filter_by(**filters).all()


def _audit_rows(db, action):
    return db.query(models.SecurityAuditLog).filter_by(action=action).all()


def _disable_schedule_email(db, identity):
    NotificationService(db).update_preferences(
        identity.id, schemas.SchedulingPreferencesUpdate(schedule_notifications=False)
    )


def test_template_data_for_appointment(booking):
    student, instructor, appointment = booking
    data = build_template_data(appointment)
    assert data['user_name'] == "김학생"
    assert data['instructor_name'] == "이강사"
    assert data['appointment_type'] == "1:1 상담"
    assert data['appointment_price'] == "50,000 KRW"
    assert data['appointment_duration'] == "60분"
    assert data['formatted_datetime'].endswith("오후 2:00")
    assert data['appointment_reference'] == appointment_reference(appointment.id)
    assert data['appointment_reference'] == "APT-" + str(appointment.id)[-8:].upper()
    assert data['calendar_url'] == f"http://localhost:3000/api/appointments/{appointment.id}/calendar"


def test_template_data_uses_nickname_then_email_name(identity_factory, appointment_factory):
    student = identity_factory("minji@example.com")
    instructor = identity_factory("teacher2@example.com", full_name="박선생", nickname="수학쌤", role='instructor')
    data = build_template_data(appointment_factory(student, instructor))
    assert data['user_name'] == "minji"
    assert data['instructor_name'] == "수학쌤"


def test_localized_copy_falls_back_to_korean():
    assert localized_title(APPOINTMENT_CREATED, 'en') == 'Booking Confirmed'
    assert localized_title(APPOINTMENT_CREATED, 'ja') == '예약이 완료되었습니다'
    assert localized_title('unknown_type') == 'unknown_type'
    assert localized_message(APPOINTMENT_CANCELLED, 'ko', {}) == ' 예약이 취소되었습니다.'
    assert localized_message('unknown_type', 'ko', {}) == 'Notification: unknown_type'


def test_booking_confirmation_notifies_both_parties_and_schedules_reminders(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    result = SchedulingNotificationService(db_session).send_booking_confirmation(appointment, actor_id=student.id)

    assert result == {'success': True, 'errors': []}
    created = _rows(db_session, type=APPOINTMENT_CREATED)
    assert [n.user_id for n in created] == [student.id]
    assert created[0].channels == ['in_app', 'email', 'push']
    assert created[0].status == 'sent'
    assert created[0].related_content_id == appointment.id
    assert _rows(db_session, type=INSTRUCTOR_NEW_BOOKING)[0].user_id == instructor.id
    # 24h and 1h reminders for both parties; 15m is off by default
    assert len(_rows(db_session, type=APPOINTMENT_REMINDER_24H)) == 2
    assert len(_rows(db_session, type=APPOINTMENT_REMINDER_1H)) == 2
    assert _rows(db_session, type=APPOINTMENT_REMINDER_15M) == []

    assert [m['to'] for m in email_outbox.sent] == ["student@example.com", "teacher@example.com"]
    student_mail = email_outbox.sent[0]
    assert student_mail['subject'] == "[AIedulog] 예약이 완료되었습니다"
    assert "김학생님, 안녕하세요." in student_mail['text']
    assert student_mail['attachments'][0]['content_type'] == 'text/calendar'
    assert "METHOD:REQUEST" in student_mail['attachments'][0]['content']
    assert email_outbox.sent[1]['attachments'] == []

    db_session.refresh(appointment)
    assert appointment.confirmation_sent is True
    entry = _audit_rows(db_session, 'booking_confirmation_sent')[0]
    assert entry.status == 'success'
    assert entry.actor_id == student.id
    assert entry.target_id == str(appointment.id)


def test_booking_confirmation_respects_config_toggles(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    config = schemas.NotificationConfig(email=False, push=False, reminder_24h=False, reminder_1h=False,
                                        include_calendar_file=False)
    SchedulingNotificationService(db_session).send_booking_confirmation(appointment, config)
    assert _rows(db_session, type=APPOINTMENT_CREATED)[0].channels == ['in_app']
    assert _rows(db_session, status='scheduled') == []
    assert email_outbox.sent == []


def test_disabled_schedule_notifications_strip_email(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    _disable_schedule_email(db_session, student)
    SchedulingNotificationService(db_session).send_booking_confirmation(appointment)
    assert 'email' not in _rows(db_session, type=APPOINTMENT_CREATED)[0].channels
    assert [m['to'] for m in email_outbox.sent] == ["teacher@example.com"]


def test_reminders_skip_send_times_already_past(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    start, _ = calendar_service.appointment_window(appointment)
    service = SchedulingNotificationService(db_session, clock=lambda: start - timedelta(hours=2))
    config = schemas.NotificationConfig(reminder_15m=True)

    result = service.schedule_reminder_notifications(appointment, config)
    # 24h is in the past and the user has not opted into the 15 minute reminder
    # one reminder type, with a row for each party
    assert result == {'success': True, 'reminders_scheduled': 1}
    rows = _rows(db_session, type=APPOINTMENT_REMINDER_1H)
    assert {n.user_id for n in rows} == {student.id, instructor.id}
    assert all(n.status == 'scheduled' and n.scheduled_for is not None for n in rows)
    assert email_outbox.sent == []
    # No actor means an internal call, which is not audited on its own
    assert _audit_rows(db_session, 'reminders_scheduled') == []

    NotificationService(db_session).update_preferences(
        student.id, schemas.SchedulingPreferencesUpdate(appointment_reminders_15m=True)
    )
    result = service.schedule_reminder_notifications(appointment, config, actor_id=student.id)
    assert result['reminders_scheduled'] == 2
    reminder_15m = _rows(db_session, type=APPOINTMENT_REMINDER_15M)
    assert {n.priority for n in reminder_15m} == {'urgent'}
    assert reminder_15m[0].channels == ['in_app', 'push', 'sms']
    assert len(_audit_rows(db_session, 'reminders_scheduled')) == 1


def test_cancellation_by_user_notifies_instructor_only(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    result = SchedulingNotificationService(db_session).send_cancellation_notification(
        appointment, cancelled_by='user', reason="일정 변경", actor_id=student.id
    )
    assert result['notified'] == 1
    row = _rows(db_session, type=APPOINTMENT_CANCELLED)[0]
    assert row.user_id == instructor.id
    assert row.message == "1:1 상담 예약이 취소되었습니다."
    assert row.template_data['cancelled_by_name'] == "김학생"
    assert row.template_data['cancellation_reason'] == "일정 변경"
    assert row.action_data['time_slot_available'] is True
    assert [m['to'] for m in email_outbox.sent] == ["teacher@example.com"]


def test_system_cancellation_notifies_both(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    result = SchedulingNotificationService(db_session).send_cancellation_notification(appointment)
    assert result['notified'] == 2
    rows = _rows(db_session, type=APPOINTMENT_CANCELLED)
    assert {r.template_data['cancelled_by_name'] for r in rows} == {"시스템"}
    entry = _audit_rows(db_session, 'cancellation_sent')[0]
    assert entry.metadata_json == {'cancelled_by': 'system'}


def test_reschedule_points_at_new_appointment(db_session, booking, appointment_factory, email_outbox):
    student, instructor, original = booking
    new = appointment_factory(student, instructor, days_ahead=9, start=time(10, 0), end=time(11, 0))
    result = SchedulingNotificationService(db_session).send_reschedule_notification(original, new, rescheduled_by='instructor')
    assert result['success'] is True
    rows = _rows(db_session, type=APPOINTMENT_RESCHEDULED)
    assert {r.user_id for r in rows} == {student.id, instructor.id}
    assert {r.related_content_id for r in rows} == {new.id}
    assert all(r.action_data['original_appointment_id'] == str(original.id) for r in rows)
    assert rows[0].template_data['original_time'] == "오후 2:00"
    assert "오전 10:00" in rows[0].message


def test_completion_requests_feedback(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    SchedulingNotificationService(db_session).send_completion_notification(appointment)
    row = _rows(db_session, type=APPOINTMENT_COMPLETED)[0]
    assert row.user_id == student.id
    assert row.link == f"/appointments/{appointment.id}/feedback"
    assert row.priority == 'normal'


@pytest.mark.parametrize("no_show_by, recipient_email", [
    ('user', "teacher@example.com"),
    ('instructor', "student@example.com"),
])
def test_no_show_notifies_the_party_who_attended(db_session, booking, email_outbox, no_show_by, recipient_email):
    student, instructor, appointment = booking
    SchedulingNotificationService(db_session).send_no_show_notification(appointment, no_show_by=no_show_by)
    assert [m['to'] for m in email_outbox.sent] == [recipient_email]
    assert _rows(db_session, type=APPOINTMENT_NO_SHOW)[0].action_data['no_show_by'] == no_show_by


def test_waitlist_holds_slot_for_thirty_minutes(db_session, booking, identity_factory, email_outbox):
    student, instructor, appointment = booking
    waiting = [identity_factory("w1@example.com"), identity_factory("w2@example.com", preferred_language='en')]
    now = datetime(2030, 1, 1, tzinfo=UTC)
    service = SchedulingNotificationService(db_session, clock=lambda: now)

    result = service.send_waitlist_available_notification(appointment, waiting)
    assert result['notified_users'] == 2
    rows = _rows(db_session, type=WAITLIST_AVAILABLE)
    assert {r.action_data['expires_at'] for r in rows} == {"2030-01-01T00:30:00+00:00"}
    assert {r.title for r in rows} == {'원하시는 시간대가 예약 가능합니다', 'Slot Available'}
    assert all(r.priority == 'urgent' for r in rows)


def test_missing_recipient_is_reported(db_session, booking):
    student, instructor, appointment = booking
    result = SchedulingNotificationService(db_session).send_waitlist_available_notification(appointment, [None])
    assert result == {'success': False, 'errors': ['waitlist_available: recipient not found'], 'notified_users': 0}
    assert _audit_rows(db_session, 'waitlist_sent')[0].status == 'failure'


def test_email_failure_keeps_in_app_notification(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    email_outbox.fail = True
    result = SchedulingNotificationService(db_session).send_completion_notification(appointment)
    assert result['success'] is True
    assert len(_rows(db_session, type=APPOINTMENT_COMPLETED)) == 1
    log = db_session.query(models.EmailNotificationLog).one()
    assert log.status == 'failed'
    assert log.error_message == 'smtp down'


def test_generate_ics_file_uses_clock(db_session, booking):
    student, instructor, appointment = booking
    service = SchedulingNotificationService(db_session, clock=lambda: datetime(2030, 1, 1, 9, 0, tzinfo=UTC))
    ics = service.generate_ics_file(appointment)
    assert "DTSTAMP:20300101T090000Z" in ics
    assert "SUMMARY:수학 과외 - 1:1 상담" in ics


def test_reminder_count_is_per_type_not_per_recipient(db_session, booking, email_outbox):
    student, instructor, appointment = booking
    result = SchedulingNotificationService(db_session).schedule_reminder_notifications(appointment)
    assert result == {'success': True, 'reminders_scheduled': 2}
    assert len(_rows(db_session, status='scheduled')) == 4


def test_config_accepts_client_camel_case_keys():
    config = schemas.NotificationConfig.model_validate({
        'emailNotifications': False,
        'pushNotifications': False,
        'smsNotifications': True,
        'reminder24h': False,
        'reminder1h': False,
        'reminder15m': True,
        'includeCalendarFile': False,
    })
    assert (config.email, config.push, config.sms) == (False, False, True)
    assert (config.reminder_24h, config.reminder_1h, config.reminder_15m) == (False, False, True)
    assert config.include_calendar_file is False
