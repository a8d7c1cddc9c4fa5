import uuid
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from edulog.db import models, schemas
from edulog.services.notification_service import (
    CATEGORY_SCHEDULE,
    NotificationService,
)


@pytest.fixture
def user(identity_factory):
    return identity_factory("reader@example.com", full_name="박독자")


@pytest.fixture
def service(db_session, email_outbox):
    return NotificationService(db_session)


def test_default_preferences_when_none_stored(service, user):
    prefs = service.get_preferences(user.id)
    assert prefs.channels == ['in_app', 'email']
    assert prefs.appointment_reminders_15m is False
    assert prefs.user_id == user.id


def test_update_preferences_starts_from_defaults(db_session, service, user):
    service.update_preferences(user.id, schemas.SchedulingPreferencesUpdate(appointment_reminders_15m=True))
    service.update_preferences(user.id, schemas.SchedulingPreferencesUpdate(max_notifications_per_hour=5))

    pref = db_session.query(models.NotificationPreference).one()
    assert pref.category == CATEGORY_SCHEDULE
    assert pref.channels == ['in_app', 'email']
    assert pref.appointment_reminders_15m is True
    assert pref.max_notifications_per_hour == 5
    assert service.get_preferences(user.id).appointment_reminders_15m is True


def test_preference_update_validation():
    with pytest.raises(ValidationError):
        schemas.SchedulingPreferencesUpdate(max_notifications_per_hour=0)
    with pytest.raises(ValidationError):
        schemas.SchedulingPreferencesUpdate(max_notifications_per_hour=101)
    update = schemas.SchedulingPreferencesUpdate.model_validate({'is_active': False, 'bogus': 1})
    assert update.model_dump(exclude_unset=True) == {'is_active': False}


def test_create_notification_defaults(service, user):
    sent = service.create_notification(user.id, 'system_notice', '점검 안내', '오늘 밤 점검이 있습니다.')
    assert sent.status == 'sent'
    assert sent.channels == ['in_app']
    assert sent.category == 'system'
    assert sent.expires_at is not None

    later = datetime.now(UTC) + timedelta(days=1)
    scheduled = service.create_notification(user.id, 'reminder', '알림', '곧 시작합니다', scheduled_for=later,
                                            metadata={'source': 'test'})
    assert scheduled.status == 'scheduled'
    assert scheduled.get_metadata() == {'source': 'test'}


def test_listing_hides_expired_and_counts_unread(service, user):
    past = datetime.now(UTC) - timedelta(days=1)
    service.create_notification(user.id, 'a', 'A', 'a')
    read_me = service.create_notification(user.id, 'b', 'B', 'b')
    service.create_notification(user.id, 'c', 'C', 'c', expires_at=past)

    assert {n.type for n in service.get_user_notifications(user.id)} == {'a', 'b'}
    assert service.get_unread_count(user.id) == 2

    assert service.mark_notification_read(read_me.id, user.id) is True
    assert service.get_unread_count(user.id) == 1
    assert [n.type for n in service.get_user_notifications(user.id, unread_only=True)] == ['a']


def test_mark_read_rejects_other_users(service, user, identity_factory):
    other = identity_factory("other@example.com")
    notification = service.create_notification(user.id, 'a', 'A', 'a')
    assert service.mark_notification_read(notification.id, other.id) is False
    assert service.mark_notification_read(uuid.uuid4(), user.id) is False


def test_cleanup_expired(db_session, service, user):
    past = datetime.now(UTC) - timedelta(minutes=1)
    service.create_notification(user.id, 'old', 'Old', 'old', expires_at=past)
    service.create_notification(user.id, 'new', 'New', 'new')
    assert service.cleanup_expired_notifications() == 1
    assert [n.type for n in db_session.query(models.Notification).all()] == ['new']


def test_deliver_email_records_success(db_session, service, user, email_outbox):
    notification = service.create_notification(user.id, 'appointment_completed', '완료', '수업이 완료되었습니다.')
    result = service.deliver_email(
        user_id=user.id,
        email_address=user.email,
        event_type='appointment_completed',
        subject='[AIedulog] 수업이 완료되었습니다',
        template_name='appointment_completed',
        template_context={'title': '완료', 'message': '수업이 완료되었습니다.', 'recipient_name': '박독자'},
        notification_id=notification.id,
    )
    assert result['success'] is True
    log = db_session.query(models.EmailNotificationLog).one()
    assert log.status == 'sent'
    assert log.provider_message_id == '<msg-1@test>'
    assert log.sent_at is not None
    assert log.notification_id == notification.id
    assert email_outbox.sent[0]['to'] == "reader@example.com"


def test_deliver_email_records_failures(db_session, service, user, email_outbox):
    email_outbox.fail = True
    result = service.deliver_email(user_id=user.id, email_address=user.email, event_type='x', subject='S',
                                   template_name='appointment_completed', template_context={})
    assert result['success'] is False
    assert db_session.query(models.EmailNotificationLog).one().error_message == 'smtp down'


def test_missing_template_marks_log_failed(db_session, service, user, email_outbox):
    result = service.deliver_email(user_id=user.id, email_address=user.email, event_type='x', subject='S',
                                   template_name='does_not_exist', template_context={})
    assert result['success'] is False
    assert result['error'].startswith("Template rendering failed for does_not_exist")
    assert email_outbox.sent == []
    assert db_session.query(models.EmailNotificationLog).one().status == 'failed'


def test_update_email_status_unknown_log(service):
    assert service.update_email_status(uuid.uuid4(), 'delivered') is False
