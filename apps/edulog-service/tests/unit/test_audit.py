import uuid

from edulog import audit
from edulog.audit import AuditAction, AuditSeverity, AuditStatus
from edulog.db import crud


def test_enum_values_are_persisted(db_session, identity_factory):
    actor = identity_factory("actor@example.com")
    row = audit.log_preferences_update(db_session, actor_id=actor.id, category='schedule',
                                       changed={'channels': ['in_app'], 'is_active': True})
    assert row.action == "preferences_update"
    assert row.severity == "info"
    assert row.status == "success"
    assert row.target_id == str(actor.id)
    assert row.metadata_json == {"category": "schedule", "changed_fields": ["channels", "is_active"]}


def test_security_incident_without_actor(db_session):
    row = audit.log_security_incident(
        db_session,
        action=AuditAction.RATE_LIMIT_EXCEEDED,
        description="Rate limit exceeded",
        ip_address="203.0.113.5",
    )
    assert row.actor_id is None
    assert row.actor_type == "anonymous"
    assert row.status == "blocked"
    assert row.severity == "warning"
    assert row.event_type == "security_incident"


def test_failed_appointment_notification_is_a_warning(db_session):
    appointment_id = uuid.uuid4()
    row = audit.log_appointment_notification(
        db_session, actor_id=None, appointment_id=appointment_id,
        action=AuditAction.CANCELLATION_SENT, status=AuditStatus.FAILURE,
    )
    assert row.severity == "warning"
    assert row.target_type == "appointment"
    assert row.target_id == str(appointment_id)


def test_audit_log_filters(db_session, identity_factory):
    actor = identity_factory("filter@example.com")
    audit.log(db_session, action="custom", event_type="user_action", actor_id=actor.id)
    audit.log(db_session, action="other", event_type="security_incident", severity=AuditSeverity.CRITICAL)

    assert [r.action for r in crud.get_audit_logs(db_session, actor_id=actor.id)] == ["custom"]
    assert [r.action for r in crud.get_audit_logs(db_session, severity="critical")] == ["other"]
    assert [r.action for r in crud.get_audit_logs(db_session, event_type="user_action")] == ["custom"]
    assert crud.get_audit_logs(db_session, status="blocked") == []
    assert len(crud.get_audit_logs(db_session, limit=1)) == 1
