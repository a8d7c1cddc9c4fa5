"""
CRUD facade for ORM models.

Delegates to the per-domain modules in `edulog.db.repositories`.
"""
import uuid
from typing import Optional
from sqlalchemy.orm import Session

from . import schemas
from .repositories import audits as repo_audits
from .repositories import identities as repo_identities
from .repositories import appointments as repo_appointments
from .repositories import notifications as repo_notifications


# Audit log
def create_audit_log(
    db: Session,
    audit_log: schemas.AuditLogCreate,
    *,
    actor_id: Optional[uuid.UUID] = None,
):
    return repo_audits.create_audit_log(db, audit_log, actor_id)


def get_audit_logs(
    db: Session,
    *,
    actor_id: Optional[uuid.UUID] = None,
    event_type: Optional[str] = None,
    severity: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    return repo_audits.get_audit_logs(
        db,
        actor_id=actor_id,
        event_type=event_type,
        severity=severity,
        status=status,
        skip=skip,
        limit=limit,
    )


# Identity
get_identity = repo_identities.get_identity
get_identity_by_email = repo_identities.get_identity_by_email
get_identities = repo_identities.get_identities
create_identity = repo_identities.create_identity

# Appointments
get_appointment_with_details = repo_appointments.get_appointment_with_details

# Notifications
create_notification = repo_notifications.create_notification
get_user_notifications = repo_notifications.get_user_notifications
get_related_notifications = repo_notifications.get_related_notifications
get_notification_preference = repo_notifications.get_preference
upsert_notification_preference = repo_notifications.upsert_preference
