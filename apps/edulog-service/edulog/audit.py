"""
Security audit logging helpers and enums.

Centralized helpers to persist normalized `security_audit_log` records;
includes convenience wrappers per event family.
"""
from __future__ import annotations
import logging
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from edulog.db import crud, schemas

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Scheduling notifications
    BOOKING_CONFIRMATION_SENT = "booking_confirmation_sent"
    APPOINTMENT_CONFIRMATION_SENT = "appointment_confirmation_sent"
    REMINDERS_SCHEDULED = "reminders_scheduled"
    CANCELLATION_SENT = "cancellation_sent"
    RESCHEDULE_SENT = "reschedule_sent"
    COMPLETION_SENT = "completion_sent"
    NO_SHOW_SENT = "no_show_sent"
    WAITLIST_SENT = "waitlist_sent"
    CALENDAR_EXPORTED = "calendar_exported"
    # Preferences
    PREFERENCES_UPDATE = "preferences_update"
    # Security
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SUSPICIOUS_INPUT = "suspicious_input"
    # Admin
    IDENTITY_HEALTH_CHECK = "identity_health_check"
    NOTIFICATIONS_CLEANUP = "notifications_cleanup"


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"


def _value(item) -> str:
    return item.value if isinstance(item, Enum) else str(item)


def log(
    db: Session,
    *,
    action: AuditAction | str,
    event_type: str = "application",
    event_category: str = "application",
    actor_id: Optional[uuid.UUID] = None,
    actor_type: str = "user",
    description: Optional[str] = None,
    severity: AuditSeverity | str = AuditSeverity.INFO,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: Optional[str] = None,
    target_id: Optional[Any] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper.

    Enum members are persisted by value so rows never contain 'AuditAction.X'.
    """
    audit_log = schemas.AuditLogCreate(
        event_type=event_type,
        event_category=event_category,
        action=_value(action),
        description=description,
        severity=_value(severity),
        status=_value(status),
        actor_type=actor_type,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata=metadata or {},
    )
    return crud.create_audit_log(db, audit_log=audit_log, actor_id=actor_id)

__all__ = ["AuditAction", "AuditSeverity", "AuditStatus", "log"]


def log_appointment_notification(
    db: Session,
    *,
    actor_id: Optional[uuid.UUID],
    appointment_id: uuid.UUID,
    action: AuditAction,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    metadata: Optional[Dict[str, Any]] = None,
):
    return log(
        db,
        action=action,
        event_type="notification",
        event_category="scheduling",
        actor_id=actor_id,
        status=status,
        severity=AuditSeverity.INFO if _value(status) == AuditStatus.SUCCESS.value else AuditSeverity.WARNING,
        target_type="appointment",
        target_id=appointment_id,
        metadata=metadata,
    )


def log_preferences_update(db: Session, *, actor_id: uuid.UUID, category: str, changed: Dict[str, Any]):
    return log(
        db,
        action=AuditAction.PREFERENCES_UPDATE,
        event_type="user_action",
        event_category="notification_preferences",
        actor_id=actor_id,
        target_type="notification_preferences",
        target_id=actor_id,
        metadata={"category": category, "changed_fields": sorted(changed.keys())},
    )


def log_security_incident(
    db: Session,
    *,
    action: AuditAction | str,
    description: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
    severity: AuditSeverity | str = AuditSeverity.WARNING,
    metadata: Optional[Dict[str, Any]] = None,
):
    return log(
        db,
        action=action,
        event_type="security_incident",
        event_category="security",
        actor_id=actor_id,
        actor_type="user" if actor_id else "anonymous",
        description=description,
        severity=severity,
        status=AuditStatus.BLOCKED,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata=metadata,
    )

__all__.extend(["log_appointment_notification", "log_preferences_update", "log_security_incident"])
