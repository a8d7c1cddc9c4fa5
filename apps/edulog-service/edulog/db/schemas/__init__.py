"""
Domain-split Pydantic schemas with an aggregator.
"""

from .users import IdentityBase, IdentityCreate
from .audits import AuditLogBase, AuditLogCreate, AuditLog
from .notifications import (
    NotificationBase,
    NotificationCreate,
    Notification,
    NotificationListResponse,
    NotificationStatsResponse,
    SchedulingPreferences,
    SchedulingPreferencesUpdate,
)
from .scheduling import NotificationConfig, SchedulingActionRequest, SchedulingActionResponse

__all__ = [
    "IdentityBase",
    "IdentityCreate",
    "AuditLogBase",
    "AuditLogCreate",
    "AuditLog",
    "NotificationBase",
    "NotificationCreate",
    "Notification",
    "NotificationListResponse",
    "NotificationStatsResponse",
    "SchedulingPreferences",
    "SchedulingPreferencesUpdate",
    "NotificationConfig",
    "SchedulingActionRequest",
    "SchedulingActionResponse",
]
