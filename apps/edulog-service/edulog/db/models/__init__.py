"""
Domain-split SQLAlchemy models with an aggregator.

Exposes `Base`, `now_utc`, and all ORM classes under `edulog.db.models`.
"""

from .base import Base, now_utc  # re-export

from .identity import Identity, AuthMethod, UserProfile
from .scheduling import AppointmentType, Appointment
from .notifications import NotificationPreference, Notification, EmailNotificationLog
from .audit import SecurityAuditLog
from .content import ContentTemplate, ContentTranslation

__all__ = [
    # base
    "Base",
    "now_utc",
    # identity
    "Identity",
    "AuthMethod",
    "UserProfile",
    # scheduling
    "AppointmentType",
    "Appointment",
    # notifications
    "NotificationPreference",
    "Notification",
    "EmailNotificationLog",
    # audit
    "SecurityAuditLog",
    # content
    "ContentTemplate",
    "ContentTranslation",
]
