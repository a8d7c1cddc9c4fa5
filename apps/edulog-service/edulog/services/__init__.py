"""Business logic services package with public service helpers."""

from .email_service import (
    EmailService,
    EmailServiceConfig,
    get_email_service,
    reset_email_service_for_tests,
)
from .notification_service import NotificationService
from .scheduling_notification_service import SchedulingNotificationService

__all__ = [
    "EmailService",
    "EmailServiceConfig",
    "get_email_service",
    "reset_email_service_for_tests",
    "NotificationService",
    "SchedulingNotificationService",
]
