"""
Notification service: in-app notifications, preferences, and email dispatch.
Centralizes persistence so every notification path writes the same rows.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, UTC
from typing import Optional, List, Dict, Any

from jinja2 import TemplateError
from sqlalchemy.orm import Session
from sqlalchemy import and_

from edulog.db import models, schemas, crud

logger = logging.getLogger(__name__)

# Categories
CATEGORY_SCHEDULE = 'schedule'
CATEGORY_CONTENT = 'content'
CATEGORY_SYSTEM = 'system'
CATEGORY_SECURITY = 'security'
CATEGORY_MARKETING = 'marketing'
CATEGORIES = (CATEGORY_SCHEDULE, CATEGORY_CONTENT, CATEGORY_SYSTEM, CATEGORY_SECURITY, CATEGORY_MARKETING)

# Channels
CHANNEL_IN_APP = 'in_app'
CHANNEL_EMAIL = 'email'
CHANNEL_PUSH = 'push'
CHANNEL_SMS = 'sms'

# Priorities
PRIORITY_LOW = 'low'
PRIORITY_NORMAL = 'normal'
PRIORITY_HIGH = 'high'
PRIORITY_URGENT = 'urgent'

DEFAULT_EXPIRY_DAYS = 30


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, email_service: Optional[Any] = None):
        self.db = db
        if email_service is not None:
            self.email_service = email_service
        else:
            # Looked up at call time so tests can patch the factory
            from edulog.services import email_service as email_module
            self.email_service = email_module.get_email_service()

    # === Preference Management ===

    def get_preferences(self, user_id: uuid.UUID, category: str = CATEGORY_SCHEDULE) -> schemas.SchedulingPreferences:
        """Stored preferences for ``category``, or the defaults when none exist."""
        pref = crud.get_notification_preference(self.db, user_id, category)
        if pref is None:
            return schemas.SchedulingPreferences(user_id=user_id, category=category)
        return schemas.SchedulingPreferences.model_validate(pref)

    def update_preferences(
        self,
        user_id: uuid.UUID,
        update: schemas.SchedulingPreferencesUpdate,
        category: str = CATEGORY_SCHEDULE,
    ) -> models.NotificationPreference:
        """Upsert on (user_id, category); only fields present in ``update`` change."""
        values = update.model_dump(exclude_unset=True)
        if crud.get_notification_preference(self.db, user_id, category) is None:
            # New rows start from the defaults, not the column defaults
            defaults = schemas.SchedulingPreferences(user_id=user_id, category=category).model_dump(
                exclude={'user_id', 'category'}
            )
            values = {**defaults, **values}
        return crud.upsert_notification_preference(self.db, user_id, category, values)

    # === In-App Notification Management ===

    def create_notification(
        self,
        user_id: uuid.UUID,
        notification_type: str,
        title: str,
        message: str,
        *,
        category: str = CATEGORY_SYSTEM,
        priority: str = PRIORITY_NORMAL,
        channels: Optional[List[str]] = None,
        link: Optional[str] = None,
        related_content_type: Optional[str] = None,
        related_content_id: Optional[uuid.UUID] = None,
        template_key: Optional[str] = None,
        template_data: Optional[Dict[str, Any]] = None,
        action_data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        scheduled_for: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        expires_days: int = DEFAULT_EXPIRY_DAYS,
    ) -> models.Notification:
        """
        Create an in-app notification row.

        Rows with ``scheduled_for`` are stored with status 'scheduled' for the
        external delivery job; everything else is 'sent' immediately.
        """
        if expires_at is None:
            base = scheduled_for or datetime.now(UTC)
            expires_at = base + timedelta(days=expires_days)
        payload = schemas.NotificationCreate(
            user_id=user_id,
            title=title,
            message=message,
            category=category,
            type=notification_type,
            priority=priority,
            channels=channels or [CHANNEL_IN_APP],
            link=link,
            related_content_type=related_content_type,
            related_content_id=related_content_id,
            template_key=template_key,
            template_data=template_data,
            action_data=action_data,
            metadata=metadata,
            status='scheduled' if scheduled_for else 'sent',
            scheduled_for=scheduled_for,
            expires_at=expires_at,
        )
        return crud.create_notification(self.db, payload)

    def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[models.Notification]:
        return crud.get_user_notifications(self.db, user_id, unread_only=unread_only, limit=limit)

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Mark a notification as read for a specific user.
        Returns False if the notification is missing or owned by someone else.
        """
        notification = self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id
            )
        ).first()

        if not notification:
            return False

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            self.db.commit()

        return True

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        now = datetime.now(UTC)
        return self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
            (models.Notification.expires_at.is_(None)) | (models.Notification.expires_at > now),
        ).count()

    # === Email Notification Management ===

    def create_email_notification_log(
        self,
        notification_id: Optional[uuid.UUID],
        user_id: uuid.UUID,
        email_address: str,
        event_type: str,
        subject: str,
        status: str = 'pending'
    ) -> models.EmailNotificationLog:
        email_log = models.EmailNotificationLog(
            notification_id=notification_id,
            user_id=user_id,
            email_address=email_address,
            event_type=event_type,
            subject=subject[:200],
            status=status
        )
        self.db.add(email_log)
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    def update_email_status(
        self,
        email_log_id: uuid.UUID,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> bool:
        """
        Update the status of an email notification.

        Args:
            email_log_id: ID of the email log entry
            status: New status ('sent', 'failed', 'bounced', 'delivered')
            provider_message_id: Message ID from the SMTP server
            error_message: Error details if failed

        Returns:
            True if update successful, False if log not found
        """
        email_log = self.db.query(models.EmailNotificationLog).filter(
            models.EmailNotificationLog.id == email_log_id
        ).first()

        if not email_log:
            return False

        email_log.status = status
        if provider_message_id:
            email_log.provider_message_id = provider_message_id
        if error_message:
            email_log.error_message = error_message

        now = datetime.now(UTC)
        if status == 'sent':
            email_log.sent_at = now
        elif status == 'delivered':
            email_log.delivered_at = now
        elif status == 'bounced':
            email_log.bounced_at = now

        self.db.commit()
        return True

    async def send_email_notification(
        self,
        email_log: models.EmailNotificationLog,
        template_name: str,
        template_context: Dict[str, Any],
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Render ``template_name`` and send it, recording the outcome on ``email_log``.

        Returns:
            Dict with 'success', 'email_log_id', and 'message_id' or 'error'
        """
        try:
            html_content, text_content = self.email_service.render_template(template_name, template_context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for {template_name}: {e}"
            logger.error(error_msg)
            self.update_email_status(email_log.id, 'failed', error_message=error_msg)
            return {'success': False, 'email_log_id': email_log.id, 'error': error_msg}

        result = await self.email_service.send_email(
            to_email=email_log.email_address,
            subject=email_log.subject,
            html_content=html_content,
            text_content=text_content,
            attachments=attachments,
        )

        if result.get('success'):
            self.update_email_status(email_log.id, 'sent', provider_message_id=result.get('message_id'))
            return {
                'success': True,
                'email_log_id': email_log.id,
                'message_id': result.get('message_id')
            }
        self.update_email_status(email_log.id, 'failed', error_message=result.get('error', 'Unknown error'))
        return {
            'success': False,
            'email_log_id': email_log.id,
            'error': result.get('error')
        }

    def deliver_email(
        self,
        *,
        user_id: uuid.UUID,
        email_address: str,
        event_type: str,
        subject: str,
        template_name: str,
        template_context: Dict[str, Any],
        notification_id: Optional[uuid.UUID] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Log and synchronously send one email. Failures are recorded, not raised."""
        email_log = self.create_email_notification_log(
            notification_id=notification_id,
            user_id=user_id,
            email_address=email_address,
            event_type=event_type,
            subject=subject,
        )
        result = asyncio.run(
            self.send_email_notification(email_log, template_name, template_context, attachments=attachments)
        )
        if not result['success']:
            logger.warning(
                "Email delivery failed",
                extra={"event_type": event_type, "email_log_id": str(email_log.id), "error": result.get('error')},
            )
        return result

    # === Cleanup Methods ===

    def cleanup_expired_notifications(self) -> int:
        """
        Remove notifications that have exceeded their expiration date.
        Returns count of cleaned up notifications.
        """
        expired = self.db.query(models.Notification).filter(
            models.Notification.expires_at <= datetime.now(UTC)
        )
        count = expired.count()
        expired.delete(synchronize_session=False)
        self.db.commit()
        return count
