import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, Time, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class NotificationPreference(Base):
    __tablename__ = 'notification_preferences'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    # 'schedule' | 'content' | 'system' | 'security' | 'marketing'
    category = Column(String(30), nullable=False)
    channels = Column(JSONB, nullable=False, default=lambda: ['in_app'])
    quiet_hours_start = Column(Time, nullable=True)
    quiet_hours_end = Column(Time, nullable=True)
    timezone = Column(String(50), nullable=False, default='Asia/Seoul')
    digest_frequency = Column(String(20), nullable=False, default='immediate')
    max_notifications_per_hour = Column(Integer, nullable=False, default=10)
    schedule_notifications = Column(Boolean, nullable=False, default=True)
    appointment_confirmations = Column(Boolean, nullable=False, default=True)
    appointment_reminders_24h = Column(Boolean, nullable=False, default=True)
    appointment_reminders_1h = Column(Boolean, nullable=False, default=True)
    appointment_reminders_15m = Column(Boolean, nullable=False, default=False)
    appointment_changes = Column(Boolean, nullable=False, default=True)
    instructor_notifications = Column(Boolean, nullable=False, default=True)
    waitlist_notifications = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_notification_preferences_user_id', 'user_id'),
        Index('idx_notification_preferences_unique', 'user_id', 'category', unique=True),
    )


class Notification(Base):
    __tablename__ = 'notifications'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    category = Column(String(30), nullable=False, default='system')
    type = Column(String(50), nullable=False)
    # 'low' | 'normal' | 'high' | 'urgent'
    priority = Column(String(10), nullable=False, default='normal')
    channels = Column(JSONB, nullable=False, default=lambda: ['in_app'])
    link = Column(String(500), nullable=True)
    related_content_type = Column(String(50), nullable=True)
    related_content_id = Column(UUID(as_uuid=True), nullable=True)
    template_key = Column(String(100), nullable=True)
    template_data = Column(JSONB, nullable=True)
    action_data = Column(JSONB, nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    # 'pending' | 'scheduled' | 'sent' | 'failed'
    status = Column(String(20), nullable=False, default='sent')
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_notifications_user_id_created_at', 'user_id', 'created_at'),
        Index('idx_notifications_user_id_is_read', 'user_id', 'is_read'),
        Index('idx_notifications_related_content', 'related_content_type', 'related_content_id'),
        Index('idx_notifications_status_scheduled_for', 'status', 'scheduled_for'),
        Index('idx_notifications_expires_at', 'expires_at'),
    )

    def get_metadata(self):
        return self.metadata_json

    def set_metadata(self, value):
        self.metadata_json = value


class EmailNotificationLog(Base):
    __tablename__ = 'email_notification_logs'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    notification_id = Column(UUID(as_uuid=True), ForeignKey('notifications.id', ondelete='CASCADE'), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    email_address = Column(String(320), nullable=False)
    event_type = Column(String(50), nullable=False)
    subject = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default='pending')
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    bounced_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_email_notification_logs_user_id_created_at', 'user_id', 'created_at'),
        Index('idx_email_notification_logs_status', 'status'),
        Index('idx_email_notification_logs_notification_id', 'notification_id'),
    )
