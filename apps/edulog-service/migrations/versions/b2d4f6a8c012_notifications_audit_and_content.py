"""notifications, security audit log and content templates

Revision ID: b2d4f6a8c012
Revises: a1c3e5f7b901
Create Date: 2025-09-21 08:47:03.118245

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b2d4f6a8c012'
down_revision: Union[str, None] = 'a1c3e5f7b901'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'notification_preferences',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(length=30), nullable=False),
        sa.Column('channels', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[\"in_app\"]'::jsonb"), nullable=False),
        sa.Column('quiet_hours_start', sa.Time(), nullable=True),
        sa.Column('quiet_hours_end', sa.Time(), nullable=True),
        sa.Column('timezone', sa.String(length=50), server_default='Asia/Seoul', nullable=False),
        sa.Column('digest_frequency', sa.String(length=20), server_default='immediate', nullable=False),
        sa.Column('max_notifications_per_hour', sa.Integer(), server_default='10', nullable=False),
        sa.Column('schedule_notifications', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('appointment_confirmations', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('appointment_reminders_24h', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('appointment_reminders_1h', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('appointment_reminders_15m', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('appointment_changes', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('instructor_notifications', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('waitlist_notifications', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('idx_notification_preferences_user_id', 'notification_preferences', ['user_id'], unique=False)
    op.create_index('idx_notification_preferences_unique', 'notification_preferences', ['user_id', 'category'], unique=True)

    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=30), server_default='system', nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('priority', sa.String(length=10), server_default='normal', nullable=False),
        sa.Column('channels', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[\"in_app\"]'::jsonb"), nullable=False),
        sa.Column('link', sa.String(length=500), nullable=True),
        sa.Column('related_content_type', sa.String(length=50), nullable=True),
        sa.Column('related_content_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('template_key', sa.String(length=100), nullable=True),
        sa.Column('template_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('action_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='sent', nullable=False),
        sa.Column('scheduled_for', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_user_id_created_at', 'notifications', ['user_id', 'created_at'], unique=False)
    op.create_index('idx_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'], unique=False)
    op.create_index('idx_notifications_related_content', 'notifications', ['related_content_type', 'related_content_id'], unique=False)
    op.create_index('idx_notifications_status_scheduled_for', 'notifications', ['status', 'scheduled_for'], unique=False)
    op.create_index('idx_notifications_expires_at', 'notifications', ['expires_at'], unique=False)

    op.create_table(
        'email_notification_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('notification_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('notifications.id', ondelete='CASCADE'), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email_address', sa.String(length=320), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('bounced_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('idx_email_notification_logs_user_id_created_at', 'email_notification_logs', ['user_id', 'created_at'], unique=False)
    op.create_index('idx_email_notification_logs_status', 'email_notification_logs', ['status'], unique=False)
    op.create_index('idx_email_notification_logs_notification_id', 'email_notification_logs', ['notification_id'], unique=False)

    op.create_table(
        'security_audit_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('event_category', sa.String(length=50), server_default='application', nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_type', sa.String(length=20), server_default='user', nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('severity', sa.String(length=20), server_default='info', nullable=False),
        sa.Column('target_type', sa.String(length=50), nullable=True),
        sa.Column('target_id', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='success', nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_security_audit_log_actor_id_created_at', 'security_audit_log', ['actor_id', 'created_at'], unique=False)
    op.create_index('ix_security_audit_log_event_type', 'security_audit_log', ['event_type'], unique=False)
    op.create_index('ix_security_audit_log_severity', 'security_audit_log', ['severity'], unique=False)

    op.create_table(
        'content_templates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('template_key', sa.String(length=100), nullable=False, unique=True),
        sa.Column('category', sa.String(length=30), server_default='notification', nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_table(
        'content_translations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('content_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('language', sa.String(length=5), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('idx_content_translations_template_language', 'content_translations', ['template_id', 'language'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_content_translations_template_language', table_name='content_translations')
    op.drop_table('content_translations')
    op.drop_table('content_templates')
    op.drop_index('ix_security_audit_log_severity', table_name='security_audit_log')
    op.drop_index('ix_security_audit_log_event_type', table_name='security_audit_log')
    op.drop_index('ix_security_audit_log_actor_id_created_at', table_name='security_audit_log')
    op.drop_table('security_audit_log')
    op.drop_index('idx_email_notification_logs_notification_id', table_name='email_notification_logs')
    op.drop_index('idx_email_notification_logs_status', table_name='email_notification_logs')
    op.drop_index('idx_email_notification_logs_user_id_created_at', table_name='email_notification_logs')
    op.drop_table('email_notification_logs')
    op.drop_index('idx_notifications_expires_at', table_name='notifications')
    op.drop_index('idx_notifications_status_scheduled_for', table_name='notifications')
    op.drop_index('idx_notifications_related_content', table_name='notifications')
    op.drop_index('idx_notifications_user_id_is_read', table_name='notifications')
    op.drop_index('idx_notifications_user_id_created_at', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('idx_notification_preferences_unique', table_name='notification_preferences')
    op.drop_index('idx_notification_preferences_user_id', table_name='notification_preferences')
    op.drop_table('notification_preferences')
