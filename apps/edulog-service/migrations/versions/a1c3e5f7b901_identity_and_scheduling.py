"""identity and scheduling tables

Revision ID: a1c3e5f7b901
Revises:
Create Date: 2025-09-20 10:12:44.301822

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b901'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'identities',
        _uuid_pk(),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('preferred_language', sa.String(length=5), server_default='ko', nullable=False),
        sa.Column('role', sa.String(length=30), server_default='member', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        sa.Column('is_superadmin', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_identities_email', 'identities', ['email'], unique=True)

    op.create_table(
        'auth_methods',
        _uuid_pk(),
        sa.Column('identity_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider', sa.String(length=30), nullable=False),
        sa.Column('provider_user_id', sa.String(length=255), nullable=False),
        sa.Column('provider_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_primary', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('last_used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('idx_auth_methods_identity_id', 'auth_methods', ['identity_id'], unique=False)
    op.create_index('idx_auth_methods_provider_user', 'auth_methods', ['provider', 'provider_user_id'], unique=True)

    op.create_table(
        'user_profiles',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('nickname', sa.String(length=100), nullable=True),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=30), server_default='member', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('interests', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('lecturer_info', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'appointment_types',
        _uuid_pk(),
        sa.Column('instructor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type_name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), server_default='60', nullable=False),
        sa.Column('buffer_time_minutes', sa.Integer(), server_default='15', nullable=False),
        sa.Column('price', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='KRW', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('requires_approval', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('duration_minutes > 0 AND duration_minutes <= 480', name='ck_appointment_types_duration'),
    )
    op.create_index('idx_appointment_types_instructor_id', 'appointment_types', ['instructor_id'], unique=False)

    op.create_table(
        'appointments',
        _uuid_pk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('instructor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('identities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('appointment_type_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('appointment_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('timezone', sa.String(length=50), server_default='Asia/Seoul', nullable=False),
        sa.Column('duration_minutes', sa.Integer(), server_default='60', nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('user_notes', sa.Text(), nullable=True),
        sa.Column('meeting_type', sa.String(length=20), server_default='online', nullable=False),
        sa.Column('meeting_link', sa.Text(), nullable=True),
        sa.Column('meeting_location', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('confirmed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('original_appointment_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reschedule_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('reminder_24h_sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('reminder_1h_sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('reminder_15m_sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('confirmation_sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('booking_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_time_order'),
        sa.CheckConstraint('user_id <> instructor_id', name='ck_appointments_distinct_parties'),
    )
    op.create_index('idx_appointments_user_id_date', 'appointments', ['user_id', 'appointment_date'], unique=False)
    op.create_index('idx_appointments_instructor_id_date', 'appointments', ['instructor_id', 'appointment_date'], unique=False)
    op.create_index('idx_appointments_status', 'appointments', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_appointments_status', table_name='appointments')
    op.drop_index('idx_appointments_instructor_id_date', table_name='appointments')
    op.drop_index('idx_appointments_user_id_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('idx_appointment_types_instructor_id', table_name='appointment_types')
    op.drop_table('appointment_types')
    op.drop_table('user_profiles')
    op.drop_index('idx_auth_methods_provider_user', table_name='auth_methods')
    op.drop_index('idx_auth_methods_identity_id', table_name='auth_methods')
    op.drop_table('auth_methods')
    op.drop_index('ix_identities_email', table_name='identities')
    op.drop_table('identities')
