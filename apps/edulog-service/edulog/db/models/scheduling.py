import uuid
from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    Time,
    DateTime,
    Integer,
    Numeric,
    Boolean,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class AppointmentType(Base):
    __tablename__ = 'appointment_types'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    instructor_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    type_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    buffer_time_minutes = Column(Integer, nullable=False, default=15)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='KRW')
    is_active = Column(Boolean, nullable=False, default=True)
    requires_approval = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint('duration_minutes > 0 AND duration_minutes <= 480', name='ck_appointment_types_duration'),
        Index('idx_appointment_types_instructor_id', 'instructor_id'),
    )


class Appointment(Base):
    __tablename__ = 'appointments'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    instructor_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    appointment_type_id = Column(UUID(as_uuid=True), ForeignKey('appointment_types.id', ondelete='SET NULL'), nullable=True)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    timezone = Column(String(50), nullable=False, default='Asia/Seoul')
    duration_minutes = Column(Integer, nullable=False, default=60)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    user_notes = Column(Text, nullable=True)
    # 'online' | 'offline' | 'hybrid'
    meeting_type = Column(String(20), nullable=False, default='online')
    meeting_link = Column(Text, nullable=True)
    meeting_location = Column(Text, nullable=True)
    # 'pending' | 'confirmed' | 'cancelled' | 'completed' | 'no_show'
    status = Column(String(20), nullable=False, default='pending')
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(UUID(as_uuid=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    original_appointment_id = Column(UUID(as_uuid=True), ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)
    reminder_24h_sent = Column(Boolean, nullable=False, default=False)
    reminder_1h_sent = Column(Boolean, nullable=False, default=False)
    reminder_15m_sent = Column(Boolean, nullable=False, default=False)
    confirmation_sent = Column(Boolean, nullable=False, default=False)
    booking_metadata = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    appointment_type = relationship('AppointmentType')
    user = relationship('Identity', foreign_keys=[user_id])
    instructor = relationship('Identity', foreign_keys=[instructor_id])

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_appointments_time_order'),
        CheckConstraint('user_id <> instructor_id', name='ck_appointments_distinct_parties'),
        Index('idx_appointments_user_id_date', 'user_id', 'appointment_date'),
        Index('idx_appointments_instructor_id_date', 'instructor_id', 'appointment_date'),
        Index('idx_appointments_status', 'status'),
    )
