import uuid
from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class SecurityAuditLog(Base):
    __tablename__ = 'security_audit_log'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type = Column(String(50), nullable=False)
    event_category = Column(String(50), nullable=False, default='application')
    # Anonymous requests (rate limiting) have no actor.
    actor_id = Column(UUID(as_uuid=True), nullable=True)
    actor_type = Column(String(20), nullable=False, default='user')
    action = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String(20), nullable=False, default='info')
    target_type = Column(String(50), nullable=True)
    target_id = Column(String(100), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='success')
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_security_audit_log_actor_id_created_at', 'actor_id', 'created_at'),
        Index('ix_security_audit_log_event_type', 'event_type'),
        Index('ix_security_audit_log_severity', 'severity'),
    )

    def get_metadata(self):
        return self.metadata_json

    def set_metadata(self, value):
        self.metadata_json = value
