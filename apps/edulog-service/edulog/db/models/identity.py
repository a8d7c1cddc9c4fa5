import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Identity(Base):
    __tablename__ = 'identities'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=True)
    # 'ko' | 'en'
    preferred_language = Column(String(5), nullable=False, default='ko')
    role = Column(String(30), nullable=False, default='member')
    status = Column(String(20), nullable=False, default='active')
    is_superadmin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    auth_methods = relationship('AuthMethod', back_populates='identity', cascade='all, delete-orphan')
    profile = relationship('UserProfile', back_populates='identity', uselist=False, cascade='all, delete-orphan')

    @property
    def display_name(self):
        if self.profile is not None and self.profile.nickname:
            return self.profile.nickname
        return self.full_name or self.email.split('@')[0]


class AuthMethod(Base):
    __tablename__ = 'auth_methods'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    identity_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), nullable=False)
    provider = Column(String(30), nullable=False)
    provider_user_id = Column(String(255), nullable=False)
    provider_data = Column(JSONB, nullable=True)
    is_primary = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    identity = relationship('Identity', back_populates='auth_methods')

    __table_args__ = (
        Index('idx_auth_methods_identity_id', 'identity_id'),
        Index('idx_auth_methods_provider_user', 'provider', 'provider_user_id', unique=True),
    )


class UserProfile(Base):
    __tablename__ = 'user_profiles'

    user_id = Column(UUID(as_uuid=True), ForeignKey('identities.id', ondelete='CASCADE'), primary_key=True)
    email = Column(String(320), nullable=False)
    nickname = Column(String(100), nullable=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(Text, nullable=True)
    role = Column(String(30), nullable=False, default='member')
    is_active = Column(Boolean, nullable=False, default=True)
    interests = Column(JSONB, nullable=True)
    lecturer_info = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    identity = relationship('Identity', back_populates='profile')
