import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class ContentTemplate(Base):
    __tablename__ = 'content_templates'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_key = Column(String(100), nullable=False, unique=True)
    category = Column(String(30), nullable=False, default='notification')
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    translations = relationship('ContentTranslation', back_populates='template', cascade='all, delete-orphan')

    def translation_for(self, language):
        by_lang = {t.language: t for t in self.translations}
        return by_lang.get(language) or by_lang.get('ko')


class ContentTranslation(Base):
    __tablename__ = 'content_translations'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_id = Column(UUID(as_uuid=True), ForeignKey('content_templates.id', ondelete='CASCADE'), nullable=False)
    language = Column(String(5), nullable=False)
    subject = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    template = relationship('ContentTemplate', back_populates='translations')

    __table_args__ = (
        Index('idx_content_translations_template_language', 'template_id', 'language', unique=True),
    )
