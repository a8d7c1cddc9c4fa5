"""
Notification and notification preference repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from edulog.db import models, schemas
from edulog.db.models import now_utc


def create_notification(db: Session, notification: schemas.NotificationCreate, *, commit: bool = True) -> models.Notification:
    data = notification.model_dump()
    metadata_payload = data.pop('metadata', None)
    db_notification = models.Notification(**data, metadata_json=metadata_payload)
    db.add(db_notification)
    if commit:
        db.commit()
        db.refresh(db_notification)
    else:
        db.flush()
    return db_notification


def get_user_notifications(
    db: Session,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> List[models.Notification]:
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if unread_only:
        query = query.filter(models.Notification.is_read.is_(False))
    # Hide expired rows
    now = now_utc()
    query = query.filter((models.Notification.expires_at.is_(None)) | (models.Notification.expires_at > now))
    return query.order_by(models.Notification.created_at.desc()).limit(limit).all()


def get_related_notifications(
    db: Session,
    user_id: uuid.UUID,
    *,
    related_content_id: uuid.UUID,
    category: str,
) -> List[models.Notification]:
    return (
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.related_content_id == related_content_id,
            models.Notification.category == category,
        )
        .order_by(models.Notification.created_at.desc())
        .all()
    )


def get_preference(db: Session, user_id: uuid.UUID, category: str) -> Optional[models.NotificationPreference]:
    return (
        db.query(models.NotificationPreference)
        .filter(
            models.NotificationPreference.user_id == user_id,
            models.NotificationPreference.category == category,
        )
        .first()
    )


def upsert_preference(db: Session, user_id: uuid.UUID, category: str, values: Dict[str, Any]) -> models.NotificationPreference:
    pref = get_preference(db, user_id, category)
    if pref is None:
        pref = models.NotificationPreference(user_id=user_id, category=category)
        db.add(pref)
    for key, value in values.items():
        setattr(pref, key, value)
    db.commit()
    db.refresh(pref)
    return pref
