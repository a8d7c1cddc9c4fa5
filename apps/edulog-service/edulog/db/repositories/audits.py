"""
Security audit log repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy.orm import Session

from edulog.db import schemas, models


def create_audit_log(db: Session, audit_log: schemas.AuditLogCreate, actor_id: Optional[uuid.UUID] = None):
    data = audit_log.model_dump()
    metadata_payload = data.pop('metadata', None)
    db_audit_log = models.SecurityAuditLog(
        **data,
        actor_id=actor_id,
        metadata_json=metadata_payload,
    )
    db.add(db_audit_log)
    db.commit()
    db.refresh(db_audit_log)
    return db_audit_log


def get_audit_logs(
    db: Session,
    actor_id: Optional[uuid.UUID] = None,
    event_type: Optional[str] = None,
    severity: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.SecurityAuditLog)
    if actor_id:
        query = query.filter(models.SecurityAuditLog.actor_id == actor_id)
    if event_type:
        query = query.filter(models.SecurityAuditLog.event_type == event_type)
    if severity:
        query = query.filter(models.SecurityAuditLog.severity == severity)
    if status:
        query = query.filter(models.SecurityAuditLog.status == status)
    return query.order_by(models.SecurityAuditLog.created_at.desc()).offset(skip).limit(limit).all()
