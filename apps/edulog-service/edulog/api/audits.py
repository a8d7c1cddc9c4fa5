"""
Audit log API endpoints.

Query the security audit log; restricted to superadmins.
"""
from typing import Optional, List
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edulog.db.database import get_db
from edulog.db import schemas, crud
from edulog.api.deps import require_superadmin

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    event_type: Optional[str] = None,
    severity: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context = Depends(require_superadmin),
):
    return crud.get_audit_logs(
        db,
        actor_id=actor_id,
        event_type=event_type,
        severity=severity,
        skip=skip,
        limit=limit,
    )
