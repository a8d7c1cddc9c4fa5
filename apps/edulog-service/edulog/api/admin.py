"""
Administrative endpoints (superadmin only).
"""
from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from edulog import audit
from edulog.audit import AuditAction
from edulog.db.database import get_db
from edulog.api.deps import require_superadmin
from edulog.identity import IdentityHealthCheck, generate_report

router = APIRouter(tags=["admin"])


@router.get("/identity/health")
def identity_health(
    format: Literal["json", "markdown"] = "json",
    db: Session = Depends(get_db),
    user_context = Depends(require_superadmin),
):
    """
    Run the identity system health check against the live database.

    - **format**: ``json`` (default) or ``markdown``
    """
    user, current_user = user_context
    result = IdentityHealthCheck(db).run()
    audit.log(
        db,
        action=AuditAction.IDENTITY_HEALTH_CHECK,
        event_type="admin_action",
        event_category="identity",
        actor_id=user.id,
        metadata={"score": result.score, "overall": result.overall},
    )
    if format == "markdown":
        return PlainTextResponse(generate_report(result), media_type="text/markdown; charset=utf-8")
    return result.to_dict()
