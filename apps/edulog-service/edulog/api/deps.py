"""
API dependency helpers.

Provides the dependency-resolved identity context for routes.
"""
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from edulog.db.database import get_db
from edulog.api.auth import resolve_identity_from_headers, get_or_create_identity
from edulog.db import models
from edulog.utils.role_permissions import is_admin
from edulog.utils.runtime import dev_mode_active

DEV_EMAIL = "dev@localhost"
DEV_NAME = "Development User"

# Contract:
# Returns (Identity ORM model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[models.Identity, Dict[str, Any]]:
    if dev_mode_active():
        name, email = DEV_NAME, DEV_EMAIL
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    identity = get_or_create_identity(db, email=email, full_name=name)

    current_user = {
        "id": identity.id,
        "email": identity.email,
        "display_name": identity.display_name,
        "role": identity.role,
        "preferred_language": identity.preferred_language,
        "is_superadmin": bool(identity.is_superadmin),
        "is_admin": is_admin(identity),
    }
    return identity, current_user


def require_superadmin(
    user_context: Tuple[models.Identity, Dict[str, Any]] = Depends(get_current_user_context),
) -> Tuple[models.Identity, Dict[str, Any]]:
    _identity, current_user = user_context
    if not current_user.get("is_superadmin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user_context
