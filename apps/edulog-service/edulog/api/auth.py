"""
Authentication helpers and identity resolution.

Parses proxy headers, normalizes emails, and upserts identities while
supporting superadmin elevation via the ADMIN_EMAILS environment variable.
"""
import os
from typing import Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edulog.db import crud, models, schemas
from edulog.utils.role_permissions import ROLE_SUPER_ADMIN


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def _normalize_list_env(var_name: str) -> set:
    raw = os.getenv(var_name, "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _admin_emails() -> set:
    return _normalize_list_env("ADMIN_EMAILS")


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_or_create_identity(db: Session, email: str, full_name: Optional[str] = None) -> models.Identity:
    identity = crud.get_identity_by_email(db, email)
    admins = _admin_emails()
    if identity is None:
        is_admin = email in admins
        identity_in = schemas.IdentityCreate(
            email=email,
            full_name=full_name,
            role=ROLE_SUPER_ADMIN if is_admin else "member",
        )
        return crud.create_identity(db, identity_in, is_superadmin=is_admin)

    # Existing identities might predate a new ADMIN_EMAILS value
    if email in admins and not identity.is_superadmin:
        identity.is_superadmin = True
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
        else:
            db.refresh(identity)
    return identity
