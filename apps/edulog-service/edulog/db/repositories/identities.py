"""
Identity repository: identities, auth methods and profiles.
"""
from __future__ import annotations

import uuid
from typing import Optional, Iterable, List
from sqlalchemy.orm import Session, joinedload

from edulog.db import models, schemas


def get_identity(db: Session, identity_id: uuid.UUID) -> Optional[models.Identity]:
    return db.query(models.Identity).filter(models.Identity.id == identity_id).first()


def get_identity_by_email(db: Session, email: str) -> Optional[models.Identity]:
    return db.query(models.Identity).filter(models.Identity.email == email).first()


def get_identities(db: Session, identity_ids: Iterable[uuid.UUID]) -> List[models.Identity]:
    ids = list(identity_ids)
    if not ids:
        return []
    return (
        db.query(models.Identity)
        .options(joinedload(models.Identity.profile))
        .filter(models.Identity.id.in_(ids))
        .all()
    )


def create_identity(
    db: Session,
    identity_in: schemas.IdentityCreate,
    *,
    is_superadmin: bool = False,
) -> models.Identity:
    """Insert the identity and its profile row in one commit."""
    identity = models.Identity(**identity_in.model_dump(), is_superadmin=is_superadmin)
    db.add(identity)
    db.flush()
    db.add(models.UserProfile(
        user_id=identity.id,
        email=identity.email,
        full_name=identity.full_name,
        role=identity.role,
    ))
    db.commit()
    db.refresh(identity)
    return identity
