"""
Single entry point for resolving a member's identity.

Callers should use `get_user_identity` instead of querying `auth_methods`
or `user_profiles` directly; the health check measures how well the code
base follows that rule.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, List

from sqlalchemy.orm import Session, joinedload

from edulog.db import models


@dataclass
class UserIdentity:
    identity_id: uuid.UUID
    email: str
    role: str
    status: str
    full_name: Optional[str] = None
    nickname: Optional[str] = None
    preferred_language: str = "ko"
    is_active: bool = True
    providers: List[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.nickname or self.full_name or self.email.split("@")[0]


def _to_user_identity(identity: models.Identity) -> UserIdentity:
    profile = identity.profile
    return UserIdentity(
        identity_id=identity.id,
        email=identity.email,
        role=(profile.role if profile is not None and profile.role else identity.role),
        status=identity.status,
        full_name=(profile.full_name if profile is not None and profile.full_name else identity.full_name),
        nickname=profile.nickname if profile is not None else None,
        preferred_language=identity.preferred_language or "ko",
        is_active=profile.is_active if profile is not None else identity.status == "active",
        providers=sorted({m.provider for m in identity.auth_methods}),
    )


def get_user_identity(
    db: Session,
    provider_user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> Optional[UserIdentity]:
    """Resolve identity, auth methods and profile in one query.

    Lookup is by provider subject first, then by (case-insensitive) email.
    Returns None when nothing matches.
    """
    if not provider_user_id and not email:
        return None

    query = db.query(models.Identity).options(
        joinedload(models.Identity.profile),
        joinedload(models.Identity.auth_methods),
    )
    identity = None
    if provider_user_id:
        identity = (
            query.join(models.AuthMethod, models.AuthMethod.identity_id == models.Identity.id)
            .filter(models.AuthMethod.provider_user_id == provider_user_id)
            .first()
        )
    if identity is None and email:
        identity = query.filter(models.Identity.email == email.strip().lower()).first()
    if identity is None:
        return None
    return _to_user_identity(identity)


def get_display_name(identity: Optional[models.Identity]) -> str:
    if identity is None:
        return ""
    return identity.display_name
