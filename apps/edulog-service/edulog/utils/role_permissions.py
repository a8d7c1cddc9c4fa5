"""
Role constants and helpers for community members.

Roles live on `identities.role` (and are mirrored on `user_profiles.role`).
Superadmin is a separate flag granted through ADMIN_EMAILS.
"""

from typing import FrozenSet


ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_MODERATOR = "moderator"
ROLE_INSTRUCTOR = "instructor"
ROLE_VERIFIED = "verified"
ROLE_MEMBER = "member"

ADMIN_ROLES: FrozenSet[str] = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})


def is_admin(identity) -> bool:
    """Superadmins and admin-role identities may use admin endpoints."""
    if identity is None:
        return False
    return bool(getattr(identity, "is_superadmin", False)) or getattr(identity, "role", None) in ADMIN_ROLES
