"""Identity resolution helpers and the identity-system health check."""

from .helpers import UserIdentity, get_user_identity, get_display_name
from .health_check import IdentityHealthCheck, HealthCheckResult, generate_report

__all__ = [
    "UserIdentity",
    "get_user_identity",
    "get_display_name",
    "IdentityHealthCheck",
    "HealthCheckResult",
    "generate_report",
]
