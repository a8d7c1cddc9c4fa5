"""Runtime environment helpers: boolean env flags and the DEV_MODE guard."""

import os
from urllib.parse import urlparse
from typing import Optional, Set

_LOCAL_HOSTS: Set[str] = {"localhost", "127.0.0.1", "::1"}
_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable ("1/true/yes/on" are truthy)."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _hostname(url_value: str) -> Optional[str]:
    url_value = (url_value or "").strip()
    if not url_value:
        return None
    candidate = url_value if "://" in url_value else f"http://{url_value}"
    return urlparse(candidate).hostname


def dev_mode_active() -> bool:
    """Return True if DEV_MODE is enabled and allowed; raise if misconfigured.

    DEV_MODE impersonates a fixed local user, so it is only honoured when
    APP_BASE_URL points at a local host (or one listed in
    DEV_MODE_ALLOWED_HOSTS). Without APP_BASE_URL, ALLOW_DEV_MODE=true is
    required outside of tests.
    """
    if not env_flag("DEV_MODE"):
        return False

    allowed = set(_LOCAL_HOSTS)
    allowed.update(h.strip().lower() for h in os.getenv("DEV_MODE_ALLOWED_HOSTS", "").split(",") if h.strip())

    hostname = _hostname(os.getenv("APP_BASE_URL", ""))
    if hostname:
        if hostname.lower() not in allowed:
            raise RuntimeError(
                "DEV_MODE=true is not permitted when APP_BASE_URL points to "
                f"'{hostname}'. Allowed hosts: {sorted(allowed)}"
            )
    elif not env_flag("ALLOW_DEV_MODE") and not os.getenv("PYTEST_CURRENT_TEST"):
        raise RuntimeError(
            "DEV_MODE=true requires APP_BASE_URL to be set to a localhost URL "
            "or ALLOW_DEV_MODE=true for non-local execution."
        )
    return True
