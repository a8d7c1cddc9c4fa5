"""
URL utilities for building absolute links in emails and notifications.

Primary source: APP_BASE_URL (e.g., https://aiedulog.com)
Fallbacks: NEXT_PUBLIC_SITE_URL, then APP_HOST (scheme added heuristically).
"""
from __future__ import annotations

import os


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if h.startswith("http://") or h.startswith("https://"):
        return h
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def get_app_base_url() -> str:
    """Return normalized base URL for the web application.

    Defaults to http://localhost:3000 if nothing is configured.
    """
    for var in ("APP_BASE_URL", "NEXT_PUBLIC_SITE_URL", "APP_HOST"):
        value = (os.getenv(var) or "").strip()
        if value:
            return _add_scheme_if_missing(value).rstrip("/")
    return "http://localhost:3000"


def absolute_url(path: str) -> str:
    """Join an app-relative path onto the base URL."""
    if not path.startswith("/"):
        path = "/" + path
    return f"{get_app_base_url()}{path}"


def appointment_urls(appointment_id) -> dict:
    """Links embedded in every scheduling notification."""
    return {
        "dashboard_url": absolute_url("/dashboard"),
        "appointment_url": absolute_url(f"/dashboard/appointments/{appointment_id}"),
        "booking_url": absolute_url("/scheduling"),
        "calendar_url": absolute_url(f"/api/appointments/{appointment_id}/calendar"),
    }
