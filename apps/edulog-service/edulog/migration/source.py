"""
Read-only PostgREST client for the Supabase source project.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import TableFilter

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """A source request failed; carries the HTTP status when there was one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def parse_content_range_total(header: Optional[str]) -> Optional[int]:
    """Return the total from a ``Content-Range`` header (``0-9/125`` -> 125)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


class SupabaseSource:
    def __init__(self, base_url: str, service_role_key: str, *, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
                "Accept": "application/json",
            }
        )

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    @staticmethod
    def _filter_params(filters: Sequence[TableFilter]) -> List[tuple]:
        return [f.as_param() for f in filters]

    def _raise_for_status(self, response, table: str) -> None:
        if response.status_code >= 400:
            body = (response.text or "")[:200]
            raise ExtractionError(
                f"{table}: source returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

    def count(self, table: str, filters: Sequence[TableFilter] = ()) -> Optional[int]:
        params = [("select", "*")] + self._filter_params(filters)
        try:
            response = self.session.head(
                self._url(table),
                params=params,
                headers={"Prefer": "count=exact", "Range": "0-0"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ExtractionError(f"{table}: count request failed: {exc}") from exc
        self._raise_for_status(response, table)
        return parse_content_range_total(response.headers.get("Content-Range"))

    def fetch_page(
        self,
        table: str,
        *,
        offset: int,
        limit: int,
        order_by: str = "created_at",
        filters: Sequence[TableFilter] = (),
    ) -> List[Dict[str, Any]]:
        params = [
            ("select", "*"),
            ("order", f"{order_by}.asc"),
            ("offset", str(offset)),
            ("limit", str(limit)),
        ] + self._filter_params(filters)
        try:
            response = self.session.get(self._url(table), params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExtractionError(f"{table}: page request failed at offset {offset}: {exc}") from exc
        self._raise_for_status(response, table)
        try:
            rows = response.json()
        except ValueError as exc:
            raise ExtractionError(f"{table}: response was not JSON") from exc
        if not isinstance(rows, list):
            raise ExtractionError(f"{table}: unexpected response shape {type(rows).__name__}")
        return rows

    def test_connection(self, table: str = "user_profiles") -> bool:
        try:
            self.fetch_page(table, offset=0, limit=1)
        except ExtractionError as exc:
            logger.error("Supabase connection check failed: %s", exc)
            return False
        return True
