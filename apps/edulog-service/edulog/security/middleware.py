"""
HTTP middleware: per-client rate limiting and JSON body sanitization.
"""
import json
import logging
from typing import Callable, Optional

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from edulog import audit
from edulog.audit import AuditAction, AuditSeverity
from edulog.db import database
from edulog.security.rate_limiter import RateLimiter, get_rate_limiter
from edulog.security.sanitizer import InputSanitizer, get_sanitizer
from edulog.utils.runtime import env_flag

logger = logging.getLogger(__name__)

WRITE_METHODS = ("POST", "PUT", "PATCH", "DELETE")

# Longest prefix wins; order matters only for readability
BUCKET_PREFIXES = (
    ("/admin", "admin"),
    ("/auth", "auth"),
    ("/users", "user_management"),
    ("/uploads", "upload"),
    ("/security", "security"),
)
EXEMPT_PATHS = ("/health",)


def get_client_ip(request: Request) -> str:
    headers = request.headers
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("x-real-ip") or headers.get("cf-connecting-ip") or "unknown"


def bucket_for_path(path: str) -> str:
    for prefix, bucket in BUCKET_PREFIXES:
        if path == prefix or path.startswith(prefix + "/"):
            return bucket
    return "api_default"


def _request_user(request: Request) -> Optional[str]:
    h = request.headers
    return h.get("x-auth-request-user") or h.get("x-auth-request-email") or None


def _record_rate_limit_incident(request: Request, bucket: str, ip_address: str, retry_after: Optional[int]) -> None:
    db = database.SessionLocal()
    try:
        audit.log_security_incident(
            db,
            action=AuditAction.RATE_LIMIT_EXCEEDED,
            description=f"Rate limit exceeded for {bucket} on {request.method} {request.url.path}",
            ip_address=ip_address,
            user_agent=request.headers.get("user-agent"),
            severity=AuditSeverity.WARNING,
            metadata={"bucket": bucket, "path": request.url.path, "retry_after": retry_after,
                      "user": _request_user(request)},
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to record rate limit incident: %s", e)
    finally:
        db.close()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply the bucket matching the request path to the caller.

    Authenticated callers (proxy identity headers) are limited per user,
    everyone else per client IP. Rejected requests get 429 + Retry-After
    and a security audit row.
    """

    def __init__(self, app, limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self._limiter = limiter

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter or get_rate_limiter()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not env_flag("RATE_LIMIT_ENABLED", True) or path in EXEMPT_PATHS:
            return await call_next(request)

        bucket = bucket_for_path(path)
        ip_address = get_client_ip(request)
        result = self.limiter.check(bucket, user_id=_request_user(request), ip_address=ip_address)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(int(result.reset_time)),
        }
        if not result.allowed:
            await run_in_threadpool(_record_rate_limit_incident, request, bucket, ip_address, result.retry_after)
            headers["Retry-After"] = str(result.retry_after or 0)
            return JSONResponse(
                {"detail": "Too many requests", "retry_after_seconds": result.retry_after},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class SanitizeJSONBodyMiddleware:
    """
    ASGI middleware that rewrites JSON bodies of write requests with their
    sanitized form before the route reads them.

    Payloads over the field caps are rejected with 400.
    """

    def __init__(self, app, sanitizer: Optional[InputSanitizer] = None):
        self.app = app
        self.sanitizer = sanitizer or get_sanitizer()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope.get("method") not in WRITE_METHODS:
            await self.app(scope, receive, send)
            return
        content_type = dict(scope.get("headers") or []).get(b"content-type", b"")
        if not content_type.startswith(b"application/json"):
            await self.app(scope, receive, send)
            return

        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body += message.get("body", b"")
            more_body = message.get("more_body", False)

        if body:
            try:
                payload = json.loads(body)
            except ValueError:
                payload = None
            if payload is not None:
                result = self.sanitizer.sanitize_object(payload)
                if not result.is_valid:
                    response = JSONResponse(
                        {"detail": "Invalid input", "errors": result.errors},
                        status_code=status.HTTP_400_BAD_REQUEST,
                    )
                    await response(scope, receive, send)
                    return
                if result.applied_sanitizations:
                    body = json.dumps(result.sanitized_value).encode("utf-8")
                    scope["headers"] = [
                        (k, str(len(body)).encode()) if k == b"content-length" else (k, v)
                        for k, v in scope.get("headers") or []
                    ]

        sent = False

        async def replay():
            nonlocal sent
            if sent:
                return await receive()
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)
