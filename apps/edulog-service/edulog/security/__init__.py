"""Request rate limiting and input sanitization."""

from .rate_limiter import (
    RateLimitConfig,
    RateLimitResult,
    RateLimiter,
    get_rate_limiter,
    reset_rate_limiter_for_tests,
)
from .sanitizer import InputSanitizer, SanitizationResult, get_sanitizer

__all__ = [
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimiter",
    "get_rate_limiter",
    "reset_rate_limiter_for_tests",
    "InputSanitizer",
    "SanitizationResult",
    "get_sanitizer",
]
