"""
In-memory sliding-window rate limiting.

Each identifier (``user:<id>:<bucket>`` or ``ip:<addr>:<bucket>``) keeps a list
of request timestamps. Exceeding a bucket's limit blocks the identifier for the
bucket's block duration; progressive buckets double the block for every block
recorded in the last 24 hours (capped at 2^5). Stale entries are pruned from
``check`` every five minutes.
"""
from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

HISTORY_SECONDS = DAY
MAX_PROGRESSIVE_EXPONENT = 5
ATTACK_WINDOW_SECONDS = 5 * MINUTE
CLEANUP_INTERVAL_SECONDS = 5 * MINUTE


@dataclass(frozen=True)
class RateLimitConfig:
    window_seconds: int
    max_requests: int
    block_seconds: int
    progressive: bool = False


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: Optional[int] = None
    blocked: bool = False


RATE_LIMIT_CONFIGS: Dict[str, RateLimitConfig] = {
    "api_default": RateLimitConfig(15 * MINUTE, 100, 15 * MINUTE),
    "auth": RateLimitConfig(15 * MINUTE, 10, 30 * MINUTE, progressive=True),
    "admin": RateLimitConfig(HOUR, 500, HOUR),
    "user_management": RateLimitConfig(5 * MINUTE, 20, 10 * MINUTE, progressive=True),
    "upload": RateLimitConfig(10 * MINUTE, 50, 20 * MINUTE, progressive=True),
    "security": RateLimitConfig(HOUR, 5, 2 * HOUR, progressive=True),
}

UNKNOWN_BUCKET_LIMIT = 100


def _env_override(bucket: str, base: RateLimitConfig) -> RateLimitConfig:
    """RATE_LIMIT_<BUCKET>_MAX / RATE_LIMIT_<BUCKET>_WINDOW override a bucket."""
    prefix = f"RATE_LIMIT_{bucket.upper()}"
    max_requests = os.getenv(f"{prefix}_MAX")
    window = os.getenv(f"{prefix}_WINDOW")
    if not max_requests and not window:
        return base
    try:
        return RateLimitConfig(
            window_seconds=int(window) if window else base.window_seconds,
            max_requests=int(max_requests) if max_requests else base.max_requests,
            block_seconds=base.block_seconds,
            progressive=base.progressive,
        )
    except ValueError:
        logger.warning("Ignoring invalid rate limit override for %s", bucket)
        return base


def load_rate_limit_configs() -> Dict[str, RateLimitConfig]:
    return {bucket: _env_override(bucket, cfg) for bucket, cfg in RATE_LIMIT_CONFIGS.items()}


def make_identifier(bucket: str, user_id: Optional[str] = None, ip_address: Optional[str] = None) -> str:
    if user_id:
        return f"user:{user_id}:{bucket}"
    return f"ip:{ip_address or 'unknown'}:{bucket}"


class RateLimiter:
    """Thread-safe rate limiter over an in-process store."""

    def __init__(
        self,
        configs: Optional[Dict[str, RateLimitConfig]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.configs = dict(configs if configs is not None else load_rate_limit_configs())
        self.clock = clock
        self._requests: Dict[str, List[float]] = {}
        self._blocked: Dict[str, float] = {}
        self._lock = Lock()
        self._last_cleanup = clock()

    # store primitives; callers hold the lock

    def _count(self, key: str, window_seconds: float, now: float) -> int:
        timestamps = self._requests.get(key)
        if not timestamps:
            return 0
        cutoff = now - window_seconds
        recent = [t for t in timestamps if t > cutoff]
        self._requests[key] = recent
        return len(recent)

    def _add(self, key: str, now: float) -> None:
        self._requests.setdefault(key, []).append(now)

    def _unblock_time(self, key: str, now: float) -> Optional[float]:
        until = self._blocked.get(key)
        if until is None:
            return None
        if now >= until:
            del self._blocked[key]
            return None
        return until

    def check(
        self,
        bucket: str = "api_default",
        *,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> RateLimitResult:
        now = self.clock()
        config = self.configs.get(bucket)
        if config is None:
            logger.warning("Unknown rate limit bucket: %s", bucket)
            return RateLimitResult(
                allowed=True,
                limit=UNKNOWN_BUCKET_LIMIT,
                remaining=UNKNOWN_BUCKET_LIMIT - 1,
                reset_time=now + 15 * MINUTE,
            )

        identifier = make_identifier(bucket, user_id, ip_address)
        with self._lock:
            if now - self._last_cleanup >= CLEANUP_INTERVAL_SECONDS:
                self._prune(now)
            until = self._unblock_time(identifier, now)
            if until is not None:
                return RateLimitResult(
                    allowed=False,
                    limit=config.max_requests,
                    remaining=0,
                    reset_time=until,
                    retry_after=math.ceil(until - now),
                    blocked=True,
                )

            current = self._count(identifier, config.window_seconds, now)
            if current >= config.max_requests:
                block_seconds = config.block_seconds
                if config.progressive:
                    block_key = f"{identifier}:blocks"
                    recent_blocks = self._count(block_key, HISTORY_SECONDS, now)
                    block_seconds = config.block_seconds * 2 ** min(recent_blocks, MAX_PROGRESSIVE_EXPONENT)
                    self._add(block_key, now)
                self._blocked[identifier] = now + block_seconds
                logger.warning(
                    "Rate limit exceeded",
                    extra={"identifier": identifier, "bucket": bucket, "block_seconds": block_seconds},
                )
                return RateLimitResult(
                    allowed=False,
                    limit=config.max_requests,
                    remaining=0,
                    reset_time=now + block_seconds,
                    retry_after=math.ceil(block_seconds),
                    blocked=True,
                )

            self._add(identifier, now)
            return RateLimitResult(
                allowed=True,
                limit=config.max_requests,
                remaining=max(0, config.max_requests - current - 1),
                reset_time=now + config.window_seconds,
            )

    def _prune(self, now: float) -> None:
        for key in list(self._requests):
            recent = [t for t in self._requests[key] if now - t < HISTORY_SECONDS]
            if recent:
                self._requests[key] = recent
            else:
                del self._requests[key]
        for key in [k for k, until in self._blocked.items() if now >= until]:
            del self._blocked[key]
        self._last_cleanup = now

    def cleanup(self) -> None:
        """Drop timestamps older than 24 hours and expired blocks."""
        now = self.clock()
        with self._lock:
            self._prune(now)

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()
            self._blocked.clear()

    def status(self) -> Dict[str, int]:
        with self._lock:
            return {
                "active_keys": len(self._requests),
                "blocked_keys": len(self._blocked),
                "total_requests": sum(len(v) for v in self._requests.values()),
            }

    def detect_coordinated_attack(self) -> Dict[str, object]:
        """Flag bursts spread across many anonymous IPs in the last five minutes."""
        now = self.clock()
        per_ip: Dict[str, int] = {}
        with self._lock:
            for key, timestamps in self._requests.items():
                if not key.startswith("ip:") or key.endswith(":blocks"):
                    continue
                ip = key.split(":")[1]
                recent = sum(1 for t in timestamps if now - t < ATTACK_WINDOW_SECONDS)
                if recent:
                    per_ip[ip] = per_ip.get(ip, 0) + recent

        total = sum(per_ip.values())
        unique_ips = len(per_ip)
        details = f"{total} requests from {unique_ips} IPs in {ATTACK_WINDOW_SECONDS}s"
        if total > 1000 and unique_ips > 50:
            return {"detected": True, "severity": "HIGH", "details": details}
        if total > 500 and unique_ips > 20:
            return {"detected": True, "severity": "MEDIUM", "details": details}
        return {"detected": False, "severity": "LOW"}


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


def reset_rate_limiter_for_tests() -> None:
    global _rate_limiter
    _rate_limiter = None
