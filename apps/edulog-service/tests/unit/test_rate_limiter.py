import pytest

from edulog.security import RateLimitConfig, RateLimiter
from edulog.security.rate_limiter import RATE_LIMIT_CONFIGS, load_rate_limit_configs, make_identifier


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_requests_within_limit_are_counted_down(clock):
    limiter = RateLimiter({"t": RateLimitConfig(60, 3, 120)}, clock=clock)
    remaining = [limiter.check("t", ip_address="1.1.1.1").remaining for _ in range(3)]
    assert remaining == [2, 1, 0]


def test_exceeding_limit_blocks_until_block_expires(clock):
    limiter = RateLimiter({"t": RateLimitConfig(60, 3, 120)}, clock=clock)
    for _ in range(3):
        assert limiter.check("t", ip_address="1.1.1.1").allowed

    blocked = limiter.check("t", ip_address="1.1.1.1")
    assert (blocked.allowed, blocked.blocked, blocked.retry_after) == (False, True, 120)

    clock.advance(30)
    still = limiter.check("t", ip_address="1.1.1.1")
    assert still.allowed is False
    assert still.retry_after == 90

    clock.advance(91)
    assert limiter.check("t", ip_address="1.1.1.1").allowed


def test_identifiers_are_isolated(clock):
    limiter = RateLimiter({"t": RateLimitConfig(60, 1, 60)}, clock=clock)
    assert limiter.check("t", user_id="u1").allowed
    assert not limiter.check("t", user_id="u1").allowed
    assert limiter.check("t", user_id="u2").allowed
    assert limiter.check("t", ip_address="1.1.1.1").allowed
    assert make_identifier("t", "u1", "1.1.1.1") == "user:u1:t"
    assert make_identifier("t") == "ip:unknown:t"


def test_progressive_blocks_double(clock):
    limiter = RateLimiter({"p": RateLimitConfig(60, 1, 100, progressive=True)}, clock=clock)
    limiter.check("p", ip_address="9.9.9.9")
    assert limiter.check("p", ip_address="9.9.9.9").retry_after == 100

    clock.advance(101)
    limiter.check("p", ip_address="9.9.9.9")
    assert limiter.check("p", ip_address="9.9.9.9").retry_after == 200

    clock.advance(201)
    limiter.check("p", ip_address="9.9.9.9")
    assert limiter.check("p", ip_address="9.9.9.9").retry_after == 400


def test_unknown_bucket_is_allowed(clock):
    result = RateLimiter({}, clock=clock).check("nope", ip_address="1.1.1.1")
    assert result.allowed is True
    assert result.limit == 100


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_AUTH_MAX", "3")
    monkeypatch.setenv("RATE_LIMIT_ADMIN_WINDOW", "not-a-number")
    configs = load_rate_limit_configs()
    assert configs["auth"].max_requests == 3
    assert configs["auth"].window_seconds == RATE_LIMIT_CONFIGS["auth"].window_seconds
    assert configs["auth"].progressive is True
    assert configs["admin"] == RATE_LIMIT_CONFIGS["admin"]


def test_cleanup_and_status(clock):
    limiter = RateLimiter({"t": RateLimitConfig(60, 1, 60)}, clock=clock)
    limiter.check("t", ip_address="1.1.1.1")
    limiter.check("t", ip_address="1.1.1.1")
    assert limiter.status() == {"active_keys": 1, "blocked_keys": 1, "total_requests": 1}

    clock.advance(24 * 3600)
    limiter.cleanup()
    assert limiter.status() == {"active_keys": 0, "blocked_keys": 0, "total_requests": 0}


def test_check_prunes_stale_keys_without_explicit_cleanup(clock):
    limiter = RateLimiter({"t": RateLimitConfig(60, 5, 60)}, clock=clock)
    for n in range(1000):
        limiter.check("t", ip_address=f"10.0.{n // 256}.{n % 256}")
    assert limiter.status()["active_keys"] == 1000

    clock.advance(10 * 24 * 3600)
    assert limiter.check("t", ip_address="10.9.9.9").allowed
    assert limiter.status() == {"active_keys": 1, "blocked_keys": 0, "total_requests": 1}


def test_coordinated_attack_detection(clock):
    limiter = RateLimiter({"api_default": RateLimitConfig(900, 1000, 60)}, clock=clock)
    assert limiter.detect_coordinated_attack() == {"detected": False, "severity": "LOW"}

    for n in range(25):
        for _ in range(21):
            limiter.check(ip_address=f"10.0.0.{n}")
    result = limiter.detect_coordinated_attack()
    assert result["detected"] is True
    assert result["severity"] == "MEDIUM"
    assert result["details"].startswith("525 requests from 25 IPs")

    clock.advance(301)
    assert limiter.detect_coordinated_attack()["detected"] is False
