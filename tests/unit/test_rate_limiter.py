"""
Tests for the bounded fixed-window rate limiter.
"""

from app import rate_limiter
from app.rate_limiter import check_rate_limit, memory_cache
from app.security_utils import generate_rate_limit_key


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.store.get(key)

    def ttl(self, key):
        return self.ttls.get(key, -2)

    def set(self, key, value, ex=None):
        self.store[key] = str(value)
        self.ttls[key] = ex or -1
        return True


def test_allows_up_to_limit_then_blocks():
    results = [check_rate_limit("k", limit=3, window_seconds=60) for _ in range(4)]

    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    assert results[-1][1] == 3
    assert 0 < results[-1][2] <= 60


def test_window_expiry_resets_count(monkeypatch):
    now = [1_000_000]
    monkeypatch.setattr(rate_limiter.time, "time", lambda: now[0])

    assert check_rate_limit("k", limit=1, window_seconds=60)[0] is True
    assert check_rate_limit("k", limit=1, window_seconds=60)[0] is False

    now[0] += 61
    allowed, count, _ = check_rate_limit("k", limit=1, window_seconds=60)
    assert allowed is True
    assert count == 1


def test_cache_is_bounded_and_evicts_oldest(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_MAX_KEYS", 3)

    for n in range(5):
        check_rate_limit(f"key-{n}", limit=10, window_seconds=60)

    assert list(memory_cache) == ["key-2", "key-3", "key-4"]


def test_expired_windows_are_swept(monkeypatch):
    now = [2_000_000]
    monkeypatch.setattr(rate_limiter.time, "time", lambda: now[0])

    check_rate_limit("short", limit=5, window_seconds=10)
    now[0] += rate_limiter.MEMORY_CACHE_CLEANUP_INTERVAL + 1
    check_rate_limit("fresh", limit=5, window_seconds=10)

    assert "short" not in memory_cache
    assert "fresh" in memory_cache


def test_counts_from_redis_are_honored():
    client = FakeRedis()
    client.set("shared", 5, ex=30)

    allowed, count, ttl = check_rate_limit("shared", limit=5, window_seconds=60, client=client)

    assert allowed is False
    assert count == 5
    assert ttl == 30


def test_rate_limit_keys_hash_the_identifier():
    key = generate_rate_limit_key("alice@example.com", "login")

    assert key.startswith("rate_limit:login:")
    assert "alice" not in key
    assert key == generate_rate_limit_key("alice@example.com", "login")
