"""
Fixed-window rate limiting keyed by client identity

Counters live in a bounded in-process cache with explicit eviction and are
mirrored to Redis when REDIS_URL is configured, so limits hold across workers.
"""

import logging
import time
from collections import OrderedDict
from threading import Lock
from typing import Optional

import redis
from fastapi import Request

from .config import RATE_LIMIT_ENABLED, RATE_LIMIT_MAX_KEYS, REDIS_URL
from .errors import RateLimitError
from .security_utils import generate_rate_limit_key

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None
redis_unavailable = False

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
# Ordered oldest-first so overflow eviction pops from the front
memory_cache: "OrderedDict[str, dict]" = OrderedDict()
cache_lock = Lock()

# Configuration
MEMORY_CACHE_SYNC_INTERVAL = 10  # Sync to Redis every 10 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Clean up expired entries every 60 seconds
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the Redis client.
    Returns None when REDIS_URL is unset or Redis cannot be reached.
    """
    global redis_client, redis_unavailable

    if redis_client is not None or redis_unavailable or not REDIS_URL:
        return redis_client

    logger.info("Initializing Redis connection for rate limiting...")
    try:
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        client.ping()
        redis_client = client
        logger.info("Redis connected successfully via URL")
    except redis.RedisError as e:
        redis_unavailable = True
        logger.warning(f"Redis unavailable, rate limits are per-process only: {e}")

    return redis_client


def cleanup_expired_cache(current_time: int, force: bool = False):
    """Remove expired windows and evict the oldest keys beyond RATE_LIMIT_MAX_KEYS"""
    global last_cleanup_time

    if force or current_time - last_cleanup_time >= MEMORY_CACHE_CLEANUP_INTERVAL:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired_keys:
            del memory_cache[k]
        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit entries")
        last_cleanup_time = current_time

    while len(memory_cache) > RATE_LIMIT_MAX_KEYS:
        evicted, _ = memory_cache.popitem(last=False)
        logger.debug(f"Evicted rate limit entry {evicted}")


def _load_entry(key: str, window_seconds: int, current_time: int, client: Optional[redis.Redis]) -> dict:
    if client is not None:
        try:
            redis_count = client.get(key)
            redis_ttl = client.ttl(key)
            if redis_count and redis_ttl > 0:
                return {
                    "count": int(redis_count),
                    "reset_time": current_time + redis_ttl,
                    "last_redis_sync": current_time,
                }
        except redis.RedisError as e:
            logger.warning(f"Failed to load from Redis, using memory only: {e}")

    return {
        "count": 0,
        "reset_time": current_time + window_seconds,
        "last_redis_sync": current_time,
    }


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """Count one hit against key

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None:
            entry = _load_entry(key, window_seconds, current_time, client)
            memory_cache[key] = entry
            cleanup_expired_cache(current_time)

        # Window expired - start a new one
        if current_time >= entry["reset_time"]:
            entry["count"] = 0
            entry["reset_time"] = current_time + window_seconds
            entry["last_redis_sync"] = 0

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if client is not None and current_time - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                ttl_left = max(1, entry["reset_time"] - current_time)
                client.set(key, entry["count"], ex=ttl_left)
                entry["last_redis_sync"] = current_time
            except redis.RedisError as e:
                logger.warning(f"Failed to sync to Redis: {e}")

        ttl = entry["reset_time"] - current_time
        return is_allowed, entry["count"], max(0, ttl)


def reset_rate_limits():
    """Drop every in-process counter"""
    global last_cleanup_time
    with cache_lock:
        memory_cache.clear()
        last_cleanup_time = 0


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_email: bool = False,
):
    """
    FastAPI dependency for rate limiting

    Args:
        request: FastAPI request object
        limit: Maximum requests allowed
        window_seconds: Time window in seconds
        key_prefix: Prefix for the counter key
        use_email: Key on the submitted email when present, falling back to client IP
    """
    if not RATE_LIMIT_ENABLED:
        return

    identifier = get_client_ip(request)
    if use_email:
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("email"), str) and body["email"].strip():
            identifier = body["email"].strip().lower()

    key = generate_rate_limit_key(identifier, key_prefix)
    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())

    if not is_allowed:
        logger.warning(f"Rate limit EXCEEDED for {key_prefix} - {current_count}/{limit} requests used")
        raise RateLimitError(
            f"Too many requests. Maximum {limit} requests per {window_seconds} seconds.",
            details={"retry_after": ttl, "limit": limit, "window_seconds": window_seconds},
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_email: bool = False
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        login_rate_limit = create_rate_limiter(limit=5, window_seconds=60, key_prefix="login", use_email=True)

        @router.post("/login")
        async def login(data: LoginRequest, _: None = Depends(login_rate_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_email)

    return rate_limiter
