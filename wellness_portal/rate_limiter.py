"""
Rate limiting for the public signup endpoints.

Counters live in process memory and are mirrored to Redis every few seconds so
that several workers converge on a shared count without a Redis round trip
per request. Without Redis the limiter still works per process.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

REDIS_SYNC_INTERVAL = 10  # seconds between mirror writes for one key
CLEANUP_INTERVAL = 60

_redis_client: Optional[redis.Redis] = None
_redis_unavailable = False

# {key: {"count": int, "reset_time": int, "last_sync": int}}
_counters: dict[str, dict] = {}
_counters_lock = Lock()
_last_cleanup = 0


def get_redis_client() -> Optional[redis.Redis]:
    """
    Connect to Redis once per process from REDIS_URL.

    Returns None when REDIS_URL is unset or the server cannot be reached; the
    failure is logged once and not retried.
    """
    global _redis_client, _redis_unavailable

    if _redis_client is not None or _redis_unavailable:
        return _redis_client

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        logger.info("⚠️ REDIS_URL not set, rate limits are tracked per process")
        _redis_unavailable = True
        return None

    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
        client.ping()
    except redis.RedisError as e:
        logger.error(f"❌ Failed to connect to Redis: {str(e)}")
        _redis_unavailable = True
        return None

    logger.info("✅ Redis connected for rate limiting")
    _redis_client = client
    return _redis_client


def reset_counters() -> None:
    """Forget all in-memory counters"""
    with _counters_lock:
        _counters.clear()


def _cleanup(now: int) -> None:
    global _last_cleanup
    if now - _last_cleanup < CLEANUP_INTERVAL:
        return
    expired = [k for k, v in _counters.items() if now >= v["reset_time"]]
    for k in expired:
        del _counters[k]
    _last_cleanup = now


def _load_entry(key: str, window_seconds: int, now: int, client: Optional[redis.Redis]) -> dict:
    if client is not None:
        try:
            count, ttl = client.get(key), client.ttl(key)
            if count and ttl and ttl > 0:
                return {"count": int(count), "reset_time": now + ttl, "last_sync": now}
        except redis.RedisError as e:
            logger.warning(f"⚠️ Could not read {key} from Redis: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_sync": now}


def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
    client: Optional[redis.Redis] = None,
    now: Optional[int] = None,
) -> tuple[bool, int, int]:
    """
    Count one request against a fixed window.

    Returns:
        Tuple of (is_allowed, current_count, seconds_until_reset)
    """
    now = int(time.time()) if now is None else now

    with _counters_lock:
        _cleanup(now)

        entry = _counters.get(key)
        if entry is None:
            entry = _counters[key] = _load_entry(key, window_seconds, now, client)

        if now >= entry["reset_time"]:
            entry.update(count=0, reset_time=now + window_seconds, last_sync=0)

        allowed = entry["count"] < limit
        if allowed:
            entry["count"] += 1

        if client is not None and now - entry["last_sync"] >= REDIS_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=max(1, entry["reset_time"] - now))
                entry["last_sync"] = now
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        return allowed, entry["count"], max(0, entry["reset_time"] - now)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str):
    """
    Create a per-IP rate limiter dependency.

    Example usage:
        lookup_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="signup_lookup")

        @router.get("/lookup")
        async def lookup(email: str, _: None = Depends(lookup_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        key = f"{key_prefix}:{client_ip(request)}"
        allowed, count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())
        if not allowed:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({count}/{limit})")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Too many requests. Please try again in {ttl} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter


# Signup lookup runs on a debounced keystroke; signup itself is far rarer
signup_lookup_rate_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="signup_lookup")
signup_rate_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="signup")
