from __future__ import annotations

import logging
from functools import lru_cache

import redis
from redis import asyncio as redis_asyncio

from tabsettle.infrastructure.config import redis_url

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _client_for(url: str, timeout_seconds: float) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
        health_check_interval=30,
    )


def get_redis_client(timeout_seconds: float = 1.0) -> redis.Redis:
    """Shared synchronous client used for publishing table events and readiness pings."""
    return _client_for(redis_url(), timeout_seconds)


def open_async_client() -> redis_asyncio.Redis:
    # One per fan-out loop iteration; the caller owns and closes it.
    return redis_asyncio.from_url(redis_url())


def ping_redis(timeout_seconds: float = 1.0) -> bool:
    try:
        return bool(get_redis_client(timeout_seconds).ping())
    except (redis.RedisError, RuntimeError, OSError, ValueError):
        logger.warning("redis_ping_failed", exc_info=True)
        return False
