from __future__ import annotations

from functools import lru_cache

from redis import Redis

from .settings import settings

# Rate limiting and readiness checks degrade open, so fail fast when Redis is down.
REDIS_SOCKET_TIMEOUT_SECONDS = 0.5


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
    )
