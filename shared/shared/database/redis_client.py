"""Async Redis client for per-visitor list state.

Snapshot reads sit on the request path of every "load more" call, so the
client is built with short socket timeouts; callers treat Redis errors as a
missing value.
"""

from typing import Any

import redis.asyncio as redis

RedisClient = redis.Redis

_DEFAULT_SOCKET_TIMEOUT_S: float = 0.5


def get_redis_client(
    redis_url: str,
    *,
    socket_timeout: float = _DEFAULT_SOCKET_TIMEOUT_S,
    **kwargs: Any,
) -> RedisClient:
    """Return an asyncio client decoding replies to ``str``."""
    kwargs.setdefault("encoding", "utf-8")
    kwargs.setdefault("socket_connect_timeout", socket_timeout)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        **kwargs,
    )


async def close_redis_client(client: RedisClient) -> None:
    await client.aclose()
