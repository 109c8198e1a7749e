"""Redis cache helpers for the listing domain.

Key schema
----------
community:list:{session_id}:{scope}   int str   TTL 1 h   total count last served to a visitor

Scopes are ``tricks`` for the homepage list and ``comments:{trick_id}`` for
the comment list of one trick.

Redis calls are best-effort: when Redis is unreachable a snapshot read
returns None, which the detector treats as "nothing known yet".
"""

import logging
from typing import Protocol
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_SNAPSHOT_TTL_S: int = 3600  # 1 hour

TRICK_SCOPE = "tricks"


def comment_scope(trick_id: UUID) -> str:
    return f"comments:{trick_id}"


def _snapshot_key(session_id: str, scope: str) -> str:
    return f"community:list:{session_id}:{scope}"


class CountSnapshotStore(Protocol):
    async def get_count(self, session_id: str, scope: str) -> int | None: ...

    async def set_count(self, session_id: str, scope: str, count: int) -> None: ...


class RedisCountSnapshotStore:
    """Count snapshots kept in Redis, one key per (visitor session, scope)."""

    def __init__(self, redis: Redis, ttl_seconds: int = _SNAPSHOT_TTL_S) -> None:
        self._redis = redis
        self._ttl_seconds = ttl_seconds

    async def get_count(self, session_id: str, scope: str) -> int | None:
        try:
            val = await self._redis.get(_snapshot_key(session_id, scope))
        except RedisError as exc:
            logger.warning("Count snapshot read failed for scope %s: %s", scope, exc)
            return None
        if val is None:
            return None
        try:
            return int(val)
        except ValueError:
            logger.warning("Ignoring malformed count snapshot for scope %s: %r", scope, val)
            return None

    async def set_count(self, session_id: str, scope: str, count: int) -> None:
        try:
            await self._redis.setex(_snapshot_key(session_id, scope), self._ttl_seconds, str(count))
        except RedisError as exc:
            logger.warning("Count snapshot write failed for scope %s: %s", scope, exc)
