from shared.database.postgres import (
    AsyncSessionFactory,
    Base,
    create_schema,
    get_async_session_factory,
    get_session,
)
from shared.database.redis_client import RedisClient, close_redis_client, get_redis_client

__all__ = [
    "AsyncSessionFactory",
    "Base",
    "create_schema",
    "get_async_session_factory",
    "get_session",
    "RedisClient",
    "close_redis_client",
    "get_redis_client",
]
