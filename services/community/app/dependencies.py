import uuid
from functools import lru_cache

from fastapi import Depends, Request, Response
from redis.asyncio import Redis

from app.config import Settings
from app.exceptions import ForbiddenError
from app.listing.cache import CountSnapshotStore, RedisCountSnapshotStore
from app.listing.constants import AJAX_HEADER, AJAX_HEADER_VALUE
from app.listing.staleness import OutdatedCountDetector


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_redis(request: Request) -> Redis:
    return request.app.state.redis


def get_snapshot_store(
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CountSnapshotStore:
    return RedisCountSnapshotStore(redis, ttl_seconds=settings.count_snapshot_ttl_seconds)


def get_outdated_count_detector(
    store: CountSnapshotStore = Depends(get_snapshot_store),
) -> OutdatedCountDetector:
    return OutdatedCountDetector(store)


def get_list_session(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> str:
    """Return the visitor's list session id, issuing a cookie on first visit."""
    raw = request.cookies.get(settings.session_cookie_name)
    try:
        return str(uuid.UUID(raw)) if raw else _new_list_session(response, settings)
    except ValueError:
        return _new_list_session(response, settings)


def _new_list_session(response: Response, settings: Settings) -> str:
    session_id = str(uuid.uuid4())
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=settings.count_snapshot_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return session_id


def require_ajax(request: Request) -> None:
    """Reject "load more" calls that do not come from an XMLHttpRequest."""
    if request.headers.get(AJAX_HEADER) != AJAX_HEADER_VALUE:
        raise ForbiddenError()
