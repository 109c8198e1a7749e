import logging
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.listing.cache import TRICK_SCOPE, RedisCountSnapshotStore, comment_scope
from app.listing.staleness import OutdatedCountDetector, count_changed
from app.pagination import initial_window
from shared.models.pagination import SortDirection


def test_count_changed() -> None:
    assert count_changed(25, 27)
    assert not count_changed(25, 25)
    assert not count_changed(None, 25)


@pytest.mark.asyncio
async def test_first_check_records_the_count(snapshot_store) -> None:
    detector = OutdatedCountDetector(snapshot_store)
    assert await detector.is_outdated("visitor", TRICK_SCOPE, 25) is False
    assert snapshot_store.counts[("visitor", TRICK_SCOPE)] == 25


@pytest.mark.asyncio
async def test_changed_count_is_outdated_once(snapshot_store, caplog) -> None:
    detector = OutdatedCountDetector(snapshot_store)
    await detector.remember("visitor", TRICK_SCOPE, 25)

    with caplog.at_level(logging.WARNING, logger="app.listing.staleness"):
        assert await detector.is_outdated("visitor", TRICK_SCOPE, 27) is True
    assert "previous=25 current=27" in caplog.text

    # The snapshot now holds the fresh count
    assert await detector.is_outdated("visitor", TRICK_SCOPE, 27) is False


@pytest.mark.asyncio
async def test_outdated_list_resets_to_default_window_of_current_count(snapshot_store) -> None:
    detector = OutdatedCountDetector(snapshot_store)
    await detector.remember("visitor", TRICK_SCOPE, 25)
    assert await detector.is_outdated("visitor", TRICK_SCOPE, 27)

    resolved = initial_window(SortDirection.DESC, 27, 10)
    assert (resolved.offset, resolved.limit) == (17, 10)
    assert resolved.window != initial_window(SortDirection.DESC, 25, 10).window


@pytest.mark.asyncio
async def test_snapshots_are_scoped(snapshot_store) -> None:
    detector = OutdatedCountDetector(snapshot_store)
    await detector.remember("visitor", comment_scope("trick-a"), 3)
    await detector.remember("other", comment_scope("trick-a"), 9)

    assert await detector.is_outdated("visitor", comment_scope("trick-b"), 5) is False
    assert await detector.is_outdated("visitor", TRICK_SCOPE, 40) is False
    assert await detector.is_outdated("visitor", comment_scope("trick-a"), 3) is False
    assert await detector.is_outdated("other", comment_scope("trick-a"), 3) is True


@pytest.mark.asyncio
async def test_redis_store_reads_and_writes_with_ttl() -> None:
    redis = AsyncMock()
    redis.get.return_value = "12"
    store = RedisCountSnapshotStore(redis, ttl_seconds=60)

    assert await store.get_count("visitor", TRICK_SCOPE) == 12
    redis.get.assert_awaited_once_with("community:list:visitor:tricks")

    await store.set_count("visitor", comment_scope("abc"), 4)
    redis.setex.assert_awaited_once_with("community:list:visitor:comments:abc", 60, "4")


@pytest.mark.asyncio
async def test_redis_store_missing_key() -> None:
    redis = AsyncMock()
    redis.get.return_value = None
    store = RedisCountSnapshotStore(redis)
    assert await store.get_count("visitor", TRICK_SCOPE) is None


@pytest.mark.asyncio
async def test_unreachable_redis_is_treated_as_unknown_count() -> None:
    redis = AsyncMock()
    redis.get.side_effect = RedisConnectionError("down")
    redis.setex.side_effect = RedisConnectionError("down")
    detector = OutdatedCountDetector(RedisCountSnapshotStore(redis))

    assert await detector.is_outdated("visitor", TRICK_SCOPE, 25) is False


@pytest.mark.asyncio
async def test_malformed_snapshot_is_treated_as_unknown_count(caplog) -> None:
    redis = AsyncMock()
    redis.get.return_value = "not-a-number"
    detector = OutdatedCountDetector(RedisCountSnapshotStore(redis))

    with caplog.at_level(logging.WARNING, logger="app.listing.cache"):
        assert await detector.is_outdated("visitor", TRICK_SCOPE, 25) is False
    assert "malformed count snapshot" in caplog.text
    redis.setex.assert_awaited_once()
