"""Detection of lists mutated while a visitor is paging through them."""

import logging

from app.listing.cache import CountSnapshotStore

logger = logging.getLogger(__name__)


def count_changed(previous_count: int | None, current_count: int) -> bool:
    """A list is outdated when a known previous count differs from the current one."""
    return previous_count is not None and previous_count != current_count


class OutdatedCountDetector:
    """Compares fresh total counts with the last count served to the same visitor.

    When the counts differ the stored snapshot is replaced, so a single reset
    brings the visitor back in sync.
    """

    def __init__(self, store: CountSnapshotStore) -> None:
        self._store = store

    async def remember(self, session_id: str, scope: str, count: int) -> None:
        """Record the count served with an initial page render."""
        await self._store.set_count(session_id, scope, count)

    async def is_outdated(self, session_id: str, scope: str, current_count: int) -> bool:
        previous_count = await self._store.get_count(session_id, scope)
        if previous_count is None:
            await self._store.set_count(session_id, scope, current_count)
            return False
        if not count_changed(previous_count, current_count):
            return False
        logger.warning(
            "Outdated list count for scope %s: previous=%s current=%s",
            scope,
            previous_count,
            current_count,
        )
        await self._store.set_count(session_id, scope, current_count)
        return True
