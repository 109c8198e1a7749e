"""Async "load more" pager for the trick and comment lists.

A ``ListPager`` owns the window already shown to the visitor and asks the
listing endpoints for the next batch, one request at a time. The next window
is computed locally with the same resolution rules as the server, so the
pager never parses rendered items to know where it stands.

Rendering is delegated to a ``PagerView``: items are revealed one by one with
a fixed stagger, then exactly one notification closes the batch when the list
was reinitialized or has ended.
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from app.listing.constants import AJAX_HEADER, AJAX_HEADER_VALUE
from app.pagination import is_last_rank, next_window
from shared.models.pagination import ListWindow, SortDirection

logger = logging.getLogger(__name__)


class PagerState(str, enum.Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class NotificationLevel(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel
    # Seconds before the notification hides itself; 0 keeps it until dismissed
    timeout: float


class PagerError(Exception):
    """Base class for failures of a batch request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PagerTransportError(PagerError):
    pass


class PagerTimeoutError(PagerError):
    pass


class PagerView(Protocol):
    """What the pager needs from the page it drives."""

    def set_busy(self, busy: bool) -> None: ...

    def clear(self) -> None: ...

    def reveal(self, item: dict[str, Any]) -> None: ...

    def notify(self, notification: Notification) -> None: ...

    def hide_trigger(self) -> None: ...


@dataclass(frozen=True)
class PagerConfig:
    load_path: str
    direction: SortDirection
    limit: int
    list_ended: str
    technical_error: str
    reveal_delay: float = 0.25
    request_timeout: float = 10.0
    notification_timeout: float = 5.0

    @classmethod
    def from_initial_payload(cls, payload: dict[str, Any], **overrides: Any) -> "PagerConfig":
        """Build the configuration served with an initial list page."""
        notices = payload["notices"]
        return cls(
            load_path=payload["load_path"],
            direction=SortDirection(payload["loading_mode"]),
            limit=payload["number_per_loading"],
            list_ended=notices["list_ended"],
            technical_error=notices["technical_error"],
            **overrides,
        )


class ListPager:
    """Drives one list: ``IDLE -> LOADING -> (SUCCESS | ERROR) -> IDLE``.

    ``loaded`` is the window already on screen and ``count`` the total count it
    was computed with. The HTTP client is expected to carry the base URL and
    the visitor's session cookie.
    """

    def __init__(
        self,
        config: PagerConfig,
        loaded: ListWindow,
        count: int,
        view: PagerView,
        client: httpx.AsyncClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._loaded = loaded
        self._count = count
        self._view = view
        self._client = client
        self._sleep = sleep
        self._state = PagerState.IDLE
        self._task: asyncio.Task | None = None
        self._cancel_requested = False
        self._outcome: PagerState | None = None

    @classmethod
    def from_initial_payload(
        cls,
        payload: dict[str, Any],
        view: PagerView,
        client: httpx.AsyncClient,
        **config_overrides: Any,
    ) -> "ListPager":
        config = PagerConfig.from_initial_payload(payload, **config_overrides)
        loaded = ListWindow(
            offset=payload["offset"],
            limit=payload["limit"],
            direction=config.direction,
        )
        return cls(config, loaded, payload["count"], view, client)

    @property
    def state(self) -> PagerState:
        return self._state

    @property
    def outcome(self) -> PagerState | None:
        """SUCCESS or ERROR for the last closed batch, None before any or after a cancel."""
        return self._outcome

    @property
    def loaded(self) -> ListWindow:
        return self._loaded

    @property
    def count(self) -> int:
        return self._count

    @property
    def ended(self) -> bool:
        """True once the window on screen reaches the end of the list."""
        if self._count <= 0:
            return True
        if self._loaded.direction is SortDirection.DESC:
            return self._loaded.offset <= 0
        return self._loaded.end >= self._count

    async def load_more(self) -> bool:
        """Fetch and reveal the next batch.

        Returns False without any request when a batch is already in flight or
        the list has ended, and False as well when the batch failed or was
        cancelled. Once the batch is closed the pager is ``IDLE`` again and
        ``outcome`` tells how it ended.
        """
        if self._state is PagerState.LOADING:
            logger.debug("Ignoring load more: a batch is already in flight")
            return False
        if self.ended:
            return False
        self._cancel_requested = False
        self._outcome = None
        self._state = PagerState.LOADING
        self._task = asyncio.ensure_future(self._load_next())
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            return False
        finally:
            self._task = None
            self._state = PagerState.IDLE

    def cancel(self) -> None:
        """Abort the batch in flight; nothing more of it gets rendered."""
        if self._task is None or self._task.done():
            return
        self._cancel_requested = True
        self._task.cancel()

    async def _load_next(self) -> bool:
        requested = next_window(self._loaded, self._count, self._config.limit)
        self._view.set_busy(True)
        try:
            payload = await self._fetch(requested.window)
            await self._render(payload)
        except PagerError as exc:
            self._fail(exc)
            return False
        finally:
            self._view.set_busy(False)
        self._state = self._outcome = PagerState.SUCCESS
        return True

    async def _fetch(self, window: ListWindow) -> dict[str, Any]:
        url = f"{self._config.load_path}/{window.offset}/{window.limit}"
        try:
            response = await self._client.get(
                url,
                headers={AJAX_HEADER: AJAX_HEADER_VALUE},
                timeout=self._config.request_timeout,
            )
        except httpx.TimeoutException as exc:
            raise PagerTimeoutError(f"Request to {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise PagerTransportError(f"Request to {url} failed: {exc}") from exc
        if response.is_error:
            raise PagerTransportError(
                f"Request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise PagerTransportError(f"Invalid response body from {url}") from exc

    async def _render(self, payload: dict[str, Any]) -> None:
        items = payload.get("items", [])
        reinitialized = bool(payload.get("reinitialized"))
        if not items:
            if reinitialized:
                self._view.clear()
            self._count = payload["count"]

        # The server window is authoritative; only revealed items count as loaded
        for index, item in enumerate(items):
            if index:
                await self._sleep(self._config.reveal_delay)
            elif reinitialized:
                self._view.clear()
            self._view.reveal(item)
            self._adopt(payload, shown=index + 1, reinitialized=reinitialized)

        last_rank = items[-1].get("rank") if items else None
        reached_end = (
            not items
            or self.ended
            or is_last_rank(last_rank, self._loaded.direction, self._count)
        )
        if reached_end:
            self._view.hide_trigger()
        if reinitialized:
            self._notify(payload.get("error") or "", NotificationLevel.WARNING)
        elif reached_end:
            self._notify(self._config.list_ended, NotificationLevel.INFO)

    def _adopt(self, payload: dict[str, Any], shown: int, reinitialized: bool) -> None:
        """Merge the first ``shown`` items of the served window into ``loaded``."""
        direction = SortDirection(payload["direction"])
        offset, limit = payload["offset"], payload["limit"]
        shown = min(shown, limit)
        if direction is SortDirection.DESC:
            start, end = offset + limit - shown, offset + limit
        else:
            start, end = offset, offset + shown
        if not reinitialized:
            start = min(start, self._loaded.offset)
            end = max(end, self._loaded.end)
        self._loaded = ListWindow(offset=start, limit=end - start, direction=direction)
        self._count = payload["count"]

    def _fail(self, exc: PagerError) -> None:
        logger.warning("List batch failed: %s", exc)
        self._state = self._outcome = PagerState.ERROR
        message = self._config.technical_error
        if exc.status_code is not None:
            message = f"{message}\n(Error code: {exc.status_code})"
        self._view.notify(Notification(message, NotificationLevel.DANGER, timeout=0))

    def _notify(self, message: str, level: NotificationLevel) -> None:
        self._view.notify(Notification(message, level, timeout=self._config.notification_timeout))
