"""Offset/limit resolution for the "load more" lists.

Both lists address items by rank: rank 0 is the oldest item of the scope and
rank ``count - 1`` the newest. A window selects the ranks ``[offset, offset + limit)``
whatever the display direction, so loading more in DESC mode moves the offset
down towards 0 and in ASC mode moves it up towards ``count - 1``.

``resolve_window`` is the single authority on what a requested window becomes.
The client pager runs the same function before each request and the server
runs it again on what it receives.

Identifiers crossing the HTTP boundary are opaque base62 tokens (``encode_uuid``
/ ``decode_uuid``), never raw database keys.
"""

import enum
import math
import string
import uuid
from dataclasses import dataclass

from shared.models.pagination import ListWindow, SortDirection


class Adjustment(str, enum.Enum):
    """What resolution had to do to the requested window."""

    NONE = "NONE"
    # Boundary correction, invisible to the visitor
    CLAMPED = "CLAMPED"
    # Request was unusable; the default page was served instead
    RESET = "RESET"


@dataclass(frozen=True)
class ResolvedWindow:
    window: ListWindow
    count: int
    adjustment: Adjustment = Adjustment.NONE
    # Name of the resolution rule that fired, for diagnostics
    rule: str | None = None

    @property
    def offset(self) -> int:
        return self.window.offset

    @property
    def limit(self) -> int:
        return self.window.limit

    @property
    def direction(self) -> SortDirection:
        return self.window.direction

    @property
    def max_offset(self) -> int:
        return self.count - 1

    @property
    def error(self) -> bool:
        """True when the visitor must be told the list was reinitialized."""
        return self.adjustment is Adjustment.RESET


def default_window(direction: SortDirection, count: int, default_limit: int) -> ListWindow:
    """Return the first page of a list: newest items for DESC, oldest for ASC."""
    if count <= 0:
        return ListWindow(offset=0, limit=default_limit, direction=direction)
    limit = min(default_limit, count)
    offset = count - limit if direction is SortDirection.DESC else 0
    return ListWindow(offset=offset, limit=limit, direction=direction)


def resolve_window(
    offset: int,
    limit: int | None,
    direction: str | SortDirection,
    count: int,
    default_limit: int,
) -> ResolvedWindow:
    """Correct a requested window against the current total count.

    Rules are tried in order and the first match wins:

    1. unknown direction, or DESC with an invalid offset/limit: default DESC page
    2. ASC with an invalid offset/limit: default ASC page
    3. offset under 0: start at 0 and keep only the ranks still below the
       requested end (the older tail in DESC mode)
    4. window overshooting the newest item: shrink the limit so it stops there

    An offset is valid inside ``[-limit, max_offset + limit]``, one page of
    slack on both sides of the list.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if default_limit < 1:
        raise ValueError(f"default_limit must be >= 1, got {default_limit}")
    if limit is None:
        limit = default_limit

    order = SortDirection.parse(direction)
    min_offset = 0
    max_offset = count - 1
    valid_order = order is not None
    valid_limit = limit >= 1
    valid_offset = -limit <= offset < max_offset + limit + 1

    if not valid_order or (order is SortDirection.DESC and not (valid_offset and valid_limit)):
        return ResolvedWindow(
            window=default_window(SortDirection.DESC, count, default_limit),
            count=count,
            adjustment=Adjustment.RESET,
            rule="descending_order_and_wrong_parameters",
        )
    if not (valid_offset and valid_limit):
        return ResolvedWindow(
            window=default_window(SortDirection.ASC, count, default_limit),
            count=count,
            adjustment=Adjustment.RESET,
            rule="ascending_order_and_wrong_parameters",
        )

    if count == 0:
        # Nothing to clamp against: an empty list always starts at 0
        return ResolvedWindow(
            window=ListWindow(offset=0, limit=limit, direction=order),
            count=count,
            adjustment=Adjustment.CLAMPED if offset != 0 else Adjustment.NONE,
            rule="empty_list" if offset != 0 else None,
        )

    if offset < min_offset:
        end = offset + limit
        return ResolvedWindow(
            window=ListWindow(
                offset=min_offset,
                limit=max(1, min(end, count)),
                direction=order,
            ),
            count=count,
            adjustment=Adjustment.CLAMPED,
            rule=f"{_order_label(order)}_order_under_minimum_offset",
        )

    if offset + limit > max_offset:
        start = min(offset, max_offset)
        new_limit = max_offset + 1 - start
        changed = start != offset or new_limit != limit
        return ResolvedWindow(
            window=ListWindow(offset=start, limit=new_limit, direction=order),
            count=count,
            adjustment=Adjustment.CLAMPED if changed else Adjustment.NONE,
            rule=f"{_order_label(order)}_order_over_maximum_offset" if changed else None,
        )

    return ResolvedWindow(
        window=ListWindow(offset=offset, limit=limit, direction=order),
        count=count,
    )


def _order_label(order: SortDirection) -> str:
    return "descending" if order is SortDirection.DESC else "ascending"


def initial_window(direction: SortDirection, count: int, default_limit: int) -> ResolvedWindow:
    """Resolve the first page shown on page load (or after a list reset)."""
    start = count - default_limit if direction is SortDirection.DESC else 0
    return resolve_window(start, default_limit, direction, count, default_limit)


def next_window(
    loaded: ListWindow,
    count: int,
    limit: int,
    default_limit: int | None = None,
) -> ResolvedWindow:
    """Compute the window following ``loaded`` in its own direction.

    DESC continues below the lowest loaded rank, ASC above the highest one.
    """
    if loaded.direction is SortDirection.DESC:
        start = loaded.offset - limit
    else:
        start = loaded.end
    return resolve_window(start, limit, loaded.direction, count, default_limit or limit)


def is_last_rank(rank: int | None, direction: SortDirection, count: int) -> bool:
    """True when ``rank`` is the final item reachable in ``direction``."""
    if rank is None:
        return False
    if direction is SortDirection.DESC:
        return rank == 0
    return rank == count - 1


# ---------------------------------------------------------------------------
# Page-number pagination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageParameters:
    page: int
    page_count: int
    page_size: int
    count: int
    window: ListWindow


def page_parameters(
    page: int,
    count: int,
    page_size: int,
    direction: SortDirection,
) -> PageParameters | None:
    """Return the window of a numbered page, or None when the page does not exist.

    Page 1 holds the newest items in DESC mode and the oldest in ASC mode; the
    last page holds the remainder.
    """
    page_count = max(1, math.ceil(count / page_size)) if count else 1
    if page < 1 or page > page_count:
        return None
    if count == 0:
        window = ListWindow(offset=0, limit=page_size, direction=direction)
    elif direction is SortDirection.DESC:
        end = count - (page - 1) * page_size
        offset = max(0, end - page_size)
        window = ListWindow(offset=offset, limit=end - offset, direction=direction)
    else:
        offset = (page - 1) * page_size
        window = ListWindow(
            offset=offset, limit=min(page_size, count - offset), direction=direction
        )
    return PageParameters(
        page=page,
        page_count=page_count,
        page_size=page_size,
        count=count,
        window=window,
    )


# ---------------------------------------------------------------------------
# Identifier tokens
# ---------------------------------------------------------------------------

# Digits, then upper case, then lower case: the usual base62 ordering
_BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
_BASE62_INDEX = {char: index for index, char in enumerate(_BASE62_ALPHABET)}
# 62**22 > 2**128
_MAX_TOKEN_LENGTH = 22


def encode_uuid(value: uuid.UUID) -> str:
    """Encode a UUID as a base62 token of its 128-bit integer value."""
    number = value.int
    if number == 0:
        return _BASE62_ALPHABET[0]
    chars = []
    while number:
        number, remainder = divmod(number, 62)
        chars.append(_BASE62_ALPHABET[remainder])
    return "".join(reversed(chars))


def decode_uuid(token: str) -> uuid.UUID:
    """Decode a token produced by ``encode_uuid``.

    Raises ValueError on malformed tokens, so every UUID has exactly one token.
    """
    if not token or len(token) > _MAX_TOKEN_LENGTH:
        raise ValueError(f"Invalid identifier token: {token!r}")
    if len(token) > 1 and token[0] == _BASE62_ALPHABET[0]:
        raise ValueError(f"Invalid identifier token (leading zero): {token!r}")
    number = 0
    for char in token:
        digit = _BASE62_INDEX.get(char)
        if digit is None:
            raise ValueError(f"Invalid identifier token character {char!r}")
        number = number * 62 + digit
    if number >= 1 << 128:
        raise ValueError(f"Invalid identifier token (out of range): {token!r}")
    return uuid.UUID(int=number)
