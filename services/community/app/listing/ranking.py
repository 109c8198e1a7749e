"""Rank assignment for fetched list pages: no I/O, no framework imports.

A rank is the 0-based position of an item in the complete scope ordered by
creation date, rank 0 being the oldest item whatever the display direction.
Ranks are computed per response from a reference order (a second, id-only
query over the whole scope) and are never stored.

Lookup goes through an id → rank dict built once per request, and nested
items (comment replies) are visited with an explicit stack.

Reply policies
--------------
SIBLINGS : a reply is ranked among the replies of its own parent (default)
GLOBAL   : a reply is ranked in the reference order of every item of the scope
"""

import enum
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Hashable, TypeVar

from shared.models.pagination import SortDirection

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


class ReplyRankPolicy(str, enum.Enum):
    SIBLINGS = "SIBLINGS"
    GLOBAL = "GLOBAL"


@dataclass
class RankedItem(Generic[T]):
    item: T
    # None when the item was missing from the reference order (concurrent write)
    rank: int | None
    replies: list["RankedItem[T]"] = field(default_factory=list)


def build_rank_index(reference_ids: Sequence[K], direction: SortDirection) -> dict[K, int]:
    """Map each id of a reference order to its rank.

    ``reference_ids`` must be sorted by creation date in ``direction``; a DESC
    reference is read backwards so that rank 0 stays the oldest item.
    """
    size = len(reference_ids)
    if direction is SortDirection.DESC:
        return {item_id: size - 1 - index for index, item_id in enumerate(reference_ids)}
    return {item_id: index for index, item_id in enumerate(reference_ids)}


def assign_ranks(
    items: Iterable[T],
    rank_index: dict[K, int],
    key: Callable[[T], K],
    children: Callable[[T], Sequence[T]] | None = None,
    reply_policy: ReplyRankPolicy = ReplyRankPolicy.SIBLINGS,
    reply_rank_index: dict[K, int] | None = None,
) -> list[RankedItem[T]]:
    """Attach ranks to a fetched page and, through ``children``, to its replies.

    Children are expected oldest first; with the SIBLINGS policy their rank is
    their position in that sequence. With the GLOBAL policy they are looked up
    in ``reply_rank_index`` (or ``rank_index`` when it is not given).
    """
    if reply_policy is ReplyRankPolicy.GLOBAL and reply_rank_index is None:
        reply_rank_index = rank_index

    ranked: list[RankedItem[T]] = [
        RankedItem(item=item, rank=rank_index.get(key(item))) for item in items
    ]
    if children is None:
        return ranked

    stack = list(reversed(ranked))
    while stack:
        node = stack.pop()
        for position, child in enumerate(children(node.item)):
            if reply_policy is ReplyRankPolicy.SIBLINGS:
                rank = position
            else:
                rank = reply_rank_index.get(key(child))
            child_node = RankedItem(item=child, rank=rank)
            node.replies.append(child_node)
            stack.append(child_node)
    return ranked


def ranks_of(ranked: Iterable[RankedItem[T]]) -> list[int | None]:
    """Top-level ranks in page order."""
    return [node.rank for node in ranked]
