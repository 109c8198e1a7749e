"""Listing service: pure business logic, no FastAPI imports.

Every list is addressed by rank (0 = oldest). A window query therefore always
reads the scope oldest first with ``OFFSET window.offset LIMIT window.limit``
and only the final ordering depends on the display direction.

Ranks come from a second, id-only query over the whole scope (the reference
order). Both queries run in the same request but may observe different
snapshots under concurrent writes; items missing from the reference order
keep a None rank.
"""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.listing.exceptions import TrickNotFoundError
from app.listing.ranking import (
    RankedItem,
    ReplyRankPolicy,
    assign_ranks,
    build_rank_index,
)
from app.models.comment import Comment
from app.models.trick import Trick
from shared.models.pagination import ListWindow, SortDirection


def _trick_order(direction: SortDirection):
    if direction is SortDirection.DESC:
        return Trick.created_at.desc(), Trick.trick_id.desc()
    return Trick.created_at.asc(), Trick.trick_id.asc()


def _comment_order(direction: SortDirection):
    if direction is SortDirection.DESC:
        return Comment.created_at.desc(), Comment.comment_id.desc()
    return Comment.created_at.asc(), Comment.comment_id.asc()


def _root_comments(trick_id: UUID):
    return (Comment.trick_id == trick_id, Comment.parent_comment_id.is_(None))


# ---------------------------------------------------------------------------
# Tricks
# ---------------------------------------------------------------------------


async def count_tricks(db: AsyncSession) -> int:
    """Total number of published tricks (the homepage list scope)."""
    result = await db.execute(
        select(func.count(Trick.trick_id)).where(Trick.is_published.is_(True))
    )
    return result.scalar_one()


async def get_trick(trick_id: UUID, db: AsyncSession) -> Trick:
    result = await db.execute(
        select(Trick).where(Trick.trick_id == trick_id, Trick.is_published.is_(True))
    )
    trick = result.scalar_one_or_none()
    if trick is None:
        raise TrickNotFoundError(trick_id)
    return trick


async def list_trick_ids(db: AsyncSession, direction: SortDirection = SortDirection.ASC) -> list[UUID]:
    """Reference order: ids of every published trick sorted by creation date."""
    result = await db.execute(
        select(Trick.trick_id)
        .where(Trick.is_published.is_(True))
        .order_by(*_trick_order(direction))
    )
    return list(result.scalars().all())


async def list_tricks_in_window(window: ListWindow, db: AsyncSession) -> list[Trick]:
    """Tricks whose rank is in ``[window.offset, window.end)``, in display order."""
    result = await db.execute(
        select(Trick)
        .where(Trick.is_published.is_(True))
        .order_by(*_trick_order(SortDirection.ASC))
        .offset(window.offset)
        .limit(window.limit)
    )
    tricks = list(result.scalars().all())
    if window.direction is SortDirection.DESC:
        tricks.reverse()
    return tricks


async def fetch_ranked_tricks(window: ListWindow, db: AsyncSession) -> list[RankedItem[Trick]]:
    tricks = await list_tricks_in_window(window, db)
    if not tricks:
        return []
    reference_ids = await list_trick_ids(db, window.direction)
    return assign_ranks(
        tricks,
        build_rank_index(reference_ids, window.direction),
        key=lambda trick: trick.trick_id,
    )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


async def count_root_comments(trick_id: UUID, db: AsyncSession) -> int:
    """Number of first-level comments of a trick (the comment list scope)."""
    result = await db.execute(
        select(func.count(Comment.comment_id)).where(*_root_comments(trick_id))
    )
    return result.scalar_one()


async def count_comments(trick_id: UUID, db: AsyncSession) -> int:
    """Number of comments of a trick, replies included."""
    result = await db.execute(
        select(func.count(Comment.comment_id)).where(Comment.trick_id == trick_id)
    )
    return result.scalar_one()


async def list_root_comment_ids(
    trick_id: UUID,
    db: AsyncSession,
    direction: SortDirection = SortDirection.ASC,
) -> list[UUID]:
    result = await db.execute(
        select(Comment.comment_id)
        .where(*_root_comments(trick_id))
        .order_by(*_comment_order(direction))
    )
    return list(result.scalars().all())


async def list_comment_ids(
    trick_id: UUID,
    db: AsyncSession,
    direction: SortDirection = SortDirection.ASC,
) -> list[UUID]:
    """Ids of every comment of a trick, replies included, by creation date."""
    result = await db.execute(
        select(Comment.comment_id)
        .where(Comment.trick_id == trick_id)
        .order_by(*_comment_order(direction))
    )
    return list(result.scalars().all())


async def list_root_comments_in_window(
    trick_id: UUID,
    window: ListWindow,
    db: AsyncSession,
) -> list[Comment]:
    result = await db.execute(
        select(Comment)
        .where(*_root_comments(trick_id))
        .order_by(*_comment_order(SortDirection.ASC))
        .offset(window.offset)
        .limit(window.limit)
    )
    comments = list(result.scalars().all())
    if window.direction is SortDirection.DESC:
        comments.reverse()
    return comments


async def list_replies(parent_ids: list[UUID], db: AsyncSession) -> dict[UUID, list[Comment]]:
    """Replies of the given comments grouped by parent, oldest first."""
    if not parent_ids:
        return {}
    result = await db.execute(
        select(Comment)
        .where(Comment.parent_comment_id.in_(parent_ids))
        .order_by(*_comment_order(SortDirection.ASC))
    )
    replies: dict[UUID, list[Comment]] = defaultdict(list)
    for reply in result.scalars().all():
        replies[reply.parent_comment_id].append(reply)
    return dict(replies)


async def fetch_ranked_comments(
    trick_id: UUID,
    window: ListWindow,
    db: AsyncSession,
    reply_policy: ReplyRankPolicy = ReplyRankPolicy.SIBLINGS,
) -> list[RankedItem[Comment]]:
    comments = await list_root_comments_in_window(trick_id, window, db)
    if not comments:
        return []
    replies = await list_replies([c.comment_id for c in comments], db)
    reference_ids = await list_root_comment_ids(trick_id, db, window.direction)
    reply_rank_index = None
    if reply_policy is ReplyRankPolicy.GLOBAL:
        reply_rank_index = build_rank_index(
            await list_comment_ids(trick_id, db, window.direction), window.direction
        )
    return assign_ranks(
        comments,
        build_rank_index(reference_ids, window.direction),
        key=lambda comment: comment.comment_id,
        children=lambda comment: replies.get(comment.comment_id, []),
        reply_policy=reply_policy,
        reply_rank_index=reply_rank_index,
    )
