"""Listing domain Pydantic V2 schemas.

``rank``, ``count`` and ``error`` carry what list fragments used to expose as
``data-offset``, ``data-count`` and ``data-error`` attributes.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.listing.ranking import RankedItem
from app.models.comment import Comment
from app.models.trick import Trick
from app.pagination import ResolvedWindow, encode_uuid
from shared.models.pagination import PaginatedResponse, SortDirection


class ListNotices(BaseModel):
    """Texts the client shows when a list ends, is empty, or fails to load."""

    list_ended: str
    no_list: str
    technical_error: str


# ---------------------------------------------------------------------------
# Trick list
# ---------------------------------------------------------------------------


class TrickCard(BaseModel):
    """Trick card of the homepage grid."""

    trick_id: UUID
    token: str = Field(description="Opaque identifier used in trick URLs.")
    name: str
    slug: str
    created_at: datetime
    rank: int | None = Field(
        description="Position in the whole list, 0 being the oldest trick. Null if unknown."
    )

    @classmethod
    def from_ranked(cls, node: RankedItem[Trick]) -> TrickCard:
        trick = node.item
        return cls(
            trick_id=trick.trick_id,
            token=encode_uuid(trick.trick_id),
            name=trick.name,
            slug=trick.slug,
            created_at=trick.created_at,
            rank=node.rank,
        )


class TrickListResponse(BaseModel):
    """A batch of the "load more" trick list."""

    items: list[TrickCard]
    count: int = Field(description="Total trick count when the batch was fetched.")
    offset: int = Field(description="Resolved offset (lowest rank of the batch).")
    limit: int = Field(description="Resolved limit.")
    direction: SortDirection
    error: str | None = Field(
        default=None, description="Notice shown when the list had to be reinitialized."
    )
    reinitialized: bool = Field(
        default=False, description="True when the client must replace its list with this batch."
    )

    @classmethod
    def build(
        cls,
        ranked: list[RankedItem[Trick]],
        resolved: ResolvedWindow,
        error: str | None = None,
        **extra,
    ) -> TrickListResponse:
        return cls(
            items=[TrickCard.from_ranked(node) for node in ranked],
            count=resolved.count,
            offset=resolved.offset,
            limit=resolved.limit,
            direction=resolved.direction,
            error=error,
            reinitialized=error is not None,
            **extra,
        )


class HomeTrickListResponse(TrickListResponse):
    """Homepage payload: first batch plus what the client needs to load more."""

    loading_mode: SortDirection
    number_per_loading: int
    load_path: str = Field(description="Path of the AJAX \"load more\" endpoint.")
    notices: ListNotices


class TrickPageResponse(PaginatedResponse[TrickCard]):
    """Page-number trick list."""

    direction: SortDirection
    offset: int
    limit: int


# ---------------------------------------------------------------------------
# Comment list
# ---------------------------------------------------------------------------


class CommentBox(BaseModel):
    """A comment with its replies (one level)."""

    comment_id: UUID
    author_id: UUID | None
    parent_comment_id: UUID | None = Field(
        default=None, description="Set for replies; null for first-level comments."
    )
    body: str
    created_at: datetime
    rank: int | None = Field(
        description=(
            "First-level comments: position among the trick's first-level comments. "
            "Replies: position according to the configured reply rank policy."
        )
    )
    replies: list[CommentBox] = Field(default_factory=list)

    @classmethod
    def from_ranked(cls, node: RankedItem[Comment]) -> CommentBox:
        # Built iteratively so deep reply chains never hit the recursion limit
        root = cls._single(node)
        stack = [(node, root)]
        while stack:
            current, box = stack.pop()
            for child in current.replies:
                child_box = cls._single(child)
                box.replies.append(child_box)
                stack.append((child, child_box))
        return root

    @classmethod
    def _single(cls, node: RankedItem[Comment]) -> CommentBox:
        comment = node.item
        return cls(
            comment_id=comment.comment_id,
            author_id=comment.author_id,
            parent_comment_id=comment.parent_comment_id,
            body=comment.body,
            created_at=comment.created_at,
            rank=node.rank,
        )


class CommentListResponse(BaseModel):
    """A batch of the "load more" comment list of one trick."""

    trick_token: str
    items: list[CommentBox]
    count: int = Field(description="First-level comment count when the batch was fetched.")
    comment_count: int = Field(description="All comments of the trick, replies included.")
    offset: int
    limit: int
    direction: SortDirection
    error: str | None = None
    reinitialized: bool = False

    @classmethod
    def build(
        cls,
        trick_id: UUID,
        ranked: list[RankedItem[Comment]],
        resolved: ResolvedWindow,
        comment_count: int,
        error: str | None = None,
        **extra,
    ) -> CommentListResponse:
        return cls(
            trick_token=encode_uuid(trick_id),
            items=[CommentBox.from_ranked(node) for node in ranked],
            count=resolved.count,
            comment_count=comment_count,
            offset=resolved.offset,
            limit=resolved.limit,
            direction=resolved.direction,
            error=error,
            reinitialized=error is not None,
            **extra,
        )


class TrickCommentsResponse(CommentListResponse):
    """Trick page payload: first comment batch plus loading parameters."""

    loading_mode: SortDirection
    number_per_loading: int
    load_path: str
    notices: ListNotices
