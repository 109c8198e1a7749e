import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base


class Comment(Base):
    __tablename__ = "comments"

    comment_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trick_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tricks.trick_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Soft reference, users are not managed by this service
    author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Self-referential FK for replies. Depth is not enforced; listing only fetches direct replies of root comments
    parent_comment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("comments.comment_id", ondelete="CASCADE"),
        nullable=True,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    trick = relationship("Trick", back_populates="comments", lazy="noload")
    replies: Mapped[list["Comment"]] = relationship(
        "Comment",
        foreign_keys=[parent_comment_id],
        primaryjoin="Comment.parent_comment_id == Comment.comment_id",
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_comments_trick_id_created_at", "trick_id", "created_at"),
        Index("ix_comments_parent_comment_id", "parent_comment_id"),
    )
