from typing import TYPE_CHECKING, Optional
from datetime import datetime

from sqlmodel import SQLModel, Field, Relationship, Column, Integer, DateTime, Text
from sqlalchemy import Index, CheckConstraint, func

from bookreview.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from bookreview.models.user_model import User


class CommentBase(SQLModel):
    content: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Comment text",
        schema_extra={"example": "Completely agree with this review."},
    )


class Comment(CommentBase, table=True):
    """
    A comment on a review. Replies point at their parent through
    `parent_comment_id`; threads are walked with explicit queries.
    """

    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_comment_review_id", "review_id"),
        Index("idx_comment_user_id", "user_id"),
        Index("idx_comment_parent_comment_id", "parent_comment_id"),
        Index("idx_comment_created_at", "created_at"),
        CheckConstraint("likes_count >= 0", name="ck_comment_likes_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    content: str = Field(sa_column=Column(Text, nullable=False))

    review_id: int = Field(
        foreign_key="reviews.id", nullable=False, description="ID of the review"
    )
    user_id: int = Field(
        foreign_key="users.id", nullable=False, description="ID of the commenter"
    )
    parent_comment_id: Optional[int] = Field(
        default=None,
        foreign_key="comments.id",
        nullable=True,
        description="ID of the comment this one replies to",
    )

    likes_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
    )

    created_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            default=utcnow,
            server_default=func.now(),
            nullable=False,
        ),
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            default=utcnow,
            onupdate=utcnow,
            server_default=func.now(),
            nullable=False,
        ),
    )

    user: Optional["User"] = Relationship(sa_relationship_kwargs={"lazy": "joined"})

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, review_id={self.review_id}, user_id={self.user_id})>"
