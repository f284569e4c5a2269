from typing import TYPE_CHECKING, Optional
from datetime import datetime

from sqlmodel import (
    SQLModel,
    Field,
    Relationship,
    Column,
    String,
    Integer,
    DateTime,
    Text,
)
from sqlalchemy import Boolean, Index, UniqueConstraint, CheckConstraint, false, func

from bookreview.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from bookreview.models.user_model import User
    from bookreview.models.book_model import Book


class ReviewBase(SQLModel):
    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        schema_extra={"example": 5},
    )
    title: str = Field(
        min_length=1,
        max_length=200,
        description="Review title/summary",
        schema_extra={"example": "An excellent read!"},
    )
    content: str = Field(
        ...,
        min_length=10,
        max_length=5000,
        description="Detailed review text",
        schema_extra={"example": "This book exceeded my expectations..."},
    )
    spoiler_warning: bool = Field(
        default=False, description="Whether review contains spoilers"
    )


class Review(ReviewBase, table=True):

    __tablename__ = "reviews"
    __table_args__ = (
        # Ensure one review per user per book
        UniqueConstraint("user_id", "book_id", name="uq_user_book_review"),
        # Indexes for common queries
        Index("idx_review_book_id", "book_id"),
        Index("idx_review_user_id", "user_id"),
        Index("idx_review_rating", "rating"),
        Index("idx_review_created_at", "created_at"),
        # Check constraints
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
        CheckConstraint("likes_count >= 0", name="ck_review_likes_positive"),
        CheckConstraint("comments_count >= 0", name="ck_review_comments_positive"),
    )

    id: Optional[int] = Field(
        primary_key=True, default=None, description="Unique constraint for Review"
    )

    title: str = Field(sa_column=Column(String(200), nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))
    spoiler_warning: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default=false()),
    )

    # Foreign keys
    user_id: int = Field(
        foreign_key="users.id", nullable=False, description="ID of the reviewer"
    )
    book_id: int = Field(
        foreign_key="books.id", nullable=False, description="ID of the reviewed book"
    )

    # Engagement metrics
    likes_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="Number of likes",
    )
    # Derived from the comments table
    comments_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="Number of comments on this review",
    )

    # Timestamps
    created_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            default=utcnow,
            server_default=func.now(),
            nullable=False,
        ),
        description="Review creation timestamp",
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
        description="Last update timestamp",
    )

    # Relationships
    user: Optional["User"] = Relationship(
        sa_relationship_kwargs={"lazy": "joined", "foreign_keys": "[Review.user_id]"},
    )
    book: Optional["Book"] = Relationship(sa_relationship_kwargs={"lazy": "joined"})

    def is_owned_by(self, user_id: int) -> bool:
        return self.user_id == user_id

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, user_id={self.user_id}, book_id={self.book_id}, rating={self.rating})>"
