from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field, Column, DateTime, String
from sqlalchemy import UniqueConstraint, func

from bookreview.utils.datetime_utils import utcnow


class ReviewFlag(SQLModel, table=True):
    """A moderation report filed against a review."""

    __tablename__ = "review_flags"
    __table_args__ = (
        UniqueConstraint("user_id", "review_id", name="uq_user_review_flag"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    review_id: int = Field(foreign_key="reviews.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    reason: str = Field(sa_column=Column(String(500), nullable=False))
    created_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            default=utcnow,
            server_default=func.now(),
            nullable=False,
        ),
    )
