# bookreview/models/book_model.py
"""
Book model definition.

`average_rating` and `ratings_count` are aggregates derived from the book's
reviews. Only the rating aggregation service writes them.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlmodel import SQLModel, Field, Column, DateTime, String, Integer, Text
from sqlalchemy import JSON, CheckConstraint, Index, Numeric, func

from bookreview.utils.datetime_utils import utcnow


class BookBase(SQLModel):

    isbn: str = Field(
        min_length=10,
        max_length=17,
        description="ISBN-10 or ISBN-13",
        schema_extra={"example": "9780743273565"},
    )
    title: str = Field(
        min_length=1,
        max_length=500,
        description="The title of the book",
        schema_extra={"example": "The Great Gatsby"},
    )
    description: Optional[str] = Field(default=None, description="Book synopsis")
    published_date: Optional[date] = Field(
        default=None,
        description="The publication date of the book",
        schema_extra={"example": "1925-04-10"},
    )
    publisher: Optional[str] = Field(
        default=None,
        max_length=255,
        description="The publisher of the book",
        schema_extra={"example": "Charles Scribner's Sons"},
    )
    page_count: Optional[int] = Field(
        default=None,
        ge=1,
        description="The number of pages in the book",
        schema_extra={"example": 180},
    )
    cover_image: Optional[str] = Field(default=None, description="Cover image URL")
    google_books_id: Optional[str] = Field(
        default=None, max_length=255, description="Google Books volume id"
    )


class Book(BookBase, table=True):
    __tablename__ = "books"
    __table_args__ = (
        Index("idx_book_title", "title"),
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5", name="ck_book_average_rating"
        ),
        CheckConstraint("ratings_count >= 0", name="ck_book_ratings_count_positive"),
        CheckConstraint(
            "page_count IS NULL OR page_count >= 1", name="ck_book_page_count"
        ),
    )

    id: Optional[int] = Field(
        default=None, primary_key=True, description="A unique constraint for Book"
    )
    isbn: str = Field(
        sa_column=Column(String(17), unique=True, nullable=False, index=True)
    )
    title: str = Field(sa_column=Column(String(500), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    authors: List[str] = Field(sa_column=Column(JSON, nullable=False))
    categories: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )

    # Aggregates derived from reviews
    average_rating: float = Field(
        default=0,
        sa_column=Column(
            Numeric(3, 2, asdecimal=False), nullable=False, server_default="0"
        ),
    )
    ratings_count: int = Field(
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
        description="Book creation timestamp",
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
        description="Book last updated timestamp",
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, isbn='{self.isbn}', title='{self.title}')>"
