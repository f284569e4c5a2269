# bookreview/schemas/book_schema.py
"""
Book schemas for request/response models.

Rating aggregates appear only on responses; no request schema accepts them.
"""

from datetime import date, datetime
from typing import List, Optional, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookreview.utils.isbn import is_valid_isbn, normalize_isbn


class BookCreate(BaseModel):
    """Schema for adding a book to the catalog manually."""

    isbn: str = Field(
        ...,
        min_length=10,
        max_length=17,
        description="ISBN-10 or ISBN-13, hyphens allowed",
        examples=["978-0-7432-7356-5"],
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="The title of the book",
        examples=["The Great Gatsby"],
    )
    authors: List[Annotated[str, Field(min_length=1, max_length=255)]] = Field(
        ...,
        min_length=1,
        description="Author names",
        examples=[["F. Scott Fitzgerald"]],
    )
    description: Optional[str] = Field(None, description="Book synopsis")
    published_date: Optional[date] = Field(None, description="Publication date")
    publisher: Optional[str] = Field(None, max_length=255)
    page_count: Optional[int] = Field(None, ge=1, description="Number of pages")
    categories: List[str] = Field(default_factory=list, description="Category tags")
    cover_image: Optional[str] = Field(None, description="Cover image URL")
    google_books_id: Optional[str] = Field(None, max_length=255)

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str) -> str:
        """Normalise the ISBN and check its checksum."""
        if not is_valid_isbn(v):
            raise ValueError("ISBN must be a valid ISBN-10 or ISBN-13")
        return normalize_isbn(v)

    @field_validator("title")
    @classmethod
    def clean_title(cls, v: str) -> str:
        cleaned = " ".join(v.strip().split())
        if not cleaned:
            raise ValueError("Title cannot be blank")
        return cleaned

    @field_validator("authors")
    @classmethod
    def clean_authors(cls, v: List[str]) -> List[str]:
        cleaned = [author.strip() for author in v]
        if any(not author for author in cleaned):
            raise ValueError("Author names cannot be blank")
        return cleaned


class BookSummary(BaseModel):
    """Minimal book projection attached to reviews."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Book ID")
    title: str = Field(..., description="Book title")
    authors: List[str] = Field(default_factory=list, description="Author names")
    cover_image: Optional[str] = Field(None, description="Cover image URL")


class BookResponse(BookSummary):
    """Full book response including rating aggregates."""

    isbn: str
    description: Optional[str] = None
    published_date: Optional[date] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = None
    categories: List[str] = Field(default_factory=list)
    google_books_id: Optional[str] = None
    average_rating: float = Field(..., ge=0, le=5, description="Mean review rating")
    ratings_count: int = Field(..., ge=0, description="Number of reviews")
    created_at: datetime
    updated_at: datetime


__all__ = ["BookCreate", "BookSummary", "BookResponse"]
