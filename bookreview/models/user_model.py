from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field, Column, String, DateTime
from sqlalchemy import func

from bookreview.utils.datetime_utils import utcnow


class UserBase(SQLModel):
    username: str = Field(
        min_length=3,
        max_length=50,
        regex="^[a-zA-Z0-9_-]+$",
        description="User's unique username",
        schema_extra={"example": "jane_doe_123"},
    )
    display_name: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Name shown next to the user's reviews",
        schema_extra={"example": "Jane Doe"},
    )
    avatar: Optional[str] = Field(
        default=None, description="Avatar image URL"
    )
    email: str = Field(
        max_length=200,
        description="User's email address",
        schema_extra={"example": "user@example.com"},
    )
    is_active: bool = Field(default=True, description="Whether account is active")


class User(UserBase, table=True):
    """
    Identity record referenced by reviews and comments.

    Accounts are owned by the identity service; this API only reads them.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(
        default=None, primary_key=True, description="Unique Identifier"
    )
    email: str = Field(
        sa_column=Column(String(200), unique=True, nullable=False, index=True)
    )
    username: str = Field(
        sa_column=Column(String(50), nullable=False, index=True, unique=True)
    )
    created_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            default=utcnow,
            server_default=func.now(),
            nullable=False,
        ),
        description="Account creation timestamp",
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
        description="Account last updated timestamp",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
