from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Minimal user projection attached to reviews and comments."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    display_name: Optional[str] = Field(None, description="Display name")
    avatar: Optional[str] = Field(None, description="Avatar URL")
