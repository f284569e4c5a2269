# bookreview/utils/deps.py
"""
FastAPI dependencies for authentication and request parsing.
This module focuses purely on dependency injection, delegating business logic to services.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.core.exceptions import (
    InactiveUser,
    InvalidToken,
    NotAuthenticated,
)
from bookreview.core.security import TokenType, token_manager
from bookreview.crud.user_crud import user_repository
from bookreview.db.session import get_session
from bookreview.models.user_model import User
from bookreview.schemas.review_schema import ReviewFilterParams, ReviewPaginationParams

logger = logging.getLogger(__name__)

# Bearer scheme for token extraction. Missing credentials are reported by
# `get_current_user` so they render through the normal error envelope.
bearer_scheme = HTTPBearer(auto_error=False, description="JWT Access Token")


# ================== CORE AUTHENTICATION DEPENDENCIES ==================
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """
    Primary authentication dependency. Validates JWT and returns current user.
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()

    payload = token_manager.verify_token(
        credentials.credentials, expected_type=TokenType.ACCESS
    )
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise InvalidToken("Token subject is not a valid user id.") from None

    user = await user_repository.get(db=db, obj_id=user_id)
    if user is None:
        raise InvalidToken("Token subject does not match a known user.")

    request.state.user = user
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Ensure the current user is active."""
    if not current_user.is_active:
        logger.warning(
            "Inactive user attempted access",
            extra={"user_id": str(current_user.id)},
        )
        raise InactiveUser()
    return current_user


# ================== UTILITY DEPENDENCIES ==================
async def get_review_pagination(
    params: Annotated[ReviewPaginationParams, Query()],
) -> ReviewPaginationParams:
    """Pagination and ordering taken from the query string."""
    return params


async def get_review_filters(
    params: Annotated[ReviewFilterParams, Query()],
) -> ReviewFilterParams:
    return params


class CommentPaginationParams:
    """Pagination parameters for comment threads."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Page size",
        ),
    ):
        self.page = page
        self.limit = limit
