import logging

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.db.session import get_session
from bookreview.schemas.common_schema import ApiResponse, success_response
from bookreview.schemas.review_schema import (
    ReviewListResponse,
    ReviewPaginationParams,
    ReviewStatsResponse,
)
from bookreview.services.review_service import review_service
from bookreview.utils.deps import get_review_pagination

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Users"],
    prefix=f"{settings.API_V1_STR}/users",
)


@router.get(
    "/{user_id}/reviews",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewListResponse],
    summary="Get all User Reviews",
    description="Retrieve a paginated list of reviews written by one user",
)
async def get_user_reviews(
    *,
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    pagination: ReviewPaginationParams = Depends(get_review_pagination),
):
    reviews = await review_service.get_user_reviews(
        db=db, user_id=user_id, pagination=pagination
    )
    return success_response(reviews, request)


@router.get(
    "/{user_id}/reviews/stats",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewStatsResponse],
    summary="Get User Review Stats",
    description="Review count, mean rating and rating distribution for one user",
)
async def get_user_review_stats(
    *,
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_session),
):
    stats = await review_service.get_user_review_stats(db=db, user_id=user_id)
    return success_response(stats, request)
