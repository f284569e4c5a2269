import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.db.session import get_session
from bookreview.models.user_model import User
from bookreview.schemas.common_schema import ApiResponse, success_response
from bookreview.schemas.comment_schema import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
)
from bookreview.schemas.review_schema import (
    ReviewCreate,
    ReviewUpdate,
    ReviewFilterParams,
    ReviewPaginationParams,
    ReviewListResponse,
    ReviewResponse,
    ReviewFlagCreate,
    ReviewFlagResponse,
)
from bookreview.services.comment_service import comment_service
from bookreview.services.review_service import review_service
from bookreview.utils.deps import (
    get_current_active_user,
    get_review_filters,
    get_review_pagination,
    CommentPaginationParams,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Reviews"],
    prefix=f"{settings.API_V1_STR}/reviews",
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ReviewResponse],
    summary="Create review",
    description="Review a book. Each user may review a given book once.",
)
async def create_review(
    *,
    request: Request,
    review_data: ReviewCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    review = await review_service.create_review(
        db=db, user_id=current_user.id, review_data=review_data
    )
    return success_response(ReviewResponse.model_validate(review), request)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewListResponse],
    summary="List reviews",
    description="Retrieve a paginated list of reviews with optional filtering",
)
async def list_reviews(
    *,
    request: Request,
    db: AsyncSession = Depends(get_session),
    filters: ReviewFilterParams = Depends(get_review_filters),
    pagination: ReviewPaginationParams = Depends(get_review_pagination),
):
    reviews = await review_service.list_reviews(
        db=db, filters=filters, pagination=pagination
    )
    return success_response(reviews, request)


@router.get(
    "/search",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewListResponse],
    summary="Search reviews",
    description="Case-insensitive search over review titles and content",
)
async def search_reviews(
    *,
    request: Request,
    q: str = Query(..., description="Text to search for"),
    db: AsyncSession = Depends(get_session),
    pagination: ReviewPaginationParams = Depends(get_review_pagination),
):
    reviews = await review_service.search_reviews(db=db, query=q, pagination=pagination)
    return success_response(reviews, request)


@router.get(
    "/{review_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewResponse],
    summary="Get review",
)
async def get_review(
    *,
    request: Request,
    review_id: int,
    db: AsyncSession = Depends(get_session),
):
    review = await review_service.get_review_by_id(db=db, review_id=review_id)
    return success_response(ReviewResponse.model_validate(review), request)


@router.put(
    "/{review_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewResponse],
    summary="Update review",
    description="Update your own review. Omitted fields keep their value.",
)
async def update_review(
    *,
    request: Request,
    review_id: int,
    review_data: ReviewUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    review = await review_service.update_review(
        db=db, review_id=review_id, user_id=current_user.id, review_data=review_data
    )
    return success_response(ReviewResponse.model_validate(review), request)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete review",
    description="Delete your own review together with its comments",
)
async def delete_review(
    *,
    review_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    await review_service.delete_review(db=db, review_id=review_id, user_id=current_user.id)

    logger.info(
        "Review deleted",
        extra={"review_id": review_id, "user_id": current_user.id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{review_id}/flag",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ReviewFlagResponse],
    summary="Flag review",
    description="Report a review for moderation",
)
async def flag_review(
    *,
    request: Request,
    review_id: int,
    flag_data: ReviewFlagCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    flag = await review_service.flag_review_for_moderation(
        db=db, review_id=review_id, user_id=current_user.id, reason=flag_data.reason
    )
    return success_response(ReviewFlagResponse.model_validate(flag), request)


# ------ Comments on a review ------
@router.get(
    "/{review_id}/comments",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[CommentListResponse],
    summary="List review comments",
    description="Top-level comments of a review, oldest first",
)
async def list_review_comments(
    *,
    request: Request,
    review_id: int,
    db: AsyncSession = Depends(get_session),
    pagination: CommentPaginationParams = Depends(),
):
    comments = await comment_service.get_review_comments(
        db=db, review_id=review_id, page=pagination.page, limit=pagination.limit
    )
    return success_response(comments, request)


@router.post(
    "/{review_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[CommentResponse],
    summary="Comment on review",
    description="Comment on a review, or reply to one of its comments",
)
async def create_comment(
    *,
    request: Request,
    review_id: int,
    comment_data: CommentCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    comment = await comment_service.create_comment(
        db=db, review_id=review_id, user_id=current_user.id, comment_data=comment_data
    )
    return success_response(CommentResponse.model_validate(comment), request)
