import logging

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings
from bookreview.db.session import get_session
from bookreview.models.user_model import User
from bookreview.schemas.book_schema import BookCreate, BookResponse
from bookreview.schemas.common_schema import ApiResponse, success_response
from bookreview.schemas.review_schema import ReviewListResponse, ReviewPaginationParams
from bookreview.services.book_service import book_service
from bookreview.services.review_service import review_service
from bookreview.utils.deps import get_current_active_user, get_review_pagination

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Books"],
    prefix=f"{settings.API_V1_STR}/books",
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[BookResponse],
    summary="Add book",
    description="Add a book to the catalog by ISBN",
)
async def create_book(
    *,
    request: Request,
    book_data: BookCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_active_user),
):
    book = await book_service.create_book(db=db, book_data=book_data)
    logger.info(
        "Book added to catalog",
        extra={"book_id": book.id, "user_id": current_user.id},
    )
    return success_response(BookResponse.model_validate(book), request)


@router.get(
    "/{book_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[BookResponse],
    summary="Get book",
)
async def get_book(
    *,
    request: Request,
    book_id: int,
    db: AsyncSession = Depends(get_session),
):
    book = await book_service.get_book_by_id(db=db, book_id=book_id)
    return success_response(BookResponse.model_validate(book), request)


@router.get(
    "/{book_id}/reviews",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ReviewListResponse],
    summary="Get all Book Reviews",
    description="Retrieve a paginated list of reviews for one book",
)
async def get_book_reviews(
    *,
    request: Request,
    book_id: int,
    db: AsyncSession = Depends(get_session),
    pagination: ReviewPaginationParams = Depends(get_review_pagination),
):
    reviews = await review_service.get_book_reviews(
        db=db, book_id=book_id, pagination=pagination
    )
    return success_response(reviews, request)
