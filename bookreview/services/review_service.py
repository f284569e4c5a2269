import logging
import math
from typing import Optional, Dict, List

from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.crud.book_crud import book_repository
from bookreview.crud.comment_crud import comment_repository
from bookreview.crud.review_crud import review_repository
from bookreview.crud.review_flag_crud import review_flag_repository
from bookreview.crud.user_crud import user_repository
from bookreview.db.session import unit_of_work
from bookreview.models.review_flag_model import ReviewFlag
from bookreview.models.review_model import Review
from bookreview.schemas.review_schema import (
    ReviewCreate,
    ReviewUpdate,
    ReviewFilterParams,
    ReviewPaginationParams,
    ReviewListResponse,
    ReviewResponse,
    ReviewStatsResponse,
)
from bookreview.services.cache_service import cache_service
from bookreview.services.rating_aggregation import rating_aggregation_service
from bookreview.services.spoiler_detection import get_spoiler_classifier
from bookreview.core.exception_utils import raise_for_status
from bookreview.core.exceptions import (
    ResourceNotFound,
    NotAuthorized,
    ValidationError,
    ResourceAlreadyExists,
)

logger = logging.getLogger(__name__)

SEARCH_CACHE_PREFIX = "reviews:search:"
STATS_CACHE_PREFIX = "reviews:stats:"

RATING_MIN, RATING_MAX = 1, 5
TITLE_MIN, TITLE_MAX = 1, 200
CONTENT_MIN, CONTENT_MAX = 10, 5000


def validate_review_fields(rating, title: Optional[str], content: Optional[str]) -> List[str]:
    """Return the list of violated review rules; empty when valid."""
    errors = []

    if (
        not isinstance(rating, int)
        or isinstance(rating, bool)
        or not RATING_MIN <= rating <= RATING_MAX
    ):
        errors.append(f"Rating must be an integer between {RATING_MIN} and {RATING_MAX}")

    if title is None or not TITLE_MIN <= len(title) <= TITLE_MAX:
        errors.append(f"Title must be between {TITLE_MIN} and {TITLE_MAX} characters")

    if content is None or not CONTENT_MIN <= len(content) <= CONTENT_MAX:
        errors.append(
            f"Content must be between {CONTENT_MIN} and {CONTENT_MAX} characters"
        )

    return errors


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


class ReviewService:
    """
    Review lifecycle and queries.

    Every mutation runs as one unit of work: the review write and the
    recompute of the book's rating aggregate commit together or not at all.
    """

    def __init__(self):
        self.user_repository = user_repository
        self.review_repository = review_repository
        self.book_repository = book_repository
        self.comment_repository = comment_repository
        self.review_flag_repository = review_flag_repository
        self.rating_aggregation = rating_aggregation_service
        self.spoiler_classifier = get_spoiler_classifier()
        self.cache = cache_service
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _check_authorization(self, user_id: int, review: Review, action: str) -> None:
        """Only the author of a review may change it."""
        raise_for_status(
            condition=not review.is_owned_by(user_id),
            exception=NotAuthorized,
            detail=f"User not authorized to {action} this review",
        )

    async def _get_review_or_404(self, db: AsyncSession, review_id: int) -> Review:
        review = await self.review_repository.get(db=db, obj_id=review_id)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            detail="Review not found",
            resource_type="Review",
            resource_id=review_id,
        )
        return review

    async def _invalidate_cached_reads(self, user_id: int) -> None:
        await self.cache.invalidate(SEARCH_CACHE_PREFIX)
        await self.cache.invalidate(f"{STATS_CACHE_PREFIX}{user_id}")

    # ======= READ OPERATIONS =======
    async def get_review_by_id(self, db: AsyncSession, *, review_id: int) -> Review:
        """Get a review with its user and book projections."""
        review = await self.review_repository.get(db=db, obj_id=review_id, refresh=True)
        raise_for_status(
            condition=review is None,
            exception=ResourceNotFound,
            detail="Review not found",
            resource_type="Review",
            resource_id=review_id,
        )
        return review

    async def list_reviews(
        self,
        db: AsyncSession,
        *,
        filters: Optional[ReviewFilterParams] = None,
        pagination: Optional[ReviewPaginationParams] = None,
    ) -> ReviewListResponse:
        """Get reviews with optional filtering and pagination."""
        filters = filters or ReviewFilterParams()
        pagination = pagination or ReviewPaginationParams()

        if (
            filters.min_rating is not None
            and filters.max_rating is not None
            and filters.min_rating > filters.max_rating
        ):
            raise ValidationError(
                errors=["min_rating must be less than or equal to max_rating"]
            )

        return await self._paginate(
            db, filters=filters.model_dump(exclude_none=True), pagination=pagination
        )

    async def get_book_reviews(
        self,
        db: AsyncSession,
        *,
        book_id: int,
        pagination: Optional[ReviewPaginationParams] = None,
    ) -> ReviewListResponse:
        """Get all reviews for one book."""
        book = await self.book_repository.get(db=db, obj_id=book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            detail="Book not found",
            resource_type="Book",
            resource_id=book_id,
        )
        return await self.list_reviews(
            db, filters=ReviewFilterParams(book_id=book_id), pagination=pagination
        )

    async def get_user_reviews(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        pagination: Optional[ReviewPaginationParams] = None,
    ) -> ReviewListResponse:
        """Get all reviews written by one user."""
        user = await self.user_repository.get(db=db, obj_id=user_id)
        raise_for_status(
            condition=user is None,
            exception=ResourceNotFound,
            detail="User not found",
            resource_type="User",
            resource_id=user_id,
        )
        return await self.list_reviews(
            db, filters=ReviewFilterParams(user_id=user_id), pagination=pagination
        )

    async def search_reviews(
        self,
        db: AsyncSession,
        *,
        query: str,
        pagination: Optional[ReviewPaginationParams] = None,
    ) -> ReviewListResponse:
        """Case-insensitive substring search over review titles and content."""
        query = _clean(query) or ""
        if not query:
            raise ValidationError("Search query is required")

        pagination = pagination or ReviewPaginationParams()
        cache_key = (
            f"{SEARCH_CACHE_PREFIX}{query.lower()}:{pagination.page}:"
            f"{pagination.limit}:{pagination.sort_by}:{pagination.sort_order}"
        )
        cached = await self.cache.get(cache_key, ReviewListResponse)
        if cached is not None:
            return cached

        response = await self._paginate(
            db, filters={"search": query}, pagination=pagination
        )
        await self.cache.set(cache_key, response)
        return response

    async def get_user_review_stats(
        self, db: AsyncSession, *, user_id: int
    ) -> ReviewStatsResponse:
        """Review count, mean rating and per-rating distribution for one user."""
        cache_key = f"{STATS_CACHE_PREFIX}{user_id}"
        cached = await self.cache.get(cache_key, ReviewStatsResponse)
        if cached is not None:
            return cached

        counts = await self.review_repository.get_rating_counts_for_user(
            db=db, user_id=user_id
        )
        distribution: Dict[int, int] = {
            rating: counts.get(rating, 0) for rating in range(RATING_MIN, RATING_MAX + 1)
        }
        total_reviews = sum(distribution.values())
        average_rating = (
            round(
                sum(rating * count for rating, count in distribution.items())
                / total_reviews,
                2,
            )
            if total_reviews
            else 0.0
        )

        stats = ReviewStatsResponse(
            total_reviews=total_reviews,
            average_rating=average_rating,
            rating_distribution=distribution,
        )
        await self.cache.set(cache_key, stats)
        return stats

    async def _paginate(
        self, db: AsyncSession, *, filters: dict, pagination: ReviewPaginationParams
    ) -> ReviewListResponse:
        reviews, total = await self.review_repository.get_many(
            db=db,
            skip=pagination.offset,
            limit=pagination.limit,
            filters=filters,
            order_by=pagination.sort_by,
            order_desc=pagination.sort_order == "DESC",
        )

        total_pages = math.ceil(total / pagination.limit)
        response = ReviewListResponse(
            reviews=[ReviewResponse.model_validate(review) for review in reviews],
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=total_pages,
            has_next=pagination.page < total_pages,
            has_prev=pagination.page > 1,
        )

        self._logger.info(f"Review list retrieved : {len(reviews)} reviews returned")
        return response

    # ========CREATE======
    async def create_review(
        self, db: AsyncSession, *, user_id: int, review_data: ReviewCreate
    ) -> Review:
        """Create a review and fold its rating into the book's aggregate."""
        title = _clean(review_data.title)
        content = _clean(review_data.content)
        book_id = review_data.book_id

        async with unit_of_work(db):
            existing_review = await self.review_repository.get_by_user_and_book(
                db=db, user_id=user_id, book_id=book_id
            )
            raise_for_status(
                condition=existing_review is not None,
                exception=ResourceAlreadyExists,
                detail="User already has a review for this book",
                error_code="REVIEW_ALREADY_EXISTS",
                resource_type="Review",
            )

            errors = validate_review_fields(review_data.rating, title, content)
            if errors:
                raise ValidationError(errors=errors)

            book = await self.book_repository.get(db=db, obj_id=book_id)
            raise_for_status(
                condition=book is None,
                exception=ResourceNotFound,
                detail="Book not found",
                resource_type="Book",
                resource_id=book_id,
            )

            user = await self.user_repository.get(db=db, obj_id=user_id)
            raise_for_status(
                condition=user is None,
                exception=ResourceNotFound,
                detail="User not found",
                resource_type="User",
                resource_id=user_id,
            )

            spoiler_warning = review_data.spoiler_warning
            if spoiler_warning is None:
                spoiler_warning = self.spoiler_classifier.contains_spoilers(content)

            review_to_create = Review(
                user_id=user_id,
                book_id=book_id,
                rating=review_data.rating,
                title=title,
                content=content,
                spoiler_warning=spoiler_warning,
            )
            try:
                new_review = await self.review_repository.create(
                    db=db, obj_in=review_to_create
                )
            except ResourceAlreadyExists as e:
                # Lost a race with a concurrent create for the same pair.
                raise ResourceAlreadyExists(
                    "User already has a review for this book",
                    error_code="REVIEW_ALREADY_EXISTS",
                    resource_type="Review",
                ) from e

            await self.rating_aggregation.recompute_book_rating(db, book_id)
            review_id = new_review.id

        await self._invalidate_cached_reads(user_id)
        self._logger.info(
            f"New review created: {review_id}",
            extra={"review_id": review_id, "user_id": user_id, "book_id": book_id},
        )
        return await self.get_review_by_id(db, review_id=review_id)

    # ========UPDATE======
    async def update_review(
        self,
        db: AsyncSession,
        *,
        review_id: int,
        user_id: int,
        review_data: ReviewUpdate,
    ) -> Review:
        """Apply a partial update and recompute the book's rating."""
        supplied = review_data.model_dump(exclude_unset=True, exclude_none=True)
        for field in ("title", "content"):
            if field in supplied:
                supplied[field] = _clean(supplied[field])

        async with unit_of_work(db):
            review = await self._get_review_or_404(db, review_id)
            self._check_authorization(user_id, review, action="edit")

            merged = {
                "rating": supplied.get("rating", review.rating),
                "title": supplied.get("title", review.title),
                "content": supplied.get("content", review.content),
            }
            errors = validate_review_fields(
                merged["rating"], merged["title"], merged["content"]
            )
            if errors:
                raise ValidationError(errors=errors)

            fields_to_update = dict(supplied)
            content_changed = (
                "content" in supplied and supplied["content"] != review.content
            )
            if "spoiler_warning" not in supplied and content_changed:
                fields_to_update["spoiler_warning"] = (
                    self.spoiler_classifier.contains_spoilers(supplied["content"])
                )

            await self.review_repository.update(
                db=db, review=review, fields_to_update=fields_to_update
            )
            await self.rating_aggregation.recompute_book_rating(db, review.book_id)

        await self._invalidate_cached_reads(user_id)
        self._logger.info(
            f"Review {review_id} updated by {user_id}",
            extra={
                "updated_review_id": review_id,
                "updated_fields": list(fields_to_update.keys()),
            },
        )
        return await self.get_review_by_id(db, review_id=review_id)

    # ========DELETE=======
    async def delete_review(
        self, db: AsyncSession, *, review_id: int, user_id: int
    ) -> None:
        """Delete a review with its comments and recompute the book's rating."""
        async with unit_of_work(db):
            review = await self._get_review_or_404(db, review_id)
            self._check_authorization(user_id, review, action="delete")

            book_id = review.book_id
            deleted_comments = await self.comment_repository.delete_by_review(
                db=db, review_id=review_id
            )
            await self.review_flag_repository.delete_by_review(db=db, review_id=review_id)
            await self.review_repository.delete(db=db, review=review)
            await self.rating_aggregation.recompute_book_rating(db, book_id)

        await self._invalidate_cached_reads(user_id)
        self._logger.warning(
            f"Review {review_id} permanently deleted by {user_id}",
            extra={
                "deleted_review_id": review_id,
                "deleter_id": user_id,
                "book_id": book_id,
                "deleted_comments": deleted_comments,
            },
        )

    # ======MODERATION======
    async def flag_review_for_moderation(
        self, db: AsyncSession, *, review_id: int, user_id: int, reason: str
    ) -> ReviewFlag:
        """Record a moderation report against a review."""
        reason = _clean(reason)
        if not reason or len(reason) > 500:
            raise ValidationError(errors=["Reason must be between 1 and 500 characters"])

        async with unit_of_work(db):
            await self._get_review_or_404(db, review_id)

            existing_flag = await self.review_flag_repository.get_by_user_and_review(
                db=db, user_id=user_id, review_id=review_id
            )
            raise_for_status(
                condition=existing_flag is not None,
                exception=ResourceAlreadyExists,
                detail="You have already flagged this review",
                resource_type="ReviewFlag",
            )

            flag = await self.review_flag_repository.create(
                db=db,
                obj_in=ReviewFlag(review_id=review_id, user_id=user_id, reason=reason),
            )

        self._logger.warning(
            f"Review {review_id} flagged for moderation",
            extra={"review_id": review_id, "reporter_id": user_id, "reason": reason},
        )
        return flag


review_service = ReviewService()
