# bookreview/services/rating_aggregation.py
"""
Recomputes the aggregates cached on parent rows:

- `Book.average_rating` / `Book.ratings_count` from the book's reviews
- `Review.comments_count` from the review's comments

Values are always derived from the current child rows, never from deltas,
so running a recompute twice gives the same result. Both methods run inside
the caller's transaction and only flush.
"""

import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.crud.book_crud import book_repository
from bookreview.crud.comment_crud import comment_repository
from bookreview.crud.review_crud import review_repository
from bookreview.db.session import unit_of_work
from bookreview.models.book_model import Book
from bookreview.models.review_model import Review

logger = logging.getLogger(__name__)


class RatingAggregationService:
    def __init__(self):
        self.book_repository = book_repository
        self.review_repository = review_repository
        self.comment_repository = comment_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def recompute_book_rating(
        self, db: AsyncSession, book_id: int
    ) -> Optional[Book]:
        """Set a book's mean rating and review count from its reviews."""
        book = await self.book_repository.get(db=db, obj_id=book_id)
        if book is None:
            self._logger.warning(f"Rating recompute skipped, book {book_id} missing")
            return None

        ratings_count, average = await self.book_repository.get_rating_aggregate(
            db=db, book_id=book_id
        )
        average_rating = average if ratings_count else 0.0

        await self.book_repository.set_rating_aggregate(
            db=db,
            book=book,
            average_rating=average_rating,
            ratings_count=ratings_count,
        )
        self._logger.debug(
            "Book rating recomputed",
            extra={
                "book_id": book_id,
                "average_rating": average_rating,
                "ratings_count": ratings_count,
            },
        )
        return book

    async def recompute_review_comment_count(
        self, db: AsyncSession, review_id: int
    ) -> Optional[Review]:
        """Set a review's comment count from its comments."""
        review = await self.review_repository.get(db=db, obj_id=review_id)
        if review is None:
            self._logger.warning(
                f"Comment count recompute skipped, review {review_id} missing"
            )
            return None

        comments_count = await self.comment_repository.count_for_review(
            db=db, review_id=review_id
        )
        await self.review_repository.set_comments_count(
            db=db, review=review, comments_count=comments_count
        )
        return review

    async def recompute_all_book_ratings(self, db: AsyncSession) -> int:
        """Recompute every book in one transaction. Returns the number of books."""
        async with unit_of_work(db):
            book_ids = await self.book_repository.get_all_ids(db=db)
            for book_id in book_ids:
                await self.recompute_book_rating(db, book_id)

        self._logger.info(f"Recomputed ratings for {len(book_ids)} books")
        return len(book_ids)


rating_aggregation_service = RatingAggregationService()
