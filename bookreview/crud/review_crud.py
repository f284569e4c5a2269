import logging
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy.orm import selectinload
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, and_, or_

from bookreview.core.exception_utils import handle_exceptions
from bookreview.core.exceptions import InternalServerError
from bookreview.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookreview.models.review_model import Review

SORTABLE_FIELDS = {"created_at", "rating", "likes_count"}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ReviewRepository(BaseRepository[Review]):
    """Repository for all database operations related to the Review model."""

    def __init__(self):
        super().__init__(Review)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(
        self, db: AsyncSession, *, obj_id: int, refresh: bool = False
    ) -> Optional[Review]:
        """
        Get a review by its id, with user and book loaded.

        `refresh=True` overwrites any stale copy held by the session.
        """
        statement = (
            select(self.model)
            .where(self.model.id == obj_id)
            .options(selectinload(self.model.user), selectinload(self.model.book))
        )
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_user_and_book(
        self, db: AsyncSession, *, user_id: int, book_id: int
    ) -> Optional[Review]:
        """Get review by user and book (unique constraint)."""
        statement = select(self.model).where(
            and_(self.model.user_id == user_id, self.model.book_id == book_id)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_many(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        order_desc: bool = True,
    ) -> Tuple[List[Review], int]:
        """Retrieve reviews with filtering, search, and pagination."""
        query = select(self.model)

        if filters:
            query = self._apply_filters(query, filters=filters)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        query = self._apply_ordering(query, order_by, order_desc)

        paginated_query = (
            query.offset(skip)
            .limit(limit)
            .options(selectinload(self.model.user), selectinload(self.model.book))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(paginated_query)
        reviews = list(result.scalars().all())

        return reviews, total

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_rating_counts_for_user(
        self, db: AsyncSession, *, user_id: int
    ) -> Dict[int, int]:
        """Number of reviews per rating value written by one user."""
        statement = (
            select(self.model.rating, func.count(self.model.id))
            .where(self.model.user_id == user_id)
            .group_by(self.model.rating)
        )
        result = await db.execute(statement)
        return {rating: count for rating, count in result.all()}

    # CRUD
    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: Review) -> Review:
        """Stage a review and flush it so it gets an id."""
        db.add(obj_in)
        await db.flush()
        self._logger.info(f"Review created: {obj_in.id}")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def update(
        self, db: AsyncSession, *, review: Review, fields_to_update: Dict[str, Any]
    ) -> Review:
        """Update a review"""
        for field, value in fields_to_update.items():
            setattr(review, field, value)

        db.add(review)
        await db.flush()

        self._logger.info(
            f"Review fields updated for {review.id}: {list(fields_to_update.keys())}"
        )
        return review

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def set_comments_count(
        self, db: AsyncSession, *, review: Review, comments_count: int
    ) -> Review:
        review.comments_count = comments_count
        db.add(review)
        await db.flush()
        return review

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete(self, db: AsyncSession, *, review: Review) -> None:
        """Delete a review"""
        review_id = review.id
        await db.delete(review)
        await db.flush()
        self._logger.info(f"Review hard deleted: {review_id}")

    def _apply_filters(self, query, *, filters: Dict[str, Any]):
        """Apply filters to a review query."""
        conditions = []

        if filters.get("book_id") is not None:
            conditions.append(self.model.book_id == filters["book_id"])

        if filters.get("user_id") is not None:
            conditions.append(self.model.user_id == filters["user_id"])

        if filters.get("rating") is not None:
            conditions.append(self.model.rating == filters["rating"])

        # --- Inclusive rating range ---
        if filters.get("min_rating") is not None:
            conditions.append(self.model.rating >= filters["min_rating"])

        if filters.get("max_rating") is not None:
            conditions.append(self.model.rating <= filters["max_rating"])

        if filters.get("spoiler_warning") is not None:
            conditions.append(self.model.spoiler_warning == filters["spoiler_warning"])

        # --- Case-insensitive substring search ---
        if filters.get("search"):
            search_term = f"%{escape_like(filters['search'])}%"
            conditions.append(
                or_(
                    self.model.title.ilike(search_term, escape="\\"),
                    self.model.content.ilike(search_term, escape="\\"),
                )
            )

        if conditions:
            query = query.where(and_(*conditions))

        return query

    def _apply_ordering(self, query, order_by: str, order_desc: bool):
        """Apply ordering to query, with id as a stable tie-breaker."""
        if order_by not in SORTABLE_FIELDS:
            order_by = "created_at"
        order_column = getattr(self.model, order_by)
        if order_desc:
            return query.order_by(order_column.desc(), self.model.id.desc())
        return query.order_by(order_column.asc(), self.model.id.asc())


review_repository = ReviewRepository()
