import logging
from typing import Optional, List, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func

from bookreview.core.exception_utils import handle_exceptions
from bookreview.core.exceptions import InternalServerError
from bookreview.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookreview.models.book_model import Book
from bookreview.models.review_model import Review


class BookRepository(BaseRepository[Book]):
    """Repository for all database operations related to the Book model."""

    def __init__(self):
        super().__init__(Book)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[Book]:
        """Retrieves a book by its ID."""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_isbn(self, db: AsyncSession, *, isbn: str) -> Optional[Book]:
        """Retrieves a book by its normalised ISBN."""
        statement = select(self.model).where(self.model.isbn == isbn)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_all_ids(self, db: AsyncSession) -> List[int]:
        result = await db.execute(select(self.model.id).order_by(self.model.id))
        return list(result.scalars().all())

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_rating_aggregate(
        self, db: AsyncSession, *, book_id: int
    ) -> Tuple[int, Optional[float]]:
        """Count and mean rating of the reviews currently referencing a book."""
        statement = select(func.count(Review.id), func.avg(Review.rating)).where(
            Review.book_id == book_id
        )
        count, average = (await db.execute(statement)).one()
        return count, (float(average) if average is not None else None)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: Book) -> Book:
        db.add(obj_in)
        await db.flush()
        await db.refresh(obj_in)
        self._logger.info(f"Book created: {obj_in.id}")
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def set_rating_aggregate(
        self, db: AsyncSession, *, book: Book, average_rating: float, ratings_count: int
    ) -> Book:
        book.average_rating = average_rating
        book.ratings_count = ratings_count
        db.add(book)
        await db.flush()
        return book


book_repository = BookRepository()
