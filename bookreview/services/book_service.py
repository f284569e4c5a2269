import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.crud.book_crud import book_repository
from bookreview.db.session import unit_of_work
from bookreview.models.book_model import Book
from bookreview.schemas.book_schema import BookCreate
from bookreview.core.exception_utils import raise_for_status
from bookreview.core.exceptions import ResourceNotFound, ResourceAlreadyExists

logger = logging.getLogger(__name__)


class BookService:
    """
    Catalog access needed by reviews: manual book creation and lookup.

    Rating aggregates are never taken from input; a new book starts at 0/0.
    """

    def __init__(self):
        self.book_repository = book_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def get_book_by_id(self, db: AsyncSession, *, book_id: int) -> Book:
        book = await self.book_repository.get(db=db, obj_id=book_id)
        raise_for_status(
            condition=book is None,
            exception=ResourceNotFound,
            detail="Book not found",
            resource_type="Book",
            resource_id=book_id,
        )
        return book

    async def create_book(self, db: AsyncSession, *, book_data: BookCreate) -> Book:
        """Create a book"""
        async with unit_of_work(db):
            existing_book = await self.book_repository.get_by_isbn(
                db=db, isbn=book_data.isbn
            )
            raise_for_status(
                condition=existing_book is not None,
                exception=ResourceAlreadyExists,
                detail=f"Book with ISBN '{book_data.isbn}' already exists.",
                resource_type="Book",
            )

            book_to_create = Book(**book_data.model_dump())
            new_book = await self.book_repository.create(db=db, obj_in=book_to_create)

        self._logger.info(f"New book created: {new_book.title}")
        return new_book


book_service = BookService()
