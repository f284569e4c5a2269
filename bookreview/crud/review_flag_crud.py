from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, delete

from bookreview.core.exception_utils import handle_exceptions
from bookreview.core.exceptions import InternalServerError
from bookreview.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookreview.models.review_flag_model import ReviewFlag


class ReviewFlagRepository(BaseRepository[ReviewFlag]):
    def __init__(self):
        super().__init__(ReviewFlag)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[ReviewFlag]:
        return await db.get(self.model, obj_id)

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_by_user_and_review(
        self, db: AsyncSession, *, user_id: int, review_id: int
    ) -> Optional[ReviewFlag]:
        statement = select(self.model).where(
            self.model.user_id == user_id, self.model.review_id == review_id
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: ReviewFlag) -> ReviewFlag:
        db.add(obj_in)
        await db.flush()
        return obj_in

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def delete_by_review(self, db: AsyncSession, *, review_id: int) -> int:
        statement = delete(self.model).where(self.model.review_id == review_id)
        result = await db.execute(statement)
        return result.rowcount


review_flag_repository = ReviewFlagRepository()
