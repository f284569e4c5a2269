import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select

from bookreview.core.exception_utils import handle_exceptions
from bookreview.core.exceptions import InternalServerError
from bookreview.crud.base_crud import BaseRepository, DB_ERROR_MESSAGE
from bookreview.models.user_model import User


class UserRepository(BaseRepository[User]):
    """Read access to users, plus `create` for seeding and tests."""

    def __init__(self):
        super().__init__(User)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[User]:
        """Retrieves a user by their ID."""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def create(self, db: AsyncSession, *, obj_in: User) -> User:
        db.add(obj_in)
        await db.flush()
        await db.refresh(obj_in)
        self._logger.info(f"User created: {obj_in.id}")
        return obj_in


user_repository = UserRepository()
